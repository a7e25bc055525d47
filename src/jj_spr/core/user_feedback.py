"""User-facing progress output with mode awareness."""

from abc import ABC, abstractmethod

import click

from jj_spr.cli.output import format_step, user_output


class UserFeedback(ABC):
    """Provides user-facing progress output.

    Commands report progress through ctx.feedback instead of printing, so
    tests can assert on what the user saw and quiet mode can drop it.

    Usage:
        ctx.feedback.step("🛫", "Getting started...")
        ctx.feedback.commit_title("a1b2c3d", "Add retry to fetch")
        ctx.feedback.warning("Please rebase your working copy")
    """

    @abstractmethod
    def step(self, icon: str, message: str) -> None:
        """Show a progress line prefixed with an icon."""

    @abstractmethod
    def commit_title(self, short_id: str, title: str) -> None:
        """Show which commit an operation is working on."""

    @abstractmethod
    def warning(self, message: str) -> None:
        """Show a warning (always shown)."""


class InteractiveFeedback(UserFeedback):
    """Feedback shown in interactive mode (all messages)."""

    def step(self, icon: str, message: str) -> None:
        user_output(format_step(icon, message))

    def commit_title(self, short_id: str, title: str) -> None:
        user_output(f"{click.style(short_id, fg='yellow')} {title}")

    def warning(self, message: str) -> None:
        user_output(click.style(format_step("⚠️ ", message), fg="yellow"))


class SuppressedFeedback(UserFeedback):
    """Feedback with progress suppressed (only warnings shown)."""

    def step(self, icon: str, message: str) -> None:
        pass

    def commit_title(self, short_id: str, title: str) -> None:
        pass

    def warning(self, message: str) -> None:
        user_output(click.style(format_step("⚠️ ", message), fg="yellow"))


class FakeUserFeedback(UserFeedback):
    """Records feedback for test assertions instead of printing it.

    This class has NO public setup methods.
    """

    def __init__(self) -> None:
        self._messages: list[str] = []

    @property
    def messages(self) -> list[str]:
        """Everything shown, formatted as "<kind>: <text>", in order."""
        return self._messages

    def step(self, icon: str, message: str) -> None:
        self._messages.append(f"STEP: {icon} {message}")

    def commit_title(self, short_id: str, title: str) -> None:
        self._messages.append(f"COMMIT: {short_id} {title}")

    def warning(self, message: str) -> None:
        self._messages.append(f"WARNING: {message}")

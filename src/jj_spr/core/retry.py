"""Retry logic with exponential backoff for transient failures.

Used where a remote is known to lag behind an operation that just
succeeded, e.g. fetching a merge commit GitHub has only just created.
"""

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import click

from jj_spr.core.time.abc import Time
from jj_spr.core.user_feedback import UserFeedback

T = TypeVar("T")


def retry_with_backoff(
    time: Time,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    backoff_factor: float = 2.0,
    retry_on: tuple[type[Exception], ...] = (RuntimeError,),
    feedback: UserFeedback | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry function with exponential backoff for transient failures.

    Retries the decorated function up to max_attempts times with exponentially
    increasing delays between attempts. On the final attempt, the exception
    is re-raised to the caller.

    Delay calculation: delay = base_delay * (backoff_factor ** (attempt - 1))
    Example with defaults: 1s, then 2s before the second and third attempts

    Args:
        time: Time implementation used for the delays
        max_attempts: Maximum number of attempts (default: 3)
        base_delay: Initial delay in seconds (default: 1.0)
        backoff_factor: Multiplier for exponential backoff (default: 2.0)
        retry_on: Exception types that trigger a retry; others propagate at once
        feedback: Where retry notices go; without it they are echoed to stderr

    Example:
        @retry_with_backoff(ctx.time, max_attempts=3)
        def fetch() -> None:
            ctx.git.fetch(repo_root, "origin", [sha])
    """

    def notify(message: str) -> None:
        if feedback is None:
            click.echo(message, err=True)
        else:
            feedback.step("🔁", message)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_attempts):
                if attempt > 0:
                    delay = base_delay * (backoff_factor ** (attempt - 1))
                    notify(f"Retrying after {delay:.1f}s (attempt {attempt + 1}/{max_attempts})...")
                    time.sleep(delay)

                try:
                    return func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_attempts - 1:
                        raise
                    first_line = str(e).split("\n", 1)[0]
                    notify(f"Operation failed: {first_line}")

            msg = f"Function {func.__name__} was not attempted (max_attempts={max_attempts})"
            raise RuntimeError(msg)

        return wrapper

    return decorator

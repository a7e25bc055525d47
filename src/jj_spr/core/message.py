"""Structured commit message sections.

A commit message managed by spr looks like this:

    Add retry to the fetch step

    Fetching right after a merge sometimes fails because GitHub has not
    published the merge commit yet.

    Test Plan: ran `jj-spr land` against a scratch repository

    Reviewers: alice

    Pull Request: https://github.com/acme/widgets/pull/42

The first line is the title. Unlabeled text after it is the summary. Any
line of the form ``Label: text`` whose label is known starts a new section.
The same section format is used for pull request bodies on GitHub, where the
top (unlabeled) section is the summary instead of the title.
"""

import re
from collections.abc import Mapping, Sequence
from enum import Enum

from jj_spr.core.errors import SprError


class MessageSection(Enum):
    TITLE = "Title"
    SUMMARY = "Summary"
    TEST_PLAN = "Test Plan"
    REVIEWERS = "Reviewers"
    PULL_REQUEST = "Pull Request"

    @property
    def label(self) -> str:
        return self.value


MessageSections = dict[MessageSection, str]

COMMIT_MESSAGE_ORDER: tuple[MessageSection, ...] = (
    MessageSection.TITLE,
    MessageSection.SUMMARY,
    MessageSection.TEST_PLAN,
    MessageSection.REVIEWERS,
    MessageSection.PULL_REQUEST,
)

GITHUB_BODY_ORDER: tuple[MessageSection, ...] = (
    MessageSection.SUMMARY,
    MessageSection.TEST_PLAN,
)

GITHUB_MERGE_BODY_ORDER: tuple[MessageSection, ...] = (
    MessageSection.SUMMARY,
    MessageSection.TEST_PLAN,
    MessageSection.REVIEWERS,
    MessageSection.PULL_REQUEST,
)

# Labels longer than this (together with their text) go on their own line
LABEL_LINE_WIDTH = 76

_LABEL_LINE = re.compile(r"^\s*([\w\s]+?)\s*:\s*(.*)$")

_SECTIONS_BY_LABEL: dict[str, MessageSection] = {
    "title": MessageSection.TITLE,
    "summary": MessageSection.SUMMARY,
    "test plan": MessageSection.TEST_PLAN,
    "reviewer": MessageSection.REVIEWERS,
    "reviewers": MessageSection.REVIEWERS,
    "pull request": MessageSection.PULL_REQUEST,
}


def section_by_label(label: str) -> MessageSection | None:
    """Look up a section by label, ignoring case and extra whitespace."""
    return _SECTIONS_BY_LABEL.get(" ".join(label.lower().split()))


def _append(sections: MessageSections, section: MessageSection, text: str) -> None:
    text = text.strip()
    if not text:
        return
    existing = sections.get(section)
    if existing is None:
        sections[section] = text
    else:
        sections[section] = f"{existing}\n\n{text}"


def parse_message(text: str, top_section: MessageSection = MessageSection.TITLE) -> MessageSections:
    """Split a message into its sections.

    Never fails: sections that do not appear are absent from the result,
    and text that belongs to no labeled section lands in the implicit
    default section (the title's following summary, or top_section itself).
    """
    sections: MessageSections = {}
    section = top_section
    lines_in_section: list[str] = []

    for lineno, line in enumerate(text.strip().split("\n")):
        match = _LABEL_LINE.match(line)
        if match is not None:
            new_section = section_by_label(match.group(1))
            if new_section is not None:
                _append(sections, section, "\n".join(lines_in_section))
                section = new_section
                lines_in_section = [match.group(2)]
                continue

        if lineno == 0 and top_section is MessageSection.TITLE:
            # The title is only ever the first line
            _append(sections, section, line)
            section = MessageSection.SUMMARY
        else:
            lines_in_section.append(line)

    _append(sections, section, "\n".join(lines_in_section))
    return sections


def _starts_with_label(text: str) -> bool:
    match = _LABEL_LINE.match(text.split("\n", 1)[0])
    return match is not None and section_by_label(match.group(1)) is not None


def build_message(
    sections: Mapping[MessageSection, str],
    order: Sequence[MessageSection],
    top_section: MessageSection = MessageSection.TITLE,
) -> str:
    """Render sections in the given order.

    The top section is written without a label, and so is a summary that
    directly follows a title, unless the text itself starts like a label
    line. Once a label has been written every following section is labeled
    too, so the result parses back into the same mapping.
    """
    parts: list[str] = []
    display_label = False
    previous: MessageSection | None = None

    for section in order:
        text = sections.get(section)
        if text is None:
            continue

        unlabeled = (
            not display_label
            and not _starts_with_label(text)
            and (
                (previous is None and section is top_section)
                or (previous is MessageSection.TITLE and section is MessageSection.SUMMARY)
            )
        )
        if unlabeled:
            parts.append(f"{text}\n")
        else:
            display_label = True
            label = section.label
            if "\n" in text or len(label) + len(text) > LABEL_LINE_WIDTH:
                parts.append(f"{label}:\n{text}\n")
            else:
                parts.append(f"{label}: {text}\n")
        previous = section

    return "\n".join(parts)


def build_commit_message(sections: Mapping[MessageSection, str]) -> str:
    return build_message(sections, COMMIT_MESSAGE_ORDER)


def build_github_body(sections: Mapping[MessageSection, str]) -> str:
    """Body of a pull request as created or updated from a commit."""
    return build_message(sections, GITHUB_BODY_ORDER, MessageSection.SUMMARY)


def build_github_body_for_merging(sections: Mapping[MessageSection, str]) -> str:
    """Body of the squash commit GitHub creates when a pull request lands."""
    return build_message(sections, GITHUB_MERGE_BODY_ORDER, MessageSection.SUMMARY)


def validate_commit_message(
    sections: Mapping[MessageSection, str], *, require_test_plan: bool
) -> list[str]:
    """Check that a message has the sections a pull request needs.

    Returns:
        Warnings worth showing to the user (possibly empty)

    Raises:
        SprError: With one message per missing required section
    """
    error: SprError | None = None

    def fail(message: str) -> None:
        nonlocal error
        if error is None:
            error = SprError(message)
        else:
            error.push(message)

    if not sections.get(MessageSection.TITLE):
        fail("Commit message does not have a title!")
    if require_test_plan and not sections.get(MessageSection.TEST_PLAN):
        fail("Commit message does not have a Test Plan!")

    if error is not None:
        raise error

    warnings: list[str] = []
    if not sections.get(MessageSection.SUMMARY):
        warnings.append("It is good practice to summarize your changes in the commit message.")
    return warnings

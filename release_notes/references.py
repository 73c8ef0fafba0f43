"""
Issue reference extraction from commit messages.

A reference is ``#<digits>`` where the ``#`` is not glued to a preceding
word character, so ``fix #12`` and ``(#12)`` count but ``abc#12`` does not.
"""

import logging
import re
from typing import Callable, Iterable

from .data_sources import IssueNotFoundError
from .models import Issue


logger = logging.getLogger(__name__)


ISSUE_REFERENCE_PATTERN = re.compile(r"(?<!\w)#(\d+)\b", re.MULTILINE)


def find_issue_numbers(message: str) -> list[int]:
    """
    Extract issue numbers referenced in one commit message.

    Args:
        message: The full commit message.

    Returns:
        Issue numbers in order of appearance (may contain repeats).
    """
    return [int(match) for match in ISSUE_REFERENCE_PATTERN.findall(message)]


def collect_issues(
    messages: Iterable[str],
    fetch_issue: Callable[[int], Issue],
) -> dict[int, Issue]:
    """
    Fetch every issue referenced by a sequence of commit messages.

    Each distinct number is fetched at most once, in first-occurrence order.
    Numbers that do not resolve to an issue are logged and skipped for the
    rest of the run.

    Args:
        messages: Commit messages, consumed lazily.
        fetch_issue: Collaborator returning the issue for a number.

    Returns:
        Issues keyed by number, ordered by first reference.

    Raises:
        Any error of ``fetch_issue`` other than IssueNotFoundError.
    """
    issues: dict[int, Issue] = {}
    seen: set[int] = set()

    for message in messages:
        for number in find_issue_numbers(message):
            if number in seen:
                continue
            seen.add(number)

            try:
                issues[number] = fetch_issue(number)
            except IssueNotFoundError:
                logger.warning(f"Issue #{number} cannot be found in this repository.")

    logger.info(f"Collected {len(issues)} referenced issues")
    return issues

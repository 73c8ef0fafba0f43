"""
Contributor resolution from issue event timelines.

The people credited for an issue are the actors of commit-bearing events,
which is closer to who did the work than the static assignee field.
"""

import logging
from typing import Iterable, Optional, Sequence

from .models import IssueEvent


logger = logging.getLogger(__name__)


# "commited" is the spelling the events API reports; keep it verbatim
CONTRIBUTION_EVENTS = frozenset({"referenced", "closed", "commited"})


def is_contribution(event: IssueEvent) -> bool:
    """Check if an event credits its actor with a commit."""
    return (
        event.event in CONTRIBUTION_EVENTS
        and bool(event.commit_id)
        and event.actor is not None
    )


def resolve_contributors(events: Iterable[IssueEvent]) -> tuple[str, ...]:
    """
    Derive the contributors of an issue from its timeline.

    Args:
        events: The complete event timeline, in any order.

    Returns:
        Actor logins in order of first qualifying event, without duplicates.
    """
    contributors: dict[str, None] = {}
    for event in events:
        if is_contribution(event):
            contributors.setdefault(event.actor, None)
    return tuple(contributors)


def format_attribution(contributors: Sequence[str], assignee: Optional[str]) -> str:
    """
    Build the attribution text for a changelog entry.

    Contributors are mentioned as ``@login``; with no contributors the
    assignee login is used as-is, and with neither the result is empty.
    """
    if contributors:
        return ", ".join(f"@{login}" for login in contributors)
    return assignee or ""

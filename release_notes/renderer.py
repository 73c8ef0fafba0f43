"""
Markdown changelog renderer for the Release Notes Generator.

Produces one section per non-empty category:

    ### Features
     - [Add dark mode](https://github.com/o/r/issues/1) (@alice, @bob)
"""

import logging
from typing import Mapping, Sequence

from .contributors import format_attribution
from .models import CategorySection, Changelog, Issue


logger = logging.getLogger(__name__)


def render_heading(title: str) -> str:
    return f"### {title}\n"


def render_issue(issue: Issue, contributors: Sequence[str]) -> str:
    """
    Render one changelog entry.

    Args:
        issue: The issue to render.
        contributors: Logins credited for the issue.

    Returns:
        Entry line including the trailing newline.
    """
    attribution = format_attribution(contributors, issue.assignee)
    line = f" - [{issue.title}]({issue.url})"
    if attribution:
        line += f" ({attribution})"
    return line + "\n"


def render_section(section: CategorySection, contributors: Mapping[int, Sequence[str]]) -> str:
    """Render a heading followed by the section's entries."""
    lines = [render_heading(section.title)]
    for issue in section.issues:
        lines.append(render_issue(issue, contributors.get(issue.number, ())))
    return "".join(lines)


def render_changelog(changelog: Changelog, contributors: Mapping[int, Sequence[str]]) -> str:
    """
    Render a categorized changelog as Markdown.

    Categories keep their configured order; empty ones are skipped.

    Args:
        changelog: Result of the categorizer.
        contributors: Contributor logins per issue number.

    Returns:
        The rendered text (empty when no issue was categorized).
    """
    sections = changelog.non_empty_sections()
    markup = "".join(render_section(section, contributors) for section in sections)
    logger.info(f"Rendered {len(sections)} changelog sections")
    return markup

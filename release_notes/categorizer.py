"""
Label-based issue categorizer for the Release Notes Generator.

Assigns closed issues to the changelog categories of a ReleaseConfig.

Rules, in order of precedence:
- Only closed issues are considered
- Global exclusion (label or closer) drops an issue entirely
- An issue fans out to every category one of its labels maps to,
  unless that category's own exclusion rule rejects it
- An issue no category accepted falls back to the catch-all (``*``),
  subject only to the catch-all's author exclusion
"""

import logging
from typing import Iterable, Optional

from .models import (
    CATCH_ALL_LABEL,
    Category,
    CategorySection,
    Changelog,
    Issue,
    ReleaseConfig,
)


logger = logging.getLogger(__name__)


def build_label_mapping(categories: list[Category]) -> dict[str, int]:
    """
    Map each label to the position of the category that claims it.

    When several categories claim the same label, the one declared last wins.

    Args:
        categories: Categories in declaration order.

    Returns:
        Label to category index mapping.
    """
    mapping: dict[str, int] = {}
    for index, category in enumerate(categories):
        for label in category.labels:
            if label in mapping and mapping[label] != index:
                logger.debug(
                    f"Label '{label}' claimed by '{categories[mapping[label]].title}' "
                    f"is reassigned to '{category.title}'"
                )
            mapping[label] = index
    return mapping


class IssueCategorizer:
    """
    Deterministic categorizer for changelog issues.

    Holds only the immutable configuration and lookups derived from it;
    every call to ``categorize`` builds a fresh Changelog.
    """

    def __init__(self, config: ReleaseConfig):
        """
        Initialize the categorizer.

        Args:
            config: Release configuration with categories and exclusions.
        """
        self._config = config
        self._categories = list(config.categories)
        self._label_mapping = build_label_mapping(self._categories)
        self._catch_all_index: Optional[int] = self._label_mapping.get(CATCH_ALL_LABEL)

        logger.info(f"Categorizer ready: {len(self._categories)} categories")
        if self._catch_all_index is not None:
            logger.debug(f"Catch-all category: '{self.catch_all.title}'")

    @property
    def catch_all(self) -> Optional[Category]:
        """The category receiving otherwise unmatched issues, if any."""
        if self._catch_all_index is None:
            return None
        return self._categories[self._catch_all_index]

    def is_excluded(self, issue: Issue) -> bool:
        """Check the global exclusion rule."""
        return self._config.exclude.excludes(issue.labels, issue.closed_by)

    def _accepts(self, category: Category, issue: Issue) -> bool:
        return not category.exclude.excludes(issue.labels, issue.closed_by)

    def assign(self, issue: Issue) -> list[int]:
        """
        Determine the categories an issue belongs to.

        Args:
            issue: The issue to categorize.

        Returns:
            Indexes of the receiving categories, in label order.
        """
        if not issue.is_closed:
            return []

        if self.is_excluded(issue):
            logger.debug(f"Issue #{issue.number} is excluded globally")
            return []

        assigned: list[int] = []
        for label in issue.labels:
            index = self._label_mapping.get(label)
            if index is None or index in assigned:
                continue

            if self._accepts(self._categories[index], issue):
                assigned.append(index)
            else:
                logger.debug(
                    f"Issue #{issue.number} excluded from '{self._categories[index].title}'"
                )

        if not assigned and self._catch_all_index is not None:
            if not self.catch_all.exclude.excludes_author(issue.closed_by):
                assigned.append(self._catch_all_index)

        return assigned

    def categorize(self, issues: Iterable[Issue]) -> Changelog:
        """
        Categorize issues into a changelog.

        Args:
            issues: Issues in the order entries should appear.

        Returns:
            Changelog with one section per category, in declaration order.
        """
        buckets: list[list[Issue]] = [[] for _ in self._categories]
        total = 0
        placed = 0

        for issue in issues:
            total += 1
            indexes = self.assign(issue)
            for index in indexes:
                buckets[index].append(issue)
            if indexes:
                placed += 1

        logger.info(f"Categorized {placed} of {total} issues")

        return Changelog(
            sections=tuple(
                CategorySection(category=category, issues=tuple(bucket))
                for category, bucket in zip(self._categories, buckets)
            )
        )


def categorize_issues(config: ReleaseConfig, issues: Iterable[Issue]) -> Changelog:
    """
    Convenience function to categorize issues with a configuration.

    Args:
        config: Release configuration.
        issues: Issues to categorize.

    Returns:
        The resulting Changelog.
    """
    return IssueCategorizer(config).categorize(issues)

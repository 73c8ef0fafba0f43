"""
Data models for the Release Notes Generator.

Uses Pydantic for robust data validation and serialization.
All models are immutable so a run never mutates shared state.
"""

from typing import Any, Iterable, Optional

from pydantic import (
    BaseModel,
    AliasChoices,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)


CATCH_ALL_LABEL = "*"


class ConfigError(Exception):
    """Release configuration is missing or malformed."""
    pass


def _login_of(value: Any) -> Any:
    """Flatten a GitHub user object to its login."""
    if isinstance(value, dict):
        return value.get("login")
    return value


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    """Deduplicate while keeping first-occurrence order."""
    return tuple(dict.fromkeys(values))


class ExcludeRule(BaseModel):
    """
    Labels and authors that keep an issue out of the changelog.

    Label matching is exact and case-sensitive, author matching ignores case.
    """

    labels: frozenset[str] = Field(default_factory=frozenset)
    authors: frozenset[str] = Field(default_factory=frozenset)

    model_config = {"frozen": True}

    @field_validator("labels", "authors", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        """Treat an empty YAML key (``labels:``) as no entries."""
        return [] if v is None else v

    @field_validator("authors")
    @classmethod
    def lowercase_authors(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(author.lower() for author in v)

    def excludes_labels(self, labels: Iterable[str]) -> bool:
        """Check if any of the labels is excluded."""
        return any(label in self.labels for label in labels)

    def excludes_author(self, author: Optional[str]) -> bool:
        """Check if the author is excluded (case-insensitive)."""
        return author is not None and author.lower() in self.authors

    def excludes(self, labels: Iterable[str], author: Optional[str]) -> bool:
        """Check if an issue with these labels, closed by author, is excluded."""
        return self.excludes_labels(labels) or self.excludes_author(author)


class Category(BaseModel):
    """
    A changelog category.

    Attributes:
        title: Heading rendered above the category's entries
        labels: Labels routing issues into this category (``*`` for catch-all)
        exclude: Category-level exclusion rule
    """

    title: str = Field(..., min_length=1, description="Category heading")
    labels: tuple[str, ...] = Field(default=(), description="Labels mapped to the category")
    exclude: ExcludeRule = Field(default_factory=ExcludeRule)

    model_config = {"frozen": True}

    @field_validator("labels", mode="before")
    @classmethod
    def normalize_labels(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        # Leave anything but a list of names to field validation
        if isinstance(v, (list, tuple)) and all(isinstance(label, str) for label in v):
            return _unique(v)
        return v

    @field_validator("exclude", mode="before")
    @classmethod
    def default_exclude(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def is_catch_all(self) -> bool:
        """Check if the category claims the wildcard label."""
        return CATCH_ALL_LABEL in self.labels


class ChangelogSettings(BaseModel):
    """The ``changelog`` section of a release configuration."""

    exclude: ExcludeRule = Field(default_factory=ExcludeRule)
    categories: list[Category] = Field(..., description="Categories in rendering order")

    model_config = {"frozen": True}

    @field_validator("exclude", mode="before")
    @classmethod
    def default_exclude(cls, v: Any) -> Any:
        return {} if v is None else v


class ReleaseConfig(BaseModel):
    """
    Complete release notes configuration.

    Mirrors the ``.github/release.yml`` document layout.
    """

    changelog: ChangelogSettings

    model_config = {"frozen": True}

    @property
    def categories(self) -> list[Category]:
        return self.changelog.categories

    @property
    def exclude(self) -> ExcludeRule:
        return self.changelog.exclude

    @classmethod
    def from_dict(cls, data: Any) -> "ReleaseConfig":
        """
        Build a configuration from a parsed YAML/JSON document.

        Args:
            data: The parsed document.

        Returns:
            Validated ReleaseConfig.

        Raises:
            ConfigError: If the document is not a mapping, has no
                ``changelog.categories`` or a category has no title.
        """
        if not isinstance(data, dict):
            raise ConfigError("Release configuration must be a mapping with a 'changelog' key")

        changelog = data.get("changelog")
        if not isinstance(changelog, dict) or changelog.get("categories") is None:
            raise ConfigError("Release configuration is missing 'changelog.categories'")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid release configuration: {e}") from e


class Issue(BaseModel):
    """
    A repository issue as needed for the changelog.

    ``closed_by`` is stored lowercased for exclusion checks, ``assignee``
    keeps its original case since it is rendered as-is.
    """

    number: int = Field(..., description="Issue number")
    title: str = Field(default="", description="Issue title")
    url: str = Field(
        default="",
        validation_alias=AliasChoices("html_url", "url"),
        description="Browser URL of the issue",
    )
    state: str = Field(default="open", description="Issue state")
    labels: tuple[str, ...] = Field(default=(), description="Label names")
    closed_by: Optional[str] = Field(default=None, description="Lowercased closer login")
    assignee: Optional[str] = Field(default=None, description="Assignee login")

    model_config = {"frozen": True}

    @field_validator("labels", mode="before")
    @classmethod
    def flatten_labels(cls, v: Any) -> Any:
        """Accept both label names and API label objects."""
        if v is None:
            return ()
        names = (label.get("name") if isinstance(label, dict) else label for label in v)
        return _unique(name for name in names if name)

    @field_validator("closed_by", mode="before")
    @classmethod
    def closer_login(cls, v: Any) -> Any:
        login = _login_of(v)
        return login.lower() if isinstance(login, str) else login

    @field_validator("assignee", mode="before")
    @classmethod
    def assignee_login(cls, v: Any) -> Any:
        return _login_of(v)

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"


class IssueEvent(BaseModel):
    """One entry of an issue's event timeline."""

    event: str
    commit_id: Optional[str] = None
    actor: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("actor", mode="before")
    @classmethod
    def actor_login(cls, v: Any) -> Any:
        return _login_of(v)


class Commit(BaseModel):
    """A commit in the release range."""

    sha: str = ""
    message: str = ""

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def lift_message(cls, data: Any) -> Any:
        """The REST API nests the message under ``commit``."""
        if isinstance(data, dict) and "message" not in data:
            inner = data.get("commit") or {}
            data = {"sha": data.get("sha") or "", "message": inner.get("message") or ""}
        return data


class CategorySection(BaseModel):
    """Issues assigned to one category, in assignment order."""

    category: Category
    issues: tuple[Issue, ...] = ()

    model_config = {"frozen": True}

    @property
    def title(self) -> str:
        return self.category.title

    def issue_numbers(self) -> list[int]:
        return [issue.number for issue in self.issues]


class Changelog(BaseModel):
    """
    Result of categorizing a set of issues.

    Sections follow the configuration's declaration order, including
    categories that received no issues.
    """

    sections: tuple[CategorySection, ...] = ()

    model_config = {"frozen": True}

    def non_empty_sections(self) -> list[CategorySection]:
        return [section for section in self.sections if section.issues]

    def categorized_issues(self) -> list[Issue]:
        """Distinct categorized issues in first-appearance order."""
        seen: dict[int, Issue] = {}
        for section in self.sections:
            for issue in section.issues:
                seen.setdefault(issue.number, issue)
        return list(seen.values())

    def is_empty(self) -> bool:
        return not self.non_empty_sections()

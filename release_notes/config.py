"""
Configuration module for the Release Notes Generator.

Handles all runtime settings through environment variables with secure defaults.
Inputs follow the GitHub Actions convention (``INPUT_<NAME>``) so the same
code runs as an action step or from a developer shell with a ``.env`` file.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


TAG_REF_PREFIX = "refs/tags/"

# Candidate locations of the category configuration inside the repository
DEFAULT_CONFIG_PATHS = (".github/release.yml", ".github/release.yaml")

# Used when the repository carries no configuration file
DEFAULT_RELEASE_CONFIG = {
    "changelog": {
        "exclude": {
            "labels": ["duplicate", "invalid", "question", "wontfix"],
        },
        "categories": [
            {"title": "Features", "labels": ["enhancement", "feature"]},
            {"title": "Bug Fixes", "labels": ["bug"]},
            {"title": "Documentation", "labels": ["documentation"]},
            {"title": "Other Changes", "labels": ["*"]},
        ],
    }
}


def strip_tag_ref(value: Optional[str]) -> str:
    """Remove a leading ``refs/tags/`` from a tag input."""
    if not value:
        return ""
    value = value.strip()
    if value.startswith(TAG_REF_PREFIX):
        return value[len(TAG_REF_PREFIX):]
    return value


@dataclass(frozen=True)
class GitHubConfig:
    """Configuration for the GitHub REST API."""

    token: str = field(
        default_factory=lambda: os.getenv("GITHUB_TOKEN", "")
    )

    # "owner/repo" as exported by the Actions runner
    repository: str = field(
        default_factory=lambda: os.getenv("GITHUB_REPOSITORY", "")
    )
    api_url: str = field(
        default_factory=lambda: os.getenv("GITHUB_API_URL", "https://api.github.com")
    )

    # Request timeout in seconds
    request_timeout: int = field(
        default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30"))
    )
    per_page: int = field(
        default_factory=lambda: int(os.getenv("GITHUB_PER_PAGE", "100"))
    )

    @property
    def owner(self) -> str:
        """Repository owner part of ``repository``."""
        return self.repository.partition("/")[0]

    @property
    def repo(self) -> str:
        """Repository name part of ``repository``."""
        return self.repository.partition("/")[2]


@dataclass(frozen=True)
class ActionInputs:
    """Inputs of a single release notes run."""

    tag_name: str = field(
        default_factory=lambda: strip_tag_ref(os.getenv("INPUT_TAG_NAME", ""))
    )
    prev_tag_name: str = field(
        default_factory=lambda: strip_tag_ref(os.getenv("INPUT_PREV_TAG_NAME", ""))
    )
    configuration_file_path: str = field(
        default_factory=lambda: os.getenv("INPUT_CONFIGURATION_FILE_PATH", "").strip()
    )

    def config_paths(self) -> Iterator[str]:
        """
        Yield candidate configuration file paths in lookup order.

        An explicit ``configuration_file_path`` is the only candidate;
        otherwise the conventional locations are tried.
        """
        if self.configuration_file_path:
            yield self.configuration_file_path
        else:
            yield from DEFAULT_CONFIG_PATHS


@dataclass(frozen=True)
class OutputConfig:
    """Configuration for where the rendered notes go."""

    # File the Actions runner collects step outputs from
    github_output: Optional[Path] = field(
        default_factory=lambda: Path(os.environ["GITHUB_OUTPUT"]) if os.getenv("GITHUB_OUTPUT") else None
    )
    output_name: str = "release_notes_content"
    output_file: Optional[Path] = None


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration aggregating all config sections."""

    github: GitHubConfig = field(default_factory=GitHubConfig)
    inputs: ActionInputs = field(default_factory=ActionInputs)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Logging level
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of validation error messages (empty if valid).
        """
        errors = []

        if not self.inputs.tag_name:
            errors.append("Input required and not supplied: tag_name")

        if not self.github.token:
            errors.append("GITHUB_TOKEN is required")
        if not self.github.owner or not self.github.repo:
            errors.append("GITHUB_REPOSITORY must be in 'owner/repo' form")

        return errors


def get_config() -> AppConfig:
    """
    Get application configuration.

    Returns:
        AppConfig instance with all settings loaded from environment.
    """
    return AppConfig()

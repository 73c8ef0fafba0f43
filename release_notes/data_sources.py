"""
Data source handlers for the Release Notes Generator.

Responsible for retrieving data from the GitHub REST API:
- Commits of a tag range (or the full history behind a tag)
- Issues referenced by those commits and their event timelines
- The category configuration file stored in the repository
"""

import base64
import logging
from typing import Any, Iterable, Iterator, Optional

import httpx
import yaml

from .config import DEFAULT_RELEASE_CONFIG, GitHubConfig
from .models import Commit, ConfigError, Issue, IssueEvent, ReleaseConfig


logger = logging.getLogger(__name__)


class DataSourceError(Exception):
    """Base exception for data source errors."""
    pass


class GitHubAPIError(DataSourceError):
    """Error when communicating with the GitHub API."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GitHubAPIError):
    """The requested GitHub resource does not exist (HTTP 404)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class IssueNotFoundError(NotFoundError):
    """A referenced issue number does not exist in the repository."""

    def __init__(self, number: int):
        super().__init__(f"Issue #{number} cannot be found in this repository.")
        self.number = number


class GitHubClient:
    """
    Client for the GitHub REST API.

    Must be used as a context manager. Paginated endpoints are exposed as
    generators that follow the ``Link: rel="next"`` header, so callers pull
    pages lazily and sequentially.
    """

    def __init__(self, config: GitHubConfig, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize the GitHub client.

        Args:
            config: GitHub configuration with repository and token.
            transport: Optional httpx transport (used by tests).
        """
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> "GitHubClient":
        """Context manager entry."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"

        self._client = httpx.Client(
            base_url=self._config.api_url,
            headers=headers,
            timeout=self._config.request_timeout,
            transport=self._transport,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        if self._client:
            self._client.close()
            self._client = None

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self._config.owner}/{self._config.repo}"

    def _get(self, url: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        """
        Perform a GET request and map failures to data source errors.

        Raises:
            NotFoundError: If GitHub answers 404.
            GitHubAPIError: On any other HTTP or transport failure.
        """
        if not self._client:
            raise RuntimeError("Client must be used within a context manager")

        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise NotFoundError(f"Not found: {e.request.url}") from e
            logger.error(f"HTTP error calling GitHub: {e}")
            raise GitHubAPIError(
                f"GitHub API error {status} for {e.request.url}", status_code=status
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Request error calling GitHub: {e}")
            raise GitHubAPIError(f"Request failed: {str(e)}") from e

    def _paginate(self, url: str, params: Optional[dict[str, Any]] = None) -> Iterator[Any]:
        """Yield items of a paginated list endpoint, page by page."""
        page_params: Optional[dict[str, Any]] = {"per_page": self._config.per_page, **(params or {})}
        next_url: Optional[str] = url

        while next_url:
            response = self._get(next_url, params=page_params)
            yield from response.json()

            # The next link already carries every query parameter
            next_url = response.links.get("next", {}).get("url")
            page_params = None

    def get_latest_release_tag(self) -> str:
        """
        Get the tag of the latest published full release.

        Raises:
            NotFoundError: If the repository has no published release.
        """
        response = self._get(f"{self._repo_path}/releases/latest")
        return response.json()["tag_name"]

    def get_file_content(self, path: str) -> str:
        """
        Get the decoded content of a file in the default branch.

        Raises:
            NotFoundError: If the path does not exist.
            ConfigError: If the path is not a regular file.
        """
        response = self._get(f"{self._repo_path}/contents/{path}")
        data = response.json()

        if not isinstance(data, dict) or data.get("type") != "file":
            raise ConfigError(f"Configuration path '{path}' is not a file")

        return base64.b64decode(data.get("content", "")).decode("utf-8")

    def compare_commits(self, base: str, head: str) -> list[Commit]:
        """Get the commits between two refs (single comparison response)."""
        response = self._get(
            f"{self._repo_path}/compare/{base}...{head}",
            params={"per_page": self._config.per_page},
        )
        commits = [Commit.model_validate(c) for c in response.json().get("commits", [])]
        logger.info(f"Found {len(commits)} commits between {base} and {head}")
        return commits

    def iter_commits(self, sha: str) -> Iterator[Commit]:
        """Iterate every commit reachable from ``sha``."""
        for data in self._paginate(f"{self._repo_path}/commits", params={"sha": sha}):
            yield Commit.model_validate(data)

    def get_issue(self, number: int) -> Issue:
        """
        Fetch a single issue.

        Raises:
            IssueNotFoundError: If the issue does not exist.
        """
        try:
            response = self._get(f"{self._repo_path}/issues/{number}")
        except NotFoundError as e:
            raise IssueNotFoundError(number) from e

        return Issue.model_validate(response.json())

    def iter_issue_events(self, number: int) -> Iterator[IssueEvent]:
        """Iterate the full event timeline of an issue."""
        for data in self._paginate(f"{self._repo_path}/issues/{number}/events"):
            yield IssueEvent.model_validate(data)


def parse_release_config(content: str) -> ReleaseConfig:
    """
    Parse YAML (or JSON) content into a ReleaseConfig.

    Raises:
        ConfigError: If the content is not valid YAML or not a valid configuration.
    """
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error: {e}")
        raise ConfigError(f"Invalid YAML: {str(e)}") from e

    return ReleaseConfig.from_dict(data)


def load_release_config(client: GitHubClient, paths: Iterable[str]) -> ReleaseConfig:
    """
    Load the category configuration from the first existing path.

    Missing files are not an error: the next candidate is tried and, when
    none exists, the built-in default configuration is used.

    Args:
        client: An open GitHub client.
        paths: Candidate file paths in lookup order.

    Returns:
        The parsed configuration.

    Raises:
        ConfigError: If a found file is malformed.
        GitHubAPIError: On any API error other than 404.
    """
    for path in paths:
        try:
            content = client.get_file_content(path)
        except NotFoundError:
            logger.info(f"No release configuration at '{path}'")
            continue

        config = parse_release_config(content)
        logger.info(
            f"Loaded release configuration from '{path}' "
            f"with {len(config.categories)} categories"
        )
        return config

    logger.info("Using the default release configuration")
    return ReleaseConfig.from_dict(DEFAULT_RELEASE_CONFIG)

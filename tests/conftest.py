"""Shared fixtures: an in-memory GitHub REST API for httpx.MockTransport."""

import base64
from typing import Any, Optional

import httpx
import pytest

from release_notes.config import GitHubConfig


API_URL = "https://api.github.test"
REPO_PATH = "/repos/octo/widgets"


class FakeGitHub:
    """Routes requests by path (and ``page`` query) to canned responses."""

    def __init__(self):
        self.routes: dict[tuple[str, Optional[str]], tuple[int, Any, dict]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        path: str,
        payload: Any,
        status: int = 200,
        page: Optional[int] = None,
        next_page: Optional[int] = None,
    ) -> None:
        headers = {}
        if next_page is not None:
            headers["Link"] = f'<{API_URL}{REPO_PATH}{path}?page={next_page}>; rel="next"'
        key = (REPO_PATH + path, str(page) if page is not None else None)
        self.routes[key] = (status, payload, headers)

    def add_issue(self, number: int, **fields) -> None:
        issue = {
            "number": number,
            "title": fields.pop("title", f"Issue {number}"),
            "html_url": f"https://github.com/octo/widgets/issues/{number}",
            "state": fields.pop("state", "closed"),
            "labels": [{"name": name} for name in fields.pop("labels", [])],
            "closed_by": {"login": fields.pop("closed_by", "octocat")},
            "assignee": None,
        }
        assignee = fields.pop("assignee", None)
        if assignee:
            issue["assignee"] = {"login": assignee}
        self.add(f"/issues/{number}", issue)

    def add_config(self, path: str, content: str) -> None:
        encoded = base64.b64encode(content.encode("utf-8")).decode("ascii")
        self.add(f"/contents/{path}", {"type": "file", "content": encoded})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.url.path, request.url.params.get("page"))
        if key not in self.routes:
            return httpx.Response(404, json={"message": "Not Found"})
        status, payload, headers = self.routes[key]
        return httpx.Response(status, json=payload, headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == REPO_PATH + path)


def event(kind: str, login: Optional[str], commit_id: Optional[str] = "abc123") -> dict:
    """Build a raw issue event payload."""
    return {
        "event": kind,
        "commit_id": commit_id,
        "actor": {"login": login} if login else None,
    }


def commit(message: str, sha: str = "0" * 40) -> dict:
    """Build a raw commit payload."""
    return {"sha": sha, "commit": {"message": message}}


@pytest.fixture
def github_config() -> GitHubConfig:
    """GitHub config pointing at the fake API."""
    return GitHubConfig(
        token="test-token",
        repository="octo/widgets",
        api_url=API_URL,
        request_timeout=10,
        per_page=100,
    )


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()

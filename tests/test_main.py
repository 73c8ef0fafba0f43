"""Tests for the pipeline orchestrator and command line interface."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from conftest import API_URL, commit, event
from release_notes.config import ActionInputs, AppConfig, OutputConfig
from release_notes.data_sources import GitHubClient
from release_notes.main import (
    PipelineError,
    apply_overrides,
    main,
    run_pipeline,
    validate_config,
)


RELEASE_YAML = """
changelog:
  exclude:
    authors: [dependabot]
  categories:
    - title: Features
      labels: [enhancement]
    - title: Bugs
      labels: [bug]
      exclude:
        labels: [wontfix]
    - title: Other
      labels: ["*"]
"""

EXPECTED_NOTES = (
    "### Features\n"
    " - [Dark mode](https://github.com/octo/widgets/issues/12) (@erin, @frank)\n"
    "### Other\n"
    " - [Crash on save](https://github.com/octo/widgets/issues/7) (dave)\n"
)


@pytest.fixture
def populated_github(fake_github):
    """Repository with a release range referencing #12, #7 and a missing #99."""
    fake_github.add_config(".github/release.yml", RELEASE_YAML)
    fake_github.add(
        "/compare/v1.0.0...v1.1.0",
        {"commits": [commit("fix #12 and #7"), commit("#12 again"), commit("docs for #99")]},
    )
    fake_github.add_issue(12, title="Dark mode", labels=["enhancement"], closed_by="alice")
    fake_github.add_issue(
        7, title="Crash on save", labels=["bug", "wontfix"], closed_by="bob", assignee="dave"
    )
    fake_github.add(
        "/issues/12/events",
        [event("referenced", "erin"), event("labeled", "zed", commit_id=None)],
        next_page=2,
    )
    fake_github.add(
        "/issues/12/events",
        [event("closed", "frank"), event("referenced", "erin")],
        page=2,
    )
    fake_github.add("/issues/7/events", [event("closed", "bob", commit_id=None)])
    return fake_github


def make_config(github_config, tmp_path, **inputs) -> AppConfig:
    values = {"tag_name": "v1.1.0", "prev_tag_name": "v1.0.0", "configuration_file_path": ""}
    values.update(inputs)
    return AppConfig(
        github=github_config,
        inputs=ActionInputs(**values),
        output=OutputConfig(github_output=None, output_file=tmp_path / "notes.md"),
        log_level="DEBUG",
    )


class TestRunPipeline:
    """Tests for run_pipeline."""

    def test_end_to_end(self, github_config, populated_github, tmp_path):
        """Test the complete pipeline output."""
        config = make_config(github_config, tmp_path)
        with GitHubClient(github_config, transport=populated_github.transport()) as client:
            notes = run_pipeline(config, client)

        assert notes == EXPECTED_NOTES
        assert (tmp_path / "notes.md").read_text(encoding="utf-8") == EXPECTED_NOTES

    def test_issues_fetched_once(self, github_config, populated_github, tmp_path):
        """Test repeated references cause a single fetch."""
        config = make_config(github_config, tmp_path)
        with GitHubClient(github_config, transport=populated_github.transport()) as client:
            run_pipeline(config, client)

        assert populated_github.calls_to("/issues/12") == 1
        assert populated_github.calls_to("/issues/7") == 1
        assert populated_github.calls_to("/issues/99") == 1

    def test_rerun_is_identical(self, github_config, populated_github, tmp_path):
        """Test identical inputs give byte-identical output."""
        config = make_config(github_config, tmp_path)
        with GitHubClient(github_config, transport=populated_github.transport()) as client:
            first = run_pipeline(config, client)
            second = run_pipeline(config, client)
        assert first == second

    def test_falls_back_to_latest_release(self, github_config, populated_github, tmp_path):
        """Test the latest release is the default baseline."""
        populated_github.add("/releases/latest", {"tag_name": "v1.0.0"})
        config = make_config(github_config, tmp_path, prev_tag_name="")

        with GitHubClient(github_config, transport=populated_github.transport()) as client:
            notes = run_pipeline(config, client)

        assert notes == EXPECTED_NOTES

    def test_full_history_without_release(self, github_config, fake_github, tmp_path):
        """Test all commits behind the tag are scanned without a release."""
        fake_github.add("/commits", [commit("close #3")], next_page=2)
        fake_github.add("/commits", [commit("initial commit")], page=2)
        fake_github.add_issue(3, title="Old bug", labels=["bug"], closed_by="carol")
        fake_github.add("/issues/3/events", [])

        config = make_config(github_config, tmp_path, prev_tag_name="")
        with GitHubClient(github_config, transport=fake_github.transport()) as client:
            notes = run_pipeline(config, client)

        # Default configuration, no events and no assignee
        assert notes == "### Bug Fixes\n - [Old bug](https://github.com/octo/widgets/issues/3)\n"
        assert fake_github.calls_to("/commits") == 2

    def test_uncredited_issue_has_no_attribution(self, github_config, fake_github, tmp_path):
        """Test an issue without contributors or assignee renders without parentheses."""
        fake_github.add_config(".github/release.yml", RELEASE_YAML)
        fake_github.add("/compare/v1.0.0...v1.1.0", {"commits": [commit("ship #12"), commit("#5")]})
        fake_github.add_issue(12, title="Dark mode", labels=["enhancement"], closed_by="alice")
        fake_github.add_issue(5, title="Faster export", labels=["enhancement"], closed_by="alice")
        fake_github.add("/issues/12/events", [event("referenced", "erin")])
        fake_github.add("/issues/5/events", [event("closed", "alice", commit_id=None)])

        config = make_config(github_config, tmp_path)
        with GitHubClient(github_config, transport=fake_github.transport()) as client:
            notes = run_pipeline(config, client)

        assert notes == (
            "### Features\n"
            " - [Dark mode](https://github.com/octo/widgets/issues/12) (@erin)\n"
            " - [Faster export](https://github.com/octo/widgets/issues/5)\n"
        )

    def test_open_and_excluded_issues_omitted(self, github_config, fake_github, tmp_path):
        """Test open issues and globally excluded closers never render."""
        fake_github.add_config(".github/release.yml", RELEASE_YAML)
        fake_github.add("/compare/v1.0.0...v1.1.0", {"commits": [commit("#1 #2")]})
        fake_github.add_issue(1, labels=["enhancement"], state="open")
        fake_github.add_issue(2, labels=["enhancement"], closed_by="Dependabot")

        config = make_config(github_config, tmp_path)
        with GitHubClient(github_config, transport=fake_github.transport()) as client:
            notes = run_pipeline(config, client)

        assert notes == ""
        assert fake_github.calls_to("/issues/1/events") == 0

    def test_missing_tag_is_fatal(self, github_config, populated_github, tmp_path):
        """Test a missing tag aborts before any request."""
        config = make_config(github_config, tmp_path, tag_name="")
        with GitHubClient(github_config, transport=populated_github.transport()) as client:
            with pytest.raises(PipelineError, match="tag_name"):
                run_pipeline(config, client)

        assert populated_github.requests == []
        assert not (tmp_path / "notes.md").exists()

    def test_api_error_leaves_no_output(self, github_config, populated_github, tmp_path):
        """Test a non-404 error fails the run without output."""
        populated_github.add("/issues/7", {"message": "Server Error"}, status=500)
        config = make_config(github_config, tmp_path)

        with GitHubClient(github_config, transport=populated_github.transport()) as client:
            with pytest.raises(PipelineError, match="GitHub request failed"):
                run_pipeline(config, client)

        assert not (tmp_path / "notes.md").exists()

    def test_malformed_config_is_fatal(self, github_config, populated_github, tmp_path):
        """Test configuration errors abort the run."""
        populated_github.add_config("custom/release.yml", "changelog:\n  categories:\n    - labels: [bug]\n")
        config = make_config(github_config, tmp_path, configuration_file_path="custom/release.yml")

        with GitHubClient(github_config, transport=populated_github.transport()) as client:
            with pytest.raises(PipelineError, match="Release configuration failed"):
                run_pipeline(config, client)


class TestValidateConfig:
    """Tests for validate_config."""

    def test_single_error_message(self, github_config, tmp_path):
        """Test a single error becomes the failure message."""
        config = make_config(github_config, tmp_path, tag_name="")
        with pytest.raises(PipelineError) as exc_info:
            validate_config(config)
        assert str(exc_info.value) == "Input required and not supplied: tag_name"


class TestApplyOverrides:
    """Tests for command line overrides."""

    def test_overrides(self, github_config, tmp_path):
        """Test options replace environment values."""
        config = make_config(github_config, tmp_path, tag_name="", prev_tag_name="")
        updated = apply_overrides(
            config,
            tag_name="refs/tags/v2.0.0",
            prev_tag_name="v1.0.0",
            config_path="docs/release.yml",
            repository="acme/gadgets",
            debug=True,
        )
        assert updated.inputs.tag_name == "v2.0.0"
        assert updated.inputs.prev_tag_name == "v1.0.0"
        assert list(updated.inputs.config_paths()) == ["docs/release.yml"]
        assert updated.github.owner == "acme"
        assert updated.log_level == "DEBUG"
        assert updated.output == config.output


class TestCli:
    """Tests for the click command."""

    def _env(self, tmp_path, **extra):
        env = {
            "GITHUB_TOKEN": "test-token",
            "GITHUB_REPOSITORY": "octo/widgets",
            "GITHUB_API_URL": API_URL,
            "GITHUB_OUTPUT": str(tmp_path / "github_output"),
            "INPUT_TAG_NAME": "refs/tags/v1.1.0",
            "INPUT_PREV_TAG_NAME": "v1.0.0",
            "INPUT_CONFIGURATION_FILE_PATH": "",
        }
        env.update(extra)
        return env

    def test_run_writes_github_output(self, populated_github, tmp_path):
        """Test a successful run publishes the step output."""
        with patch(
            "release_notes.main.GitHubClient",
            lambda config: GitHubClient(config, transport=populated_github.transport()),
        ):
            result = CliRunner().invoke(main, [], env=self._env(tmp_path))

        assert result.exit_code == 0, result.output
        written = (tmp_path / "github_output").read_text(encoding="utf-8")
        assert written.startswith("release_notes_content<<ghadelimiter_")
        assert EXPECTED_NOTES in written

    def test_missing_tag_fails(self, tmp_path):
        """Test a missing tag exits with an error annotation."""
        result = CliRunner().invoke(main, [], env=self._env(tmp_path, INPUT_TAG_NAME=""))

        assert result.exit_code == 1
        assert "::error::Input required and not supplied: tag_name" in result.output
        assert not (tmp_path / "github_output").exists()

    def test_validate_only(self, tmp_path):
        """Test configuration validation without a run."""
        result = CliRunner().invoke(main, ["--validate-only"], env=self._env(tmp_path))
        assert result.exit_code == 0
        assert not (tmp_path / "github_output").exists()

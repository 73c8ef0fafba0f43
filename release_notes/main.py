"""
Main entry point for the Release Notes Generator.

Orchestrates the complete pipeline:
1. Resolve the tag range and load the category configuration
2. Collect the issues referenced by the commits in range
3. Categorize the issues
4. Resolve contributors and render the notes
5. Publish the notes as the step output
"""

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Iterator, Optional

import click

from .categorizer import IssueCategorizer
from .config import ActionInputs, AppConfig, get_config, strip_tag_ref
from .contributors import resolve_contributors
from .data_sources import (
    DataSourceError,
    GitHubClient,
    NotFoundError,
    load_release_config,
)
from .models import ConfigError, Issue
from .outputs import ActionOutputWriter, OutputError, report_failure
from .references import collect_issues
from .renderer import render_changelog


def setup_logging(level: str) -> None:
    """
    Configure application logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Error during pipeline execution."""
    pass


def validate_config(config: AppConfig) -> None:
    """
    Validate configuration before running.

    Args:
        config: Application configuration.

    Raises:
        PipelineError: If configuration is invalid.
    """
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        if len(errors) == 1:
            raise PipelineError(errors[0])
        raise PipelineError(
            f"Configuration validation failed with {len(errors)} error(s)"
        )


def resolve_previous_tag(client: GitHubClient, inputs: ActionInputs) -> Optional[str]:
    """
    Determine the baseline tag of the release range.

    Returns:
        The previous tag, or None when the full history should be scanned.
    """
    if inputs.prev_tag_name:
        return inputs.prev_tag_name

    logger.info("There was no 'prev_tag_name' specified. Falling back to the latest release tag.")
    try:
        return client.get_latest_release_tag()
    except NotFoundError:
        logger.info(
            "Latest published full release for the repository doesn't exist yet. "
            "All suitable related issues will be included."
        )
        return None


def iter_commit_messages(client: GitHubClient, tag: str, prev_tag: Optional[str]) -> Iterator[str]:
    """Yield the messages of the commits in the release range."""
    if prev_tag:
        commits = client.compare_commits(prev_tag, tag)
    else:
        commits = client.iter_commits(tag)

    for commit in commits:
        yield commit.message


def resolve_all_contributors(
    client: GitHubClient,
    issues: list[Issue],
) -> dict[int, tuple[str, ...]]:
    """Resolve contributors once per issue, one issue at a time."""
    contributors = {}
    for issue in issues:
        contributors[issue.number] = resolve_contributors(client.iter_issue_events(issue.number))
        logger.debug(f"Issue #{issue.number} contributors: {contributors[issue.number]}")
    return contributors


def generate_release_notes(config: AppConfig, client: GitHubClient) -> str:
    """
    Produce the release notes text with an open client.

    Raises:
        PipelineError: If any step fails fatally.
    """
    tag = config.inputs.tag_name

    # Step 1: Range and configuration
    logger.info("-" * 40)
    logger.info("Step 1: Resolving release range and configuration")
    logger.info("-" * 40)

    try:
        prev_tag = resolve_previous_tag(client, config.inputs)
        release_config = load_release_config(client, config.inputs.config_paths())
    except ConfigError as e:
        raise PipelineError(f"Release configuration failed: {e}") from e
    except DataSourceError as e:
        raise PipelineError(f"GitHub request failed: {e}") from e

    logger.info(f"Release range: {prev_tag or '<full history>'}..{tag}")

    # Step 2: Referenced issues
    logger.info("-" * 40)
    logger.info("Step 2: Collecting issues referenced by commits")
    logger.info("-" * 40)

    try:
        issues = collect_issues(iter_commit_messages(client, tag, prev_tag), client.get_issue)
    except DataSourceError as e:
        raise PipelineError(f"GitHub request failed: {e}") from e

    # Step 3: Categorize
    logger.info("-" * 40)
    logger.info("Step 3: Categorizing issues")
    logger.info("-" * 40)

    changelog = IssueCategorizer(release_config).categorize(issues.values())

    # Step 4: Contributors and rendering
    logger.info("-" * 40)
    logger.info("Step 4: Resolving contributors and rendering")
    logger.info("-" * 40)

    try:
        contributors = resolve_all_contributors(client, changelog.categorized_issues())
    except DataSourceError as e:
        raise PipelineError(f"GitHub request failed: {e}") from e

    return render_changelog(changelog, contributors)


def run_pipeline(
    config: Optional[AppConfig] = None,
    client: Optional[GitHubClient] = None,
) -> str:
    """
    Execute the complete release notes pipeline and publish the result.

    Nothing is published unless every step succeeds.

    Args:
        config: Optional configuration override.
        client: Optional GitHub client (opened here if not given).

    Returns:
        The rendered release notes.

    Raises:
        PipelineError: If any step fails.
    """
    if config is None:
        config = get_config()

    logger.info("=" * 60)
    logger.info("Starting Release Notes Pipeline")
    logger.info("=" * 60)

    validate_config(config)

    if client is None:
        with GitHubClient(config.github) as github_client:
            notes = generate_release_notes(config, github_client)
    else:
        notes = generate_release_notes(config, client)

    # Step 5: Publish
    try:
        ActionOutputWriter(config.output).set_output(notes)
    except OutputError as e:
        raise PipelineError(f"Publishing release notes failed: {e}") from e

    logger.info("=" * 60)
    logger.info("Pipeline completed successfully!")
    logger.info("=" * 60)

    return notes


def apply_overrides(
    config: AppConfig,
    tag_name: Optional[str] = None,
    prev_tag_name: Optional[str] = None,
    config_path: Optional[str] = None,
    repository: Optional[str] = None,
    output: Optional[Path] = None,
    debug: bool = False,
) -> AppConfig:
    """Return a copy of the configuration with command line overrides applied."""
    inputs = config.inputs
    if tag_name:
        inputs = replace(inputs, tag_name=strip_tag_ref(tag_name))
    if prev_tag_name:
        inputs = replace(inputs, prev_tag_name=strip_tag_ref(prev_tag_name))
    if config_path:
        inputs = replace(inputs, configuration_file_path=config_path)

    github = replace(config.github, repository=repository) if repository else config.github
    output_config = replace(config.output, output_file=output) if output else config.output

    return replace(
        config,
        github=github,
        inputs=inputs,
        output=output_config,
        log_level="DEBUG" if debug else config.log_level,
    )


@click.command()
@click.option("--tag-name", help="Release tag (defaults to INPUT_TAG_NAME)")
@click.option("--prev-tag-name", help="Baseline tag (defaults to the latest release)")
@click.option(
    "--config-path",
    help="Category configuration path inside the repository",
)
@click.option("--repository", help="Repository in owner/repo form")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write the release notes to this file",
)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug logging",
)
@click.option(
    "--validate-only",
    is_flag=True,
    default=False,
    help="Only validate configuration without running the pipeline",
)
def main(
    tag_name: Optional[str],
    prev_tag_name: Optional[str],
    config_path: Optional[str],
    repository: Optional[str],
    output: Optional[Path],
    debug: bool,
    validate_only: bool,
) -> None:
    """
    Issue-based release notes generator.

    Collects the closed issues referenced by the commits of a tag range,
    groups them into label-based categories and renders Markdown notes.
    """
    try:
        config = apply_overrides(
            get_config(),
            tag_name=tag_name,
            prev_tag_name=prev_tag_name,
            config_path=config_path,
            repository=repository,
            output=output,
            debug=debug,
        )
        setup_logging(config.log_level)

        if validate_only:
            logger.info("Validating configuration...")
            validate_config(config)
            logger.info("Configuration is valid!")
            return

        run_pipeline(config)

    except PipelineError as e:
        report_failure(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user", err=True)
        sys.exit(130)
    except Exception as e:
        report_failure(f"Unexpected error: {e}")
        if debug:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

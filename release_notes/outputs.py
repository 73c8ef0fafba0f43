"""
Output handling for the Release Notes Generator.

Publishes the rendered notes the way a GitHub Actions step does:
appended to the ``GITHUB_OUTPUT`` file, optionally written to a file,
or echoed to stdout when running outside a workflow.
"""

import logging
import uuid
from pathlib import Path

import click

from .config import OutputConfig


logger = logging.getLogger(__name__)


class OutputError(Exception):
    """Error while publishing the rendered notes."""
    pass


def format_output_block(name: str, value: str, delimiter: str) -> str:
    """
    Build a multi-line ``GITHUB_OUTPUT`` entry.

    Raises:
        OutputError: If the delimiter occurs in the name or the value.
    """
    if delimiter in name or delimiter in value:
        raise OutputError(f"Output delimiter collides with the content of '{name}'")
    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"


class ActionOutputWriter:
    """Writer for step outputs and failure annotations."""

    def __init__(self, config: OutputConfig):
        """
        Initialize the writer.

        Args:
            config: Output configuration.
        """
        self._config = config

    def set_output(self, value: str) -> None:
        """
        Publish the rendered notes under the configured output name.

        The step output is appended last, so a failure on any other
        target leaves ``GITHUB_OUTPUT`` untouched.

        Args:
            value: The rendered release notes.

        Raises:
            OutputError: If a target file cannot be written.
        """
        name = self._config.output_name
        block = None
        if self._config.github_output:
            block = format_output_block(name, value, f"ghadelimiter_{uuid.uuid4()}")

        if self._config.output_file:
            self._write(self._config.output_file, value, mode="w")
            logger.info(f"Release notes saved to: {self._config.output_file}")

        if block is not None:
            try:
                self._write(self._config.github_output, block, mode="a")
            except OutputError:
                if self._config.output_file:
                    self._config.output_file.unlink(missing_ok=True)
                raise
            logger.info(f"Output '{name}' written to {self._config.github_output}")

        if block is None and not self._config.output_file:
            click.echo(value, nl=False)

    def _write(self, path: Path, content: str, mode: str) -> None:
        try:
            if mode == "w":
                path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, mode, encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise OutputError(f"Cannot write {path}: {e}") from e


def report_failure(message: str) -> None:
    """Emit a workflow error annotation for a failed run."""
    # The runner parses workflow commands from stdout
    click.echo(f"::error::{message}")

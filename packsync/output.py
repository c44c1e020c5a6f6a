"""Console output helpers for the packsync CLI."""

import json
from typing import Any

import click

from .utils import format_size


class OutputFormatter:
    """Formats user-facing messages.

    In JSON mode informational text is suppressed so that the final
    ``output_json`` call is the only thing written to stdout.
    """

    def __init__(self, json_output: bool = False, quiet: bool = False):
        self.json_output = json_output
        self.quiet = quiet or json_output

    def print(self, message: str = "") -> None:
        if not self.quiet:
            click.echo(message)

    def info(self, message: str) -> None:
        if not self.quiet:
            click.echo(message)

    def success(self, message: str) -> None:
        if not self.quiet:
            click.echo(click.style(message, fg="green"))

    def warning(self, message: str) -> None:
        if not self.quiet:
            click.echo(click.style(message, fg="yellow"), err=True)

    def error(self, message: str) -> None:
        """Print an error. Errors are shown even in quiet mode."""
        click.echo(click.style(f"Error: {message}", fg="red"), err=True)

    def output_json(self, data: Any) -> None:
        click.echo(json.dumps(data, indent=2, sort_keys=True))

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

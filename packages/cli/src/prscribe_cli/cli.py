"""CLI entry point for prscribe.

Commands:
  review   review a pull request with an LLM and post the feedback
  init     write .prscribe.yml and a GitHub Actions workflow
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prscribe_cli.commands.init import init_cmd
from prscribe_cli.commands.review import review_cmd

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _get_version() -> str:
    try:
        return importlib.metadata.version("prscribe")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0+unknown"


@click.group()
@click.version_option(
    version=_get_version(),
    prog_name="prscribe",
)
@click.option(
    "--config",
    "config_path",
    default=".prscribe.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRSCRIBE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """LLM-powered pull request reviewer for CI."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(init_cmd)

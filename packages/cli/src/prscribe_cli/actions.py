"""GitHub Actions integration: step outputs and workflow annotations.

Outside of Actions (no GITHUB_ACTIONS / GITHUB_OUTPUT) these are no-ops, so
the same command works from a developer's terminal.
"""

from __future__ import annotations

import os

import click


def in_github_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


def set_output(name: str, value: str) -> None:
    """Append ``name=value`` to the step's $GITHUB_OUTPUT file, if there is one."""
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return
    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"{name}={value}\n")


def _escape_data(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def error(message: str) -> None:
    """Emit an ``::error::`` workflow command so the failure shows on the run page."""
    if in_github_actions():
        click.echo(f"::error::{_escape_data(message)}")


def set_failed(message: str) -> None:
    set_output("success", "false")
    error(message)

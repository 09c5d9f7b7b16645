"""init command: write .prscribe.yml and a GitHub Actions workflow.

After `prscribe init` every pull request opened against the repository is
reviewed in CI with no further setup beyond adding the model API key secret.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()

_WORKFLOW_TEMPLATE = """\
name: PR Review

on:
  pull_request:
    types: [opened, synchronize, reopened]

jobs:
  review:
    runs-on: ubuntu-latest
    permissions:
      contents: read
      pull-requests: write

    steps:
      - uses: actions/checkout@v4

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install prscribe
        run: pip install "prscribe=={version}"

      - name: Run PR review
        env:
          GITHUB_TOKEN: ${{{{ secrets.GITHUB_TOKEN }}}}
          {api_key_env}: ${{{{ secrets.{api_key_env} }}}}
          GITHUB_PR_ID: ${{{{ github.event.pull_request.number }}}}
        run: prscribe review --model {provider}
"""


@click.command("init")
@click.option("--repo", default=None, help="GitHub repository (owner/name). Auto-detected from git remote.")
@click.pass_context
def init_cmd(ctx, repo: str | None):
    """Set up prscribe for a repository.

    Creates .prscribe.yml and, optionally, a GitHub Actions workflow that
    reviews every pull request.
    """
    from prscribe_core.config import api_key_env_var

    console.print("\n[bold cyan]prscribe init[/bold cyan]: repository setup\n")

    if repo is None:
        repo = _detect_repo_from_git()
        if repo:
            console.print(f"[dim]Detected repository: {repo}[/dim]")
        else:
            repo = click.prompt("GitHub repository (owner/name)")

    provider = click.prompt(
        "AI provider",
        type=click.Choice(["openai", "anthropic"]),
        default="openai",
    )
    max_comments = click.prompt("Maximum comments per review", type=click.IntRange(min=1), default=3)
    api_key_env = api_key_env_var(provider)

    config_path = Path((ctx.obj or {}).get("config_path", ".prscribe.yml"))
    _write_config(config_path, {"model": provider, "max_comments": max_comments})
    console.print(f"[green]Created {config_path}[/green]")

    setup_ci = click.confirm("\nGenerate .github/workflows/prscribe.yml for GitHub Actions?", default=True)
    if setup_ci:
        _write_workflow(provider, api_key_env)
        console.print("[green]Created .github/workflows/prscribe.yml[/green]")
        console.print(
            f"\n[yellow]Remember to add [bold]{api_key_env}[/bold] to your "
            "GitHub repository secrets (Settings → Secrets → Actions).[/yellow]"
        )

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"Run a review with: [bold]prscribe review --repo {repo} --pr <number>[/bold]")


def _detect_repo_from_git() -> str | None:
    """Try to detect the GitHub repo slug from the git remote URL."""
    try:
        result = subprocess.run(
            ["git", "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode != 0:
            return None
        url = result.stdout.strip()
        # https://github.com/owner/repo.git  →  owner/repo
        # git@github.com:owner/repo.git      →  owner/repo
        if "github.com" not in url:
            return None
        slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git")
        return slug if "/" in slug else None
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))


def _get_version() -> str:
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("prscribe")
    except PackageNotFoundError:
        return "0.1.0"


def _write_workflow(provider: str, api_key_env: str) -> None:
    workflow_dir = Path(".github/workflows")
    workflow_dir.mkdir(parents=True, exist_ok=True)
    workflow_path = workflow_dir / "prscribe.yml"
    workflow_path.write_text(
        _WORKFLOW_TEMPLATE.format(provider=provider, api_key_env=api_key_env, version=_get_version())
    )

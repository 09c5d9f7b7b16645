"""review command: run one LLM review pass on a pull request."""

from __future__ import annotations

import logging

import click
import yaml
from rich.console import Console
from rich.markup import escape

from prscribe_cli.actions import set_failed, set_output
from prscribe_core.models import ReviewRequest
from prscribe_core.reviewer import run_review

console = Console()
logger = logging.getLogger(__name__)


def _fail(ctx, reason: str) -> None:
    message = f"Review failed: {reason}"
    console.print(f"[red]{escape(message)}[/red]")
    set_failed(message)
    ctx.exit(1)


@click.command("review")
@click.option(
    "--repo",
    envvar="GITHUB_REPOSITORY",
    required=True,
    help="GitHub repository in owner/name format. Defaults to $GITHUB_REPOSITORY.",
)
@click.option(
    "--pr",
    "pr_number",
    type=int,
    envvar=["GITHUB_PR_ID", "INPUT_GITHUB_PR_ID"],
    required=True,
    help="Pull request number. Defaults to $GITHUB_PR_ID.",
)
@click.option(
    "--model",
    type=click.Choice(["openai", "anthropic"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the feedback without posting to GitHub.",
)
@click.pass_context
def review_cmd(ctx, repo: str, pr_number: int, model: str | None, shadow: bool):
    """Review a pull request and post the model's feedback as comments.

    Fetches the PR metadata, changed files and existing comments, asks the
    model for a review, then posts either one summary comment or up to
    max_comments inline comments.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
      OPENAI_API_KEY       Required when using --model openai (default)
      ANTHROPIC_API_KEY    Required when using --model anthropic
    """
    from prscribe_cli.auth import resolve_github_token
    from prscribe_core.config import api_key_env_var, get_api_key, load_config

    config_path = (ctx.obj or {}).get("config_path", ".prscribe.yml")
    try:
        config = load_config(config_path, cli_overrides={"model": model})
    except (yaml.YAMLError, ValueError) as e:
        _fail(ctx, f"Invalid config file {config_path}: {e}")

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )

    try:
        api_key = get_api_key(config)
    except ValueError as e:
        raise click.UsageError(str(e))
    if not api_key:
        raise click.UsageError(f"{api_key_env_var(config['model'])} environment variable is not set.")

    request = ReviewRequest(repo=repo, pr_number=pr_number, github_token=token, api_key=api_key)
    console.print(f"Starting PR review for PR #{pr_number}")

    try:
        outcome = run_review(request, config, shadow=shadow)
    except Exception as e:
        logger.debug("Review of %s#%d failed", repo, pr_number, exc_info=True)
        _fail(ctx, str(e))

    set_output("success", "true")
    set_output("mode", outcome.mode)
    set_output("comments_posted", str(len(outcome.posted)))
    if shadow:
        console.print("[bold green]Shadow review completed; nothing was posted to GitHub.[/bold green]")
    else:
        console.print("[bold green]PR review completed and feedback posted successfully![/bold green]")

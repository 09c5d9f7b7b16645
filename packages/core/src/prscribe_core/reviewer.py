"""Core PR review orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from github import UnknownObjectException
from rich.console import Console
from rich.markup import escape

from prscribe_core.gh.pull_request import (
    get_changed_files,
    get_comment_context,
    get_pull,
    get_pull_info,
    get_repo,
    post_discussion_comment,
    post_inline_comment,
)
from prscribe_core.models import (
    CommentDraft,
    ContextComment,
    ModelResponse,
    ReviewRequest,
    ReviewVerdict,
    StructuredResponse,
)
from prscribe_core.prompt import build_prompt
from prscribe_core.providers.anthropic import AnthropicReviewer
from prscribe_core.providers.openai import OpenAIReviewer
from prscribe_core.utils.extract import iter_json_segments, parse_json_object, strip_code_fence

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_APPROVAL_PHRASE = "Everything looks good!"
_DRAFT_KEYS = ("path", "line", "start_line", "commit_id", "side", "start_side")


@dataclass
class ReviewOutcome:
    """Result returned by run_review: what was posted, or would be in shadow mode."""

    repo: str
    pr_number: int
    head_sha: str
    mode: str  # "approved" | "inline" | "fallback"
    body: str | None = None  # discussion comment body for approved/fallback
    posted: list[CommentDraft] = field(default_factory=list)
    failed: list[tuple[CommentDraft, str]] = field(default_factory=list)
    skipped: list[CommentDraft] = field(default_factory=list)


def _get_reviewer(config: dict, api_key: str):
    model = config["model"]
    model_name = config.get("model_name")
    if model == "openai":
        return OpenAIReviewer(api_key=api_key, model_name=model_name)
    if model == "anthropic":
        return AnthropicReviewer(api_key=api_key, model_name=model_name)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'openai' or 'anthropic'.")


# ---------------------------------------------------------------------------
# Response interpretation
# ---------------------------------------------------------------------------


def _collect_drafts(payload: dict, head_sha: str) -> list[CommentDraft]:
    """Turn one decoded object into drafts: the object itself plus any "comments" entries.

    A verdict object that only carries a summary (no location fields) is not
    treated as a draft candidate.
    """
    candidates = []
    if "is_ok" not in payload or any(k in payload for k in _DRAFT_KEYS):
        candidates.append(payload)
    nested = payload.get("comments")
    if isinstance(nested, list):
        candidates.extend(nested)

    drafts = []
    for candidate in candidates:
        draft = CommentDraft.from_payload(candidate, head_sha)
        if draft is None:
            logger.warning("Skipping comment without a valid body, path and line: %s", str(candidate)[:200])
            continue
        drafts.append(draft)
    return drafts


def _verdict_from_payload(
    payload: dict, head_sha: str, approval_phrase: str = DEFAULT_APPROVAL_PHRASE
) -> ReviewVerdict | None:
    if payload.get("is_ok") is True:
        return ReviewVerdict(is_ok=True, body=str(payload.get("body") or approval_phrase))
    drafts = _collect_drafts(payload, head_sha)
    if not drafts:
        return None
    return ReviewVerdict(is_ok=False, body=str(payload.get("body") or ""), drafts=drafts)


def _verdict_from_text(text: str, head_sha: str, approval_phrase: str) -> ReviewVerdict | None:
    whole = parse_json_object(strip_code_fence(text))
    if whole is not None and "is_ok" in whole:
        return _verdict_from_payload(whole, head_sha, approval_phrase)

    drafts: list[CommentDraft] = []
    approved_body = None
    for segment in iter_json_segments(text):
        payload = parse_json_object(segment)
        if payload is None:
            logger.warning("Failed to parse JSON comment: %s", segment[:200])
            continue
        if payload.get("is_ok") is True:
            approved_body = str(payload.get("body") or approval_phrase)
            continue
        drafts.extend(_collect_drafts(payload, head_sha))

    if drafts:
        return ReviewVerdict(is_ok=False, drafts=drafts)
    if approved_body is not None:
        return ReviewVerdict(is_ok=True, body=approved_body)
    if approval_phrase and approval_phrase.lower() in text.lower():
        return ReviewVerdict(is_ok=True, body=text.strip())
    return None


def interpret_response(
    response: ModelResponse,
    head_sha: str,
    approval_phrase: str = DEFAULT_APPROVAL_PHRASE,
) -> ReviewVerdict | None:
    """Map a model response to a verdict, or None when nothing usable was recovered.

    Structured responses are read directly. Free text is first tried as a
    single verdict object, then scanned for independent JSON objects; objects
    that fail to decode or validate are logged and skipped. When nothing usable
    is recovered, text containing the approval phrase counts as an approval.
    """
    if isinstance(response, StructuredResponse):
        return _verdict_from_payload(response.payload, head_sha, approval_phrase)
    return _verdict_from_text(response.text, head_sha, approval_phrase)


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


def already_commented(existing_comments: list[ContextComment], draft: CommentDraft) -> bool:
    """Check whether an identical comment already exists on the PR for this file+line."""
    text = draft.body.strip()
    for c in existing_comments:
        if c.path == draft.path and c.line == draft.line and text in c.body.strip():
            return True
    return False


def apply_comment_policy(
    drafts: list[CommentDraft],
    existing_comments: list[ContextComment],
    max_comments: int | None,
) -> tuple[list[CommentDraft], list[CommentDraft]]:
    """Split drafts into (to_post, skipped).

    Drops drafts that repeat an existing PR comment or an earlier draft, then
    caps the rest at max_comments (0 or None means no cap). Order is preserved.
    """
    to_post: list[CommentDraft] = []
    skipped: list[CommentDraft] = []
    queued: set[tuple] = set()

    for draft in drafts:
        key = (draft.path, draft.line, draft.body.strip())
        if key in queued or already_commented(existing_comments, draft):
            logger.warning("Skipping duplicate comment on %s", draft.location())
            skipped.append(draft)
            continue
        if max_comments and len(to_post) >= max_comments:
            logger.warning("Skipping comment on %s: limit of %d comment(s) reached", draft.location(), max_comments)
            skipped.append(draft)
            continue
        to_post.append(draft)
        queued.add(key)

    return to_post, skipped


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def print_shadow_outcome(outcome: ReviewOutcome, drafts: list[CommentDraft]) -> None:
    """Print what would be posted without touching GitHub."""
    if outcome.mode != "inline":
        console.print(f"\n[bold]Shadow review: 1 discussion comment ({outcome.mode}, not posted)[/bold]\n")
        console.print(outcome.body or "", markup=False)
        return
    console.print(f"\n[bold]Shadow review: {len(drafts)} inline comment(s) (not posted)[/bold]\n")
    for d in drafts:
        console.print(f"[bold cyan]{escape(d.location())}[/bold cyan]  [dim]{d.side} @ {d.commit_id[:7]}[/dim]")
        console.print(f"  {d.body}", markup=False)
        console.print()


def _post_drafts(repo, pr, drafts: list[CommentDraft], outcome: ReviewOutcome) -> None:
    for draft in drafts:
        try:
            post_inline_comment(repo, pr, draft)
        except Exception as e:
            # e.g. line not part of the diff, stale commit id, dropped connection
            logger.warning("Failed to post inline comment on %s: %s", draft.location(), e)
            outcome.failed.append((draft, str(e)))
            continue
        outcome.posted.append(draft)
        console.print(f"  Posted inline comment on {escape(draft.location())}")


def run_review(
    request: ReviewRequest,
    config: dict,
    shadow: bool = False,
    repo_obj=None,
    reviewer=None,
) -> ReviewOutcome:
    """Run one review pass over a pull request and post the feedback.

    Any failure while fetching the PR, its files or comments, or while calling
    the model propagates to the caller before anything is posted. Failures on
    individual inline comments are logged and recorded on the outcome.
    """
    approval_phrase = config.get("approval_phrase") or DEFAULT_APPROVAL_PHRASE

    this_repo = repo_obj if repo_obj is not None else get_repo(request.repo, token=request.github_token)
    try:
        this_pr = get_pull(this_repo, request.pr_number)
    except UnknownObjectException as e:
        raise ValueError(f"PR #{request.pr_number} not found in {request.repo}.") from e

    pr_info = get_pull_info(this_pr)
    changes = get_changed_files(this_pr)
    context = get_comment_context(this_pr)
    console.print(f"Changed files: {escape(', '.join(c.filename for c in changes)) or '(none)'}")

    prompt = build_prompt(
        request,
        pr_info,
        changes,
        context,
        max_comments=config.get("max_comments", 3),
        max_chars_per_file=config.get("max_chars_per_file"),
        approval_phrase=approval_phrase,
    )

    if reviewer is None:
        reviewer = _get_reviewer(config, request.api_key)
    response = reviewer.complete(prompt)
    logger.info("AI review response: %s", response.raw)

    verdict = interpret_response(response, pr_info.head_sha, approval_phrase)
    outcome = ReviewOutcome(repo=request.repo, pr_number=request.pr_number, head_sha=pr_info.head_sha, mode="inline")

    if verdict is None:
        outcome.mode = "fallback"
        outcome.body = response.raw
        if shadow:
            print_shadow_outcome(outcome, [])
            return outcome
        post_discussion_comment(this_pr, response.raw)
        console.print("[yellow]Posted regular comment (no valid JSON found)[/yellow]")
        return outcome

    if verdict.is_ok:
        outcome.mode = "approved"
        outcome.body = verdict.body
        if shadow:
            print_shadow_outcome(outcome, [])
            return outcome
        post_discussion_comment(this_pr, verdict.body)
        console.print("[green]No issues found - posted positive feedback[/green]")
        return outcome

    drafts, outcome.skipped = apply_comment_policy(verdict.drafts, context, config.get("max_comments", 3))
    if shadow:
        outcome.posted = drafts
        print_shadow_outcome(outcome, drafts)
        return outcome

    _post_drafts(this_repo, this_pr, drafts, outcome)
    console.print(
        f"\n[green]Review posted: {len(outcome.posted)} inline comment(s)"
        + (f", {len(outcome.failed)} failed" if outcome.failed else "")
        + "[/green]"
    )
    return outcome

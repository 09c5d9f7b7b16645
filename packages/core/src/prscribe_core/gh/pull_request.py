from __future__ import annotations

from github import Github

from prscribe_core.models import CommentDraft, ContextComment, FileChange, PullRequestInfo


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_pull_info(pr) -> PullRequestInfo:
    return PullRequestInfo(
        head_sha=pr.head.sha,
        base_sha=pr.base.sha,
        title=pr.title or "",
        body=pr.body or "",
    )


def get_changed_files(pr) -> list[FileChange]:
    """Return the PR's change-set in the order GitHub lists it."""
    return [
        FileChange(
            filename=f.filename,
            status=f.status,
            additions=f.additions,
            deletions=f.deletions,
            changes=f.changes,
            patch=f.patch,
        )
        for f in pr.get_files()
    ]


def _isoformat(value) -> str | None:
    return value.isoformat() if value is not None else None


def get_review_comments(pr) -> list[ContextComment]:
    comments = []
    for c in pr.get_review_comments():
        # c.line is None for comments whose line no longer exists in the current diff
        # (e.g. after a force-push). Fall back to original_line in that case.
        line = c.line if c.line is not None else getattr(c, "original_line", None)
        comments.append(ContextComment(body=c.body or "", path=c.path, line=line, created_at=_isoformat(c.created_at)))
    return comments


def get_discussion_comments(pr) -> list[ContextComment]:
    return [ContextComment(body=c.body or "", created_at=_isoformat(c.created_at)) for c in pr.get_issue_comments()]


def get_comment_context(pr) -> list[ContextComment]:
    """Inline review comments followed by discussion comments."""
    return get_review_comments(pr) + get_discussion_comments(pr)


def post_inline_comment(repo, pr, draft: CommentDraft):
    """Create one review comment anchored to the draft's line (or line range)."""
    kwargs = {"line": draft.line, "side": draft.side}
    if draft.is_multiline:
        kwargs["start_line"] = draft.start_line
        kwargs["start_side"] = draft.start_side
    commit = repo.get_commit(draft.commit_id)
    return pr.create_review_comment(draft.body, commit, draft.path, **kwargs)


def post_discussion_comment(pr, body: str):
    return pr.create_issue_comment(body)

"""Request-scoped data types shared by the review pipeline.

Nothing here is persisted; every value lives for a single review pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field

SIDES = ("LEFT", "RIGHT")
DEFAULT_SIDE = "RIGHT"


@dataclass(frozen=True)
class ReviewRequest:
    repo: str  # "owner/name"
    pr_number: int
    github_token: str
    api_key: str


@dataclass(frozen=True)
class PullRequestInfo:
    head_sha: str
    base_sha: str
    title: str
    body: str = ""


@dataclass
class FileChange:
    filename: str
    status: str  # "added" | "modified" | "removed" | "renamed" | ...
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None  # None for binary or very large files


@dataclass
class ContextComment:
    """An existing PR comment, reduced to what the prompt needs for deduplication."""

    body: str
    path: str | None = None
    line: int | None = None
    created_at: str | None = None

    def to_dict(self) -> dict:
        return {"body": self.body, "path": self.path, "line": self.line, "created_at": self.created_at}


def _positive_int(value) -> int | None:
    # bool is an int subclass; "line": true must not become line 1.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _non_empty_str(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


@dataclass
class CommentDraft:
    """A candidate inline comment recovered from the model response."""

    body: str
    commit_id: str
    path: str
    line: int
    side: str = DEFAULT_SIDE
    start_line: int | None = None
    start_side: str | None = None

    @property
    def is_multiline(self) -> bool:
        return self.start_line is not None

    @classmethod
    def from_payload(cls, payload, head_sha: str) -> CommentDraft | None:
        """Validate a decoded JSON object and return a postable draft, or None.

        body, path and line are required. commit_id falls back to the PR head
        commit and side to RIGHT. A start_line that does not precede line is
        dropped so the draft degrades to a single-line comment.
        """
        if not isinstance(payload, dict):
            return None

        body = _non_empty_str(payload.get("body"))
        path = _non_empty_str(payload.get("path"))
        line = _positive_int(payload.get("line"))
        if body is None or path is None or line is None:
            return None

        side = payload.get("side") or DEFAULT_SIDE
        if side not in SIDES:
            return None

        commit_id = _non_empty_str(payload.get("commit_id")) or head_sha

        start_line = _positive_int(payload.get("start_line"))
        start_side = None
        if start_line is not None and start_line < line:
            start_side = payload.get("start_side") or side
            if start_side not in SIDES:
                start_side = side
        else:
            start_line = None

        return cls(
            body=body,
            commit_id=commit_id,
            path=path,
            line=line,
            side=side,
            start_line=start_line,
            start_side=start_side,
        )

    def location(self) -> str:
        if self.is_multiline:
            return f"{self.path}:{self.start_line}-{self.line}"
        return f"{self.path}:{self.line}"


@dataclass
class ReviewVerdict:
    is_ok: bool
    body: str = ""
    drafts: list[CommentDraft] = field(default_factory=list)


@dataclass(frozen=True)
class StructuredResponse:
    """The completion client honoured the response schema."""

    payload: dict
    raw: str


@dataclass(frozen=True)
class UnstructuredResponse:
    """Free-form text returned by the completion client."""

    text: str

    @property
    def raw(self) -> str:
        return self.text


ModelResponse = StructuredResponse | UnstructuredResponse

"""Tests for CommentDraft validation and defaults."""

import pytest

from prscribe_core.models import CommentDraft, ContextComment

HEAD = "h" * 40


def _payload(**overrides):
    base = {"body": "Use a constant here", "path": "src/app.py", "line": 12}
    base.update(overrides)
    return base


class TestCommentDraftFromPayload:
    def test_defaults_commit_and_side(self):
        draft = CommentDraft.from_payload(_payload(), HEAD)
        assert draft.commit_id == HEAD
        assert draft.side == "RIGHT"
        assert draft.is_multiline is False

    def test_keeps_explicit_commit_and_side(self):
        draft = CommentDraft.from_payload(_payload(commit_id="c" * 40, side="LEFT"), HEAD)
        assert draft.commit_id == "c" * 40
        assert draft.side == "LEFT"

    @pytest.mark.parametrize("missing", ["body", "path", "line"])
    def test_required_field_missing(self, missing):
        payload = _payload()
        del payload[missing]
        assert CommentDraft.from_payload(payload, HEAD) is None

    def test_empty_body_rejected(self):
        assert CommentDraft.from_payload(_payload(body="   "), HEAD) is None

    @pytest.mark.parametrize("line", [0, -3, "12", 1.5, True])
    def test_invalid_line_rejected(self, line):
        assert CommentDraft.from_payload(_payload(line=line), HEAD) is None

    def test_unknown_side_rejected(self):
        assert CommentDraft.from_payload(_payload(side="MIDDLE"), HEAD) is None

    def test_non_dict_rejected(self):
        assert CommentDraft.from_payload(["body", "path"], HEAD) is None

    def test_multiline_start_side_defaults_to_side(self):
        draft = CommentDraft.from_payload(_payload(start_line=8, side="LEFT"), HEAD)
        assert draft.is_multiline
        assert draft.start_line == 8
        assert draft.start_side == "LEFT"

    def test_multiline_explicit_start_side(self):
        draft = CommentDraft.from_payload(_payload(start_line=8, start_side="LEFT"), HEAD)
        assert draft.start_side == "LEFT"
        assert draft.side == "RIGHT"

    def test_start_line_not_before_line_dropped(self):
        draft = CommentDraft.from_payload(_payload(start_line=12), HEAD)
        assert draft.start_line is None
        assert draft.start_side is None

    def test_location(self):
        assert CommentDraft.from_payload(_payload(), HEAD).location() == "src/app.py:12"
        assert CommentDraft.from_payload(_payload(start_line=10), HEAD).location() == "src/app.py:10-12"


def test_context_comment_to_dict():
    c = ContextComment(body="nit", path="a.py", line=3, created_at="2024-01-01T00:00:00+00:00")
    assert c.to_dict() == {"body": "nit", "path": "a.py", "line": 3, "created_at": "2024-01-01T00:00:00+00:00"}

"""Tests for response interpretation and comment policy."""

import json
import logging

import pytest

from prscribe_core.models import CommentDraft, ContextComment, StructuredResponse, UnstructuredResponse
from prscribe_core.reviewer import _get_reviewer, already_commented, apply_comment_policy, interpret_response

HEAD = "f" * 40


def _comment(**overrides):
    base = {"body": "Avoid bare except", "path": "src/app.py", "line": 10}
    base.update(overrides)
    return base


def _structured(payload):
    return StructuredResponse(payload=payload, raw=json.dumps(payload))


class TestInterpretStructured:
    def test_positive_verdict(self):
        verdict = interpret_response(_structured({"is_ok": True, "body": "Everything looks good!"}), HEAD)
        assert verdict.is_ok is True
        assert verdict.body == "Everything looks good!"
        assert verdict.drafts == []

    def test_negative_verdict_is_a_draft(self):
        verdict = interpret_response(_structured({"is_ok": False, **_comment()}), HEAD)
        assert verdict.is_ok is False
        assert len(verdict.drafts) == 1
        assert verdict.drafts[0].commit_id == HEAD
        assert verdict.drafts[0].side == "RIGHT"

    def test_comments_array(self):
        payload = {
            "is_ok": False,
            "body": "Two issues found",
            "comments": [_comment(), _comment(path="src/b.py", line=3, side="LEFT")],
        }
        verdict = interpret_response(_structured(payload), HEAD)
        assert [d.path for d in verdict.drafts] == ["src/app.py", "src/b.py"]
        assert verdict.drafts[1].side == "LEFT"

    def test_negative_verdict_without_location_is_unrecoverable(self):
        assert interpret_response(_structured({"is_ok": False, "body": "Several problems"}), HEAD) is None


class TestInterpretUnstructured:
    def test_approval_phrase(self):
        verdict = interpret_response(UnstructuredResponse("Everything looks good!"), HEAD)
        assert verdict.is_ok is True
        assert verdict.body == "Everything looks good!"

    def test_approval_phrase_is_configurable(self):
        verdict = interpret_response(UnstructuredResponse("LGTM!"), HEAD, approval_phrase="LGTM!")
        assert verdict.is_ok is True

    def test_whole_text_verdict_object(self):
        raw = '```json\n{"is_ok": true, "body": "Ship it"}\n```'
        verdict = interpret_response(UnstructuredResponse(raw), HEAD)
        assert verdict.is_ok is True
        assert verdict.body == "Ship it"

    @pytest.mark.parametrize("n", [1, 2, 3])
    def test_n_segments_in_prose(self, n):
        parts = [json.dumps(_comment(line=i + 1)) for i in range(n)]
        text = "I found some issues.\n\n" + "\n\nAlso:\n".join(parts) + "\n\nHope this helps."
        verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert verdict.is_ok is False
        assert [d.line for d in verdict.drafts] == list(range(1, n + 1))
        assert all(d.commit_id == HEAD and d.side == "RIGHT" for d in verdict.drafts)

    def test_malformed_segment_skipped_with_warning(self, caplog):
        text = json.dumps(_comment()) + '\n{"body": "trailing comma", "path": "a.py", "line": 2,}'
        with caplog.at_level(logging.WARNING):
            verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert len(verdict.drafts) == 1
        assert "Failed to parse JSON comment" in caplog.text

    def test_schema_violating_segment_skipped_with_warning(self, caplog):
        text = json.dumps(_comment()) + "\n" + json.dumps({"body": "no location"})
        with caplog.at_level(logging.WARNING):
            verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert len(verdict.drafts) == 1
        assert "Skipping comment" in caplog.text

    def test_unbalanced_segment_before_valid_one(self):
        text = '{"body": "oops", "path": "a.py", "line": 1\n' + json.dumps(_comment())
        verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert len(verdict.drafts) == 1
        assert verdict.drafts[0].path == "src/app.py"

    def test_code_snippet_with_braces_in_body(self):
        body = "Guard it:\n```js\nif (!user) { return; }\n```"
        text = "Review:\n" + json.dumps(_comment(body=body))
        verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert verdict.drafts[0].body == body

    def test_no_segments_and_no_approval(self):
        assert interpret_response(UnstructuredResponse("Consider renaming foo to bar."), HEAD) is None

    def test_only_invalid_segments(self):
        assert interpret_response(UnstructuredResponse('See {this} and {that}'), HEAD) is None

    def test_approval_phrase_alongside_invalid_segment(self):
        verdict = interpret_response(UnstructuredResponse("Everything looks good! An empty {} is fine."), HEAD)
        assert verdict.is_ok is True

    def test_drafts_win_over_approval_phrase(self):
        text = "Everything looks good! Except:\n" + json.dumps(_comment())
        verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert verdict.is_ok is False
        assert len(verdict.drafts) == 1

    def test_drafts_win_over_approval_segment(self):
        text = json.dumps({"is_ok": True, "body": "ok"}) + "\n" + json.dumps(_comment())
        verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert verdict.is_ok is False
        assert len(verdict.drafts) == 1

    def test_approval_segment_alone(self):
        text = "Result: " + json.dumps({"is_ok": True, "body": "All clear"})
        verdict = interpret_response(UnstructuredResponse(text), HEAD)
        assert verdict.is_ok is True
        assert verdict.body == "All clear"


def _draft(path="a.py", line=1, body="x"):
    return CommentDraft(body=body, commit_id=HEAD, path=path, line=line)


class TestCommentPolicy:
    def test_caps_at_max_comments(self):
        drafts = [_draft(line=i) for i in range(1, 6)]
        to_post, skipped = apply_comment_policy(drafts, [], 3)
        assert [d.line for d in to_post] == [1, 2, 3]
        assert [d.line for d in skipped] == [4, 5]

    def test_zero_means_no_cap(self):
        drafts = [_draft(line=i) for i in range(1, 6)]
        to_post, _ = apply_comment_policy(drafts, [], 0)
        assert len(to_post) == 5

    def test_skips_existing_comment(self):
        existing = [ContextComment(body="**Note**: x", path="a.py", line=1)]
        to_post, skipped = apply_comment_policy([_draft(), _draft(line=2)], existing, 3)
        assert [d.line for d in to_post] == [2]
        assert len(skipped) == 1

    def test_skips_repeat_within_run(self):
        to_post, skipped = apply_comment_policy([_draft(), _draft()], [], 3)
        assert len(to_post) == 1
        assert len(skipped) == 1

    def test_duplicates_do_not_use_up_the_cap(self):
        drafts = [_draft(), _draft(), _draft(line=2), _draft(line=3)]
        to_post, _ = apply_comment_policy(drafts, [], 3)
        assert [d.line for d in to_post] == [1, 2, 3]


class TestAlreadyCommented:
    def test_same_path_line_and_text(self):
        assert already_commented([ContextComment(body="x", path="a.py", line=1)], _draft())

    def test_different_line(self):
        assert not already_commented([ContextComment(body="x", path="a.py", line=2)], _draft())

    def test_discussion_comment_does_not_match(self):
        assert not already_commented([ContextComment(body="x")], _draft())


class TestGetReviewer:
    def test_returns_openai_reviewer(self, mocker):
        mock_cls = mocker.patch("prscribe_core.reviewer.OpenAIReviewer")
        _get_reviewer({"model": "openai"}, "oai-key")
        mock_cls.assert_called_once_with(api_key="oai-key", model_name=None)

    def test_returns_anthropic_reviewer_with_model_name(self, mocker):
        mock_cls = mocker.patch("prscribe_core.reviewer.AnthropicReviewer")
        _get_reviewer({"model": "anthropic", "model_name": "claude-x"}, "ant-key")
        mock_cls.assert_called_once_with(api_key="ant-key", model_name="claude-x")

    def test_raises_for_unknown_model(self):
        with pytest.raises(ValueError, match="Unknown model provider"):
            _get_reviewer({"model": "gemini"}, "key")

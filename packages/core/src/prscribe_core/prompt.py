"""Prompt construction for the single review call.

The whole pull request goes into one instruction block: reviewer rules, the
JSON comment contract, PR metadata, every file's patch and the comments that
already exist on the PR.
"""

from __future__ import annotations

import json

from prscribe_core.models import ContextComment, FileChange, PullRequestInfo, ReviewRequest

NO_PATCH_PLACEHOLDER = "No patch content available"
NO_DESCRIPTION_PLACEHOLDER = "No description provided"

_SIDE_SCHEMA = {"type": "string", "enum": ["LEFT", "RIGHT"]}

_DRAFT_PROPERTIES = {
    "body": {"type": "string", "description": "The review comment, in GitHub-flavored markdown"},
    "commit_id": {"type": "string", "description": "The commit ID associated with the pull request"},
    "path": {"type": "string", "description": "The file path where the issue is found"},
    "start_line": {"type": "integer", "description": "The starting line number where the issue starts"},
    "start_side": {**_SIDE_SCHEMA, "description": "The side where the issue starts (LEFT or RIGHT)"},
    "line": {"type": "integer", "description": "The line number where the issue is found"},
    "side": {**_SIDE_SCHEMA, "description": "The side where the issue is found (LEFT or RIGHT)"},
}

RESPONSE_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "is_ok": {"type": "boolean", "description": "Whether the code changes are ok or not"},
        **_DRAFT_PROPERTIES,
        "body": {"type": "string", "description": "A summary when is_ok is true, otherwise the first issue found"},
        "comments": {
            "type": "array",
            "description": "Additional inline comments, one per issue",
            "items": {
                "type": "object",
                "properties": _DRAFT_PROPERTIES,
                "required": ["body", "path", "line"],
            },
        },
    },
    "required": ["is_ok", "body"],
}


def _rules(max_comments: int) -> str:
    if max_comments:
        limit = f"Do not make more than {max_comments} total comments on the PR."
    else:
        limit = "Keep the number of comments small; only comment on issues worth fixing."
    return f"""Rules and Guidelines:
1. NEVER make any commits or pushes to the repository - you are ONLY allowed to review code and leave comments
2. {limit}
3. Use inline feedback where possible with specific line references
4. Include code snippets in markdown format when discussing issues
5. Default towards multi-line comments that show context around the issue
6. Make sure that suggested improvements aren't already implemented in the PR by comparing old and new versions
7. Use the provided JSON format to post comments with referenced code embedded
8. Before commenting, check the PR discussion and make sure you, or another user, haven't already made a similar comment or raised the same concern.
9. Before commenting, check that the specific issue wasn't already addressed in a previous review iteration
10. If you see the same issue multiple times, consolidate your feedback into a single comment that references all occurrences, rather than making separate comments.
11. Refer back to these rules and guidelines before you make comments.
12. Never ask for user confirmation. Never wait for user messages."""  # noqa: E501


def _comment_format(head_sha: str) -> str:
    single = {
        "body": "Security Issue: Hardcoded API key. Recommendation: Use environment variables",
        "commit_id": head_sha,
        "path": "file.py",
        "line": 11,
        "side": "RIGHT",
    }
    multi = {
        "body": (
            "Multiple issues found:\n1. Hardcoded API key should be in environment variables\n"
            "2. Inconsistent class naming (userAccount vs Product)\n3. Missing docstrings and type hints"
        ),
        "commit_id": head_sha,
        "path": "code.py",
        "start_line": 11,
        "start_side": "RIGHT",
        "line": 25,
        "side": "RIGHT",
    }
    return f"""How to post comments with code embedded:
Use this JSON format for each comment you want to post:

Example 1 (single line comment):
{json.dumps(single, indent=4)}

Example 2 (multi-line comment):
{json.dumps(multi, indent=4)}

Field explanations:
- body: The text of the review comment. Include markdown code blocks for snippets
- commit_id: SHA of the commit you're reviewing (use {head_sha})
- path: Relative file path in repo
- line: Specifies the exact line in the pull request's diff view to which your comment should attach
- side: In a split diff view, the side of the diff that the pull request's changes appear on. Can be LEFT or RIGHT. Use LEFT for deletions that appear in red. Use RIGHT for additions that appear in green or unchanged lines that appear in white and are shown for context.
- start_line: Required when using multi-line comments. The first line in the pull request diff that your multi-line comment applies to.
- start_side: Required when using multi-line comments. The starting side of the diff that the comment applies to. Can be LEFT or RIGHT."""  # noqa: E501


def format_file_change(change: FileChange, max_chars: int | None = None) -> str:
    patch = change.patch or NO_PATCH_PLACEHOLDER
    if change.patch and max_chars and len(patch) > max_chars:
        patch = patch[:max_chars] + "\n... [diff truncated]"
    return (
        f"=== File: {change.filename} ===\n"
        f"Status: {change.status}\n"
        f"Additions: {change.additions}, Deletions: {change.deletions}, Changes: {change.changes}\n"
        f"\n{patch}\n"
    )


def format_existing_comments(context: list[ContextComment]) -> str:
    return json.dumps([c.to_dict() for c in context], indent=2)


def build_prompt(
    request: ReviewRequest,
    pr_info: PullRequestInfo,
    changes: list[FileChange],
    context: list[ContextComment],
    max_comments: int = 3,
    max_chars_per_file: int | None = None,
    approval_phrase: str = "Everything looks good!",
) -> str:
    """Serialize everything the model needs into a single instruction block."""
    diff_section = "\n".join(format_file_change(c, max_chars_per_file) for c in changes)
    if not changes:
        diff_section = "(no files changed)\n"

    return f"""You are a PR reviewer with a focus on detailed inline code feedback. Your tasks:
1. Analyze the provided git diff content for PR #{request.pr_number} in repository {request.repo}.
2. Review the code changes for any issues, best practices violations, or potential problems.
3. Check the existing PR discussion to see what previous comments and suggestions have been made.
4. If no issues are found, set "is_ok" to true with a "body" saying "{approval_phrase}" and stop here. Your work is done.
5. Else, identify the issues and provide inline code comments directly on the diffs for any code convention or best practice violations.
6. Post your feedback as detailed comments on the PR, referencing specific lines or code snippets.

{_rules(max_comments)}

{_comment_format(pr_info.head_sha)}

Current PR Information:
- PR Number: {request.pr_number}
- Repository: {request.repo}
- Head SHA: {pr_info.head_sha}
- Base SHA: {pr_info.base_sha}
- Title: {pr_info.title}
- Description: {pr_info.body or NO_DESCRIPTION_PLACEHOLDER}

Git Diff Content:
{diff_section}
Existing comments to avoid duplicating:
{format_existing_comments(context)}

Please analyze the code changes and provide your review. If you find issues, provide them in the JSON format specified above. If no issues are found, respond with "{approval_phrase}"."""  # noqa: E501

"""Issue context models shared by retrieval, conversation and runtime."""

from __future__ import annotations

from .models import (
    MAX_COMMENT_EXCERPT_LENGTH,
    MAX_LATEST_COMMENTS,
    MAX_TITLE_LENGTH,
    CommentSnapshot,
    IssueContextRequest,
    IssueContextResult,
    IssueContextStatus,
    IssueEventType,
    IssueSnapshot,
)

__all__ = [
    "MAX_COMMENT_EXCERPT_LENGTH",
    "MAX_LATEST_COMMENTS",
    "MAX_TITLE_LENGTH",
    "CommentSnapshot",
    "IssueContextRequest",
    "IssueContextResult",
    "IssueContextStatus",
    "IssueEventType",
    "IssueSnapshot",
]

"""Issue context retrieval."""

from __future__ import annotations

from .query import ISSUE_CONTEXT_QUERY, build_issue_context_variables
from .service import PERMISSION_ERROR_CODES, IssueContextService, is_permission_error

__all__ = [
    "ISSUE_CONTEXT_QUERY",
    "PERMISSION_ERROR_CODES",
    "IssueContextService",
    "build_issue_context_variables",
    "is_permission_error",
]

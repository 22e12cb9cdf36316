"""Issue context retrieval with a closed result taxonomy.

The service runs exactly one GraphQL query per request and converts every
expected failure (scope errors, query errors, missing issue, transport
exceptions) into an :class:`IssueContextResult` value. Only programmer
errors and cancellation escape.
"""

from __future__ import annotations

import typing as typ

from issueagent.common.time import parse_github_datetime, utcnow
from issueagent.issues.models import (
    CommentSnapshot,
    IssueContextResult,
    IssueSnapshot,
)
from issueagent.logging import get_logger, log_info, log_warning

from .query import ISSUE_CONTEXT_QUERY, build_issue_context_variables

if typ.TYPE_CHECKING:
    from issueagent.github.client import GraphQLExecutor
    from issueagent.issues.models import IssueContextRequest

logger = get_logger(__name__)

PERMISSION_ERROR_CODES = frozenset({"INSUFFICIENT_SCOPES", "FORBIDDEN"})

_DEFAULT_SCOPE_MESSAGE = "GitHub returned insufficient scopes."
_NO_DETAIL_MESSAGE = "GraphQL query failed without details."


def _error_code(error: dict[str, typ.Any]) -> str | None:
    extensions = error.get("extensions")
    if isinstance(extensions, dict):
        code = extensions.get("code")
        if isinstance(code, str):
            return code
    error_type = error.get("type")
    return error_type if isinstance(error_type, str) else None


def _error_message(error: dict[str, typ.Any]) -> str | None:
    message = error.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


def is_permission_error(error: dict[str, typ.Any]) -> bool:
    """Return True when a GraphQL error signals missing token scopes."""
    code = _error_code(error)
    return code is not None and code.upper() in PERMISSION_ERROR_CODES


def _maybe_login(author: object) -> str | None:
    if not isinstance(author, dict):
        return None
    login = author.get("login")
    if isinstance(login, str) and login.strip():
        return login
    return None


def _non_blank(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _comment_from_node(node: object) -> CommentSnapshot | None:
    if not isinstance(node, dict):
        return None
    comment_id = _non_blank(node.get("id"))
    login = _maybe_login(node.get("author"))
    created_at = node.get("createdAt")
    if comment_id is None or login is None or not isinstance(created_at, str):
        return None
    body = node.get("bodyText")
    return CommentSnapshot.create(
        comment_id,
        login,
        body if isinstance(body, str) else "",
        parse_github_datetime(created_at),
    )


def _comments_from_issue(issue: dict[str, typ.Any]) -> list[CommentSnapshot]:
    connection = issue.get("comments")
    if not isinstance(connection, dict):
        return []
    nodes = connection.get("nodes")
    if not isinstance(nodes, list):
        return []
    return [
        comment
        for comment in (_comment_from_node(node) for node in nodes)
        if comment is not None
    ]


def _extract_issue_node(envelope: dict[str, typ.Any]) -> dict[str, typ.Any] | None:
    data = envelope.get("data")
    if not isinstance(data, dict):
        return None
    repository = data.get("repository")
    if not isinstance(repository, dict):
        return None
    issue = repository.get("issue")
    return issue if isinstance(issue, dict) else None


class IssueContextService:
    """Fetch an issue and its most recent comments.

    Parameters
    ----------
    executor
        Collaborator that runs GraphQL documents and returns the raw
        ``{data, errors}`` envelope.

    """

    def __init__(self, executor: GraphQLExecutor) -> None:
        """Store the GraphQL executor."""
        self._executor = executor

    async def fetch_issue_context(
        self, request: IssueContextRequest
    ) -> IssueContextResult:
        """Retrieve issue context and classify the outcome.

        Parameters
        ----------
        request
            Identifies the repository, issue and comment page size.

        Returns
        -------
        IssueContextResult
            ``success`` with a snapshot, or one of ``permission_denied``,
            ``graphql_failure`` and ``unexpected_error``.

        Raises
        ------
        TypeError
            If ``request`` is ``None``.

        """
        if request is None:
            msg = "request must not be None"
            raise TypeError(msg)

        log_info(
            logger,
            "Fetching context for %s#%d (comments=%d)",
            request.slug,
            request.issue_number,
            request.clamped_page_size,
        )
        try:
            envelope = await self._executor.execute(
                ISSUE_CONTEXT_QUERY, build_issue_context_variables(request)
            )
            return self._classify(request, envelope)
        except Exception as exc:  # noqa: BLE001 - every failure becomes a result value
            log_warning(logger, "Issue context query raised: %s", exc)
            return IssueContextResult.unexpected_error(
                request.run_id, request.event_type, str(exc) or type(exc).__name__
            )

    def _classify(
        self, request: IssueContextRequest, envelope: dict[str, typ.Any]
    ) -> IssueContextResult:
        errors = envelope.get("errors")
        if isinstance(errors, list) and errors:
            return self._classify_errors(request, errors)

        issue = _extract_issue_node(envelope)
        if issue is None:
            return IssueContextResult.graphql_failure(
                request.run_id,
                request.event_type,
                f"Issue #{request.issue_number} not found.",
            )
        return self._snapshot_result(request, issue)

    def _classify_errors(
        self, request: IssueContextRequest, errors: list[object]
    ) -> IssueContextResult:
        entries = [error for error in errors if isinstance(error, dict)]
        messages = [m for m in (_error_message(e) for e in entries) if m]

        if any(is_permission_error(error) for error in entries):
            scope_message = next(
                (
                    message
                    for error in entries
                    if is_permission_error(error)
                    and (message := _error_message(error))
                ),
                _DEFAULT_SCOPE_MESSAGE,
            )
            return IssueContextResult.permission_denied(
                request.run_id, request.event_type, scope_message
            )

        return IssueContextResult.graphql_failure(
            request.run_id,
            request.event_type,
            "; ".join(messages) if messages else _NO_DETAIL_MESSAGE,
        )

    def _snapshot_result(
        self, request: IssueContextRequest, issue: dict[str, typ.Any]
    ) -> IssueContextResult:
        issue_id = _non_blank(issue.get("id"))
        title = _non_blank(issue.get("title"))
        if issue_id is None or title is None:
            return IssueContextResult.graphql_failure(
                request.run_id,
                request.event_type,
                "Issue payload missing required fields.",
            )

        author_login = _maybe_login(issue.get("author"))
        if author_login is None:
            return IssueContextResult.graphql_failure(
                request.run_id,
                request.event_type,
                "Issue author login missing from GraphQL response.",
            )

        created_at = issue.get("createdAt")
        if not isinstance(created_at, str):
            return IssueContextResult.graphql_failure(
                request.run_id,
                request.event_type,
                "Issue createdAt missing from GraphQL response.",
            )

        number = issue.get("number")
        snapshot = IssueSnapshot.create(
            issue_id,
            number if isinstance(number, int) else request.issue_number,
            title,
            author_login,
            body=issue.get("body") if isinstance(issue.get("body"), str) else "",
            created_at=parse_github_datetime(created_at),
            latest_comments=_comments_from_issue(issue),
        )
        return IssueContextResult.success(
            request.run_id, request.event_type, snapshot, utcnow()
        )

"""Issue context request, snapshot and result models."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum
import typing as typ

import msgspec

from issueagent.common.time import ensure_not_future, ensure_utc, utcnow

MAX_COMMENT_EXCERPT_LENGTH = 280
MAX_TITLE_LENGTH = 256
MAX_LATEST_COMMENTS = 5
MIN_COMMENTS_PAGE_SIZE = 1
MAX_COMMENTS_PAGE_SIZE = 20

PERMISSION_REMEDIATION = (
    "Grant the workflow token the minimum required scopes in the workflow "
    "'permissions' block: 'issues: read' to retrieve context and "
    "'issues: write' to post replies."
)


class IssueEventType(enum.StrEnum):
    """GitHub events the agent reacts to."""

    ISSUE_OPENED = "issue_opened"
    ISSUE_REOPENED = "issue_reopened"
    ISSUE_COMMENT_CREATED = "issue_comment_created"


class IssueContextStatus(enum.StrEnum):
    """Closed set of context retrieval outcomes."""

    SUCCESS = "success"
    GRAPHQL_FAILURE = "graphql_failure"
    PERMISSION_DENIED = "permission_denied"
    UNEXPECTED_ERROR = "unexpected_error"
    SKIPPED = "skipped"


_FAILURE_STATUSES = frozenset(
    {
        IssueContextStatus.GRAPHQL_FAILURE,
        IssueContextStatus.PERMISSION_DENIED,
        IssueContextStatus.UNEXPECTED_ERROR,
    }
)


def _require_text(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        msg = f"{field} must be provided"
        raise ValueError(msg)
    return value.strip()


class IssueContextRequest(msgspec.Struct, kw_only=True, frozen=True):
    """Everything needed to fetch one issue's context.

    Attributes
    ----------
    owner
        Account that owns the repository.
    name
        Repository name.
    issue_number
        Issue number within the repository.
    comments_page_size
        Number of most recent comments to request (clamped to 1..20).
    run_id
        Workflow run identifier, used to correlate log lines.
    event_type
        Event that triggered the run.

    """

    owner: str
    name: str
    issue_number: int
    comments_page_size: int
    run_id: str
    event_type: IssueEventType

    @property
    def slug(self) -> str:
        """Return owner/name identifier."""
        return f"{self.owner}/{self.name}"

    @property
    def clamped_page_size(self) -> int:
        """Return the comment page size bounded to what the query allows."""
        return max(
            MIN_COMMENTS_PAGE_SIZE,
            min(self.comments_page_size, MAX_COMMENTS_PAGE_SIZE),
        )


class CommentSnapshot(msgspec.Struct, kw_only=True, frozen=True):
    """Point-in-time capture of a single issue comment."""

    id: str
    author_login: str
    body_excerpt: str
    created_at: dt.datetime

    @classmethod
    def create(
        cls,
        id: str,  # noqa: A002
        author_login: str,
        body: str | None,
        created_at: dt.datetime,
    ) -> CommentSnapshot:
        """Build a snapshot, trimming the body to the excerpt limit.

        Raises
        ------
        ValueError
            If the id or author is blank, or the timestamp is naive or in
            the future.

        """
        excerpt = (body or "").strip()[:MAX_COMMENT_EXCERPT_LENGTH]
        return cls(
            id=_require_text(id, "Comment id"),
            author_login=_require_text(author_login, "Comment author login"),
            body_excerpt=excerpt,
            created_at=ensure_not_future(created_at, field="Comment created_at"),
        )


class IssueSnapshot(msgspec.Struct, kw_only=True, frozen=True):
    """Point-in-time capture of an issue and its most recent comments.

    Attributes
    ----------
    id
        GraphQL node id of the issue.
    number
        Issue number.
    title
        Issue title, capped at 256 characters.
    body
        Issue body text.
    author_login
        Login of the issue author.
    created_at
        When the issue was opened.
    latest_comments
        At most five comments, oldest first.

    """

    id: str
    number: int
    title: str
    body: str
    author_login: str
    created_at: dt.datetime
    latest_comments: tuple[CommentSnapshot, ...] = ()

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        id: str,  # noqa: A002
        number: int,
        title: str,
        author_login: str,
        *,
        body: str | None = None,
        created_at: dt.datetime,
        latest_comments: typ.Sequence[CommentSnapshot] | None = None,
    ) -> IssueSnapshot:
        """Build a snapshot, applying the title and comment limits.

        When more than five comments are supplied the oldest are dropped;
        the survivors keep their relative order.
        """
        if number <= 0:
            msg = f"Issue number must be positive, got {number}"
            raise ValueError(msg)
        comments = tuple(c for c in latest_comments or () if c is not None)
        return cls(
            id=_require_text(id, "Issue id"),
            number=number,
            title=_require_text(title, "Issue title")[:MAX_TITLE_LENGTH],
            body=(body or "").strip(),
            author_login=_require_text(author_login, "Issue author login"),
            created_at=ensure_utc(created_at, field="Issue created_at"),
            latest_comments=comments[-MAX_LATEST_COMMENTS:],
        )


def _format_message(prefix: str, detail: str | None) -> str:
    detail_text = (detail or "").strip() or "No additional details."
    return f"{prefix}: {detail_text}"


class IssueContextResult(msgspec.Struct, kw_only=True, frozen=True):
    """Outcome of one context retrieval.

    ``issue`` is populated exactly when ``status`` is
    :attr:`IssueContextStatus.SUCCESS`. Use the classmethod factories
    rather than the constructor so that invariant holds.
    """

    run_id: str
    event_type: IssueEventType
    retrieved_at: dt.datetime
    status: IssueContextStatus
    message: str
    issue: IssueSnapshot | None = None

    @property
    def is_failure(self) -> bool:
        """Return True for statuses that should fail the workflow run."""
        return self.status in _FAILURE_STATUSES

    @classmethod
    def _create(
        cls,
        run_id: str,
        event_type: IssueEventType,
        status: IssueContextStatus,
        message: str,
        *,
        issue: IssueSnapshot | None = None,
        retrieved_at: dt.datetime | None = None,
    ) -> IssueContextResult:
        return cls(
            run_id=_require_text(run_id, "run_id"),
            event_type=event_type,
            retrieved_at=ensure_utc(retrieved_at or utcnow(), field="retrieved_at"),
            status=status,
            message=_require_text(message, "message"),
            issue=issue,
        )

    @classmethod
    def success(
        cls,
        run_id: str,
        event_type: IssueEventType,
        issue: IssueSnapshot,
        retrieved_at: dt.datetime | None = None,
    ) -> IssueContextResult:
        """Return a successful result carrying ``issue``."""
        if issue is None:
            msg = "issue is required for a successful result"
            raise TypeError(msg)
        return cls._create(
            run_id,
            event_type,
            IssueContextStatus.SUCCESS,
            f"Success: Issue #{issue.number} retrieved.",
            issue=issue,
            retrieved_at=retrieved_at,
        )

    @classmethod
    def graphql_failure(
        cls, run_id: str, event_type: IssueEventType, detail: str | None
    ) -> IssueContextResult:
        """Return a result for GraphQL-level errors or missing data."""
        return cls._create(
            run_id,
            event_type,
            IssueContextStatus.GRAPHQL_FAILURE,
            _format_message("GraphQL failure", detail),
        )

    @classmethod
    def permission_denied(
        cls, run_id: str, event_type: IssueEventType, detail: str | None
    ) -> IssueContextResult:
        """Return a result for scope errors, with remediation guidance."""
        message = _format_message("Permission denied", detail)
        return cls._create(
            run_id,
            event_type,
            IssueContextStatus.PERMISSION_DENIED,
            f"{message} {PERMISSION_REMEDIATION}",
        )

    @classmethod
    def unexpected_error(
        cls, run_id: str, event_type: IssueEventType, detail: str | None
    ) -> IssueContextResult:
        """Return a result for exceptions raised during retrieval."""
        return cls._create(
            run_id,
            event_type,
            IssueContextStatus.UNEXPECTED_ERROR,
            _format_message("Unexpected error", detail),
        )

    @classmethod
    def skipped(
        cls, run_id: str, event_type: IssueEventType, reason: str | None
    ) -> IssueContextResult:
        """Return a result for runs that deliberately did nothing."""
        return cls._create(
            run_id,
            event_type,
            IssueContextStatus.SKIPPED,
            _format_message("Skipped", reason),
        )

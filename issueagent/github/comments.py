"""Publishing agent replies as issue comments through the GitHub REST API."""

from __future__ import annotations

import typing as typ

import httpx
import msgspec

from issueagent.logging import get_logger, log_error, log_info

from .errors import GitHubConfigError

logger = get_logger(__name__)

AGENT_BANNER = "🤖 **issueagent**"
SIGNATURE_MARKER = "<!-- issueagent-signature -->"

_HTTP_ERROR_STATUS_THRESHOLD = 400
_ERROR_PREVIEW_LIMIT = 200


class PostCommentResult(msgspec.Struct, kw_only=True, frozen=True):
    """Outcome of a create-comment call."""

    success: bool
    comment_id: str | None = None
    comment_url: str | None = None
    error_message: str | None = None


class _CreatedComment(msgspec.Struct):
    node_id: str | None = None
    html_url: str | None = None


class CommentPublisher(typ.Protocol):
    """Interface for posting a reply to an issue thread."""

    async def post_comment(
        self, owner: str, repo: str, issue_number: int, body: str
    ) -> PostCommentResult:
        """Publish ``body`` on the issue and report the outcome."""
        ...


def format_comment_body(body: str) -> str:
    """Prefix reply text with the agent banner and hidden signature marker.

    The marker sits in the first line so it survives the excerpt limit
    applied to retrieved comments.
    """
    return f"{AGENT_BANNER} {SIGNATURE_MARKER}\n\n{body.strip()}"


class GitHubCommentPoster:
    """REST implementation of :class:`CommentPublisher`."""

    def __init__(
        self,
        token: str,
        *,
        api_base_url: str = "https://api.github.com",
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 20.0,
    ) -> None:
        """Initialise the poster with a workflow token."""
        if not token or not token.strip():
            raise GitHubConfigError.empty_token()

        self._api_base_url = api_base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout_s,
            headers={
                "Authorization": f"Bearer {token.strip()}",
                "User-Agent": "issueagent/0.1",
                "Accept": "application/vnd.github+json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def post_comment(
        self, owner: str, repo: str, issue_number: int, body: str
    ) -> PostCommentResult:
        """Create a comment on ``owner/repo#issue_number``.

        Argument errors raise ``ValueError``. HTTP and transport failures are
        returned as an unsuccessful :class:`PostCommentResult`.
        """
        if not owner.strip() or not repo.strip():
            msg = "owner and repo must be provided"
            raise ValueError(msg)
        if issue_number <= 0:
            msg = f"Issue number must be positive, got {issue_number}"
            raise ValueError(msg)
        if not body.strip():
            msg = "Comment body must be provided"
            raise ValueError(msg)

        url = (
            f"{self._api_base_url}/repos/{owner}/{repo}/issues/{issue_number}/comments"
        )
        log_info(
            logger,
            "Posting comment to issue #%d in %s/%s",
            issue_number,
            owner,
            repo,
        )
        try:
            response = await self._client.post(
                url, json={"body": format_comment_body(body)}
            )
        except httpx.RequestError as exc:
            log_error(logger, "Failed to post comment: %s", exc)
            return PostCommentResult(success=False, error_message=str(exc))

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            preview = response.text[:_ERROR_PREVIEW_LIMIT]
            log_error(
                logger,
                "Failed to post comment: HTTP %d - %s",
                response.status_code,
                preview,
            )
            return PostCommentResult(
                success=False,
                error_message=f"HTTP {response.status_code}: {preview}",
            )

        try:
            created = msgspec.json.decode(response.content, type=_CreatedComment)
        except msgspec.DecodeError:
            created = _CreatedComment()
        return PostCommentResult(
            success=True,
            comment_id=created.node_id,
            comment_url=created.html_url,
        )

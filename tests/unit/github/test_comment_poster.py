"""Unit tests for the GitHub REST comment publisher."""

from __future__ import annotations

import json
import secrets

import httpx
import pytest

from issueagent.github import (
    AGENT_BANNER,
    SIGNATURE_MARKER,
    GitHubCommentPoster,
    format_comment_body,
)

_TOKEN = secrets.token_hex(8)


def _poster(
    handler: httpx.MockTransport,
) -> GitHubCommentPoster:
    return GitHubCommentPoster(
        _TOKEN,
        api_base_url="https://api.example.test/",
        http_client=httpx.AsyncClient(transport=handler),
    )


def test_format_comment_body_adds_banner_and_marker() -> None:
    """Replies open with the banner and the hidden signature."""
    body = format_comment_body("  Please add steps.  ")

    assert body == f"{AGENT_BANNER} {SIGNATURE_MARKER}\n\nPlease add steps.", (
        "Expected banner and signature prefix."
    )



@pytest.mark.asyncio
async def test_post_comment_success_returns_identifiers() -> None:
    """A 201 response yields the node id and URL."""
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            201,
            json={
                "id": 1,
                "node_id": "IC_1",
                "html_url": "https://github.test/octo/reef/issues/42#issuecomment-1",
            },
        )

    poster = _poster(httpx.MockTransport(_handler))

    result = await poster.post_comment("octo", "reef", 42, "Hello")

    assert result.success, "Expected a successful post."
    assert result.comment_id == "IC_1"
    assert result.comment_url is not None
    assert result.comment_url.endswith("#issuecomment-1")
    assert str(seen[0].url) == (
        "https://api.example.test/repos/octo/reef/issues/42/comments"
    )
    posted = json.loads(seen[0].content.decode("utf-8"))
    assert posted["body"] == format_comment_body("Hello")


@pytest.mark.asyncio
async def test_post_comment_http_error_is_returned_as_result() -> None:
    """HTTP failures become an unsuccessful result, not an exception."""
    poster = _poster(
        httpx.MockTransport(lambda _: httpx.Response(403, text="Resource not accessible"))
    )

    result = await poster.post_comment("octo", "reef", 42, "Hello")

    assert not result.success
    assert result.error_message == "HTTP 403: Resource not accessible"


@pytest.mark.asyncio
async def test_post_comment_transport_error_is_returned_as_result() -> None:
    """Transport failures become an unsuccessful result."""

    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    poster = _poster(httpx.MockTransport(_handler))

    result = await poster.post_comment("octo", "reef", 42, "Hello")

    assert not result.success
    assert result.error_message is not None
    assert "connection refused" in result.error_message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("owner", "number", "body"),
    [("", 42, "Hello"), ("octo", 0, "Hello"), ("octo", 42, "   ")],
)
async def test_post_comment_rejects_bad_arguments(
    owner: str, number: int, body: str
) -> None:
    """Argument errors are programmer errors and raise."""
    poster = _poster(httpx.MockTransport(lambda _: httpx.Response(201, json={})))

    with pytest.raises(ValueError, match="must"):
        await poster.post_comment(owner, "reef", number, body)

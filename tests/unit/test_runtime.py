"""Unit tests for the issueagent.runtime module."""

from __future__ import annotations

import asyncio
import json
import typing as typ

import httpx
import pytest

from issueagent import runtime
from issueagent.environment import RuntimeEnvironment
from issueagent.runtime import (
    EXIT_CANCELLED,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    connect_backend,
    main,
    run,
)
from tests.helpers.foundry_builders import ENDPOINT, PROBE_URL, key_config
from tests.helpers.issue_builders import (
    at,
    comment_node,
    envelope,
    issue_node,
    make_request,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

_GRAPHQL_URL = "https://api.github.com/graphql"
_COMMENTS_URL = "https://api.github.com/repos/octo/reef/issues/42/comments"


class _FakeGitHub:
    """Routes GraphQL, REST and backend requests to canned responses."""

    def __init__(
        self,
        graphql: dict[str, typ.Any],
        *,
        post_status: int = 201,
        probe_status: int = 200,
        chat_reply: str = "Refined story.",
    ) -> None:
        self.graphql = graphql
        self.post_status = post_status
        self.probe_status = probe_status
        self.chat_reply = chat_reply
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        if url == _GRAPHQL_URL:
            return httpx.Response(200, json=self.graphql)
        if url == _COMMENTS_URL:
            return httpx.Response(
                self.post_status,
                json={"node_id": "IC_1", "html_url": "https://github.test/c/1"},
            )
        if url == PROBE_URL:
            return httpx.Response(self.probe_status, json={"name": "gpt-5-mini"})
        if url.endswith("/chat/completions"):
            return httpx.Response(
                200, json={"choices": [{"message": {"content": self.chat_reply}}]}
            )
        return httpx.Response(404, text=f"unexpected {url}")

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def posted_bodies(self) -> list[str]:
        return [
            json.loads(request.content.decode("utf-8"))["body"]
            for request in self.requests
            if str(request.url) == _COMMENTS_URL
        ]


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep femtologging configuration out of unit tests."""
    monkeypatch.setattr(
        runtime, "configure_logging", lambda level: ("INFO", False)
    )


@pytest.fixture
def environ(tmp_path: Path) -> dict[str, str]:
    """Provide a comment event for octo/reef#42."""
    event_path = tmp_path / "event.json"
    event_path.write_text(
        json.dumps({"action": "created", "issue": {"number": 42}}), encoding="utf-8"
    )
    return {
        "GITHUB_REPOSITORY": "octo/reef",
        "GITHUB_EVENT_NAME": "issue_comment",
        "GITHUB_EVENT_PATH": str(event_path),
        "GITHUB_RUN_ID": "77",
        "GITHUB_TOKEN": "ghs_runtime",
    }


def _mention_envelope() -> dict[str, typ.Any]:
    return envelope(
        issue_node(comments=[comment_node("C1", "bob", "@issueagent help", at(5))])
    )


class TestRun:
    """Exit codes for whole runs."""

    @pytest.mark.asyncio
    async def test_mention_posts_fallback_and_succeeds(
        self, environ: dict[str, str]
    ) -> None:
        """Without a backend the fallback reply is posted and the run passes."""
        github = _FakeGitHub(_mention_envelope())

        exit_code = await run(environ, http_client=github.client())

        assert exit_code == EXIT_SUCCESS
        bodies = github.posted_bodies()
        assert len(bodies) == 1
        assert bodies[0].startswith("🤖 **issueagent**")

    @pytest.mark.asyncio
    async def test_backend_reply_is_posted(self, environ: dict[str, str]) -> None:
        """A configured backend generates the posted reply."""
        environ.update(
            {
                "AZURE_AI_FOUNDRY_ENDPOINT": ENDPOINT,
                "AZURE_AI_FOUNDRY_API_KEY": "k" * 40,
            }
        )
        github = _FakeGitHub(_mention_envelope(), chat_reply="Refined story.")

        exit_code = await run(environ, http_client=github.client())

        assert exit_code == EXIT_SUCCESS
        assert "Refined story." in github.posted_bodies()[0]

    @pytest.mark.asyncio
    async def test_invalid_backend_key_fails_before_retrieval(
        self, environ: dict[str, str]
    ) -> None:
        """A five-character key stops the run before any request."""
        environ["AZURE_AI_FOUNDRY_ENDPOINT"] = ENDPOINT
        environ["AZURE_AI_FOUNDRY_API_KEY"] = "abcde"
        github = _FakeGitHub(_mention_envelope())

        exit_code = await run(environ, http_client=github.client())

        assert exit_code == EXIT_FAILURE
        assert github.requests == [], "Expected no remote calls."

    @pytest.mark.asyncio
    async def test_permission_denied_fails(self, environ: dict[str, str]) -> None:
        """Retrieval failures fail the workflow."""
        github = _FakeGitHub(
            envelope(
                None,
                errors=[
                    {
                        "message": "no scope",
                        "extensions": {"code": "INSUFFICIENT_SCOPES"},
                    }
                ],
            )
        )

        assert await run(environ, http_client=github.client()) == EXIT_FAILURE
        assert github.posted_bodies() == []

    @pytest.mark.asyncio
    async def test_failed_comment_post_fails(self, environ: dict[str, str]) -> None:
        """A reply that cannot be posted fails the workflow."""
        github = _FakeGitHub(_mention_envelope(), post_status=403)

        assert await run(environ, http_client=github.client()) == EXIT_FAILURE

    @pytest.mark.asyncio
    async def test_skip_succeeds_without_posting(self, environ: dict[str, str]) -> None:
        """No mention and no follow-up means a quiet, successful run."""
        github = _FakeGitHub(
            envelope(issue_node(comments=[comment_node("C1", "bob", "hmm", at(5))]))
        )

        assert await run(environ, http_client=github.client()) == EXIT_SUCCESS
        assert github.posted_bodies() == []

    @pytest.mark.asyncio
    async def test_missing_token_fails(self, environ: dict[str, str]) -> None:
        """Runs without a token stop before any remote call."""
        del environ["GITHUB_TOKEN"]
        github = _FakeGitHub(_mention_envelope())

        assert await run(environ, http_client=github.client()) == EXIT_FAILURE
        assert github.requests == []

    @pytest.mark.asyncio
    async def test_environment_error_fails(self, environ: dict[str, str]) -> None:
        """Unsupported events are bootstrap failures."""
        environ["GITHUB_EVENT_NAME"] = "push"

        assert await run(environ) == EXIT_FAILURE

    @pytest.mark.asyncio
    async def test_cancellation_returns_cancelled_code(
        self, environ: dict[str, str]
    ) -> None:
        """Cancelling a pending request exits with the cancelled code."""
        started = asyncio.Event()

        async def _hang(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(500)

        client = httpx.AsyncClient(transport=httpx.MockTransport(_hang))
        task = asyncio.create_task(run(environ, http_client=client))
        await started.wait()
        task.cancel()

        assert await task == EXIT_CANCELLED


class TestConnectBackend:
    """Backend bootstrap outcomes as seen by the runtime."""

    @pytest.mark.asyncio
    async def test_unconfigured_backend_is_skipped(self) -> None:
        """Without backend settings the run continues on fallback text."""
        environment = RuntimeEnvironment(
            token="t", request=make_request(), event_name="issues", foundry=None
        )

        assert await connect_backend(environment, None) == (True, None)

    @pytest.mark.asyncio
    async def test_failed_bootstrap_is_reported(self) -> None:
        """A rejected readiness check stops the run before any client leaks."""
        environment = RuntimeEnvironment(
            token="t",
            request=make_request(),
            event_name="issues",
            foundry=key_config(),
        )
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda _: httpx.Response(401))
        )

        connected, backend = await connect_backend(environment, client)

        assert not connected, "Expected the failed bootstrap to be reported."
        assert backend is None


def test_main_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    """--version prints the package version and exits cleanly."""
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert "issueagent" in capsys.readouterr().out


def test_main_returns_run_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    """main passes the log level through and returns the exit code."""
    seen: dict[str, object] = {}

    async def _fake_run(environ: object, *, log_level: str | None = None) -> int:
        seen["log_level"] = log_level
        return EXIT_FAILURE

    monkeypatch.setattr(runtime, "run", _fake_run)

    assert main(["--log-level", "debug"]) == EXIT_FAILURE
    assert seen == {"log_level": "debug"}

"""Unit tests for the backend connection bootstrap."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

import httpx
import pytest

from issueagent.foundry import (
    ConnectionErrorCategory,
    CredentialKind,
    FoundryAPIError,
    FoundryAuthenticationError,
    FoundryClient,
    FoundryConfigError,
    FoundryConfiguration,
    categorize_exception,
    initialize_backend,
)
from tests.helpers.foundry_builders import API_KEY, ENDPOINT, key_config

if typ.TYPE_CHECKING:
    from tests.helpers.issue_builders import RecordingLogger


def _transport_client(
    handler: typ.Callable[[httpx.Request], httpx.Response],
) -> tuple[httpx.AsyncClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(_recording)), seen


class _SlowProvider:
    """Provider that never finishes within the test's time budget."""

    method_name = "Slow"

    async def create_client(self, config: FoundryConfiguration) -> FoundryClient:
        await asyncio.sleep(10)
        msg = "unreachable"
        raise AssertionError(msg)


class _RecordingClient:
    """Client double whose probe fails, recording whether it was closed."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.closed = False

    async def probe(self) -> None:
        raise self.error

    async def aclose(self) -> None:
        self.closed = True


class _StaticProvider:
    """Provider returning a prepared client."""

    method_name = "Static"

    def __init__(self, client: _RecordingClient) -> None:
        self.client = client

    async def create_client(self, config: FoundryConfiguration) -> FoundryClient:
        return typ.cast("FoundryClient", self.client)


class TestInitializeBackend:
    """End-to-end bootstrap outcomes."""

    @pytest.mark.asyncio
    async def test_success_returns_ready_client(self) -> None:
        """A passing probe yields a client, method and duration."""
        http_client, seen = _transport_client(
            lambda _: httpx.Response(200, json={"name": "gpt-5-mini"})
        )

        result = await initialize_backend(key_config(), http_client=http_client)

        assert result.is_success, result.error_message
        assert isinstance(result.client, FoundryClient)
        assert result.authentication_method == "API Key"
        assert result.duration >= dt.timedelta(0)
        assert result.error_category is None
        assert len(seen) == 1, "Expected exactly one readiness probe."

    @pytest.mark.asyncio
    async def test_missing_config_is_missing_configuration(self) -> None:
        """No configuration at all reports a missing endpoint."""
        result = await initialize_backend(None)

        assert not result.is_success
        assert result.error_category is ConnectionErrorCategory.MISSING_CONFIGURATION
        assert result.attempted_endpoint == "<empty>"

    @pytest.mark.asyncio
    async def test_short_key_fails_before_any_network_call(self) -> None:
        """A five-character key is invalid and nothing is sent."""
        http_client, seen = _transport_client(lambda _: httpx.Response(200))

        result = await initialize_backend(
            key_config(api_key="abcde"), http_client=http_client
        )

        assert result.error_category is ConnectionErrorCategory.INVALID_CONFIGURATION
        assert seen == [], "Expected validation to fail before any request."
        assert result.authentication_method is None
        assert result.duration >= dt.timedelta(0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "body", "category"),
        [
            (401, "Unauthorized", ConnectionErrorCategory.AUTHENTICATION_FAILURE),
            (403, "Forbidden", ConnectionErrorCategory.AUTHENTICATION_FAILURE),
            (404, "DeploymentNotFound", ConnectionErrorCategory.MODEL_NOT_FOUND),
            (429, "Rate limit", ConnectionErrorCategory.QUOTA_EXCEEDED),
            (
                400,
                "Unsupported api-version 2020-01-01",
                ConnectionErrorCategory.API_VERSION_UNSUPPORTED,
            ),
            (400, "Bad request", ConnectionErrorCategory.UNKNOWN_ERROR),
            (500, "Internal error", ConnectionErrorCategory.UNKNOWN_ERROR),
        ],
    )
    async def test_probe_status_is_categorized(
        self, status: int, body: str, category: ConnectionErrorCategory
    ) -> None:
        """HTTP statuses from the probe map to failure categories."""
        http_client, _ = _transport_client(lambda _: httpx.Response(status, text=body))

        result = await initialize_backend(key_config(), http_client=http_client)

        assert result.error_category is category, result.error_message
        assert result.client is None
        assert API_KEY not in (result.error_message or ""), "Key must not leak."

    @pytest.mark.asyncio
    async def test_rejected_api_version_fails_the_bootstrap(self) -> None:
        """The probe sends the configured version, so rejection is caught early."""

        def _handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["api-version"] == "2024-01-01":
                return httpx.Response(400, text="Unsupported api-version 2024-01-01")
            return httpx.Response(200, json={"name": "gpt-5-mini"})

        http_client, seen = _transport_client(_handler)

        result = await initialize_backend(
            key_config(api_version="2024-01-01"), http_client=http_client
        )

        assert seen[0].url.params["api-version"] == "2024-01-01"
        assert (
            result.error_category is ConnectionErrorCategory.API_VERSION_UNSUPPORTED
        ), result.error_message
        assert result.client is None

    @pytest.mark.asyncio
    async def test_settings_are_logged_without_secrets(
        self, capture_logs: typ.Callable[[str], RecordingLogger]
    ) -> None:
        """The attempt logs non-secret settings and where they came from."""
        logs = capture_logs("issueagent.foundry.bootstrap")
        http_client, _ = _transport_client(lambda _: httpx.Response(200, json={}))
        config = FoundryConfiguration.from_env(
            {"AZURE_AI_FOUNDRY_ENDPOINT": ENDPOINT, "AZURE_AI_FOUNDRY_API_KEY": API_KEY}
        )

        result = await initialize_backend(config, http_client=http_client)

        assert result.is_success, result.error_message
        connecting = next(m for m in logs.messages if m.startswith("Connecting"))
        assert "model_deployment=gpt-5-mini" in connecting
        assert "source.api_key=environment_variable" in connecting
        assert "source.model_deployment=default_value" in connecting
        assert API_KEY not in " ".join(logs.messages), "Key must not be logged."

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (httpx.ConnectError("dns failure"), ConnectionErrorCategory.NETWORK_ERROR),
            (httpx.ReadTimeout("read timeout"), ConnectionErrorCategory.NETWORK_TIMEOUT),
        ],
    )
    async def test_transport_errors_are_categorized(
        self, error: Exception, category: ConnectionErrorCategory
    ) -> None:
        """Socket and timeout failures have their own categories."""

        def _handler(request: httpx.Request) -> httpx.Response:
            raise error

        http_client, _ = _transport_client(_handler)

        result = await initialize_backend(key_config(), http_client=http_client)

        assert result.error_category is category

    @pytest.mark.asyncio
    async def test_own_timeout_is_network_timeout(self) -> None:
        """The bootstrap's own deadline is reported as a timeout."""
        result = await initialize_backend(
            key_config(connection_timeout_s=0.05),
            providers={CredentialKind.API_KEY: _SlowProvider()},
        )

        assert result.error_category is ConnectionErrorCategory.NETWORK_TIMEOUT
        assert result.error_message == (
            "Connection to Azure AI Foundry timed out after 0.05 seconds."
        )
        assert result.duration >= dt.timedelta(seconds=0.05)
        assert result.authentication_method == "Slow"

    @pytest.mark.asyncio
    async def test_caller_cancellation_propagates(self) -> None:
        """Caller cancellation is not reported as a timeout."""
        task = asyncio.create_task(
            initialize_backend(
                key_config(), providers={CredentialKind.API_KEY: _SlowProvider()}
            )
        )
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_client_is_closed_when_probe_fails(self) -> None:
        """No client leaks from a failed attempt."""
        client = _RecordingClient(FoundryAPIError.http_error(401, "no"))

        result = await initialize_backend(
            key_config(), providers={CredentialKind.API_KEY: _StaticProvider(client)}
        )

        assert not result.is_success
        assert client.closed, "Expected the failed client to be closed."

    @pytest.mark.asyncio
    async def test_endpoint_is_truncated_in_result(self) -> None:
        """Results carry only the endpoint tail."""
        result = await initialize_backend(key_config(api_key="short"))

        assert result.attempted_endpoint == "..." + ENDPOINT[-20:]


@pytest.mark.parametrize(
    ("error", "category"),
    [
        (
            FoundryConfigError.missing_endpoint(),
            ConnectionErrorCategory.MISSING_CONFIGURATION,
        ),
        (
            FoundryAuthenticationError.token_exchange_failed(400, "invalid_grant"),
            ConnectionErrorCategory.AUTHENTICATION_FAILURE,
        ),
        (
            FoundryAPIError.http_error(400, "API version 2024-01-01 is not supported"),
            ConnectionErrorCategory.API_VERSION_UNSUPPORTED,
        ),
        (
            FoundryAPIError.http_error(400, "Unsupported api-version"),
            ConnectionErrorCategory.API_VERSION_UNSUPPORTED,
        ),
        (
            FoundryAPIError.http_error(400, "invalid api_version parameter"),
            ConnectionErrorCategory.API_VERSION_UNSUPPORTED,
        ),
        (
            FoundryAPIError.http_error(500, "api-version backend failure"),
            ConnectionErrorCategory.UNKNOWN_ERROR,
        ),
        (TimeoutError(), ConnectionErrorCategory.NETWORK_TIMEOUT),
        (RuntimeError("boom"), ConnectionErrorCategory.UNKNOWN_ERROR),
    ],
)
def test_categorize_exception(
    error: Exception, category: ConnectionErrorCategory
) -> None:
    """Exceptions map onto the closed category set."""
    assert categorize_exception(error) is category

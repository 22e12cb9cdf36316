"""HTTP client for an Azure AI Foundry project deployment."""

from __future__ import annotations

import typing as typ
import urllib.parse

import httpx
import msgspec

from .errors import FoundryAPIError, FoundryResponseShapeError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import FoundryConfiguration

_HTTP_ERROR_STATUS_THRESHOLD = 400
_DETAIL_LIMIT = 500
DEFAULT_GENERATION_TIMEOUT_S = 120.0
DEFAULT_MAX_COMPLETION_TOKENS = 1024


class _ChatMessage(msgspec.Struct):
    content: str | None = None


class _ChatChoice(msgspec.Struct):
    message: _ChatMessage | None = None


class _ChatCompletion(msgspec.Struct):
    choices: list[_ChatChoice] = msgspec.field(default_factory=list)


def resource_base_url(endpoint: str) -> str:
    """Return ``https://<host>`` for a project endpoint."""
    parts = urllib.parse.urlsplit(endpoint)
    return f"{parts.scheme}://{parts.netloc}"


class FoundryClient:
    """Authenticated client bound to one model deployment.

    Parameters
    ----------
    config
        Validated backend configuration.
    auth_headers
        Headers carrying the credential, added to every request.
    http_client
        Optional ``httpx.AsyncClient`` for testing. If not provided, the
        instance creates and owns its own client.
    generation_timeout_s
        Read timeout for chat completions. The connection timeout from
        ``config`` still bounds connecting and the readiness probe.

    """

    def __init__(
        self,
        config: FoundryConfiguration,
        *,
        auth_headers: cabc.Mapping[str, str],
        http_client: httpx.AsyncClient | None = None,
        generation_timeout_s: float = DEFAULT_GENERATION_TIMEOUT_S,
    ) -> None:
        """Initialise the client for ``config.model_deployment``."""
        if not config.endpoint or not config.model_deployment:
            msg = "FoundryClient requires a validated configuration"
            raise ValueError(msg)

        self._config = config
        self._headers = {
            **auth_headers,
            "Content-Type": "application/json",
            "User-Agent": "issueagent/0.1",
        }
        connection_timeout_s = config.timeout.total_seconds()
        self._generation_timeout = httpx.Timeout(
            generation_timeout_s, connect=connection_timeout_s
        )
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=connection_timeout_s)

    @property
    def model_deployment(self) -> str:
        """Return the deployment this client talks to."""
        return typ.cast("str", self._config.model_deployment)

    @property
    def api_version(self) -> str:
        """Return the API version sent with every request."""
        return typ.cast("str", self._config.api_version)

    @property
    def probe_url(self) -> str:
        """Return the deployment metadata URL used for the readiness probe."""
        endpoint = typ.cast("str", self._config.endpoint).rstrip("/")
        return f"{endpoint}/deployments/{self.model_deployment}"

    @property
    def chat_completions_url(self) -> str:
        """Return the chat completions URL on the resource host."""
        base = resource_base_url(typ.cast("str", self._config.endpoint))
        return (
            f"{base}/openai/deployments/{self.model_deployment}/chat/completions"
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def probe(self) -> None:
        """Confirm the deployment exists and accepts the configured API version.

        Raises
        ------
        FoundryAPIError
            If the backend answers with an error status.
        httpx.RequestError
            On transport failures; the bootstrap classifies these.

        """
        response = await self._client.get(
            self.probe_url,
            params={"api-version": self.api_version},
            headers=self._headers,
        )
        self._check_response(response, operation="readiness probe")

    async def complete(
        self,
        messages: cabc.Sequence[cabc.Mapping[str, str]],
        *,
        max_completion_tokens: int = DEFAULT_MAX_COMPLETION_TOKENS,
    ) -> str:
        """Send a chat completion request and return the assistant text.

        Parameters
        ----------
        messages
            Chat messages as ``{"role": ..., "content": ...}`` mappings.
        max_completion_tokens
            Upper bound on generated tokens.

        Returns
        -------
        str
            Assistant message content, stripped.

        Raises
        ------
        FoundryAPIError
            If the backend answers with an error status.
        FoundryResponseShapeError
            If the response is not valid JSON or has no content.

        """
        response = await self._client.post(
            self.chat_completions_url,
            params={"api-version": self.api_version},
            headers=self._headers,
            timeout=self._generation_timeout,
            json={
                "messages": [dict(message) for message in messages],
                "max_completion_tokens": max_completion_tokens,
            },
        )
        self._check_response(response, operation="chat completion")
        return self._extract_content(response)

    def _check_response(self, response: httpx.Response, *, operation: str) -> None:
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise FoundryAPIError.http_error(
                response.status_code,
                response.text[:_DETAIL_LIMIT],
                operation=operation,
            )

    def _extract_content(self, response: httpx.Response) -> str:
        try:
            completion = msgspec.json.decode(response.content, type=_ChatCompletion)
        except msgspec.DecodeError as exc:
            raise FoundryResponseShapeError.invalid_json(response.text) from exc

        if not completion.choices:
            raise FoundryResponseShapeError.missing("choices")
        message = completion.choices[0].message
        if message is None or not message.content or not message.content.strip():
            raise FoundryResponseShapeError.missing("choices[0].message.content")
        return message.content.strip()

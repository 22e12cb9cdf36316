"""GitHub GraphQL executor used by the context retrieval service."""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError

_HTTP_ERROR_STATUS_THRESHOLD = 400


class GraphQLExecutor(typ.Protocol):
    """Interface for running a single GraphQL document."""

    async def execute(
        self, query: str, variables: dict[str, typ.Any]
    ) -> dict[str, typ.Any]:
        """Run ``query`` and return the raw ``{data, errors}`` envelope.

        GraphQL-level ``errors`` are returned, not raised; callers decide how
        to classify them. Transport failures raise.
        """
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubGraphQLConfig:
    """Configuration for the GitHub GraphQL API client."""

    token: str
    endpoint: str = "https://api.github.com/graphql"
    timeout_s: float = 20.0
    user_agent: str = "issueagent/0.1"


def _validate_string_keyed_dict(
    raw_dict: dict[typ.Any, typ.Any],
    *,
    field_name: str,
) -> dict[str, typ.Any]:
    """Validate that a dictionary has only string keys and return a copy."""
    result: dict[str, typ.Any] = {}
    for key, value in raw_dict.items():
        if not isinstance(key, str):
            raise GitHubResponseShapeError.missing(field_name)
        result[key] = value
    return result


def parse_graphql_envelope(payload_raw: object) -> dict[str, typ.Any]:
    """Validate the top-level GraphQL response object.

    Both ``data`` and ``errors`` are passed through untouched so callers can
    tell permission failures apart from other query errors.
    """
    if not isinstance(payload_raw, dict):
        raise GitHubResponseShapeError.missing("response")
    return _validate_string_keyed_dict(payload_raw, field_name="response")


class GitHubGraphQLClient:
    """httpx implementation of :class:`GraphQLExecutor`."""

    def __init__(
        self,
        config: GitHubGraphQLConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.token}",
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def execute(
        self, query: str, variables: dict[str, typ.Any]
    ) -> dict[str, typ.Any]:
        """Execute a GraphQL query and return the response envelope."""
        response = await self._client.post(
            self._config.endpoint,
            json={"query": query, "variables": variables},
        )
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(response.status_code)
        return parse_graphql_envelope(response.json())

"""Authentication strategies for the Azure AI Foundry backend.

Each strategy turns a validated :class:`FoundryConfiguration` into an
authenticated :class:`FoundryClient`. Strategies are registered by
:class:`CredentialKind` and chosen in exactly one place,
:func:`select_authentication_provider`, so adding a credential shape means
adding a provider and a registry entry.
"""

from __future__ import annotations

import dataclasses
import typing as typ

import httpx
import msgspec

from issueagent.logging import get_logger, log_debug, log_info

from .client import FoundryClient
from .errors import FoundryAuthenticationError, FoundryConfigError
from .models import CredentialKind

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import FoundryConfiguration

logger = get_logger(__name__)

_HTTP_ERROR_STATUS_THRESHOLD = 400
_DETAIL_LIMIT = 500

OIDC_AUDIENCE = "api://AzureADTokenExchange"
FOUNDRY_SCOPE = "https://ai.azure.com/.default"
DEFAULT_AUTHORITY_HOST = "https://login.microsoftonline.com"
CLIENT_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"


class _OIDCTokenResponse(msgspec.Struct):
    value: str | None = None


class _AccessTokenResponse(msgspec.Struct):
    access_token: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubOIDCTokenSource:
    """Where a GitHub Actions job requests its OIDC identity token.

    Both values are only present when the workflow grants
    ``id-token: write``.
    """

    request_url: str
    request_token: str = dataclasses.field(repr=False)

    @classmethod
    def from_env(
        cls, environ: cabc.Mapping[str, str]
    ) -> GitHubOIDCTokenSource | None:
        """Return the token source, or ``None`` when the job has none."""
        url = environ.get("ACTIONS_ID_TOKEN_REQUEST_URL", "").strip()
        token = environ.get("ACTIONS_ID_TOKEN_REQUEST_TOKEN", "").strip()
        if not url or not token:
            return None
        return cls(request_url=url, request_token=token)


class AuthenticationProvider(typ.Protocol):
    """Strategy that builds an authenticated backend client."""

    @property
    def method_name(self) -> str:
        """Human-readable name logged with connection results."""
        ...

    async def create_client(self, config: FoundryConfiguration) -> FoundryClient:
        """Return a client for the validated ``config``."""
        ...


class ApiKeyAuthenticationProvider:
    """Authenticate with a static key sent in the ``api-key`` header."""

    method_name = "API Key"

    def __init__(self, *, http_client: httpx.AsyncClient | None = None) -> None:
        """Store an optional shared HTTP client."""
        self._http_client = http_client

    async def create_client(self, config: FoundryConfiguration) -> FoundryClient:
        """Return a client carrying the configured key."""
        if not config.api_key:
            raise FoundryConfigError.missing_credentials()
        return FoundryClient(
            config,
            auth_headers={"api-key": config.api_key},
            http_client=self._http_client,
        )


class FederatedIdentityAuthenticationProvider:
    """Authenticate with a GitHub OIDC token exchanged for an Entra token.

    Parameters
    ----------
    token_source
        GitHub Actions OIDC request details; ``None`` outside a workflow
        that grants ``id-token: write``.
    http_client
        Optional ``httpx.AsyncClient`` used for the token requests and the
        resulting backend client.
    authority_host
        Entra authority base URL.

    """

    method_name = "OIDC (Federated Identity)"

    def __init__(
        self,
        token_source: GitHubOIDCTokenSource | None,
        *,
        http_client: httpx.AsyncClient | None = None,
        authority_host: str = DEFAULT_AUTHORITY_HOST,
    ) -> None:
        """Store the token source and HTTP settings."""
        self._token_source = token_source
        self._http_client = http_client
        self._authority_host = authority_host.rstrip("/")

    async def create_client(self, config: FoundryConfiguration) -> FoundryClient:
        """Exchange the workflow identity for a bearer token and build a client."""
        if self._token_source is None:
            raise FoundryConfigError.missing_oidc_token_source()
        if not config.client_id or not config.tenant_id:
            raise FoundryConfigError.missing_credentials()

        http_client = self._http_client or httpx.AsyncClient(
            timeout=config.timeout.total_seconds()
        )
        try:
            assertion = await self._request_oidc_token(http_client)
            access_token = await self._exchange_token(
                http_client, assertion, config.client_id, config.tenant_id
            )
        finally:
            if self._http_client is None:
                await http_client.aclose()

        log_info(logger, "Obtained Entra access token for federated identity")
        return FoundryClient(
            config,
            auth_headers={"Authorization": f"Bearer {access_token}"},
            http_client=self._http_client,
        )

    async def _request_oidc_token(self, http_client: httpx.AsyncClient) -> str:
        source = typ.cast("GitHubOIDCTokenSource", self._token_source)
        log_debug(logger, "Requesting GitHub OIDC token")
        response = await http_client.get(
            source.request_url,
            params={"audience": OIDC_AUDIENCE},
            headers={"Authorization": f"Bearer {source.request_token}"},
        )
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise FoundryAuthenticationError.oidc_request_failed(response.status_code)
        token = _decode_token(response, _OIDCTokenResponse).value
        if not token:
            raise FoundryAuthenticationError.missing_token("value")
        return token

    async def _exchange_token(
        self,
        http_client: httpx.AsyncClient,
        assertion: str,
        client_id: str,
        tenant_id: str,
    ) -> str:
        log_debug(logger, "Exchanging OIDC token with Entra tenant %s", tenant_id)
        response = await http_client.post(
            f"{self._authority_host}/{tenant_id}/oauth2/v2.0/token",
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "scope": FOUNDRY_SCOPE,
                "client_assertion_type": CLIENT_ASSERTION_TYPE,
                "client_assertion": assertion,
            },
        )
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise FoundryAuthenticationError.token_exchange_failed(
                response.status_code, response.text[:_DETAIL_LIMIT]
            )
        token = _decode_token(response, _AccessTokenResponse).access_token
        if not token:
            raise FoundryAuthenticationError.missing_token("access_token")
        return token


_TokenT = typ.TypeVar("_TokenT", _OIDCTokenResponse, _AccessTokenResponse)


def _decode_token(response: httpx.Response, shape: type[_TokenT]) -> _TokenT:
    try:
        return msgspec.json.decode(response.content, type=shape)
    except msgspec.DecodeError as exc:
        msg = "Token response was not valid JSON"
        raise FoundryAuthenticationError(msg) from exc


def build_provider_registry(
    *,
    http_client: httpx.AsyncClient | None = None,
    oidc_token_source: GitHubOIDCTokenSource | None = None,
) -> dict[CredentialKind, AuthenticationProvider]:
    """Return the default provider for each credential kind."""
    return {
        CredentialKind.API_KEY: ApiKeyAuthenticationProvider(
            http_client=http_client
        ),
        CredentialKind.FEDERATED_IDENTITY: FederatedIdentityAuthenticationProvider(
            oidc_token_source, http_client=http_client
        ),
    }


def select_authentication_provider(
    config: FoundryConfiguration,
    providers: cabc.Mapping[CredentialKind, AuthenticationProvider],
) -> AuthenticationProvider:
    """Return the provider registered for the credentials in ``config``.

    Raises
    ------
    FoundryConfigError
        If no credentials are present or no provider is registered for them.

    """
    kind = config.credential_kind
    if kind is None:
        raise FoundryConfigError.missing_credentials()
    provider = providers.get(kind)
    if provider is None:
        msg = f"No authentication provider registered for {kind}"
        raise FoundryConfigError.invalid(msg)
    return provider

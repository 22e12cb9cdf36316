"""Bootstrap an authenticated, verified connection to the AI backend.

The bootstrap runs once per process. It validates configuration, picks the
authentication strategy, builds a client and probes the deployment, all
inside a single time budget. Expected failures come back as a
:class:`ConnectionResult` with a category; only caller cancellation
escapes as an exception.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import re
import time
import typing as typ

import httpx

from issueagent.logging import (
    format_metadata,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

from .auth import build_provider_registry, select_authentication_provider
from .errors import FoundryAPIError, FoundryAuthenticationError, FoundryConfigError
from .models import ConnectionErrorCategory, ConnectionResult

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .auth import AuthenticationProvider, GitHubOIDCTokenSource
    from .client import FoundryClient
    from .config import FoundryConfiguration
    from .models import CredentialKind

logger = get_logger(__name__)

_HTTP_BAD_REQUEST = 400
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_RATE_LIMITED = 429

# Azure spells the parameter "api-version", "API version" or "api_version".
_API_VERSION_PATTERN = re.compile(r"api[\s_-]?version", re.IGNORECASE)

_STATUS_CATEGORIES: dict[int, ConnectionErrorCategory] = {
    _HTTP_UNAUTHORIZED: ConnectionErrorCategory.AUTHENTICATION_FAILURE,
    _HTTP_FORBIDDEN: ConnectionErrorCategory.AUTHENTICATION_FAILURE,
    _HTTP_NOT_FOUND: ConnectionErrorCategory.MODEL_NOT_FOUND,
    _HTTP_RATE_LIMITED: ConnectionErrorCategory.QUOTA_EXCEEDED,
}

_GUIDANCE: dict[ConnectionErrorCategory, str] = {
    ConnectionErrorCategory.AUTHENTICATION_FAILURE: (
        "Authentication with Azure AI Foundry failed. Verify the API key, or "
        "the federated credential configured for the client id and tenant id."
    ),
    ConnectionErrorCategory.MODEL_NOT_FOUND: (
        "Model deployment was not found. Check the deployment name in the "
        "Azure AI Foundry portal."
    ),
    ConnectionErrorCategory.QUOTA_EXCEEDED: (
        "Azure AI Foundry quota exceeded or rate limited. Try again later or "
        "raise the deployment quota."
    ),
    ConnectionErrorCategory.API_VERSION_UNSUPPORTED: (
        "The configured API version is not supported by the Azure AI Foundry "
        "endpoint."
    ),
    ConnectionErrorCategory.NETWORK_TIMEOUT: (
        "Connection to Azure AI Foundry timed out."
    ),
    ConnectionErrorCategory.NETWORK_ERROR: (
        "Network error while connecting to Azure AI Foundry."
    ),
}


def _elapsed(started: float) -> dt.timedelta:
    return dt.timedelta(seconds=time.perf_counter() - started)


def _categorize_api_error(exc: FoundryAPIError) -> ConnectionErrorCategory:
    if isinstance(exc, FoundryAuthenticationError):
        return ConnectionErrorCategory.AUTHENTICATION_FAILURE
    if exc.status_code in _STATUS_CATEGORIES:
        return _STATUS_CATEGORIES[exc.status_code]
    if exc.status_code == _HTTP_BAD_REQUEST and _API_VERSION_PATTERN.search(
        exc.detail
    ):
        return ConnectionErrorCategory.API_VERSION_UNSUPPORTED
    return ConnectionErrorCategory.UNKNOWN_ERROR


def categorize_exception(exc: Exception) -> ConnectionErrorCategory:
    """Map an exception raised while connecting to its failure category.

    Parameters
    ----------
    exc
        Exception raised by validation, authentication or the probe.

    Returns
    -------
    ConnectionErrorCategory
        ``UNKNOWN_ERROR`` for anything not explicitly recognised.

    """
    if isinstance(exc, FoundryConfigError):
        return exc.category
    if isinstance(exc, FoundryAPIError):
        return _categorize_api_error(exc)
    if isinstance(exc, (TimeoutError, httpx.TimeoutException)):
        return ConnectionErrorCategory.NETWORK_TIMEOUT
    if isinstance(exc, httpx.RequestError):
        return ConnectionErrorCategory.NETWORK_ERROR
    return ConnectionErrorCategory.UNKNOWN_ERROR


def describe_failure(
    exc: Exception, category: ConnectionErrorCategory, *, timeout_s: float | None
) -> str:
    """Return an operator-facing message for a failed attempt."""
    if isinstance(exc, FoundryConfigError):
        return str(exc)
    if category is ConnectionErrorCategory.NETWORK_TIMEOUT and timeout_s is not None:
        return f"Connection to Azure AI Foundry timed out after {timeout_s:g} seconds."
    guidance = _GUIDANCE.get(category)
    detail = str(exc) or type(exc).__name__
    if guidance is None:
        return f"Unexpected error connecting to Azure AI Foundry: {detail}"
    return f"{guidance} ({detail})"


async def initialize_backend(
    config: FoundryConfiguration | None,
    *,
    http_client: httpx.AsyncClient | None = None,
    oidc_token_source: GitHubOIDCTokenSource | None = None,
    providers: cabc.Mapping[CredentialKind, AuthenticationProvider] | None = None,
) -> ConnectionResult:
    """Validate, authenticate and probe the backend within one time budget.

    Parameters
    ----------
    config
        Unvalidated configuration; ``None`` is reported as missing.
    http_client
        Optional shared ``httpx.AsyncClient`` passed to the providers.
    oidc_token_source
        GitHub Actions OIDC request details for federated identity.
    providers
        Provider registry; defaults to :func:`build_provider_registry`.

    Returns
    -------
    ConnectionResult
        Success with a ready client, or failure with a category. The
        duration is recorded on every outcome and no client leaks on
        failure.

    Raises
    ------
    asyncio.CancelledError
        If the caller cancels the attempt.

    """
    started = time.perf_counter()
    endpoint = config.endpoint if config is not None else None
    method: str | None = None
    timeout_s: float | None = None
    client: FoundryClient | None = None

    try:
        if config is None:
            raise FoundryConfigError.missing_endpoint()
        validated = config.validate()
        timeout_s = validated.timeout.total_seconds()
        registry = (
            providers
            if providers is not None
            else build_provider_registry(
                http_client=http_client, oidc_token_source=oidc_token_source
            )
        )
        provider = select_authentication_provider(validated, registry)
        method = provider.method_name
        log_info(
            logger,
            "Connecting to Azure AI Foundry using %s: %s",
            method,
            format_metadata(validated.describe()),
        )
        async with asyncio.timeout(timeout_s):
            client = await provider.create_client(validated)
            await client.probe()
    except asyncio.CancelledError:
        if client is not None:
            await client.aclose()
        log_warning(logger, "Azure AI Foundry connection attempt cancelled")
        raise
    except Exception as exc:  # noqa: BLE001 - every failure becomes a result
        if client is not None:
            await client.aclose()
        category = categorize_exception(exc)
        message = describe_failure(exc, category, timeout_s=timeout_s)
        duration = _elapsed(started)
        log_error(
            logger,
            "Azure AI Foundry connection failed [%s] after %dms: %s",
            category,
            duration // dt.timedelta(milliseconds=1),
            message,
        )
        return ConnectionResult.failed(
            message,
            category,
            endpoint,
            duration,
            authentication_method=method,
        )

    duration = _elapsed(started)
    log_info(
        logger,
        "Azure AI Foundry connection ready after %dms",
        duration // dt.timedelta(milliseconds=1),
    )
    return ConnectionResult.succeeded(
        typ.cast("FoundryClient", client),
        typ.cast("str", endpoint),
        duration,
        authentication_method=method,
    )

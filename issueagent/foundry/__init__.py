"""Azure AI Foundry backend connection.

Public API
----------
FoundryConfiguration
    Connection settings with validation and environment loading.
initialize_backend
    One-shot bootstrap returning a categorized :class:`ConnectionResult`.
FoundryClient
    Authenticated client for the readiness probe and chat completions.
AuthenticationProvider
    Strategy protocol; implementations are registered by credential kind.
select_authentication_provider
    The single place a strategy is chosen.

Examples
--------
>>> config = FoundryConfiguration.from_env(os.environ)
>>> result = await initialize_backend(config)
>>> result.is_success, result.error_category

"""

from __future__ import annotations

from .auth import (
    ApiKeyAuthenticationProvider,
    AuthenticationProvider,
    FederatedIdentityAuthenticationProvider,
    GitHubOIDCTokenSource,
    build_provider_registry,
    select_authentication_provider,
)
from .bootstrap import categorize_exception, initialize_backend
from .client import FoundryClient
from .config import (
    DEFAULT_API_VERSION,
    DEFAULT_CONNECTION_TIMEOUT_S,
    DEFAULT_MODEL_DEPLOYMENT,
    FoundryConfiguration,
)
from .errors import (
    FoundryAPIError,
    FoundryAuthenticationError,
    FoundryConfigError,
    FoundryError,
    FoundryResponseShapeError,
)
from .models import (
    ConfigurationSource,
    ConnectionErrorCategory,
    ConnectionResult,
    CredentialKind,
)

__all__ = [
    "DEFAULT_API_VERSION",
    "DEFAULT_CONNECTION_TIMEOUT_S",
    "DEFAULT_MODEL_DEPLOYMENT",
    "ApiKeyAuthenticationProvider",
    "AuthenticationProvider",
    "ConfigurationSource",
    "ConnectionErrorCategory",
    "ConnectionResult",
    "CredentialKind",
    "FederatedIdentityAuthenticationProvider",
    "FoundryAPIError",
    "FoundryAuthenticationError",
    "FoundryClient",
    "FoundryConfigError",
    "FoundryConfiguration",
    "FoundryError",
    "FoundryResponseShapeError",
    "GitHubOIDCTokenSource",
    "build_provider_registry",
    "categorize_exception",
    "initialize_backend",
    "select_authentication_provider",
]

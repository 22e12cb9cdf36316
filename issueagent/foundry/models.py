"""Connection outcome models for the Azure AI Foundry backend."""

from __future__ import annotations

import dataclasses
import datetime as dt
import enum
import typing as typ

from issueagent.common.time import utcnow

if typ.TYPE_CHECKING:
    from .client import FoundryClient

_ENDPOINT_SUFFIX_LENGTH = 20


class ConnectionErrorCategory(enum.StrEnum):
    """Closed set of reasons a backend connection attempt can fail."""

    MISSING_CONFIGURATION = "missing_configuration"
    INVALID_CONFIGURATION = "invalid_configuration"
    AUTHENTICATION_FAILURE = "authentication_failure"
    NETWORK_TIMEOUT = "network_timeout"
    NETWORK_ERROR = "network_error"
    MODEL_NOT_FOUND = "model_not_found"
    QUOTA_EXCEEDED = "quota_exceeded"
    API_VERSION_UNSUPPORTED = "api_version_unsupported"
    UNKNOWN_ERROR = "unknown_error"


class CredentialKind(enum.StrEnum):
    """Credential shapes accepted by the backend."""

    API_KEY = "api_key"
    FEDERATED_IDENTITY = "federated_identity"


class ConfigurationSource(enum.StrEnum):
    """Where a configuration value came from."""

    ACTION_INPUT = "action_input"
    ENVIRONMENT_VARIABLE = "environment_variable"
    DEFAULT_VALUE = "default_value"


def endpoint_suffix(endpoint: str | None) -> str:
    """Return the tail of ``endpoint`` that is safe to log."""
    if not endpoint:
        return "<empty>"
    if len(endpoint) > _ENDPOINT_SUFFIX_LENGTH:
        return "..." + endpoint[-_ENDPOINT_SUFFIX_LENGTH:]
    return endpoint


@dataclasses.dataclass(frozen=True, slots=True)
class ConnectionResult:
    """Outcome of one bootstrap attempt.

    Attributes
    ----------
    is_success
        Whether a ready client was produced.
    client
        Authenticated client when ``is_success`` is True.
    error_message
        Operator-facing description of the failure.
    error_category
        Failure classification.
    attempted_endpoint
        Endpoint tail, never the full URL.
    attempted_at
        When the attempt finished.
    duration
        Elapsed time of the attempt, recorded on every outcome.
    authentication_method
        Human-readable name of the strategy used, when one was selected.

    """

    is_success: bool
    attempted_endpoint: str
    duration: dt.timedelta
    attempted_at: dt.datetime = dataclasses.field(default_factory=utcnow)
    client: FoundryClient | None = None
    error_message: str | None = None
    error_category: ConnectionErrorCategory | None = None
    authentication_method: str | None = None

    @classmethod
    def succeeded(
        cls,
        client: FoundryClient,
        endpoint: str,
        duration: dt.timedelta,
        *,
        authentication_method: str | None = None,
    ) -> ConnectionResult:
        """Return a successful result holding ``client``."""
        return cls(
            is_success=True,
            client=client,
            attempted_endpoint=endpoint_suffix(endpoint),
            duration=duration,
            authentication_method=authentication_method,
        )

    @classmethod
    def failed(
        cls,
        message: str,
        category: ConnectionErrorCategory,
        endpoint: str | None,
        duration: dt.timedelta,
        *,
        authentication_method: str | None = None,
    ) -> ConnectionResult:
        """Return a failed result with its category."""
        return cls(
            is_success=False,
            error_message=message,
            error_category=category,
            attempted_endpoint=endpoint_suffix(endpoint),
            duration=duration,
            authentication_method=authentication_method,
        )

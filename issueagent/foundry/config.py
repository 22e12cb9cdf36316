"""Configuration for the Azure AI Foundry backend connection."""

from __future__ import annotations

import dataclasses
import datetime as dt
import math
import re
import typing as typ

from issueagent.common.time import utcnow

from .errors import FoundryConfigError
from .models import ConfigurationSource, CredentialKind, endpoint_suffix

if typ.TYPE_CHECKING:
    import collections.abc as cabc

# Default configuration values - single source of truth
DEFAULT_MODEL_DEPLOYMENT = "gpt-5-mini"
DEFAULT_API_VERSION = "2025-04-01-preview"
DEFAULT_CONNECTION_TIMEOUT_S = 30.0
MAX_CONNECTION_TIMEOUT_S = 300.0
MIN_API_KEY_LENGTH = 32
MAX_MODEL_DEPLOYMENT_LENGTH = 64

ENV_PREFIX = "AZURE_AI_FOUNDRY"
INPUT_PREFIX = "INPUT_AZURE_FOUNDRY"

_ENDPOINT_PATTERN = re.compile(r"^https://[^/\s]+/api/projects/[^/\s]+$")
_MODEL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9-]+$")
_API_VERSION_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})(-preview)?$")
_GUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

# (field name, action input suffix, environment variable suffix)
_SETTINGS: tuple[tuple[str, str, str], ...] = (
    ("endpoint", "ENDPOINT", "ENDPOINT"),
    ("api_key", "API_KEY", "API_KEY"),
    ("client_id", "CLIENT_ID", "CLIENT_ID"),
    ("tenant_id", "TENANT_ID", "TENANT_ID"),
    ("model_deployment", "MODEL_DEPLOYMENT", "MODEL_DEPLOYMENT"),
    ("api_version", "API_VERSION", "API_VERSION"),
    ("connection_timeout_s", "CONNECTION_TIMEOUT", "CONNECTION_TIMEOUT"),
)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def resolve_setting(
    environ: cabc.Mapping[str, str], input_suffix: str, env_suffix: str
) -> tuple[str | None, ConfigurationSource]:
    """Return a setting value and where it came from.

    Action inputs (``INPUT_AZURE_FOUNDRY_<NAME>``) take precedence over
    environment variables (``AZURE_AI_FOUNDRY_<NAME>``).
    """
    input_value = environ.get(f"{INPUT_PREFIX}_{input_suffix}")
    if not _blank(input_value):
        return input_value, ConfigurationSource.ACTION_INPUT
    env_value = environ.get(f"{ENV_PREFIX}_{env_suffix}")
    if not _blank(env_value):
        return env_value, ConfigurationSource.ENVIRONMENT_VARIABLE
    return None, ConfigurationSource.DEFAULT_VALUE


def _parse_timeout(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        msg = f"Connection timeout must be a number of seconds. Received: {raw}"
        raise FoundryConfigError.invalid(msg) from exc


@dataclasses.dataclass(frozen=True, slots=True)
class FoundryConfiguration:
    """Connection parameters for an Azure AI Foundry project.

    ``validate`` returns a copy with defaults filled in; the copy is what
    the bootstrap uses. Secrets are excluded from ``repr``.

    Attributes
    ----------
    endpoint
        Project endpoint, ``https://<host>/api/projects/<project>``.
    api_key
        Key for key-based authentication.
    client_id
        Service principal client id for federated identity.
    tenant_id
        Entra tenant id for federated identity.
    model_deployment
        Deployment name; defaults to ``gpt-5-mini``.
    api_version
        ``YYYY-MM-DD`` or ``YYYY-MM-DD-preview``; defaults to
        ``2025-04-01-preview``.
    connection_timeout_s
        Bootstrap time budget in seconds, in (0, 300]; defaults to 30.

    """

    endpoint: str | None = None
    api_key: str | None = dataclasses.field(default=None, repr=False)
    client_id: str | None = None
    tenant_id: str | None = None
    model_deployment: str | None = None
    api_version: str | None = None
    connection_timeout_s: float | None = None
    sources: tuple[tuple[str, ConfigurationSource], ...] = dataclasses.field(
        default=(), compare=False, repr=False
    )

    @classmethod
    def from_env(
        cls, environ: cabc.Mapping[str, str]
    ) -> FoundryConfiguration | None:
        """Build configuration from action inputs and environment variables.

        Returns
        -------
        FoundryConfiguration | None
            ``None`` when no endpoint is supplied: the backend is simply not
            configured and replies fall back to canned text.

        Raises
        ------
        FoundryConfigError
            If the connection timeout is not a number.

        """
        values: dict[str, str | None] = {}
        sources: list[tuple[str, ConfigurationSource]] = []
        for field, input_suffix, env_suffix in _SETTINGS:
            value, source = resolve_setting(environ, input_suffix, env_suffix)
            values[field] = value.strip() if value is not None else None
            sources.append((field, source))

        if values["endpoint"] is None:
            return None

        return cls(
            endpoint=values["endpoint"],
            api_key=values["api_key"],
            client_id=values["client_id"],
            tenant_id=values["tenant_id"],
            model_deployment=values["model_deployment"],
            api_version=values["api_version"],
            connection_timeout_s=_parse_timeout(values["connection_timeout_s"]),
            sources=tuple(sources),
        )

    @property
    def credential_kind(self) -> CredentialKind | None:
        """Return the credential shape populated, preferring the API key."""
        if not _blank(self.api_key):
            return CredentialKind.API_KEY
        if not _blank(self.client_id) or not _blank(self.tenant_id):
            return CredentialKind.FEDERATED_IDENTITY
        return None

    @property
    def timeout(self) -> dt.timedelta:
        """Return the connection timeout, defaulted when unset."""
        seconds = self.connection_timeout_s
        if seconds is None:
            seconds = DEFAULT_CONNECTION_TIMEOUT_S
        return dt.timedelta(seconds=seconds)

    def validate(self) -> FoundryConfiguration:
        """Return a validated copy with defaults applied.

        Validating an already validated configuration returns an equal
        configuration.

        Raises
        ------
        FoundryConfigError
            ``MISSING_CONFIGURATION`` when the endpoint or credentials are
            absent, ``INVALID_CONFIGURATION`` when a value is malformed.

        """
        endpoint = self._validate_endpoint()
        api_key, client_id, tenant_id = self._validate_credentials()
        return dataclasses.replace(
            self,
            endpoint=endpoint,
            api_key=api_key,
            client_id=client_id,
            tenant_id=tenant_id,
            model_deployment=self._validate_model_deployment(),
            api_version=self._validate_api_version(),
            connection_timeout_s=self._validate_timeout(),
        )

    def describe(self) -> dict[str, object]:
        """Return non-secret settings for logging."""
        return {
            "endpoint": endpoint_suffix(self.endpoint),
            "credential": str(self.credential_kind),
            "model_deployment": self.model_deployment or DEFAULT_MODEL_DEPLOYMENT,
            "api_version": self.api_version or DEFAULT_API_VERSION,
            "timeout_s": self.timeout.total_seconds(),
            **{f"source.{field}": str(source) for field, source in self.sources},
        }

    def _validate_endpoint(self) -> str:
        if _blank(self.endpoint):
            raise FoundryConfigError.missing_endpoint()
        endpoint = typ.cast("str", self.endpoint).strip()
        if not endpoint.lower().startswith("https://"):
            msg = (
                "Azure AI Foundry endpoint must be a valid HTTPS URL in format: "
                "https://<host>/api/projects/<project>. "
                f"Received: ...{endpoint_suffix(endpoint).removeprefix('...')}"
            )
            raise FoundryConfigError.invalid(msg)
        if not _ENDPOINT_PATTERN.match(endpoint):
            msg = (
                "Azure AI Foundry endpoint must end with '/api/projects/<project>'. "
                f"Received: {endpoint_suffix(endpoint)}"
            )
            raise FoundryConfigError.invalid(msg)
        return endpoint

    def _validate_credentials(self) -> tuple[str | None, str | None, str | None]:
        kind = self.credential_kind
        if kind is None:
            raise FoundryConfigError.missing_credentials()

        if kind is CredentialKind.API_KEY:
            api_key = typ.cast("str", self.api_key).strip()
            if len(api_key) < MIN_API_KEY_LENGTH:
                msg = (
                    "Azure AI Foundry API key must be at least "
                    f"{MIN_API_KEY_LENGTH} characters. Check the key in the "
                    "Azure AI Foundry portal under 'Keys and Endpoint'."
                )
                raise FoundryConfigError.invalid(msg)
            return api_key, self.client_id, self.tenant_id

        if _blank(self.client_id):
            raise FoundryConfigError.missing_federated_field("client_id")
        if _blank(self.tenant_id):
            raise FoundryConfigError.missing_federated_field("tenant_id")
        client_id = typ.cast("str", self.client_id).strip()
        tenant_id = typ.cast("str", self.tenant_id).strip()
        for label, value in (("client id", client_id), ("tenant id", tenant_id)):
            if not _GUID_PATTERN.match(value):
                msg = f"Azure AI Foundry {label} must be a GUID."
                raise FoundryConfigError.invalid(msg)
        return None, client_id, tenant_id

    def _validate_model_deployment(self) -> str:
        if _blank(self.model_deployment):
            return DEFAULT_MODEL_DEPLOYMENT
        name = typ.cast("str", self.model_deployment).strip()
        if not _MODEL_NAME_PATTERN.match(name):
            msg = (
                "Model deployment name must contain only alphanumeric "
                f"characters and hyphens. Received: {name}"
            )
            raise FoundryConfigError.invalid(msg)
        if len(name) > MAX_MODEL_DEPLOYMENT_LENGTH:
            msg = (
                "Model deployment name must be between 1 and "
                f"{MAX_MODEL_DEPLOYMENT_LENGTH} characters. "
                f"Received length: {len(name)}"
            )
            raise FoundryConfigError.invalid(msg)
        return name

    def _validate_api_version(self) -> str:
        if _blank(self.api_version):
            return DEFAULT_API_VERSION
        version = typ.cast("str", self.api_version).strip()
        match = _API_VERSION_PATTERN.match(version)
        if match is None:
            msg = (
                "Azure AI Foundry API version must be in format YYYY-MM-DD or "
                f"YYYY-MM-DD-preview (e.g., {DEFAULT_API_VERSION}). "
                f"Received: {version}"
            )
            raise FoundryConfigError.invalid(msg)
        try:
            version_date = dt.date.fromisoformat(match.group(1))
        except ValueError as exc:
            msg = f"API version is not a valid date. Received: {version}"
            raise FoundryConfigError.invalid(msg) from exc
        if version_date > utcnow().date():
            msg = f"API version date cannot be in the future. Received: {version}"
            raise FoundryConfigError.invalid(msg)
        return version

    def _validate_timeout(self) -> float:
        seconds = self.connection_timeout_s
        if seconds is None:
            return DEFAULT_CONNECTION_TIMEOUT_S
        if math.isnan(seconds) or seconds <= 0:
            msg = (
                "Connection timeout must be greater than 0 seconds. "
                f"Received: {seconds} seconds"
            )
            raise FoundryConfigError.invalid(msg)
        if seconds > MAX_CONNECTION_TIMEOUT_S:
            msg = (
                "Connection timeout must not exceed 5 minutes. "
                f"Received: {seconds / 60:g} minutes"
            )
            raise FoundryConfigError.invalid(msg)
        return float(seconds)

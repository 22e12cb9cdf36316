"""Custom exceptions for Azure AI Foundry backend operations."""

from __future__ import annotations

from .models import ConnectionErrorCategory

# Content preview length for error messages
_CONTENT_PREVIEW_LIMIT = 100


class FoundryError(Exception):
    """Base exception for all backend errors.

    This provides a single catch point for the response generator, which
    falls back to canned replies on any backend failure.
    """


class FoundryConfigError(FoundryError):
    """Raised when backend configuration is missing or malformed.

    Attributes
    ----------
    category
        Either ``MISSING_CONFIGURATION`` or ``INVALID_CONFIGURATION``.

    """

    def __init__(self, message: str, *, category: ConnectionErrorCategory) -> None:
        """Initialise the error with a message and category."""
        self.category = category
        super().__init__(message)

    @classmethod
    def missing(cls, message: str) -> FoundryConfigError:
        """Return an error for an absent required field."""
        return cls(message, category=ConnectionErrorCategory.MISSING_CONFIGURATION)

    @classmethod
    def invalid(cls, message: str) -> FoundryConfigError:
        """Return an error for a present field that fails its format check."""
        return cls(message, category=ConnectionErrorCategory.INVALID_CONFIGURATION)

    @classmethod
    def missing_endpoint(cls) -> FoundryConfigError:
        """Return an error for a missing endpoint."""
        return cls.missing(
            "Azure AI Foundry endpoint is required. Provide the "
            "'azure_foundry_endpoint' input or set AZURE_AI_FOUNDRY_ENDPOINT."
        )

    @classmethod
    def missing_credentials(cls) -> FoundryConfigError:
        """Return an error when neither credential shape is supplied."""
        return cls.missing(
            "Azure AI Foundry credentials are required. Provide "
            "'azure_foundry_api_key' (AZURE_AI_FOUNDRY_API_KEY) or both "
            "'azure_foundry_client_id' and 'azure_foundry_tenant_id' "
            "(AZURE_AI_FOUNDRY_CLIENT_ID / AZURE_AI_FOUNDRY_TENANT_ID)."
        )

    @classmethod
    def missing_federated_field(cls, field: str) -> FoundryConfigError:
        """Return an error when only half of the federated pair is supplied."""
        return cls.missing(
            f"Azure AI Foundry federated identity requires '{field}' as well. "
            "Provide both client id and tenant id."
        )

    @classmethod
    def missing_oidc_token_source(cls) -> FoundryConfigError:
        """Return an error when the workflow cannot request an OIDC token."""
        return cls.missing(
            "GitHub OIDC token request variables are not available. Add "
            "'id-token: write' to the workflow permissions."
        )


class FoundryAPIError(FoundryError):
    """Raised when the backend or identity provider returns an error.

    Attributes
    ----------
    status_code
        HTTP status code from the response.
    detail
        Short excerpt of the response body, for classification.

    """

    def __init__(
        self, message: str, *, status_code: int | None = None, detail: str = ""
    ) -> None:
        """Initialise the error with message, status code and detail."""
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)

    @classmethod
    def http_error(
        cls, status_code: int, detail: str = "", *, operation: str = "request"
    ) -> FoundryAPIError:
        """Return an error for HTTP error responses."""
        preview = detail[:_CONTENT_PREVIEW_LIMIT]
        msg = f"Azure AI Foundry {operation} failed with HTTP {status_code}"
        if preview:
            msg = f"{msg}: {preview}"
        return cls(msg, status_code=status_code, detail=detail)


class FoundryResponseShapeError(FoundryError):
    """Raised when a backend response is missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> FoundryResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"Azure AI Foundry response missing expected field: {field}")

    @classmethod
    def invalid_json(cls, content: str) -> FoundryResponseShapeError:
        """Return an error with a truncated preview of unparsable content."""
        if len(content) > _CONTENT_PREVIEW_LIMIT:
            preview = content[:_CONTENT_PREVIEW_LIMIT] + "..."
        else:
            preview = content
        return cls(f"Failed to parse JSON from response: {preview}")


class FoundryAuthenticationError(FoundryAPIError):
    """Raised when a credential cannot be turned into an access token."""

    @classmethod
    def token_exchange_failed(
        cls, status_code: int, detail: str = ""
    ) -> FoundryAuthenticationError:
        """Return an error for a rejected Entra token exchange."""
        preview = detail[:_CONTENT_PREVIEW_LIMIT]
        msg = f"Federated token exchange failed with HTTP {status_code}"
        if preview:
            msg = f"{msg}: {preview}"
        return cls(msg, status_code=status_code, detail=detail)

    @classmethod
    def oidc_request_failed(cls, status_code: int) -> FoundryAuthenticationError:
        """Return an error for a failed GitHub OIDC token request."""
        return cls(
            f"GitHub OIDC token request failed with HTTP {status_code}",
            status_code=status_code,
        )

    @classmethod
    def missing_token(cls, field: str) -> FoundryAuthenticationError:
        """Return an error when a token response omits the token."""
        return cls(f"Token response missing expected field: {field}")

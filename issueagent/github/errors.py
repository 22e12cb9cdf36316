"""GitHub API errors."""

from __future__ import annotations

TOKEN_GUIDANCE = (
    "Workflow must provide the github-token input (uses: github.token) "
    "or set GITHUB_TOKEN."
)


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, *, api: str = "GraphQL") -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub {api} HTTP {status_code}", status_code=status_code)


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub responses are missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing response field."""
        return cls(f"GitHub response missing expected field: {field}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is available."""
        return cls(f"GitHub token missing. {TOKEN_GUIDANCE}")

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is blank."""
        return cls(f"GitHub token must be non-empty. {TOKEN_GUIDANCE}")

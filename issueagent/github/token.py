"""Guard that rejects runs without a usable GitHub token."""

from __future__ import annotations

from .errors import GitHubConfigError


def ensure_token(token: str | None) -> str:
    """Return the stripped token, raising before any remote call if absent.

    Raises
    ------
    GitHubConfigError
        If ``token`` is ``None`` or blank.

    """
    if token is None:
        raise GitHubConfigError.missing_token()
    stripped = token.strip()
    if not stripped:
        raise GitHubConfigError.empty_token()
    return stripped

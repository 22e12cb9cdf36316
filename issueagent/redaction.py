"""Redaction of secret-bearing metadata before it reaches a log sink.

Examples
--------
>>> redact_payload({"repository": "octo/reef", "github-token": "ghs_x"})
{'repository': 'octo/reef', 'github-token': '[REDACTED]'}

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

REDACTED_VALUE = "[REDACTED]"

# Compared after lower-casing and mapping ``-`` to ``_``.
SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "authorization",
        "auth",
        "token",
        "github_token",
        "input_github_token",
        "access_token",
        "id_token",
        "api_key",
        "apikey",
        "client_secret",
        "client_assertion",
        "password",
        "azure_ai_foundry_api_key",
        "azure_foundry_api_key",
        "input_azure_foundry_api_key",
        "input_azure_ai_foundry_api_key",
        "actions_id_token_request_token",
    }
)


def normalize_key(key: str) -> str:
    """Return the comparison form of a metadata key."""
    return str(key).strip().lower().replace("-", "_")


def is_sensitive_key(
    key: str, *, sensitive_keys: cabc.Set[str] = SENSITIVE_KEYS
) -> bool:
    """Report whether ``key`` names secret material."""
    return normalize_key(key) in sensitive_keys


def _redact_value(value: object, sensitive_keys: cabc.Set[str]) -> object:
    if isinstance(value, cabc.Mapping):
        return redact_payload(
            typ.cast("cabc.Mapping[str, object]", value),
            sensitive_keys=sensitive_keys,
        )
    if isinstance(value, list | tuple):
        return [_redact_value(item, sensitive_keys) for item in value]
    return value


def redact_payload(
    payload: cabc.Mapping[str, object] | None,
    *,
    sensitive_keys: cabc.Set[str] = SENSITIVE_KEYS,
) -> dict[str, object]:
    """Return a copy of ``payload`` with secret values replaced.

    Parameters
    ----------
    payload
        Metadata to scrub. ``None`` is treated as an empty map.
    sensitive_keys
        Normalized key names whose values must never be logged.

    Returns
    -------
    dict[str, object]
        New mapping with the same keys in the same order. Nested mappings
        and sequences are scrubbed too; the input is left untouched.

    """
    if not payload:
        return {}

    return {
        key: REDACTED_VALUE
        if is_sensitive_key(key, sensitive_keys=sensitive_keys)
        else _redact_value(value, sensitive_keys)
        for key, value in payload.items()
    }


__all__ = ["REDACTED_VALUE", "SENSITIVE_KEYS", "is_sensitive_key", "redact_payload"]

"""femtologging helpers shared by every issueagent module.

Messages are interpolated here, before they reach the femtologging worker,
so handlers always receive plain strings. Run metadata is redacted before
it is rendered, which keeps tokens and API keys out of the Actions log.

Example:
>>> from issueagent.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Fetching issue #%d", 42)

"""

from __future__ import annotations

import typing as typ

from femtologging import basicConfig, get_logger

from issueagent.redaction import redact_payload

if typ.TYPE_CHECKING:
    import collections.abc as cabc

DEFAULT_LOG_LEVEL = "INFO"

# Names accepted from the ``log-level`` input; femtologging understands all.
ACCEPTED_LOG_LEVELS = frozenset(
    {"TRACE", "DEBUG", "INFO", "WARN", "WARNING", "ERROR", "CRITICAL"}
)


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Map a ``log-level`` input onto a femtologging level name.

    Parameters
    ----------
    level : str | None
        Raw value; case and surrounding whitespace are ignored.

    Returns
    -------
    tuple[str, bool]
        The level to configure and whether the input had to be replaced by
        ``DEFAULT_LOG_LEVEL``. Missing input counts as replaced.

    """
    candidate = (level or "").strip().upper()
    if candidate in ACCEPTED_LOG_LEVELS:
        return (candidate, False)
    return (DEFAULT_LOG_LEVEL, True)


def configure_logging(level: str | None, *, force: bool = False) -> tuple[str, bool]:
    """Install the femtologging handler at the normalized level.

    Returns the same pair as :func:`normalize_log_level` so the caller can
    warn about a rejected input once logging works.
    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    return (normalized, invalid)


def format_log_message(template: str, *args: object) -> str:
    """Interpolate ``args`` into a percent-style ``template``."""
    return template % args if args else template


def format_metadata(metadata: cabc.Mapping[str, object]) -> str:
    """Render run metadata as ``key=value`` pairs with secrets masked.

    Parameters
    ----------
    metadata : Mapping[str, object]
        Values describing the run, such as repository, issue number and
        input names. Sensitive keys are replaced by the redaction marker.

    Returns
    -------
    str
        Comma separated pairs in insertion order.

    """
    return ", ".join(
        f"{key}={value}" for key, value in redact_payload(metadata).items()
    )


class _SupportsLog(typ.Protocol):
    """The slice of the femtologging logger these helpers call."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: str,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None,
) -> None:
    logger.log(
        level,
        format_log_message(template, *args),
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(logger: _SupportsLog, template: str, *args: object) -> None:
    """Emit a DEBUG record."""
    _emit(logger, "DEBUG", template, args, None)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit an INFO record.

    Parameters
    ----------
    logger : _SupportsLog
        Destination logger, usually the module-level ``logger``.
    template : str
        Percent-style template.
    *args : object
        Values interpolated into ``template``.
    exc_info : object | None, optional
        Exception to attach to the record.

    """
    _emit(logger, "INFO", template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit a WARNING record."""
    _emit(logger, "WARNING", template, args, exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Emit an ERROR record."""
    _emit(logger, "ERROR", template, args, exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Emit an ERROR record carrying ``exc`` as its traceback.

    ``message`` is logged as given, without interpolation.
    """
    logger.log("ERROR", message, exc_info=exc, stack_info=False)


__all__ = [
    "ACCEPTED_LOG_LEVELS",
    "DEFAULT_LOG_LEVEL",
    "configure_logging",
    "format_log_message",
    "format_metadata",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]

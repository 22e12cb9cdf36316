"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import pytest

from issueagent.logging import (
    configure_logging,
    format_log_message,
    format_metadata,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


class TestNormalizeLogLevel:
    """Tests for normalize_log_level."""

    @pytest.mark.parametrize(
        ("input_level", "expected_level", "expected_invalid"),
        [
            ("debug", "DEBUG", False),
            (" warn ", "WARN", False),
            (None, "INFO", True),
            ("", "INFO", True),
            ("verbose", "INFO", True),
        ],
    )
    def test_normalize_log_level(
        self,
        input_level: str | None,
        expected_level: str,
        *,
        expected_invalid: bool,
    ) -> None:
        """Normalize log levels and flag invalid inputs."""
        level, invalid = normalize_log_level(input_level)
        assert level == expected_level, (
            f"Expected {input_level!r} to normalize to {expected_level}."
        )
        assert invalid is expected_invalid, (
            f"Expected invalid flag to be {expected_invalid} for {input_level!r}."
        )


def test_format_log_message_uses_percent_formatting() -> None:
    """Percent formatting produces the expected message."""
    message = format_log_message("issue #%d in %s", 42, "octo/reef")
    assert message == "issue #42 in octo/reef", "Expected percent formatting result."


def test_format_log_message_without_args_keeps_template() -> None:
    """Templates without arguments are logged verbatim."""
    assert format_log_message("quota at 100%") == "quota at 100%", (
        "Expected literal percent signs to survive."
    )


def test_format_metadata_redacts_secrets() -> None:
    """Metadata rendering never includes secret values."""
    rendered = format_metadata(
        {"repository": "octo/reef", "github-token": "ghs_abc", "commentsPageSize": 5}
    )

    assert rendered == (
        "repository=octo/reef, github-token=[REDACTED], commentsPageSize=5"
    ), "Expected redacted key=value pairs in insertion order."
    assert "ghs_abc" not in rendered, "Token value must not be rendered."


def test_log_helpers_pass_levels() -> None:
    """Each helper emits its level with the formatted message."""
    logger = _FakeLogger()

    log_debug(logger, "d %s", 1)
    log_info(logger, "i %s", 2)
    log_warning(logger, "w %s", 3)
    log_error(logger, "e %s", 4)

    assert [(level, message) for level, message, _, _ in logger.calls] == [
        ("DEBUG", "d 1"),
        ("INFO", "i 2"),
        ("WARNING", "w 3"),
        ("ERROR", "e 4"),
    ], "Expected one entry per helper with its level."


def test_log_exception_passes_exc_info() -> None:
    """log_exception forwards the exception payload to the logger."""
    logger = _FakeLogger()
    exc = ValueError("boom")

    log_exception(logger, "failed", exc)

    assert logger.calls == [("ERROR", "failed", exc, False)], (
        "Expected ERROR log entry with exc_info."
    )


def test_configure_logging_uses_normalized_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """configure_logging passes the normalized level to femtologging."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("issueagent.logging.basicConfig", fake_basic_config)

    normalized, invalid = configure_logging("nope")

    assert (normalized, invalid) == ("INFO", True), "Expected INFO fallback."
    assert captured == {"level": "INFO", "force": False}, (
        "Expected basicConfig to receive the fallback level."
    )

"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest

from tests.helpers.issue_builders import RecordingLogger, make_request

if typ.TYPE_CHECKING:
    from issueagent.issues.models import IssueContextRequest


@pytest.fixture
def issue_request() -> IssueContextRequest:
    """Provide a request for ``octo/reef#42``."""
    return make_request()


@pytest.fixture
def capture_logs(
    monkeypatch: pytest.MonkeyPatch,
) -> typ.Callable[[str], RecordingLogger]:
    """Replace a module's ``logger`` with a recorder and return it."""

    def _capture(module_name: str) -> RecordingLogger:
        recorder = RecordingLogger()
        monkeypatch.setattr(f"{module_name}.logger", recorder)
        return recorder

    return _capture

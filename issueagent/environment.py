"""GitHub Actions environment loading.

This is the only module that interprets the process environment. It turns
the workflow variables and the event payload file into the explicit
objects the rest of the package consumes:

- ``INPUT_GITHUB-TOKEN`` / ``INPUT_GITHUB_TOKEN``, then ``GITHUB_TOKEN``
- ``GITHUB_REPOSITORY`` (``owner/name``), ``GITHUB_EVENT_NAME`` and
  ``GITHUB_EVENT_PATH`` (required)
- ``GITHUB_RUN_ID`` (a random hex id when absent)
- ``INPUT_COMMENTS_PAGE_SIZE`` (default 5, clamped to 1..20)
- ``INPUT_BOT_LOGIN``, ``INPUT_AGENT_HANDLE``, ``INPUT_LOG_LEVEL`` /
  ``ISSUEAGENT_LOG_LEVEL``
- ``GITHUB_GRAPHQL_URL`` and ``GITHUB_API_URL`` for GitHub Enterprise
- the ``AZURE_AI_FOUNDRY_*`` settings and the Actions OIDC request pair
"""

from __future__ import annotations

import dataclasses
import typing as typ
import uuid
from pathlib import Path

import msgspec

from issueagent.foundry.auth import GitHubOIDCTokenSource
from issueagent.foundry.config import FoundryConfiguration
from issueagent.foundry.errors import FoundryConfigError
from issueagent.issues.models import (
    MAX_COMMENTS_PAGE_SIZE,
    MIN_COMMENTS_PAGE_SIZE,
    IssueContextRequest,
    IssueEventType,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

DEFAULT_BOT_LOGIN = "github-actions[bot]"
DEFAULT_AGENT_HANDLE = "issueagent"
DEFAULT_COMMENTS_PAGE_SIZE = 5
DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_API_URL = "https://api.github.com"
_REPOSITORY_SEGMENTS = 2

_ISSUE_ACTIONS: dict[str, IssueEventType] = {
    "opened": IssueEventType.ISSUE_OPENED,
    "reopened": IssueEventType.ISSUE_REOPENED,
}


class EnvironmentConfigError(Exception):
    """Raised when the workflow environment cannot describe a run."""

    @classmethod
    def missing_variable(cls, name: str, description: str) -> EnvironmentConfigError:
        """Return an error for a required variable that is unset or blank."""
        return cls(f"{description} missing ({name}).")

    @classmethod
    def unsupported_event(
        cls, event_name: str, action: str | None = None
    ) -> EnvironmentConfigError:
        """Return an error for an event or action the agent does not handle."""
        if action is None:
            return cls(f"Unsupported GitHub event '{event_name}'.")
        return cls(f"Unsupported {event_name} action '{action}'.")


class _EventIssue(msgspec.Struct):
    number: int


class _EventPayload(msgspec.Struct):
    action: str | None = None
    issue: _EventIssue | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class RuntimeEnvironment:
    """Everything the runtime needs for one invocation.

    Attributes
    ----------
    token
        GitHub token, or ``None`` when the workflow supplied none; the
        agent's token guard rejects that before any remote call.
    request
        Issue context request built from the event payload.
    event_name
        Raw ``GITHUB_EVENT_NAME`` value.
    bot_login
        Login the workflow posts comments as.
    agent_handle
        Handle that addresses the agent in ``@mentions``.
    graphql_url
        GitHub GraphQL endpoint.
    api_url
        GitHub REST base URL.
    foundry
        Backend configuration, or ``None`` when no endpoint is set.
    oidc_token_source
        Actions OIDC request details, when the workflow grants them.

    """

    token: str | None = dataclasses.field(repr=False)
    request: IssueContextRequest
    event_name: str
    bot_login: str = DEFAULT_BOT_LOGIN
    agent_handle: str = DEFAULT_AGENT_HANDLE
    graphql_url: str = DEFAULT_GRAPHQL_URL
    api_url: str = DEFAULT_API_URL
    foundry: FoundryConfiguration | None = None
    oidc_token_source: GitHubOIDCTokenSource | None = None

    @property
    def metadata(self) -> dict[str, object]:
        """Return run metadata for logging; pass it through redaction."""
        return {
            "repository": self.request.slug,
            "eventName": self.event_name,
            "runId": self.request.run_id,
            "issueNumber": self.request.issue_number,
            "commentsPageSize": self.request.comments_page_size,
            "botLogin": self.bot_login,
            "foundryConfigured": self.foundry is not None,
            "github-token": self.token,
        }


def _get(environ: cabc.Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _require(environ: cabc.Mapping[str, str], name: str, description: str) -> str:
    value = _get(environ, name)
    if value is None:
        raise EnvironmentConfigError.missing_variable(name, description)
    return value


def read_input(environ: cabc.Mapping[str, str], input_name: str) -> str | None:
    """Return an action input by name, accepting ``-`` or ``_`` separators."""
    canonical = input_name.strip().replace(" ", "-").replace("_", "-").upper()
    for key in (f"INPUT_{canonical}", f"INPUT_{canonical.replace('-', '_')}"):
        value = _get(environ, key)
        if value is not None:
            return value
    return None


def resolve_token(environ: cabc.Mapping[str, str]) -> str | None:
    """Return the ``github-token`` input, falling back to ``GITHUB_TOKEN``."""
    return read_input(environ, "github-token") or _get(environ, "GITHUB_TOKEN")


def resolve_log_level(environ: cabc.Mapping[str, str]) -> str | None:
    """Return the raw log level for this run.

    The ``log-level`` input wins over ``ISSUEAGENT_LOG_LEVEL``. Without
    either, a workflow re-run with debug logging enabled (``RUNNER_DEBUG``
    set to ``1``) logs at DEBUG.
    """
    explicit = read_input(environ, "log_level") or _get(
        environ, "ISSUEAGENT_LOG_LEVEL"
    )
    if explicit is None and _get(environ, "RUNNER_DEBUG") == "1":
        return "DEBUG"
    return explicit


def parse_comments_page_size(raw: str | None) -> int:
    """Return the page size, defaulting when unset or unparsable."""
    if raw is None:
        return DEFAULT_COMMENTS_PAGE_SIZE
    try:
        parsed = int(raw)
    except ValueError:
        return DEFAULT_COMMENTS_PAGE_SIZE
    return max(MIN_COMMENTS_PAGE_SIZE, min(parsed, MAX_COMMENTS_PAGE_SIZE))


def split_repository(repository: str) -> tuple[str, str]:
    """Split ``owner/name`` into its parts."""
    segments = [part.strip() for part in repository.split("/") if part.strip()]
    if len(segments) != _REPOSITORY_SEGMENTS:
        msg = f"Repository value '{repository}' is invalid. Expected 'owner/name'."
        raise EnvironmentConfigError(msg)
    return segments[0], segments[1]


def resolve_event_type(event_name: str, action: str | None) -> IssueEventType:
    """Map a workflow event and action to the event type it represents."""
    name = event_name.strip().lower()
    normalized_action = (action or "").strip().lower()
    if name == "issue_comment":
        if normalized_action != "created":
            raise EnvironmentConfigError.unsupported_event(event_name, action or "")
        return IssueEventType.ISSUE_COMMENT_CREATED
    if name == "issues":
        event_type = _ISSUE_ACTIONS.get(normalized_action)
        if event_type is None:
            raise EnvironmentConfigError.unsupported_event(event_name, action or "")
        return event_type
    raise EnvironmentConfigError.unsupported_event(event_name)


def read_event_payload(path: Path) -> _EventPayload:
    """Decode the fields the agent needs from the event payload file."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        msg = f"Unable to read event payload at {path}: {exc}"
        raise EnvironmentConfigError(msg) from exc
    try:
        payload = msgspec.json.decode(raw, type=_EventPayload)
    except msgspec.DecodeError as exc:
        msg = f"Event payload at {path} is not valid: {exc}"
        raise EnvironmentConfigError(msg) from exc
    if payload.action is None:
        msg = "Event payload missing 'action'."
        raise EnvironmentConfigError(msg)
    if payload.issue is None:
        msg = "Event payload missing 'issue' node."
        raise EnvironmentConfigError(msg)
    return payload


def load_runtime_environment(environ: cabc.Mapping[str, str]) -> RuntimeEnvironment:
    """Build the runtime environment from workflow variables.

    Parameters
    ----------
    environ
        Mapping of environment variables, usually ``os.environ``.

    Returns
    -------
    RuntimeEnvironment
        Request and collaborator settings for this invocation.

    Raises
    ------
    EnvironmentConfigError
        If a required variable is missing, the payload cannot be read, or
        the event is not one the agent handles.

    """
    repository = _require(
        environ, "GITHUB_REPOSITORY", "Repository"
    )
    event_name = _require(environ, "GITHUB_EVENT_NAME", "Event name")
    event_path = _require(environ, "GITHUB_EVENT_PATH", "Event payload path")
    run_id = _get(environ, "GITHUB_RUN_ID") or uuid.uuid4().hex
    comments_page_size = parse_comments_page_size(
        read_input(environ, "comments_page_size")
    )

    owner, name = split_repository(repository)
    payload = read_event_payload(Path(event_path))
    issue = typ.cast("_EventIssue", payload.issue)
    event_type = resolve_event_type(event_name, payload.action)

    try:
        foundry = FoundryConfiguration.from_env(environ)
    except FoundryConfigError as exc:
        raise EnvironmentConfigError(str(exc)) from exc

    return RuntimeEnvironment(
        token=resolve_token(environ),
        request=IssueContextRequest(
            owner=owner,
            name=name,
            issue_number=issue.number,
            comments_page_size=comments_page_size,
            run_id=run_id,
            event_type=event_type,
        ),
        event_name=event_name,
        bot_login=read_input(environ, "bot_login") or DEFAULT_BOT_LOGIN,
        agent_handle=read_input(environ, "agent_handle") or DEFAULT_AGENT_HANDLE,
        graphql_url=_get(environ, "GITHUB_GRAPHQL_URL") or DEFAULT_GRAPHQL_URL,
        api_url=_get(environ, "GITHUB_API_URL") or DEFAULT_API_URL,
        foundry=foundry,
        oidc_token_source=GitHubOIDCTokenSource.from_env(environ),
    )

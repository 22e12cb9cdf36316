"""issueagent entrypoint for GitHub Actions.

The runtime wires the collaborators together for one issue event and maps
the outcome to a process exit code:

- ``0``: context retrieved (a reply may or may not have been posted), or
  the run was skipped
- ``1``: environment or backend bootstrap failure, a failed retrieval, or
  a reply that could not be posted
- ``130``: the run was cancelled by SIGINT or SIGTERM

Run the agent directly with ``python -m issueagent``.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import os
import signal
import typing as typ

from issueagent import __version__
from issueagent.agent import IssueContextAgent
from issueagent.context.service import IssueContextService
from issueagent.conversation.decision import ResponseDecisionEngine
from issueagent.conversation.generator import ResponseGenerator
from issueagent.conversation.history import ConversationHistoryBuilder
from issueagent.environment import (
    EnvironmentConfigError,
    load_runtime_environment,
    resolve_log_level,
)
from issueagent.foundry.bootstrap import initialize_backend
from issueagent.github.client import GitHubGraphQLClient, GitHubGraphQLConfig
from issueagent.github.comments import GitHubCommentPoster
from issueagent.github.errors import GitHubConfigError
from issueagent.github.token import ensure_token
from issueagent.instrumentation import StartupMetricsRecorder
from issueagent.logging import (
    configure_logging,
    format_metadata,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import httpx

    from issueagent.agent import AgentRunResult
    from issueagent.environment import RuntimeEnvironment
    from issueagent.foundry.client import FoundryClient

__all__ = [
    "EXIT_CANCELLED",
    "EXIT_FAILURE",
    "EXIT_SUCCESS",
    "connect_backend",
    "main",
    "run",
]

logger = get_logger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def _configure(level: str | None) -> None:
    normalized_level, invalid_level = configure_logging(level)
    if invalid_level and level:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            level,
            normalized_level,
        )


def log_result(result: AgentRunResult) -> None:
    """Log the run outcome in a form suited to the Actions log viewer."""
    context = result.context
    log_info(logger, "Issue context status: %s - %s", context.status, context.message)
    if context.issue is None:
        issue_summary = "issue=null"
    else:
        issue_summary = (
            f"issueId={context.issue.id}, issueNumber={context.issue.number}, "
            f"comments={len(context.issue.latest_comments)}"
        )
    log_info(
        logger,
        "Issue context detail: runId=%s, eventType=%s, retrievedAtUtc=%s, %s",
        context.run_id,
        context.event_type,
        context.retrieved_at.isoformat(),
        issue_summary,
    )
    if result.decision is not None:
        log_info(
            logger,
            "Response decision: %s - %s",
            result.decision.decision,
            result.decision.reason,
        )


async def connect_backend(
    environment: RuntimeEnvironment, http_client: httpx.AsyncClient | None
) -> tuple[bool, FoundryClient | None]:
    """Bootstrap the Azure AI Foundry client when one is configured.

    Returns ``(True, None)`` when no backend is configured so replies fall
    back to fixed text, and ``(False, None)`` when the bootstrap fails.
    """
    if environment.foundry is None:
        log_info(logger, "Azure AI Foundry not configured; replies use fallback text")
        return True, None

    connection = await initialize_backend(
        environment.foundry,
        http_client=http_client,
        oidc_token_source=environment.oidc_token_source,
    )
    if not connection.is_success:
        log_error(
            logger,
            "Azure AI Foundry bootstrap failed [%s]: %s",
            connection.error_category,
            connection.error_message,
        )
        return False, None
    return True, connection.client


async def run(
    environ: cabc.Mapping[str, str],
    *,
    http_client: httpx.AsyncClient | None = None,
    log_level: str | None = None,
) -> int:
    """Handle one issue event and return the process exit code.

    Parameters
    ----------
    environ
        Workflow environment variables.
    http_client
        Optional shared ``httpx.AsyncClient`` for every remote call; when
        ``None`` each collaborator owns its own client. A shared client
        must carry its own GitHub authorization headers.
    log_level
        Overrides the ``log-level`` input when given.

    Returns
    -------
    int
        ``EXIT_SUCCESS``, ``EXIT_FAILURE`` or ``EXIT_CANCELLED``.

    """
    _configure(log_level or resolve_log_level(environ))

    try:
        environment = load_runtime_environment(environ)
    except EnvironmentConfigError as exc:
        log_error(logger, "Bootstrap failure: %s", exc)
        return EXIT_FAILURE

    log_info(logger, "Runtime metadata: %s", format_metadata(environment.metadata))

    try:
        token = ensure_token(environment.token)
    except GitHubConfigError as exc:
        log_error(logger, "Bootstrap failure: %s", exc)
        return EXIT_FAILURE

    backend: FoundryClient | None = None
    graphql = GitHubGraphQLClient(
        GitHubGraphQLConfig(token=token, endpoint=environment.graphql_url),
        http_client=http_client,
    )
    poster = GitHubCommentPoster(
        token, api_base_url=environment.api_url, http_client=http_client
    )
    try:
        connected, backend = await connect_backend(environment, http_client)
        if not connected:
            return EXIT_FAILURE

        agent = IssueContextAgent(
            IssueContextService(graphql),
            ConversationHistoryBuilder(environment.bot_login),
            ResponseDecisionEngine((environment.agent_handle,)),
            ResponseGenerator(
                backend,
                model_deployment=backend.model_deployment if backend else None,
            ),
            comment_publisher=poster,
            metrics_recorder=StartupMetricsRecorder(),
        )
        result = await agent.execute(environment.request, token)
    except asyncio.CancelledError:
        log_warning(logger, "Execution cancelled.")
        return EXIT_CANCELLED
    finally:
        if backend is not None:
            await backend.aclose()
        await poster.aclose()
        await graphql.aclose()

    log_result(result)
    return EXIT_FAILURE if result.is_failure else EXIT_SUCCESS


async def _run_until_signalled(
    environ: cabc.Mapping[str, str], *, log_level: str | None
) -> int:
    loop = asyncio.get_running_loop()
    task = asyncio.create_task(run(environ, log_level=log_level))
    for signum in (signal.SIGINT, signal.SIGTERM):
        # Windows event loops do not support signal handlers.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, task.cancel)
    try:
        return await task
    except asyncio.CancelledError:
        return EXIT_CANCELLED


def main(argv: list[str] | None = None) -> int:
    """Run the agent against the current workflow environment.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Process exit code.

    """
    parser = argparse.ArgumentParser(
        prog="issueagent",
        description="Reply to GitHub issue events from a workflow run.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the log-level input (TRACE, DEBUG, INFO, WARN, ERROR)",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    args = parser.parse_args(argv)

    try:
        return asyncio.run(
            _run_until_signalled(os.environ, log_level=args.log_level)
        )
    except KeyboardInterrupt:
        return EXIT_CANCELLED


if __name__ == "__main__":
    raise SystemExit(main())

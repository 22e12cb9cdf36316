"""Pipeline orchestrator for one issue event.

``IssueContextAgent.execute`` runs the stages in order and stops at the
first one that says there is nothing more to do:

token guard -> context retrieval -> history -> decision -> generation ->
publication.
"""

from __future__ import annotations

import typing as typ

import msgspec

from issueagent.conversation.models import ResponseDecisionResult  # noqa: TC001
from issueagent.github.comments import PostCommentResult  # noqa: TC001
from issueagent.github.token import ensure_token
from issueagent.instrumentation import StartupMetricsRecorder
from issueagent.issues.models import IssueContextResult, IssueContextStatus
from issueagent.logging import get_logger, log_error, log_exception, log_info

if typ.TYPE_CHECKING:
    from issueagent.context.service import IssueContextService
    from issueagent.conversation.decision import ResponseDecisionEngine
    from issueagent.conversation.generator import ResponseGenerator
    from issueagent.conversation.history import ConversationHistoryBuilder
    from issueagent.github.comments import CommentPublisher
    from issueagent.issues.models import IssueContextRequest, IssueSnapshot

logger = get_logger(__name__)


class AgentRunResult(msgspec.Struct, kw_only=True, frozen=True):
    """Everything one pipeline run produced.

    Attributes
    ----------
    context
        Retrieval outcome; carries the workflow-facing status.
    decision
        Reply verdict, absent when retrieval did not succeed.
    reply
        Generated reply text, absent when the verdict was skip.
    comment
        Publication outcome, absent when nothing was posted.

    """

    context: IssueContextResult
    decision: ResponseDecisionResult | None = None
    reply: str | None = None
    comment: PostCommentResult | None = None

    @property
    def is_failure(self) -> bool:
        """Return True when the run should fail the workflow."""
        if self.context.is_failure:
            return True
        return self.comment is not None and not self.comment.success


class IssueContextAgent:
    """Run the issue pipeline with injected collaborators.

    Parameters
    ----------
    service
        Context retrieval service.
    history_builder
        Converts the snapshot into an ordered conversation.
    decision_engine
        Decides whether the latest message needs a reply.
    response_generator
        Produces reply text.
    comment_publisher
        Posts the reply; when ``None`` the reply is only logged.
    metrics_recorder
        Times context retrieval.

    """

    def __init__(  # noqa: PLR0913
        self,
        service: IssueContextService,
        history_builder: ConversationHistoryBuilder,
        decision_engine: ResponseDecisionEngine,
        response_generator: ResponseGenerator,
        *,
        comment_publisher: CommentPublisher | None = None,
        metrics_recorder: StartupMetricsRecorder | None = None,
    ) -> None:
        """Store the pipeline collaborators."""
        self._service = service
        self._history_builder = history_builder
        self._decision_engine = decision_engine
        self._response_generator = response_generator
        self._comment_publisher = comment_publisher
        self._metrics_recorder = metrics_recorder or StartupMetricsRecorder()

    async def execute(
        self, request: IssueContextRequest, token: str | None
    ) -> AgentRunResult:
        """Run the pipeline for ``request``.

        Parameters
        ----------
        request
            Issue event to handle.
        token
            GitHub token; checked before any remote call.

        Returns
        -------
        AgentRunResult
            Retrieval failures are returned as-is. Exceptions after
            retrieval become an ``unexpected_error`` context.

        Raises
        ------
        TypeError
            If ``request`` is ``None``.
        GitHubConfigError
            If ``token`` is missing or blank.

        """
        if request is None:
            msg = "request must not be None"
            raise TypeError(msg)
        ensure_token(token)

        with self._metrics_recorder.measure():
            context = await self._service.fetch_issue_context(request)

        log_info(
            logger, "Context retrieval for run %s: %s", request.run_id, context.status
        )
        if context.status is not IssueContextStatus.SUCCESS or context.issue is None:
            return AgentRunResult(context=context)

        try:
            return await self._respond(request, context)
        except Exception as exc:  # noqa: BLE001 - every failure becomes a result value
            log_exception(logger, "Reply pipeline failed", exc)
            return AgentRunResult(
                context=IssueContextResult.unexpected_error(
                    request.run_id, request.event_type, str(exc) or type(exc).__name__
                )
            )

    async def _respond(
        self, request: IssueContextRequest, context: IssueContextResult
    ) -> AgentRunResult:
        issue = typ.cast("IssueSnapshot", context.issue)
        history = self._history_builder.build_history(issue)
        log_info(logger, "Built conversation history with %d messages", len(history))

        decision = self._decision_engine.should_respond(history)
        log_info(
            logger, "Response decision: %s - %s", decision.decision, decision.reason
        )
        if not decision.should_reply:
            log_info(logger, "Skipping response for issue #%d", issue.number)
            return AgentRunResult(context=context, decision=decision)

        reply = await self._response_generator.generate_response(history, decision)
        if self._comment_publisher is None:
            log_info(logger, "No comment publisher configured; reply not posted")
            return AgentRunResult(context=context, decision=decision, reply=reply)

        comment = await self._comment_publisher.post_comment(
            request.owner, request.name, request.issue_number, reply
        )
        if comment.success:
            log_info(logger, "Posted comment: %s", comment.comment_url)
        else:
            log_error(logger, "Failed to post comment: %s", comment.error_message)
        return AgentRunResult(
            context=context, decision=decision, reply=reply, comment=comment
        )

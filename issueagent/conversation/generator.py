"""Reply text generation with a deterministic fallback."""

from __future__ import annotations

import typing as typ

import httpx

from issueagent.foundry.errors import FoundryError
from issueagent.logging import get_logger, log_exception, log_info, log_warning

from .models import MessageRole, ResponseDecision
from .prompts import build_chat_messages

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import ConversationMessage, ResponseDecisionResult

logger = get_logger(__name__)

FIRST_INTERACTION_REPLY = (
    "Thanks for mentioning me! I'm here to help improve this issue and guide "
    "you toward writing world-class user stories and requirements.\n\n"
    "To get started, I'd like to understand:\n"
    "- What is the user story or goal you're trying to achieve?\n"
    "- Who are the actors (users/systems) involved?\n"
    "- What are the measurable acceptance criteria?\n"
    "- Are there any constraints or dependencies I should know about?"
)

FOLLOW_UP_REPLY = (
    "I'm reviewing your message. To help you effectively:\n\n"
    "- Please provide any additional context or clarifications\n"
    "- Ensure acceptance criteria are specific and measurable\n"
    "- List any assumptions or constraints\n\n"
    "Let me know what specific aspect you'd like me to help refine."
)

ACKNOWLEDGMENT_REPLY = (
    "Thanks for the update! Let me know if you need help refining the "
    "requirements or acceptance criteria."
)


class ChatCompleter(typ.Protocol):
    """Backend capable of answering a chat transcript."""

    async def complete(
        self, messages: cabc.Sequence[cabc.Mapping[str, str]]
    ) -> str:
        """Return the assistant reply for ``messages``."""
        ...


def fallback_reply(
    history: cabc.Sequence[ConversationMessage], decision: ResponseDecisionResult
) -> str:
    """Return canned reply text for when no backend answer is available."""
    if decision.decision is not ResponseDecision.MUST_RESPOND:
        return ACKNOWLEDGMENT_REPLY
    if any(message.role is MessageRole.ASSISTANT for message in history):
        return FOLLOW_UP_REPLY
    return FIRST_INTERACTION_REPLY


class ResponseGenerator:
    """Produce reply text, preferring the AI backend.

    Parameters
    ----------
    client
        Ready backend client, or ``None`` when the backend is not
        configured or failed to bootstrap.
    model_deployment
        Deployment name, used only for log context.

    """

    def __init__(
        self,
        client: ChatCompleter | None = None,
        *,
        model_deployment: str | None = None,
    ) -> None:
        """Store the optional backend client."""
        self._client = client
        self._model_deployment = model_deployment

    @property
    def uses_backend(self) -> bool:
        """Return True when replies are generated by the AI backend."""
        return self._client is not None

    async def generate_response(
        self,
        history: cabc.Sequence[ConversationMessage],
        decision: ResponseDecisionResult,
    ) -> str:
        """Return reply text for the latest message in ``history``.

        Backend failures are logged and answered with the fallback text.

        Raises
        ------
        ValueError
            If ``history`` is empty.

        """
        if not history:
            msg = "Conversation history must contain at least one message"
            raise ValueError(msg)

        if self._client is None:
            log_warning(
                logger, "Azure AI Foundry not configured - using fallback reply"
            )
            return fallback_reply(history, decision)

        log_info(
            logger,
            "Generating reply with model %s from %d messages",
            self._model_deployment or "<unknown>",
            len(history),
        )
        try:
            return await self._client.complete(build_chat_messages(history))
        except (FoundryError, httpx.HTTPError) as exc:
            log_exception(logger, "Reply generation failed - using fallback", exc)
            return fallback_reply(history, decision)

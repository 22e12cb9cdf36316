"""Policy for when the agent should speak in an issue conversation.

The engine is a pure function of the message sequence:

1. Empty history: skip.
2. Latest message is the agent's own: skip.
3. Latest message mentions ``@<handle>`` outside a backtick span: must
   respond. This is the one hard guarantee the agent makes.
4. Latest message answers the agent's most recent question within the
   semantic window, and is more than a bare acknowledgment: should
   respond.
5. Anything else: skip.

"""

from __future__ import annotations

import datetime as dt
import re
import typing as typ

from .models import MessageRole, ResponseDecision, ResponseDecisionResult

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import ConversationMessage

DEFAULT_MENTION_HANDLES: tuple[str, ...] = ("issueagent",)
DEFAULT_SEMANTIC_WINDOW = dt.timedelta(hours=48)

REQUEST_CUE_PHRASES: tuple[str, ...] = (
    "please provide",
    "please add",
    "please share",
    "please confirm",
    "could you add",
    "could you provide",
    "could you share",
    "can you provide",
    "can you share",
    "acceptance criteria",
    "constraints",
    "steps",
    "repro",
    "link",
    "screenshot",
    "logs",
    "example",
)

FOLLOW_THROUGH_PHRASES: tuple[str, ...] = (
    "per your request",
    "as you suggested",
    "as requested",
    "ac:",
)

ACKNOWLEDGMENT_PHRASES: frozenset[str] = frozenset(
    {
        "thanks",
        "thank you",
        "thx",
        "ty",
        "ok",
        "okay",
        "k",
        "lgtm",
        "got it",
        "sounds good",
        "cool",
        "great",
        "nice",
        "+1",
        "👍",
        "👌",
        "🙏",
        "🎉",
    }
)

# Bare acknowledgments shorter than this are judged token by token.
_SHORT_ACKNOWLEDGMENT_LENGTH = 20
_MIN_LIST_LINES = 2

_CONFIRMATION_PATTERN = re.compile(
    r"\b(?:yes|no|done|updated|pushed|added|completed)\b", re.IGNORECASE
)
_LINK_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
_FENCE = "```"
_NUMBERED_LINE = re.compile(r"^\s*\d+[.)]\s+\S")
_CHECKLIST_LINE = re.compile(r"^\s*[-*+]\s+\[[ xX]\]\s+\S")
_ACK_TOKEN_SPLIT = re.compile(r"[\s,.!]+")


def _is_enumerated_line(line: str) -> bool:
    return bool(_NUMBERED_LINE.match(line) or _CHECKLIST_LINE.match(line))


def _count_enumerated_lines(text: str) -> int:
    return sum(1 for line in text.splitlines() if _is_enumerated_line(line))


def is_inside_code_span(text: str, index: int) -> bool:
    """Return True when ``index`` follows an odd number of backticks."""
    return text.count("`", 0, index) % 2 == 1


def asked_question(text: str) -> bool:
    """Return True when an agent message asked for something."""
    if "?" in text:
        return True
    lowered = text.casefold()
    return any(phrase in lowered for phrase in REQUEST_CUE_PHRASES)


def is_bare_acknowledgment(text: str) -> bool:
    """Return True for replies like "thanks" or "lgtm" with nothing else."""
    normalized = text.strip().casefold()
    if not normalized:
        return True
    if normalized.rstrip("!. ") in ACKNOWLEDGMENT_PHRASES:
        return True
    if len(normalized) >= _SHORT_ACKNOWLEDGMENT_LENGTH:
        return False
    tokens = [token for token in _ACK_TOKEN_SPLIT.split(normalized) if token]
    return bool(tokens) and all(
        token in ACKNOWLEDGMENT_PHRASES for token in tokens
    )


def is_answer_like(text: str) -> bool:
    """Return True when ``text`` reads like an answer to a request.

    An answer either pairs a confirmation word with substantive content
    (a link, a fenced code block or an enumerated line), uses a
    follow-through phrase, or is itself a numbered or checklist list.
    """
    lowered = text.casefold()
    enumerated = _count_enumerated_lines(text)
    if _CONFIRMATION_PATTERN.search(text):
        substantive = (
            _LINK_PATTERN.search(text) is not None
            or _FENCE in text
            or enumerated > 0
        )
        if substantive:
            return True
    if any(phrase in lowered for phrase in FOLLOW_THROUGH_PHRASES):
        return True
    return enumerated >= _MIN_LIST_LINES


def _find_last_assistant(
    history: cabc.Sequence[ConversationMessage],
) -> ConversationMessage | None:
    for message in reversed(history[:-1]):
        if message.role is MessageRole.ASSISTANT:
            return message
    return None


def _skip(reason: str) -> ResponseDecisionResult:
    return ResponseDecisionResult(decision=ResponseDecision.SKIP, reason=reason)


class ResponseDecisionEngine:
    """Decide whether the latest message in a conversation needs a reply.

    Parameters
    ----------
    mention_handles
        Handles (without ``@``) that address the agent.
    semantic_window
        Longest gap between the agent's question and the latest message
        for the latest message to count as a follow-up.

    """

    def __init__(
        self,
        mention_handles: cabc.Iterable[str] | None = None,
        *,
        semantic_window: dt.timedelta = DEFAULT_SEMANTIC_WINDOW,
    ) -> None:
        """Compile mention patterns for the configured handles."""
        handles = tuple(
            handle.strip().lstrip("@")
            for handle in (mention_handles or DEFAULT_MENTION_HANDLES)
            if handle and handle.strip()
        )
        if not handles:
            msg = "At least one mention handle must be provided"
            raise ValueError(msg)
        if semantic_window <= dt.timedelta(0):
            msg = "semantic_window must be positive"
            raise ValueError(msg)
        self._handles = handles
        self._semantic_window = semantic_window
        self._mention_patterns = tuple(
            (
                handle,
                re.compile(rf"(?<!\w)@{re.escape(handle)}(?!\w)", re.IGNORECASE),
            )
            for handle in handles
        )

    @property
    def mention_handles(self) -> tuple[str, ...]:
        """Return the handles that trigger a mandatory reply."""
        return self._handles

    def should_respond(
        self, history: cabc.Sequence[ConversationMessage] | None
    ) -> ResponseDecisionResult:
        """Return the verdict for the latest message in ``history``."""
        if not history:
            return _skip("No conversation history")

        latest = history[-1]
        if latest.role is MessageRole.ASSISTANT:
            return _skip("Latest message is from the agent")

        handle = self.find_mention(latest.text)
        if handle is not None:
            return ResponseDecisionResult(
                decision=ResponseDecision.MUST_RESPOND,
                reason=f"@mention of {handle} detected",
            )

        return self._semantic_follow_up(history, latest)

    def find_mention(self, text: str) -> str | None:
        """Return the first handle mentioned outside a code span, if any."""
        if not text or not text.strip():
            return None
        for handle, pattern in self._mention_patterns:
            for match in pattern.finditer(text):
                if not is_inside_code_span(text, match.start()):
                    return handle
        return None

    def _semantic_follow_up(
        self,
        history: cabc.Sequence[ConversationMessage],
        latest: ConversationMessage,
    ) -> ResponseDecisionResult:
        previous = _find_last_assistant(history)
        if previous is None:
            return _skip("No mention detected")
        if not asked_question(previous.text):
            return _skip("No mention detected and agent did not ask a question")
        if latest.created_at <= previous.created_at:
            return _skip("Latest message does not follow the agent's request")
        if latest.created_at - previous.created_at > self._semantic_window:
            return _skip("Latest message is outside the follow-up window")
        if is_bare_acknowledgment(latest.text):
            return _skip("Latest message is a bare acknowledgment")
        if not is_answer_like(latest.text):
            return _skip("Latest message does not answer the agent's request")
        return ResponseDecisionResult(
            decision=ResponseDecision.SHOULD_RESPOND,
            reason="Semantic follow-up to agent request",
        )

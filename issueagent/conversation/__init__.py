"""Conversation history, reply decisions and reply generation."""

from __future__ import annotations

from .decision import (
    DEFAULT_MENTION_HANDLES,
    DEFAULT_SEMANTIC_WINDOW,
    ResponseDecisionEngine,
)
from .generator import ChatCompleter, ResponseGenerator, fallback_reply
from .history import DEFAULT_AGENT_NAME, ConversationHistoryBuilder
from .models import (
    ConversationMessage,
    MessageRole,
    ResponseDecision,
    ResponseDecisionResult,
)
from .prompts import SYSTEM_PROMPT, build_conversation_prompt

__all__ = [
    "DEFAULT_AGENT_NAME",
    "DEFAULT_MENTION_HANDLES",
    "DEFAULT_SEMANTIC_WINDOW",
    "SYSTEM_PROMPT",
    "ChatCompleter",
    "ConversationHistoryBuilder",
    "ConversationMessage",
    "MessageRole",
    "ResponseDecision",
    "ResponseDecisionEngine",
    "ResponseDecisionResult",
    "ResponseGenerator",
    "build_conversation_prompt",
    "fallback_reply",
]

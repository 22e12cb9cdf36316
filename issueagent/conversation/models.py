"""Conversation message and decision models."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import enum

import msgspec

from issueagent.common.time import ensure_not_future


class MessageRole(enum.StrEnum):
    """Who authored a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


class ConversationMessage(msgspec.Struct, kw_only=True, frozen=True):
    """Role-tagged unit of text from an issue body or comment."""

    message_id: str
    role: MessageRole
    author_name: str
    text: str
    created_at: dt.datetime

    @classmethod
    def create(
        cls,
        message_id: str,
        role: MessageRole,
        author_name: str,
        text: str | None,
        created_at: dt.datetime,
    ) -> ConversationMessage:
        """Build a message, trimming text and normalizing the timestamp.

        Raises
        ------
        ValueError
            If the id or author is blank, or the timestamp is naive or in
            the future.

        """
        if not message_id or not message_id.strip():
            msg = "Message id must be provided"
            raise ValueError(msg)
        if not author_name or not author_name.strip():
            msg = "Author name must be provided"
            raise ValueError(msg)
        return cls(
            message_id=message_id.strip(),
            role=role,
            author_name=author_name.strip(),
            text=(text or "").strip(),
            created_at=ensure_not_future(created_at, field="Message created_at"),
        )


class ResponseDecision(enum.StrEnum):
    """Verdict of the response decision engine."""

    MUST_RESPOND = "must_respond"
    SHOULD_RESPOND = "should_respond"
    SKIP = "skip"


class ResponseDecisionResult(msgspec.Struct, kw_only=True, frozen=True):
    """Decision verdict with a human-readable reason for the logs."""

    decision: ResponseDecision
    reason: str

    @property
    def should_reply(self) -> bool:
        """Return True when the verdict calls for a reply."""
        return self.decision is not ResponseDecision.SKIP

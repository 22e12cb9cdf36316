"""Turn an issue snapshot into an ordered conversation."""

from __future__ import annotations

import typing as typ

from issueagent.github.comments import SIGNATURE_MARKER

from .models import ConversationMessage, MessageRole

if typ.TYPE_CHECKING:
    from issueagent.issues.models import CommentSnapshot, IssueSnapshot

DEFAULT_AGENT_NAME = "issueagent"


class ConversationHistoryBuilder:
    """Build the message sequence consumed by the decision engine.

    A comment counts as the agent's own turn when its author is the
    workflow identity or its body carries the signature marker, so prior
    replies are recognised even when posted under a different account.
    """

    def __init__(
        self,
        bot_login: str,
        *,
        agent_name: str = DEFAULT_AGENT_NAME,
        signature_marker: str = SIGNATURE_MARKER,
    ) -> None:
        """Store the automation identity used for authorship checks."""
        if not bot_login or not bot_login.strip():
            msg = "Bot login must be provided"
            raise ValueError(msg)
        self._bot_login = bot_login.strip()
        self._agent_name = agent_name
        self._signature_marker = signature_marker

    def build_history(self, issue: IssueSnapshot) -> list[ConversationMessage]:
        """Return the issue body followed by its comments, oldest first."""
        if issue is None:
            msg = "issue must not be None"
            raise TypeError(msg)

        messages = [
            ConversationMessage.create(
                issue.id,
                MessageRole.USER,
                issue.author_login,
                f"{issue.title}\n\n{issue.body}",
                issue.created_at,
            )
        ]
        for comment in issue.latest_comments:
            is_agent = self.is_agent_comment(comment)
            messages.append(
                ConversationMessage.create(
                    comment.id,
                    MessageRole.ASSISTANT if is_agent else MessageRole.USER,
                    self._agent_name if is_agent else comment.author_login,
                    comment.body_excerpt,
                    comment.created_at,
                )
            )
        return messages

    def is_agent_comment(self, comment: CommentSnapshot) -> bool:
        """Return True when ``comment`` was written by the agent."""
        if comment.author_login.casefold() == self._bot_login.casefold():
            return True
        return self._signature_marker in comment.body_excerpt

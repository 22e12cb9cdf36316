"""Prompt templates for reply generation."""

from __future__ import annotations

import typing as typ

from .models import MessageRole

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import ConversationMessage

SYSTEM_PROMPT = """\
You are issueagent, an expert product owner helping people write world-class \
user stories and requirements in GitHub Issues.

## Responding Policy

1. ALWAYS respond if the new comment @mentions "issueagent".
2. OTHERWISE, respond if the new comment is clearly a follow-up to your last \
question or request, even without quotes or permalinks (e.g., it provides the \
information you asked for, confirms completion with details, or supplies \
links/artifacts). If the new comment is purely an acknowledgment with no new \
information, remain silent.

## When You Respond

- Start with a one-sentence summary of what the user is asking or confirming.
- Provide concise, actionable guidance: refined user story, actors, scope, \
constraints, and measurable acceptance criteria; then list clear next steps.
- Call out assumptions explicitly and ask for only the minimal confirmations \
needed.
- If the thread already contains a sufficient answer, acknowledge it and avoid \
redundancy.
"""


def _role_label(message: ConversationMessage) -> str:
    if message.role is MessageRole.ASSISTANT:
        return f"Assistant ({message.author_name})"
    return f"User ({message.author_name})"


def build_conversation_prompt(history: cabc.Sequence[ConversationMessage]) -> str:
    """Render the conversation as the user turn of a chat completion.

    Parameters
    ----------
    history
        Messages oldest first, as produced by the history builder.

    Returns
    -------
    str
        Markdown transcript followed by the task instruction.

    """
    sections: list[str] = ["## Previous conversation", ""]
    for message in history:
        sections.append(f"**{_role_label(message)}:**")
        sections.append(message.text)
        sections.append("")
    sections.append("## Your task")
    sections.append(
        "Based on the conversation above, provide a helpful response following "
        "the responding policy in your instructions."
    )
    return "\n".join(sections)


def build_chat_messages(
    history: cabc.Sequence[ConversationMessage],
) -> list[dict[str, str]]:
    """Return the system and user messages for a chat completion."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_conversation_prompt(history)},
    ]

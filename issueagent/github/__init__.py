"""GitHub collaborators: GraphQL executor, comment publisher, token guard."""

from __future__ import annotations

from .client import GitHubGraphQLClient, GitHubGraphQLConfig, GraphQLExecutor
from .comments import (
    AGENT_BANNER,
    SIGNATURE_MARKER,
    CommentPublisher,
    GitHubCommentPoster,
    PostCommentResult,
    format_comment_body,
)
from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError
from .token import ensure_token

__all__ = [
    "AGENT_BANNER",
    "SIGNATURE_MARKER",
    "CommentPublisher",
    "GitHubAPIError",
    "GitHubCommentPoster",
    "GitHubConfigError",
    "GitHubGraphQLClient",
    "GitHubGraphQLConfig",
    "GitHubResponseShapeError",
    "GraphQLExecutor",
    "PostCommentResult",
    "ensure_token",
    "format_comment_body",
]

"""GraphQL document and variables for the issue context query."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from issueagent.issues.models import IssueContextRequest

ISSUE_CONTEXT_QUERY = """
query IssueContextQuery(
  $owner: String!
  $name: String!
  $number: Int!
  $commentsPageSize: Int!
) {
  repository(owner: $owner, name: $name) {
    issue(number: $number) {
      id
      number
      title
      author { login }
      body
      createdAt
      comments(last: $commentsPageSize) {
        totalCount
        nodes {
          id
          author { login }
          bodyText
          createdAt
        }
      }
    }
  }
}
""".strip()


def build_issue_context_variables(request: IssueContextRequest) -> dict[str, typ.Any]:
    """Return the variables for :data:`ISSUE_CONTEXT_QUERY`."""
    return {
        "owner": request.owner,
        "name": request.name,
        "number": request.issue_number,
        "commentsPageSize": request.clamped_page_size,
    }

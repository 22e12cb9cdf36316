"""Issue agent: replies to GitHub issue conversations from a workflow run.

The package is organised leaf-first:

- ``issueagent.issues``: request, snapshot and result models.
- ``issueagent.github``: GraphQL executor, comment publisher, token guard.
- ``issueagent.context``: issue context retrieval service.
- ``issueagent.conversation``: history builder, decision engine, generator.
- ``issueagent.foundry``: AI backend configuration, authentication and
  connection bootstrap.
- ``issueagent.agent``: pipeline orchestrator.
- ``issueagent.runtime``: process entry point.

"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]

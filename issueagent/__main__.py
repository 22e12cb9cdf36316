"""Allow ``python -m issueagent``."""

from __future__ import annotations

from issueagent.runtime import main

raise SystemExit(main())

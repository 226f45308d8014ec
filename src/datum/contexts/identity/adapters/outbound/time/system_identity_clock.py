from __future__ import annotations

from datetime import datetime, timezone

from datum.contexts.identity.application.ports.clock import IdentityClock


class SystemIdentityClock(IdentityClock):
    """
    SystemIdentityClock — `IdentityClock` on the system UTC wall clock.

    Related:
      - src/datum/contexts/identity/application/ports/clock.py
      - apps/api/wiring/modules/identity.py
    """

    def now(self) -> datetime:
        """Return current timezone-aware UTC datetime."""
        return datetime.now(timezone.utc)

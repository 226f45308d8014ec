from __future__ import annotations

import threading
from datetime import datetime

from datum.contexts.identity.application.ports.pending_totp_setup_repository import (
    PendingTotpSetupRepository,
)
from datum.contexts.identity.domain.entities import PendingTotpSetup
from datum.shared_kernel.primitives import UserId


class InMemoryPendingTotpSetupRepository(PendingTotpSetupRepository):
    """
    InMemoryPendingTotpSetupRepository — one pending setup per user in a locked dict.

    Related:
      - src/datum/contexts/identity/application/ports/pending_totp_setup_repository.py
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/
        pending_totp_setup_repository.py
    """

    def __init__(self) -> None:
        self._rows: dict[str, PendingTotpSetup] = {}
        self._lock = threading.Lock()

    def find_by_user_id(self, *, user_id: UserId) -> PendingTotpSetup | None:
        with self._lock:
            return self._rows.get(str(user_id))

    def replace(self, *, pending: PendingTotpSetup) -> PendingTotpSetup:
        # single dict assignment drops the previous record atomically
        with self._lock:
            self._rows[str(pending.user_id)] = pending
        return pending

    def delete(self, *, user_id: UserId, expires_at: datetime | None = None) -> None:
        key = str(user_id)
        with self._lock:
            current = self._rows.get(key)
            if current is None:
                return
            if expires_at is not None and current.expires_at != expires_at:
                return
            del self._rows[key]

from __future__ import annotations

import threading

from datum.contexts.identity.application.ports.two_factor_session_registry import (
    TwoFactorSessionRegistry,
)
from datum.shared_kernel.primitives import UserId


class InMemoryTwoFactorSessionRegistry(TwoFactorSessionRegistry):
    """
    InMemoryTwoFactorSessionRegistry — process-lifetime set of verified `(user, session)` keys.

    Flags are never persisted; a restart requires TOTP again, same as a new browser session.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_session_registry.py
      - src/datum/contexts/identity/application/use_cases/validate_two_factor_login.py
      - src/datum/contexts/identity/application/use_cases/end_two_factor_session.py
    """

    def __init__(self) -> None:
        self._verified: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def mark_verified(self, *, user_id: UserId, session_id: str) -> None:
        with self._lock:
            self._verified.add(_session_key(user_id=user_id, session_id=session_id))

    def is_verified(self, *, user_id: UserId, session_id: str) -> bool:
        with self._lock:
            return _session_key(user_id=user_id, session_id=session_id) in self._verified

    def clear(self, *, user_id: UserId, session_id: str) -> None:
        with self._lock:
            self._verified.discard(_session_key(user_id=user_id, session_id=session_id))


def _session_key(*, user_id: UserId, session_id: str) -> tuple[str, str]:
    return (str(user_id), session_id)

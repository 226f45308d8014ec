from __future__ import annotations

from typing import Protocol

from datum.shared_kernel.primitives import UserId


class TwoFactorSessionRegistry(Protocol):
    """
    TwoFactorSessionRegistry — per-session "second factor verified" flags.

    Flag lives only as long as the login session; signing out clears it.

    Related:
      - src/datum/contexts/identity/application/use_cases/validate_two_factor_login.py
      - src/datum/contexts/identity/application/use_cases/end_two_factor_session.py
      - src/datum/contexts/identity/adapters/outbound/session/in_memory_session_registry.py
    """

    def mark_verified(self, *, user_id: UserId, session_id: str) -> None:
        """Record that TOTP was verified in this session."""
        ...

    def is_verified(self, *, user_id: UserId, session_id: str) -> bool:
        """Return whether TOTP was verified in this session."""
        ...

    def clear(self, *, user_id: UserId, session_id: str) -> None:
        """Drop the session flag; clearing an unknown session is a no-op."""
        ...

from __future__ import annotations

from datum.contexts.identity.application.ports.two_factor_session_registry import (
    TwoFactorSessionRegistry,
)
from datum.shared_kernel.primitives import UserId


class EndTwoFactorSessionUseCase:
    """
    EndTwoFactorSessionUseCase — sign-out: forget that the session passed TOTP.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_session_registry.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, session_registry: TwoFactorSessionRegistry) -> None:
        if session_registry is None:  # type: ignore[truthy-bool]
            raise ValueError("EndTwoFactorSessionUseCase requires session_registry")
        self._session_registry = session_registry

    def end(self, *, user_id: UserId, session_id: str) -> None:
        """Clear the session verification flag; unknown sessions are ignored."""
        self._session_registry.clear(user_id=user_id, session_id=session_id)

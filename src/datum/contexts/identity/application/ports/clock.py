from __future__ import annotations

from datetime import datetime
from typing import Protocol


class IdentityClock(Protocol):
    """
    IdentityClock — source of the current UTC time for inbound adapters.

    Use cases never read it themselves: routes call `now()` once per request and pass the
    value explicitly into every time-dependent operation.

    Related:
      - src/datum/contexts/identity/adapters/outbound/time/system_identity_clock.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
      - src/datum/contexts/identity/adapters/outbound/security/jwt/hs256_jwt_codec.py
    """

    def now(self) -> datetime:
        """
        Return current UTC timestamp.

        Args:
            None.
        Returns:
            datetime: Timezone-aware UTC datetime.
        Assumptions:
            Implementations return wall-clock time synchronized with authenticator apps.
        Raises:
            None.
        Side Effects:
            None.
        """
        ...

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from datum.contexts.identity.domain.entities.utc import ensure_utc_datetime
from datum.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class PendingTotpSetup:
    """
    PendingTotpSetup — short-lived encrypted TOTP secret awaiting its first valid code.

    Related:
      - src/datum/contexts/identity/application/ports/pending_totp_setup_repository.py
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
      - src/datum/contexts/identity/application/use_cases/complete_two_factor_setup.py
    """

    user_id: UserId
    totp_secret_enc: str
    created_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        """
        Validate encrypted payload presence and TTL ordering.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Timestamps are timezone-aware UTC datetimes.
        Raises:
            ValueError: If encrypted secret is empty or expiry is not after creation.
        Side Effects:
            None.
        """
        if not self.totp_secret_enc:
            raise ValueError("PendingTotpSetup.totp_secret_enc must be non-empty")
        ensure_utc_datetime(value=self.created_at, field_name="created_at")
        ensure_utc_datetime(value=self.expires_at, field_name="expires_at")
        if self.expires_at <= self.created_at:
            raise ValueError("PendingTotpSetup.expires_at must be after created_at")

    def is_expired(self, *, now: datetime) -> bool:
        """Return `True` once `now` is strictly past `expires_at`."""
        return ensure_utc_datetime(value=now, field_name="now") > self.expires_at

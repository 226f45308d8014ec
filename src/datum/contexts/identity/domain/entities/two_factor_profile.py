from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from datum.contexts.identity.domain.entities.utc import ensure_utc_datetime
from datum.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class TwoFactorProfile:
    """
    TwoFactorProfile — immutable per-user snapshot of TOTP enablement and trial window.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_profile_repository.py
      - src/datum/contexts/identity/application/use_cases/complete_two_factor_setup.py
      - alembic/versions/20261019_0001_identity_two_factor_v1.py
    """

    user_id: UserId
    email: str | None
    totp_secret_enc: str | None
    totp_enabled: bool
    trial_start: datetime | None
    trial_expiration: datetime | None
    is_trial_user: bool
    updated_at: datetime

    def __post_init__(self) -> None:
        """
        Validate enablement and trial-window invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            All datetimes are timezone-aware UTC values.
        Raises:
            ValueError: If enabled profile has no encrypted secret, trial dates are set
                partially, or trial expiration precedes trial start.
        Side Effects:
            None.
        """
        ensure_utc_datetime(value=self.updated_at, field_name="updated_at")
        if self.totp_enabled and not self.totp_secret_enc:
            raise ValueError("TwoFactorProfile.totp_secret_enc must be set when totp_enabled")
        if (self.trial_start is None) != (self.trial_expiration is None):
            raise ValueError(
                "TwoFactorProfile.trial_start and trial_expiration must be set together"
            )
        if self.trial_start is not None and self.trial_expiration is not None:
            ensure_utc_datetime(value=self.trial_start, field_name="trial_start")
            ensure_utc_datetime(value=self.trial_expiration, field_name="trial_expiration")
            if self.trial_expiration < self.trial_start:
                raise ValueError("TwoFactorProfile.trial_expiration cannot be before trial_start")

    def is_trial_expired(self, *, now: datetime) -> bool:
        """
        Report whether trial gating blocks this profile at `now`.

        Args:
            now: Current UTC datetime.
        Returns:
            bool: `True` only for trial users whose expiration is strictly in the past.
        Assumptions:
            Profiles without trial dates are never expired.
        Raises:
            ValueError: If `now` is naive or non-UTC.
        Side Effects:
            None.
        """
        ensure_utc_datetime(value=now, field_name="now")
        if not self.is_trial_user or self.trial_expiration is None:
            return False
        return self.trial_expiration < now

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

DEFAULT_TOTP_ISSUER = "Datum"
DEFAULT_VERIFICATION_WINDOW = 1
DEFAULT_TRIAL_DURATION = timedelta(days=3)
DEFAULT_PENDING_SETUP_TTL = timedelta(minutes=15)


@dataclass(frozen=True, slots=True)
class TwoFactorPolicy:
    """
    TwoFactorPolicy — immutable knobs shared by all TOTP lifecycle use cases.

    Resolved once from environment at app construction and injected; use cases never
    read configuration themselves.

    Related:
      - apps/api/wiring/modules/identity.py
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
      - src/datum/contexts/identity/application/use_cases/complete_two_factor_setup.py
    """

    issuer: str = DEFAULT_TOTP_ISSUER
    verification_window: int = DEFAULT_VERIFICATION_WINDOW
    trial_duration: timedelta = DEFAULT_TRIAL_DURATION
    pending_setup_ttl: timedelta = DEFAULT_PENDING_SETUP_TTL

    def __post_init__(self) -> None:
        """
        Validate policy values.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Window is counted in 30-second steps on each side of current step.
        Raises:
            ValueError: If issuer is blank, window is negative, or durations are not positive.
        Side Effects:
            None.
        """
        if not self.issuer.strip():
            raise ValueError("TwoFactorPolicy.issuer must be non-empty")
        if ":" in self.issuer:
            raise ValueError("TwoFactorPolicy.issuer must not contain ':'")
        if self.verification_window < 0:
            raise ValueError("TwoFactorPolicy.verification_window must be >= 0")
        if self.trial_duration <= timedelta(0):
            raise ValueError("TwoFactorPolicy.trial_duration must be positive")
        if self.pending_setup_ttl <= timedelta(0):
            raise ValueError("TwoFactorPolicy.pending_setup_ttl must be positive")

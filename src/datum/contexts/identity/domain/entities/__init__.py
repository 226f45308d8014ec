from .pending_totp_setup import PendingTotpSetup
from .two_factor_profile import TwoFactorProfile
from .utc import ensure_utc_datetime

__all__ = [
    "PendingTotpSetup",
    "TwoFactorProfile",
    "ensure_utc_datetime",
]

from .pending_totp_setup_repository import InMemoryPendingTotpSetupRepository
from .two_factor_profile_repository import InMemoryTwoFactorProfileRepository

__all__ = [
    "InMemoryPendingTotpSetupRepository",
    "InMemoryTwoFactorProfileRepository",
]

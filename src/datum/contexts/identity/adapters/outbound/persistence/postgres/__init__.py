from .gateway import IdentityPostgresGateway, PsycopgIdentityPostgresGateway
from .pending_totp_setup_repository import PostgresPendingTotpSetupRepository
from .two_factor_profile_repository import PostgresTwoFactorProfileRepository

__all__ = [
    "IdentityPostgresGateway",
    "PostgresPendingTotpSetupRepository",
    "PostgresTwoFactorProfileRepository",
    "PsycopgIdentityPostgresGateway",
]

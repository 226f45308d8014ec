from .in_memory import InMemoryPendingTotpSetupRepository, InMemoryTwoFactorProfileRepository
from .postgres import (
    IdentityPostgresGateway,
    PostgresPendingTotpSetupRepository,
    PostgresTwoFactorProfileRepository,
    PsycopgIdentityPostgresGateway,
)

__all__ = [
    "IdentityPostgresGateway",
    "InMemoryPendingTotpSetupRepository",
    "InMemoryTwoFactorProfileRepository",
    "PostgresPendingTotpSetupRepository",
    "PostgresTwoFactorProfileRepository",
    "PsycopgIdentityPostgresGateway",
]

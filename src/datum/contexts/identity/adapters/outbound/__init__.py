from .messaging import LogOnlyEmailNotifier, ResendEmailNotifier, ResendEmailNotifierConfig
from .persistence import (
    IdentityPostgresGateway,
    InMemoryPendingTotpSetupRepository,
    InMemoryTwoFactorProfileRepository,
    PostgresPendingTotpSetupRepository,
    PostgresTwoFactorProfileRepository,
    PsycopgIdentityPostgresGateway,
)
from .qr import SvgQrCodeRenderer
from .security import (
    AesGcmTwoFactorSecretCipher,
    BearerTokenCurrentUser,
    HmacSha1TotpProvider,
    Hs256JwtCodec,
)
from .session import InMemoryTwoFactorSessionRegistry
from .time import SystemIdentityClock

__all__ = [
    "AesGcmTwoFactorSecretCipher",
    "BearerTokenCurrentUser",
    "HmacSha1TotpProvider",
    "Hs256JwtCodec",
    "IdentityPostgresGateway",
    "InMemoryPendingTotpSetupRepository",
    "InMemoryTwoFactorProfileRepository",
    "InMemoryTwoFactorSessionRegistry",
    "LogOnlyEmailNotifier",
    "PostgresPendingTotpSetupRepository",
    "PostgresTwoFactorProfileRepository",
    "PsycopgIdentityPostgresGateway",
    "ResendEmailNotifier",
    "ResendEmailNotifierConfig",
    "SvgQrCodeRenderer",
    "SystemIdentityClock",
]

"""
Adapters package for identity bounded context.
"""

from .inbound import (
    AccessDeniedHttpError,
    OptionalCurrentUserDependency,
    RequireAccessDependency,
    RequireCurrentUserDependency,
    build_access_router,
    build_admin_trial_router,
    build_two_factor_totp_router,
    register_access_denied_exception_handler,
)
from .outbound import (
    AesGcmTwoFactorSecretCipher,
    BearerTokenCurrentUser,
    HmacSha1TotpProvider,
    Hs256JwtCodec,
    InMemoryPendingTotpSetupRepository,
    InMemoryTwoFactorProfileRepository,
    InMemoryTwoFactorSessionRegistry,
    SystemIdentityClock,
)

__all__ = [
    "AccessDeniedHttpError",
    "AesGcmTwoFactorSecretCipher",
    "BearerTokenCurrentUser",
    "HmacSha1TotpProvider",
    "Hs256JwtCodec",
    "InMemoryPendingTotpSetupRepository",
    "InMemoryTwoFactorProfileRepository",
    "InMemoryTwoFactorSessionRegistry",
    "OptionalCurrentUserDependency",
    "RequireAccessDependency",
    "RequireCurrentUserDependency",
    "SystemIdentityClock",
    "build_access_router",
    "build_admin_trial_router",
    "build_two_factor_totp_router",
    "register_access_denied_exception_handler",
]

from .clock import IdentityClock
from .current_user import CurrentUser, CurrentUserPrincipal, CurrentUserUnauthorizedError
from .email_notifier import EmailMessage, EmailNotifier
from .jwt_codec import IdentityJwtClaims, JwtCodec, JwtDecodeError
from .pending_totp_setup_repository import PendingTotpSetupRepository
from .qr_code_renderer import QrCodeRenderer
from .two_factor_profile_repository import TwoFactorProfileRepository, TwoFactorStoreError
from .two_factor_secret_cipher import (
    SecretCipherError,
    SecretEnvelopeFormatError,
    TwoFactorSecretCipher,
)
from .two_factor_session_registry import TwoFactorSessionRegistry
from .two_factor_totp_provider import TwoFactorTotpProvider

__all__ = [
    "CurrentUser",
    "CurrentUserPrincipal",
    "CurrentUserUnauthorizedError",
    "EmailMessage",
    "EmailNotifier",
    "IdentityClock",
    "IdentityJwtClaims",
    "JwtCodec",
    "JwtDecodeError",
    "PendingTotpSetupRepository",
    "QrCodeRenderer",
    "SecretCipherError",
    "SecretEnvelopeFormatError",
    "TwoFactorProfileRepository",
    "TwoFactorSecretCipher",
    "TwoFactorSessionRegistry",
    "TwoFactorStoreError",
    "TwoFactorTotpProvider",
]

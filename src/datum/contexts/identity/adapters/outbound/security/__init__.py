from .current_user import BearerTokenCurrentUser
from .jwt import Hs256JwtCodec
from .two_factor import AesGcmTwoFactorSecretCipher, HmacSha1TotpProvider

__all__ = [
    "AesGcmTwoFactorSecretCipher",
    "BearerTokenCurrentUser",
    "Hs256JwtCodec",
    "HmacSha1TotpProvider",
]

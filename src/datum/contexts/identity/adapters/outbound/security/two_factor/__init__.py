from .aes_gcm_secret_cipher import AesGcmTwoFactorSecretCipher
from .hotp_codec import base32_decode, base32_encode, encode_counter, hotp, truncate
from .totp_engine import HmacSha1TotpProvider, verify_totp

__all__ = [
    "AesGcmTwoFactorSecretCipher",
    "HmacSha1TotpProvider",
    "base32_decode",
    "base32_encode",
    "encode_counter",
    "hotp",
    "truncate",
    "verify_totp",
]

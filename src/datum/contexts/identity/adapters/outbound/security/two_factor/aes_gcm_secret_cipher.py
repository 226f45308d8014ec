from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from datum.contexts.identity.application.ports.two_factor_secret_cipher import (
    SecretCipherError,
    SecretEnvelopeFormatError,
    TwoFactorSecretCipher,
)

_KEY_LENGTH = 32
_NONCE_LENGTH = 12
_ENVELOPE_SEPARATOR = ":"


class AesGcmTwoFactorSecretCipher(TwoFactorSecretCipher):
    """
    AesGcmTwoFactorSecretCipher — AES-256-GCM cipher storing secrets as `<ct_b64>:<nonce_b64>`.

    Ciphertext segment includes the 16-byte GCM tag; both segments use standard base64.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_secret_cipher.py
      - apps/api/wiring/modules/identity.py
      - alembic/versions/20261019_0001_identity_two_factor_v1.py
    """

    def __init__(self, *, key_hex: str) -> None:
        """
        Initialize cipher from hex-encoded 256-bit key.

        Args:
            key_hex: 64 hex characters (`ENCRYPTION_KEY`).
        Returns:
            None.
        Assumptions:
            One static key per deployment; rotation is not supported.
        Raises:
            ValueError: If key is empty, not hex, or not exactly 32 bytes.
        Side Effects:
            None.
        """
        normalized_key = key_hex.strip()
        if not normalized_key:
            raise ValueError("AesGcmTwoFactorSecretCipher requires non-empty key_hex")
        try:
            key = bytes.fromhex(normalized_key)
        except ValueError:
            raise ValueError("ENCRYPTION_KEY must be hex-encoded") from None
        if len(key) != _KEY_LENGTH:
            raise ValueError("ENCRYPTION_KEY must decode to exactly 32 bytes (64 hex characters)")
        self._aesgcm = AESGCM(key)

    def encrypt_secret(self, *, secret: str) -> str:
        """
        Encrypt secret text with a fresh nonce.

        Args:
            secret: Plaintext secret; any string is accepted, including empty.
        Returns:
            str: `<base64 ciphertext+tag>:<base64 nonce>` envelope.
        Assumptions:
            Nonce is never reused under the same key (96 random bits per call).
        Raises:
            SecretCipherError: If plaintext cannot be UTF-8 encoded or encryption fails.
        Side Effects:
            Reads OS random source.
        """
        try:
            plaintext = secret.encode("utf-8")
        except UnicodeEncodeError:
            raise SecretCipherError("TOTP secret plaintext is not encodable as UTF-8") from None
        nonce = os.urandom(_NONCE_LENGTH)
        try:
            ciphertext = self._aesgcm.encrypt(nonce, plaintext, None)
        except OverflowError:
            raise SecretCipherError("TOTP secret plaintext is too large to encrypt") from None
        return _ENVELOPE_SEPARATOR.join((_to_b64(raw=ciphertext), _to_b64(raw=nonce)))

    def decrypt_secret(self, *, secret_enc: str) -> str:
        """
        Parse envelope, authenticate and decrypt it.

        Args:
            secret_enc: Envelope produced by `encrypt_secret`.
        Returns:
            str: Plaintext secret.
        Assumptions:
            Corrupted plaintext is never returned; GCM tag check precedes decoding.
        Raises:
            SecretEnvelopeFormatError: If separator is missing, a segment is empty or not
                base64, or nonce has wrong length.
            SecretCipherError: If authentication fails (tampering or wrong key).
        Side Effects:
            None.
        """
        ciphertext_b64, separator, nonce_b64 = secret_enc.partition(_ENVELOPE_SEPARATOR)
        if not separator:
            raise SecretEnvelopeFormatError("Encrypted TOTP secret is missing ':' separator")
        if not ciphertext_b64 or not nonce_b64:
            raise SecretEnvelopeFormatError("Encrypted TOTP secret has an empty segment")

        ciphertext = _from_b64(segment=ciphertext_b64)
        nonce = _from_b64(segment=nonce_b64)
        if len(nonce) != _NONCE_LENGTH:
            raise SecretEnvelopeFormatError("Encrypted TOTP secret nonce must be 12 bytes")

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise SecretCipherError("Encrypted TOTP secret authentication failed") from None
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise SecretCipherError("Encrypted TOTP secret plaintext is not UTF-8") from None


def _to_b64(*, raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _from_b64(*, segment: str) -> bytes:
    """
    Strictly decode standard base64 segment.

    Args:
        segment: Base64 text.
    Returns:
        bytes: Decoded bytes.
    Assumptions:
        Characters outside the base64 alphabet are rejected, not skipped.
    Raises:
        SecretEnvelopeFormatError: If segment is not valid base64.
    Side Effects:
        None.
    """
    try:
        return base64.b64decode(segment.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError):
        raise SecretEnvelopeFormatError(
            "Encrypted TOTP secret segment is not valid base64"
        ) from None

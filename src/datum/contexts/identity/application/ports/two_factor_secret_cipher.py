from __future__ import annotations

from typing import Protocol


class SecretCipherError(ValueError):
    """
    SecretCipherError — encryption or authenticated decryption of a TOTP secret failed.

    Raised for wrong key and tampered ciphertext alike; message never contains key or
    plaintext material.
    """


class SecretEnvelopeFormatError(SecretCipherError):
    """
    SecretEnvelopeFormatError — persisted envelope is not `<ciphertext_b64>:<nonce_b64>`.
    """


class TwoFactorSecretCipher(Protocol):
    """
    TwoFactorSecretCipher — port for authenticated encryption of TOTP secrets at rest.

    Related:
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
      - src/datum/contexts/identity/application/use_cases/validate_two_factor_login.py
      - src/datum/contexts/identity/adapters/outbound/security/two_factor/
        aes_gcm_secret_cipher.py
    """

    def encrypt_secret(self, *, secret: str) -> str:
        """
        Encrypt plaintext base32 secret into a printable envelope.

        Args:
            secret: Base32 TOTP secret in plaintext form.
        Returns:
            str: Envelope text suitable for a TEXT column.
        Assumptions:
            A fresh random nonce is drawn for every call.
        Raises:
            SecretCipherError: If encryption fails.
        Side Effects:
            Uses cryptographically secure random source.
        """
        ...

    def decrypt_secret(self, *, secret_enc: str) -> str:
        """
        Authenticate and decrypt envelope back to plaintext base32 secret.

        Args:
            secret_enc: Envelope produced by `encrypt_secret`.
        Returns:
            str: Plaintext base32 secret.
        Assumptions:
            Plaintext is kept in-memory only and never logged.
        Raises:
            SecretEnvelopeFormatError: If envelope shape or base64 segments are invalid.
            SecretCipherError: If authentication tag check fails.
        Side Effects:
            None.
        """
        ...

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TwoFactorTotpProvider(Protocol):
    """
    TwoFactorTotpProvider — port for RFC 6238 secret generation, URI and code checks.

    Related:
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
      - src/datum/contexts/identity/application/use_cases/complete_two_factor_setup.py
      - src/datum/contexts/identity/adapters/outbound/security/two_factor/
        totp_engine.py
    """

    def create_secret(self) -> str:
        """
        Generate new base32 secret from 20 random bytes.

        Args:
            None.
        Returns:
            str: Unpadded uppercase base32 secret (32 characters).
        Assumptions:
            Secret entropy matches HMAC-SHA1 block needs.
        Raises:
            None.
        Side Effects:
            Uses cryptographically secure random source.
        """
        ...

    def build_otpauth_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build `otpauth://totp/<issuer>:<account>?secret=..&issuer=..` enrollment URI.

        Args:
            secret: Base32 TOTP secret.
            account_label: Account name shown in authenticator apps.
            issuer: Issuer label shown in authenticator apps.
        Returns:
            str: Provisioning URI.
        Assumptions:
            URI is returned to the client but never logged server-side.
        Raises:
            ValueError: If secret or labels are invalid.
        Side Effects:
            None.
        """
        ...

    def verify_code(self, *, secret: str, code: str, at_time: datetime, window: int) -> bool:
        """
        Verify 6-digit code against secret within `window` steps around `at_time`.

        Args:
            secret: Base32 TOTP secret in plaintext form.
            code: User-provided code.
            at_time: UTC timestamp for verification.
            window: Accepted step drift in each direction.
        Returns:
            bool: `True` when any step in the window matches.
        Assumptions:
            Comparison is constant-time per candidate and never short-circuits.
        Raises:
            None.
        Side Effects:
            None.
        """
        ...

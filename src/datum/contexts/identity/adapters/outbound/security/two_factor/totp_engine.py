from __future__ import annotations

import hmac
import secrets
from datetime import datetime

import pyotp

from datum.contexts.identity.adapters.outbound.security.two_factor.hotp_codec import (
    base32_decode,
    base32_encode,
    hotp,
)
from datum.contexts.identity.application.ports.two_factor_totp_provider import (
    TwoFactorTotpProvider,
)
from datum.contexts.identity.domain.entities import ensure_utc_datetime

TOTP_STEP_SECONDS = 30
TOTP_DIGITS = 6
_SECRET_BYTES = 20
_ASCII_DIGITS = frozenset("0123456789")
_COUNTER_LIMIT = 2**64


def is_well_formed_code(code: str) -> bool:
    """Return `True` only for exactly six ASCII digits."""
    return len(code) == TOTP_DIGITS and all(char in _ASCII_DIGITS for char in code)


def verify_totp(
    secret_base32: str,
    submitted_code: str,
    *,
    now: int,
    window: int = 1,
) -> bool:
    """
    Verify six-digit TOTP code against every 30-second step in `[-window, +window]`.

    Args:
        secret_base32: Base32 shared secret.
        submitted_code: Code typed by the user.
        now: Current unix time in seconds.
        window: Accepted step drift on each side of the current step.
    Returns:
        bool: `True` iff some step in the window produces `submitted_code`.
    Assumptions:
        Every candidate is computed and compared in constant time, even after a match, so
        timing does not reveal which step matched.
    Raises:
        ValueError: If window is negative.
    Side Effects:
        None.
    """
    if window < 0:
        raise ValueError("verify_totp window must be >= 0")
    if not is_well_formed_code(submitted_code):
        return False

    key = base32_decode(secret_base32)
    matched = False
    for offset in range(-window, window + 1):
        counter = (now + offset * TOTP_STEP_SECONDS) // TOTP_STEP_SECONDS
        if counter < 0 or counter >= _COUNTER_LIMIT:
            continue
        candidate = hotp(key, counter, TOTP_DIGITS)
        matched |= hmac.compare_digest(candidate, submitted_code)
    return matched


class HmacSha1TotpProvider(TwoFactorTotpProvider):
    """
    HmacSha1TotpProvider — RFC 6238 provider backed by the local HOTP codec.

    Enrollment URIs are built with `pyotp` so labels are quoted exactly the way
    authenticator apps expect.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_totp_provider.py
      - src/datum/contexts/identity/adapters/outbound/security/two_factor/hotp_codec.py
      - apps/api/wiring/modules/identity.py
    """

    def create_secret(self) -> str:
        """
        Generate new base32 secret from 20 CSPRNG bytes.

        Args:
            None.
        Returns:
            str: 32-character unpadded base32 secret.
        Assumptions:
            Raw bytes are never stored; only the base32 text is encrypted.
        Raises:
            None.
        Side Effects:
            Reads OS random source.
        """
        return base32_encode(secrets.token_bytes(_SECRET_BYTES))

    def build_otpauth_uri(self, *, secret: str, account_label: str, issuer: str) -> str:
        """
        Build `otpauth://totp/<issuer>:<account>?secret=..&issuer=..` URI.

        Args:
            secret: Base32 TOTP secret.
            account_label: Account name (email) shown in authenticator apps.
            issuer: Issuer label shown in authenticator apps.
        Returns:
            str: Provisioning URI.
        Assumptions:
            Default digits, period and algorithm are omitted from the URI.
        Raises:
            ValueError: If secret, account label or issuer is empty.
        Side Effects:
            None.
        """
        normalized_secret = secret.strip().upper()
        normalized_label = account_label.strip()
        normalized_issuer = issuer.strip()
        if not normalized_secret:
            raise ValueError("HmacSha1TotpProvider requires non-empty secret")
        if not normalized_label:
            raise ValueError("HmacSha1TotpProvider requires non-empty account_label")
        if not normalized_issuer:
            raise ValueError("HmacSha1TotpProvider requires non-empty issuer")

        uri = pyotp.TOTP(normalized_secret).provisioning_uri(
            name=normalized_label,
            issuer_name=normalized_issuer,
        )
        if not uri.startswith("otpauth://totp/"):
            raise ValueError("HmacSha1TotpProvider produced invalid otpauth URI")
        return uri

    def verify_code(self, *, secret: str, code: str, at_time: datetime, window: int) -> bool:
        """
        Verify code at UTC timestamp with the given step window.

        Args:
            secret: Base32 TOTP secret.
            code: User-submitted code.
            at_time: Timezone-aware UTC datetime.
            window: Accepted step drift on each side.
        Returns:
            bool: Verification outcome.
        Assumptions:
            Sub-second precision is truncated.
        Raises:
            ValueError: If `at_time` is not UTC or window is negative.
        Side Effects:
            None.
        """
        now = ensure_utc_datetime(value=at_time, field_name="at_time")
        return verify_totp(secret, code, now=int(now.timestamp()), window=window)

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from datum.contexts.identity.domain.entities import ensure_utc_datetime
from datum.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class IdentityJwtClaims:
    """
    IdentityJwtClaims — typed claims of the identity provider bearer token.

    Related:
      - src/datum/contexts/identity/adapters/outbound/security/jwt/hs256_jwt_codec.py
      - src/datum/contexts/identity/adapters/outbound/security/current_user/
        bearer_token_current_user.py
    """

    user_id: UserId
    email: str | None
    session_id: str | None
    issued_at: datetime
    expires_at: datetime

    def __post_init__(self) -> None:
        """
        Validate claims datetime invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            `issued_at` and `expires_at` are timezone-aware UTC datetimes.
        Raises:
            ValueError: If datetimes are naive, non-UTC, or expiration is not after issue time.
        Side Effects:
            None.
        """
        ensure_utc_datetime(value=self.issued_at, field_name="issued_at")
        ensure_utc_datetime(value=self.expires_at, field_name="expires_at")
        if self.expires_at <= self.issued_at:
            raise ValueError("IdentityJwtClaims.expires_at must be after issued_at")


class JwtDecodeError(ValueError):
    """
    JwtDecodeError — deterministic bearer token verification failure.
    """

    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class JwtCodec(Protocol):
    """
    JwtCodec — port signing and verifying identity provider tokens.

    Related:
      - src/datum/contexts/identity/adapters/outbound/security/jwt/hs256_jwt_codec.py
      - src/datum/contexts/identity/adapters/outbound/security/current_user/
        bearer_token_current_user.py
    """

    def encode(self, *, claims: IdentityJwtClaims) -> str:
        """
        Sign claims into compact JWT string.

        Args:
            claims: Typed identity claims.
        Returns:
            str: Signed compact JWT.
        Assumptions:
            Signing secret is shared with the identity provider.
        Raises:
            ValueError: If claims cannot be serialized.
        Side Effects:
            None.
        """
        ...

    def decode(self, *, token: str) -> IdentityJwtClaims:
        """
        Verify token signature and temporal claims, then return typed claims.

        Args:
            token: Compact JWT token string.
        Returns:
            IdentityJwtClaims: Verified claims.
        Assumptions:
            Token was issued by the configured identity provider.
        Raises:
            JwtDecodeError: If signature or claims are invalid.
        Side Effects:
            None.
        """
        ...

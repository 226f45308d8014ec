from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from datum.contexts.identity.application.ports.clock import IdentityClock
from datum.contexts.identity.application.ports.jwt_codec import (
    IdentityJwtClaims,
    JwtCodec,
    JwtDecodeError,
)
from datum.contexts.identity.domain.entities import ensure_utc_datetime
from datum.shared_kernel.primitives import UserId

_ALGORITHM = "HS256"
_ENCODED_HEADER = base64.urlsafe_b64encode(
    json.dumps({"alg": _ALGORITHM, "typ": "JWT"}, separators=(",", ":")).encode("utf-8")
).decode("ascii").rstrip("=")


@dataclass(frozen=True, slots=True)
class _CompactToken:
    """
    Decoded segments of `header.payload.signature` with the exact signed bytes.
    """

    signing_input: bytes
    header: Mapping[str, Any]
    payload: Mapping[str, Any]
    signature: bytes


class Hs256JwtCodec(JwtCodec):
    """
    Hs256JwtCodec — HS256 codec for bearer tokens issued by the identity provider.

    Decode checks run in a fixed order so the failure code is stable for a given token:
    shape, header algorithm, signature, claims, expiry.

    Related:
      - src/datum/contexts/identity/application/ports/jwt_codec.py
      - src/datum/contexts/identity/adapters/outbound/security/current_user/
        bearer_token_current_user.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(
        self,
        *,
        secret_key: str,
        clock: IdentityClock,
        leeway_seconds: int = 0,
    ) -> None:
        """
        Build codec around the shared HMAC key.

        Args:
            secret_key: Shared signing key (`IDENTITY_JWT_SECRET`).
            clock: UTC clock used for `exp` checks.
            leeway_seconds: Grace period accepted after `exp`.
        Returns:
            None.
        Assumptions:
            Identity provider signs with the same key.
        Raises:
            ValueError: If key is blank, clock is missing or leeway is negative.
        Side Effects:
            None.
        """
        normalized_secret = secret_key.strip()
        if not normalized_secret:
            raise ValueError("Hs256JwtCodec requires non-empty secret_key")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("Hs256JwtCodec requires clock")
        if leeway_seconds < 0:
            raise ValueError("Hs256JwtCodec requires leeway_seconds >= 0")

        self._key = normalized_secret.encode("utf-8")
        self._clock = clock
        self._leeway_seconds = leeway_seconds

    def encode(self, *, claims: IdentityJwtClaims) -> str:
        """
        Sign claims as compact JWT; `None` optional claims are left out.

        Args:
            claims: Identity JWT claims.
        Returns:
            str: `header.payload.signature` string.
        Assumptions:
            Payload keys are sorted so equal claims give equal tokens.
        Raises:
            ValueError: If claims cannot be serialized.
        Side Effects:
            None.
        """
        payload: dict[str, Any] = {
            "sub": str(claims.user_id),
            "iat": int(claims.issued_at.timestamp()),
            "exp": int(claims.expires_at.timestamp()),
        }
        if claims.email is not None:
            payload["email"] = claims.email
        if claims.session_id is not None:
            payload["session_id"] = claims.session_id

        body = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
        signed_part = f"{_ENCODED_HEADER}.{_b64url_encode(body)}"
        return f"{signed_part}.{_b64url_encode(self._sign(signed_part.encode('ascii')))}"

    def decode(self, *, token: str) -> IdentityJwtClaims:
        """
        Verify token and map its payload to typed claims.

        Args:
            token: Compact JWT token.
        Returns:
            IdentityJwtClaims: Verified claims.
        Assumptions:
            `sub`, `iat`, `exp` are required; `email` and `session_id` are optional.
        Raises:
            JwtDecodeError: With code `missing_token`, `invalid_token_format`,
                `invalid_header`, `invalid_signature`, `invalid_claims` or `expired_token`.
        Side Effects:
            None.
        """
        compact = _split_token(token=token)
        if compact.header.get("alg") != _ALGORITHM:
            raise JwtDecodeError(
                code="invalid_header",
                message="JWT header must contain alg=HS256",
            )
        if not hmac.compare_digest(self._sign(compact.signing_input), compact.signature):
            raise JwtDecodeError(
                code="invalid_signature",
                message="JWT signature verification failed",
            )

        claims = _claims_from_payload(payload=compact.payload)
        now = ensure_utc_datetime(value=self._clock.now(), field_name="clock.now")
        if claims.expires_at.timestamp() <= now.timestamp() - self._leeway_seconds:
            raise JwtDecodeError(code="expired_token", message="JWT token is expired")
        return claims

    def _sign(self, signing_input: bytes) -> bytes:
        return hmac.new(self._key, signing_input, hashlib.sha256).digest()


def _split_token(*, token: str) -> _CompactToken:
    """
    Split compact token and decode its header, payload and signature segments.

    Args:
        token: Raw token text, possibly padded with whitespace.
    Returns:
        _CompactToken: Decoded segments.
    Assumptions:
        Segments use unpadded base64url alphabet.
    Raises:
        JwtDecodeError: `missing_token` for blank input, otherwise `invalid_token_format`.
    Side Effects:
        None.
    """
    stripped = token.strip()
    if not stripped:
        raise JwtDecodeError(code="missing_token", message="JWT token is empty")
    parts = stripped.split(".")
    if len(parts) != 3:
        raise JwtDecodeError(
            code="invalid_token_format",
            message="JWT token must contain 3 dot-separated segments",
        )
    try:
        return _CompactToken(
            signing_input=f"{parts[0]}.{parts[1]}".encode("ascii"),
            header=_json_object(_b64url_decode(parts[0])),
            payload=_json_object(_b64url_decode(parts[1])),
            signature=_b64url_decode(parts[2]),
        )
    except (UnicodeError, ValueError) as error:
        raise JwtDecodeError(
            code="invalid_token_format",
            message="JWT segments must be base64url-encoded JSON objects",
        ) from error


def _claims_from_payload(*, payload: Mapping[str, Any]) -> IdentityJwtClaims:
    """
    Map verified JWT payload to `IdentityJwtClaims`.

    Args:
        payload: Decoded payload object.
    Returns:
        IdentityJwtClaims: Typed claims.
    Assumptions:
        `iat` and `exp` are integer seconds since epoch.
    Raises:
        JwtDecodeError: `invalid_claims` when a claim is missing or malformed.
    Side Effects:
        None.
    """
    subject = payload.get("sub")
    if not isinstance(subject, str) or payload.get("iat") is None or payload.get("exp") is None:
        raise JwtDecodeError(
            code="invalid_claims",
            message="JWT payload must contain sub, iat, and exp",
        )
    try:
        return IdentityJwtClaims(
            user_id=UserId.from_string(subject),
            email=_optional_string(payload=payload, name="email"),
            session_id=_optional_string(payload=payload, name="session_id"),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )
    except (OSError, OverflowError, TypeError, ValueError) as error:
        raise JwtDecodeError(
            code="invalid_claims",
            message="JWT payload claims are malformed",
        ) from error


def _optional_string(*, payload: Mapping[str, Any], name: str) -> str | None:
    raw = payload.get(name)
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"JWT claim {name} must be a string")
    return raw.strip() or None


def _json_object(raw: bytes) -> Mapping[str, Any]:
    loaded = json.loads(raw.decode("utf-8"))
    if not isinstance(loaded, dict):
        raise ValueError("JWT segment must be a JSON object")
    return loaded


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except binascii.Error as error:
        raise ValueError("JWT segment is not valid base64url") from error

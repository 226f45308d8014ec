from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone

import pytest

from datum.contexts.identity.adapters.outbound.security.current_user import (
    BearerTokenCurrentUser,
)
from datum.contexts.identity.adapters.outbound.security.jwt import Hs256JwtCodec
from datum.contexts.identity.application.ports import (
    CurrentUserUnauthorizedError,
    IdentityClock,
    IdentityJwtClaims,
    JwtDecodeError,
)
from datum.shared_kernel.primitives import UserId

_SECRET = "test-identity-jwt-secret"
_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
_USER_ID = UserId.from_string("00000000-0000-0000-0000-0000000000a1")


class _FixedClock(IdentityClock):
    """
    Deterministic UTC clock for bearer token tests.
    """

    def __init__(self, *, now_value: datetime) -> None:
        self._now_value = now_value

    def now(self) -> datetime:
        return self._now_value


def _codec() -> Hs256JwtCodec:
    return Hs256JwtCodec(secret_key=_SECRET, clock=_FixedClock(now_value=_NOW))


def _claims(
    *,
    email: str | None = "alice@example.com",
    session_id: str | None = "sess-1",
    expires_in: timedelta = timedelta(hours=1),
) -> IdentityJwtClaims:
    return IdentityJwtClaims(
        user_id=_USER_ID,
        email=email,
        session_id=session_id,
        issued_at=_NOW - timedelta(minutes=1),
        expires_at=_NOW + expires_in,
    )


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _sign(*, header: dict[str, object], payload: dict[str, object]) -> str:
    header_segment = _b64url(json.dumps(header).encode("utf-8"))
    payload_segment = _b64url(json.dumps(payload).encode("utf-8"))
    signature = hmac.new(
        _SECRET.encode("utf-8"),
        f"{header_segment}.{payload_segment}".encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return f"{header_segment}.{payload_segment}.{_b64url(signature)}"


def test_codec_round_trips_claims_with_optional_fields() -> None:
    codec = _codec()

    decoded = codec.decode(token=codec.encode(claims=_claims()))

    assert decoded.user_id == _USER_ID
    assert decoded.email == "alice@example.com"
    assert decoded.session_id == "sess-1"
    assert decoded.expires_at == _NOW + timedelta(hours=1)


def test_codec_accepts_externally_signed_token_without_optional_claims() -> None:
    """
    Verify token signed by another HS256 implementation decodes without email/session_id.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Identity provider may omit optional claims.
    Raises:
        AssertionError: If decoded claims differ from payload.
    Side Effects:
        None.
    """
    token = _sign(
        header={"alg": "HS256", "typ": "JWT"},
        payload={
            "sub": str(_USER_ID),
            "iat": int(_NOW.timestamp()) - 60,
            "exp": int(_NOW.timestamp()) + 60,
        },
    )

    decoded = _codec().decode(token=token)

    assert decoded.email is None
    assert decoded.session_id is None


@pytest.mark.parametrize(
    ("token", "code"),
    [
        ("", "missing_token"),
        ("only.two", "invalid_token_format"),
        ("a.b.c.d", "invalid_token_format"),
        ("!!!.e30.sig", "invalid_token_format"),
    ],
)
def test_codec_rejects_malformed_tokens(token: str, code: str) -> None:
    with pytest.raises(JwtDecodeError) as error_info:
        _codec().decode(token=token)

    assert error_info.value.code == code


def test_codec_rejects_wrong_alg_signature_claims_and_expiry() -> None:
    codec = _codec()
    valid = codec.encode(claims=_claims())
    header_segment, payload_segment, signature_segment = valid.split(".")
    forged_signature = "A" + signature_segment[1:] if signature_segment[0] != "A" else (
        "B" + signature_segment[1:]
    )
    iat = int(_NOW.timestamp()) - 60

    cases = [
        (_sign(header={"alg": "none"}, payload={"sub": str(_USER_ID)}), "invalid_header"),
        (f"{header_segment}.{payload_segment}.{forged_signature}", "invalid_signature"),
        (_sign(header={"alg": "HS256"}, payload={"sub": str(_USER_ID)}), "invalid_claims"),
        (
            _sign(
                header={"alg": "HS256"},
                payload={"sub": "not-a-uuid", "iat": iat, "exp": iat + 600},
            ),
            "invalid_claims",
        ),
        (
            _sign(
                header={"alg": "HS256"},
                payload={"sub": str(_USER_ID), "iat": iat - 600, "exp": iat},
            ),
            "expired_token",
        ),
    ]
    for token, code in cases:
        with pytest.raises(JwtDecodeError) as error_info:
            codec.decode(token=token)
        assert error_info.value.code == code, token


def test_current_user_resolves_principal_with_session_from_claims() -> None:
    codec = _codec()
    current_user = BearerTokenCurrentUser(jwt_codec=codec)

    principal = current_user.require(token=codec.encode(claims=_claims()))

    assert principal.user_id == _USER_ID
    assert principal.email == "alice@example.com"
    assert principal.session_id == "sess-1"
    assert principal.account_label == "alice@example.com"


def test_current_user_derives_stable_session_id_from_token_hash() -> None:
    """
    Verify tokens without `session_id` get a deterministic per-token session identifier.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Same token always maps to the same session; different tokens to different ones.
    Raises:
        AssertionError: If derived identifiers are unstable or collide.
    Side Effects:
        None.
    """
    codec = _codec()
    current_user = BearerTokenCurrentUser(jwt_codec=codec)
    first_token = codec.encode(claims=_claims(session_id=None, email=None))
    second_token = codec.encode(
        claims=_claims(session_id=None, email=None, expires_in=timedelta(hours=2))
    )

    first = current_user.require(token=first_token)
    again = current_user.require(token=first_token)
    second = current_user.require(token=second_token)

    assert first.session_id == again.session_id
    assert first.session_id != second.session_id
    assert len(first.session_id) == 32
    assert first.account_label == str(_USER_ID)


@pytest.mark.parametrize("token", [None, "", "   "])
def test_current_user_rejects_missing_token(token: str | None) -> None:
    current_user = BearerTokenCurrentUser(jwt_codec=_codec())

    with pytest.raises(CurrentUserUnauthorizedError) as error_info:
        current_user.require(token=token)

    assert error_info.value.code == "unauthorized"


def test_current_user_maps_decode_errors_to_unauthorized_with_codec_code() -> None:
    current_user = BearerTokenCurrentUser(jwt_codec=_codec())

    with pytest.raises(CurrentUserUnauthorizedError) as error_info:
        current_user.require(token="a.b")

    assert error_info.value.code == "invalid_token_format"
    assert error_info.value.__cause__ is None

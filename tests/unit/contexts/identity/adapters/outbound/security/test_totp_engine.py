from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, unquote, urlparse

import pyotp
import pytest

from datum.contexts.identity.adapters.outbound.security.two_factor import HmacSha1TotpProvider
from datum.contexts.identity.adapters.outbound.security.two_factor.totp_engine import (
    is_well_formed_code,
    verify_totp,
)

_SECRET = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"
_NOW = 1_760_000_010


def _code_at(*, timestamp: int) -> str:
    return pyotp.TOTP(_SECRET).at(timestamp)


@pytest.mark.parametrize("drift_seconds", [-30, 0, 30])
def test_verify_totp_accepts_adjacent_steps_with_default_window(drift_seconds: int) -> None:
    """
    Verify codes from previous, current and next 30-second step are accepted.

    Args:
        drift_seconds: Offset between authenticator clock and server clock.
    Returns:
        None.
    Assumptions:
        `pyotp` computes reference codes independently.
    Raises:
        AssertionError: If one of in-window codes is rejected.
    Side Effects:
        None.
    """
    code = _code_at(timestamp=_NOW + drift_seconds)

    assert verify_totp(_SECRET, code, now=_NOW) is True


@pytest.mark.parametrize("drift_seconds", [-90, -60, 60, 90])
def test_verify_totp_rejects_codes_outside_window(drift_seconds: int) -> None:
    code = _code_at(timestamp=_NOW + drift_seconds)
    if code in {_code_at(timestamp=_NOW + offset) for offset in (-30, 0, 30)}:
        pytest.skip("reference codes collide across steps")

    assert verify_totp(_SECRET, code, now=_NOW) is False


def test_verify_totp_window_zero_accepts_only_current_step() -> None:
    current = _code_at(timestamp=_NOW)
    previous = _code_at(timestamp=_NOW - 30)

    assert verify_totp(_SECRET, current, now=_NOW, window=0) is True
    if previous != current:
        assert verify_totp(_SECRET, previous, now=_NOW, window=0) is False


@pytest.mark.parametrize(
    "submitted",
    ["", "12345", "1234567", "12345a", " 123456", "１２３４５６", "12 456"],
)
def test_verify_totp_rejects_malformed_codes_without_error(submitted: str) -> None:
    assert is_well_formed_code(submitted) is False
    assert verify_totp(_SECRET, submitted, now=_NOW) is False


def test_verify_totp_rejects_negative_window() -> None:
    with pytest.raises(ValueError, match="window"):
        verify_totp(_SECRET, "123456", now=_NOW, window=-1)


def test_verify_totp_skips_negative_counters_near_epoch() -> None:
    """
    Verify window steps before unix epoch are skipped instead of failing.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        At `now=0` the previous step would have counter -1.
    Raises:
        AssertionError: If verification fails for the epoch step.
    Side Effects:
        None.
    """
    assert verify_totp(_SECRET, _code_at(timestamp=0), now=0) is True


def test_provider_secret_is_32_char_base32_and_unique() -> None:
    provider = HmacSha1TotpProvider()

    first = provider.create_secret()
    second = provider.create_secret()

    assert len(first) == 32
    assert set(first) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")
    assert first != second


def test_provider_builds_otpauth_uri_with_issuer_label_and_secret() -> None:
    provider = HmacSha1TotpProvider()

    uri = provider.build_otpauth_uri(
        secret=_SECRET,
        account_label="alice@example.com",
        issuer="Datum",
    )

    parsed = urlparse(uri)
    assert parsed.scheme == "otpauth"
    assert parsed.netloc == "totp"
    assert unquote(parsed.path) == "/Datum:alice@example.com"
    query = parse_qs(parsed.query)
    assert query["secret"] == [_SECRET]
    assert query["issuer"] == ["Datum"]


def test_provider_rejects_empty_uri_parts() -> None:
    provider = HmacSha1TotpProvider()

    with pytest.raises(ValueError):
        provider.build_otpauth_uri(secret=" ", account_label="a@b.c", issuer="Datum")
    with pytest.raises(ValueError):
        provider.build_otpauth_uri(secret=_SECRET, account_label="", issuer="Datum")


def test_provider_verify_code_requires_utc_datetime() -> None:
    provider = HmacSha1TotpProvider()
    at_time = datetime.fromtimestamp(_NOW, tz=timezone.utc)

    assert provider.verify_code(
        secret=_SECRET,
        code=_code_at(timestamp=_NOW),
        at_time=at_time,
        window=1,
    )
    with pytest.raises(ValueError):
        provider.verify_code(
            secret=_SECRET,
            code="123456",
            at_time=at_time.astimezone(timezone(timedelta(hours=3))),
            window=1,
        )

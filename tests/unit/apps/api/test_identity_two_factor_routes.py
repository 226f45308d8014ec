from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pyotp
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apps.api.common import register_api_error_handlers
from apps.api.routes import build_identity_router
from datum.contexts.identity.adapters.inbound.api.deps import (
    OptionalCurrentUserDependency,
    RequireCurrentUserDependency,
    register_access_denied_exception_handler,
)
from datum.contexts.identity.adapters.outbound.persistence.in_memory import (
    InMemoryPendingTotpSetupRepository,
    InMemoryTwoFactorProfileRepository,
)
from datum.contexts.identity.adapters.outbound.qr import SvgQrCodeRenderer
from datum.contexts.identity.adapters.outbound.security.current_user import (
    BearerTokenCurrentUser,
)
from datum.contexts.identity.adapters.outbound.security.jwt import Hs256JwtCodec
from datum.contexts.identity.adapters.outbound.security.two_factor import (
    AesGcmTwoFactorSecretCipher,
    HmacSha1TotpProvider,
)
from datum.contexts.identity.adapters.outbound.session import InMemoryTwoFactorSessionRegistry
from datum.contexts.identity.application.ports.clock import IdentityClock
from datum.contexts.identity.application.ports.jwt_codec import IdentityJwtClaims
from datum.contexts.identity.application.use_cases import (
    BeginTwoFactorSetupUseCase,
    CompleteTwoFactorSetupUseCase,
    EndTwoFactorSessionUseCase,
    EvaluateAccessUseCase,
    ResetTrialUseCase,
    TwoFactorPolicy,
    ValidateTwoFactorLoginUseCase,
)
from datum.shared_kernel.primitives import UserId

_KEY_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
_JWT_SECRET = "route-test-jwt-secret"
_T0 = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)
_USER_ID = UserId.from_string("00000000-0000-0000-0000-0000000000f1")


class _MutableClock(IdentityClock):
    """
    UTC clock that tests move forward explicitly.
    """

    def __init__(self, *, now_value: datetime) -> None:
        """
        Initialize clock with starting UTC datetime.

        Args:
            now_value: Starting timezone-aware UTC datetime.
        Returns:
            None.
        Assumptions:
            Same clock drives JWT validation and use-case timestamps.
        Raises:
            None.
        Side Effects:
            None.
        """
        self.now_value = now_value

    def now(self) -> datetime:
        return self.now_value


@dataclass
class _RouteHarness:
    client: TestClient
    clock: _MutableClock
    codec: Hs256JwtCodec
    profiles: InMemoryTwoFactorProfileRepository
    pending: InMemoryPendingTotpSetupRepository


def _build_harness() -> _RouteHarness:
    """
    Build FastAPI app with identity router wired to in-memory adapters and a mutable clock.

    Args:
        None.
    Returns:
        _RouteHarness: Client plus stores and clock for assertions.
    Assumptions:
        App composition mirrors `apps.api.main.app.create_app`.
    Raises:
        None.
    Side Effects:
        None.
    """
    clock = _MutableClock(now_value=_T0)
    profiles = InMemoryTwoFactorProfileRepository()
    pending = InMemoryPendingTotpSetupRepository()
    sessions = InMemoryTwoFactorSessionRegistry()
    cipher = AesGcmTwoFactorSecretCipher(key_hex=_KEY_HEX)
    provider = HmacSha1TotpProvider()
    policy = TwoFactorPolicy()
    codec = Hs256JwtCodec(secret_key=_JWT_SECRET, clock=clock)
    current_user = BearerTokenCurrentUser(jwt_codec=codec)

    app = FastAPI()
    register_api_error_handlers(app=app)
    register_access_denied_exception_handler(app=app)
    app.include_router(
        build_identity_router(
            begin_setup=BeginTwoFactorSetupUseCase(
                profile_repository=profiles,
                pending_repository=pending,
                secret_cipher=cipher,
                totp_provider=provider,
                qr_renderer=SvgQrCodeRenderer(),
                policy=policy,
            ),
            complete_setup=CompleteTwoFactorSetupUseCase(
                profile_repository=profiles,
                pending_repository=pending,
                secret_cipher=cipher,
                totp_provider=provider,
                policy=policy,
            ),
            validate_login=ValidateTwoFactorLoginUseCase(
                profile_repository=profiles,
                secret_cipher=cipher,
                totp_provider=provider,
                session_registry=sessions,
                policy=policy,
            ),
            end_session=EndTwoFactorSessionUseCase(session_registry=sessions),
            evaluate_access=EvaluateAccessUseCase(
                profile_repository=profiles,
                session_registry=sessions,
            ),
            reset_trial=ResetTrialUseCase(
                profile_repository=profiles,
                email_notifier=_AcceptingNotifier(),
                policy=policy,
            ),
            current_user_dependency=RequireCurrentUserDependency(current_user=current_user),
            optional_user_dependency=OptionalCurrentUserDependency(current_user=current_user),
            clock=clock,
            admin_email="admin@datum.example",
        )
    )
    return _RouteHarness(
        client=TestClient(app),
        clock=clock,
        codec=codec,
        profiles=profiles,
        pending=pending,
    )


class _AcceptingNotifier:
    def send(self, *, message: object) -> bool:
        return True


def _auth_headers(
    harness: _RouteHarness,
    *,
    user_id: UserId = _USER_ID,
    email: str = "alice@example.com",
    session_id: str = "sess-1",
) -> dict[str, str]:
    token = harness.codec.encode(
        claims=IdentityJwtClaims(
            user_id=user_id,
            email=email,
            session_id=session_id,
            issued_at=_T0,
            expires_at=_T0 + timedelta(days=30),
        )
    )
    return {"Authorization": f"Bearer {token}"}


def _setup_and_verify(harness: _RouteHarness, *, headers: dict[str, str]) -> str:
    setup = harness.client.post("/totp/setup", headers=headers)
    assert setup.status_code == 200
    secret = setup.json()["secret"]
    verify = harness.client.post(
        "/totp/verify-setup",
        headers=headers,
        json={"token": pyotp.TOTP(secret).at(harness.clock.now())},
    )
    assert verify.status_code == 200
    return secret


def test_setup_route_returns_qr_secret_and_otpauth_uri() -> None:
    """
    Verify `/totp/setup` payload keys and that only an encrypted secret is stored.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        `qrCodeImage` is serialized under its camelCase alias.
    Raises:
        AssertionError: If payload shape or stored state is wrong.
    Side Effects:
        None.
    """
    harness = _build_harness()

    response = harness.client.post("/totp/setup", headers=_auth_headers(harness))

    assert response.status_code == 200
    payload = response.json()
    assert set(payload.keys()) == {"success", "qrCodeImage", "secret", "otpauth_uri"}
    assert payload["success"] is True
    assert payload["qrCodeImage"].startswith("data:image/svg+xml;base64,")
    assert b"<svg" in base64.b64decode(payload["qrCodeImage"].split(",", 1)[1])
    assert payload["otpauth_uri"].startswith("otpauth://totp/Datum:")
    stored = harness.pending.find_by_user_id(user_id=_USER_ID)
    assert stored is not None
    assert payload["secret"] not in stored.totp_secret_enc


def test_setup_routes_require_bearer_token() -> None:
    harness = _build_harness()

    missing = harness.client.post("/totp/setup")
    garbage = harness.client.post("/totp/setup", headers={"Authorization": "Bearer a.b"})
    basic = harness.client.post("/totp/verify-setup", headers={"Authorization": "Basic xyz"})

    assert missing.status_code == 401
    assert missing.json() == {
        "success": False,
        "error": "Authentication required",
        "code": "unauthorized",
    }
    assert garbage.status_code == 401
    assert garbage.json()["code"] == "invalid_token_format"
    assert basic.status_code == 401


def test_verify_setup_error_payloads() -> None:
    """
    Verify missing token, unknown setup, invalid code and double setup payloads.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Invalid code keeps pending setup so a retry can succeed.
    Raises:
        AssertionError: If status or payload differs.
    Side Effects:
        None.
    """
    harness = _build_harness()
    headers = _auth_headers(harness)

    no_setup = harness.client.post("/totp/verify-setup", headers=headers, json={"token": "123456"})
    assert no_setup.status_code == 404
    assert no_setup.json()["code"] == "two_factor_setup_not_found"

    secret = harness.client.post("/totp/setup", headers=headers).json()["secret"]
    missing = harness.client.post("/totp/verify-setup", headers=headers, json={})
    assert missing.status_code == 422
    assert missing.json() == {
        "success": False,
        "error": "Token is required.",
        "code": "validation_error",
    }

    valid_codes = {
        pyotp.TOTP(secret).at(_T0 + timedelta(seconds=offset)) for offset in (-30, 0, 30)
    }
    wrong = next(code for code in ("000000", "111111", "222222") if code not in valid_codes)
    invalid = harness.client.post("/totp/verify-setup", headers=headers, json={"token": wrong})
    assert invalid.status_code == 422
    assert invalid.json()["code"] == "invalid_two_factor_code"

    ok = harness.client.post(
        "/totp/verify-setup",
        headers=headers,
        json={"token": pyotp.TOTP(secret).at(_T0)},
    )
    assert ok.json() == {"success": True}

    again = harness.client.post("/totp/setup", headers=headers)
    assert again.status_code == 409
    assert again.json()["code"] == "two_factor_already_enabled"


def test_verify_setup_after_ttl_returns_gone() -> None:
    harness = _build_harness()
    headers = _auth_headers(harness)
    secret = harness.client.post("/totp/setup", headers=headers).json()["secret"]
    harness.clock.now_value = _T0 + timedelta(minutes=16)

    response = harness.client.post(
        "/totp/verify-setup",
        headers=headers,
        json={"token": pyotp.TOTP(secret).at(harness.clock.now())},
    )

    assert response.status_code == 410
    assert response.json()["code"] == "two_factor_setup_expired"


def test_validate_login_unlocks_protected_access_until_sign_out() -> None:
    harness = _build_harness()
    headers = _auth_headers(harness)
    secret = _setup_and_verify(harness, headers=headers)
    protected = {"path": "/dashboard", "requires_totp": "true"}

    before = harness.client.get("/access", headers=headers, params=protected)
    assert before.json() == {"decision": "redirect_login", "redirect_to": "/login"}

    login = harness.client.post(
        "/totp/validate-login",
        headers=headers,
        json={"token": pyotp.TOTP(secret).at(_T0)},
    )
    assert login.status_code == 200
    assert login.json() == {"success": True, "trial_expired": False}

    after = harness.client.get("/access", headers=headers, params=protected)
    assert after.json() == {"decision": "allow", "redirect_to": None}
    other_session = harness.client.get(
        "/access",
        headers=_auth_headers(harness, session_id="sess-2"),
        params=protected,
    )
    assert other_session.json()["decision"] == "redirect_login"

    sign_out = harness.client.post("/totp/sign-out", headers=headers)
    assert sign_out.json() == {"success": True}
    final = harness.client.get("/access", headers=headers, params=protected)
    assert final.json()["decision"] == "redirect_login"


def test_validate_login_reports_trial_expired_with_valid_code() -> None:
    """
    Verify expired trial yields 403 with `trial_expired: true` even for a correct code.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Default trial is 3 days from setup completion.
    Raises:
        AssertionError: If trial expiry is not reported distinctly.
    Side Effects:
        None.
    """
    harness = _build_harness()
    headers = _auth_headers(harness)
    secret = _setup_and_verify(harness, headers=headers)
    harness.clock.now_value = _T0 + timedelta(days=3, seconds=1)

    response = harness.client.post(
        "/totp/validate-login",
        headers=headers,
        json={"token": pyotp.TOTP(secret).at(harness.clock.now())},
    )

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "error": "Your trial has expired.",
        "code": "trial_expired",
        "trial_expired": True,
    }
    access = harness.client.get("/access", headers=headers, params={"path": "/dashboard"})
    assert access.json() == {"decision": "redirect_trial_expired", "redirect_to": "/trial-expired"}


def test_validate_login_without_enabled_totp_is_conflict() -> None:
    harness = _build_harness()

    response = harness.client.post(
        "/totp/validate-login",
        headers=_auth_headers(harness),
        json={"token": "123456"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "two_factor_not_enabled"


@pytest.mark.parametrize("token", ["12a45", "abc", "1234567"])
def test_malformed_token_is_rejected_as_invalid_format(token: str) -> None:
    """
    Verify malformed tokens get 422 `validation_error` regardless of setup or trial state.

    Args:
        token: Malformed request token.
    Returns:
        None.
    Assumptions:
        Without validation first, these calls would answer 404 and 403 respectively.
    Raises:
        AssertionError: If status or payload differs.
    Side Effects:
        None.
    """
    expected = {
        "success": False,
        "error": "Invalid token format.",
        "code": "validation_error",
    }
    harness = _build_harness()
    headers = _auth_headers(harness)

    no_setup = harness.client.post("/totp/verify-setup", headers=headers, json={"token": token})
    assert no_setup.status_code == 422
    assert no_setup.json() == expected

    _setup_and_verify(harness, headers=headers)
    harness.clock.now_value = _T0 + timedelta(days=3, seconds=1)
    expired = harness.client.post("/totp/validate-login", headers=headers, json={"token": token})
    assert expired.status_code == 422
    assert expired.json() == expected


def test_access_route_answers_anonymous_and_setup_page() -> None:
    harness = _build_harness()
    headers = _auth_headers(harness)

    anonymous = harness.client.get("/access", params={"path": "/dashboard"})
    public = harness.client.get("/access", params={"path": "/", "requires_auth": "false"})
    needs_setup = harness.client.get("/access", headers=headers, params={"path": "/dashboard"})
    setup_page = harness.client.get("/access", headers=headers, params={"path": "/totp-setup"})

    assert anonymous.json() == {"decision": "redirect_login", "redirect_to": "/login"}
    assert public.json() == {"decision": "allow", "redirect_to": None}
    assert needs_setup.json() == {"decision": "redirect_totp_setup", "redirect_to": "/totp-setup"}
    assert setup_page.json() == {"decision": "allow", "redirect_to": None}


def test_admin_trial_reset_restarts_expired_trial() -> None:
    """
    Verify admin can restart an expired trial and the user can log in again.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Admin is matched by email case-insensitively.
    Raises:
        AssertionError: If reset does not restore login or payload differs.
    Side Effects:
        None.
    """
    harness = _build_harness()
    user_headers = _auth_headers(harness)
    secret = _setup_and_verify(harness, headers=user_headers)
    later = _T0 + timedelta(days=5)
    harness.clock.now_value = later
    admin_headers = _auth_headers(
        harness,
        user_id=UserId.from_string("00000000-0000-0000-0000-0000000000f9"),
        email="Admin@Datum.example",
        session_id="admin-sess",
    )

    reset = harness.client.post(
        "/admin/trial/reset",
        headers=admin_headers,
        json={"email": "alice@example.com", "days": 7},
    )

    assert reset.status_code == 200
    payload = reset.json()
    assert payload["success"] is True
    assert payload["email"] == "alice@example.com"
    assert payload["email_sent"] is True
    assert datetime.fromisoformat(payload["trial_expiration"].replace("Z", "+00:00")) == (
        later + timedelta(days=7)
    )
    login = harness.client.post(
        "/totp/validate-login",
        headers=user_headers,
        json={"token": pyotp.TOTP(secret).at(later)},
    )
    assert login.status_code == 200


def test_admin_trial_reset_rejects_non_admin_and_reports_errors() -> None:
    harness = _build_harness()
    admin_headers = _auth_headers(harness, email="admin@datum.example", session_id="admin")

    forbidden = harness.client.post(
        "/admin/trial/reset",
        headers=_auth_headers(harness),
        json={"email": "alice@example.com"},
    )
    missing_email = harness.client.post("/admin/trial/reset", headers=admin_headers, json={})
    unknown = harness.client.post(
        "/admin/trial/reset",
        headers=admin_headers,
        json={"email": "nobody@example.com"},
    )
    bad_days = harness.client.post(
        "/admin/trial/reset",
        headers=admin_headers,
        json={"email": "nobody@example.com", "days": "many"},
    )

    assert forbidden.status_code == 403
    assert forbidden.json() == {
        "success": False,
        "error": "Forbidden: Admin access required",
        "code": "forbidden",
    }
    assert missing_email.status_code == 422
    assert missing_email.json()["error"] == "Email is required."
    assert unknown.status_code == 404
    assert unknown.json() == {
        "success": False,
        "error": "User not found.",
        "code": "profile_not_found",
    }
    assert bad_days.status_code == 422
    assert bad_days.json()["details"]["errors"][0]["path"] == "body.days"

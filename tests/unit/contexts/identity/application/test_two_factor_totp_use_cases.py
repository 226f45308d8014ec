from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pyotp
import pytest

from datum.contexts.identity.adapters.outbound.persistence.in_memory import (
    InMemoryPendingTotpSetupRepository,
    InMemoryTwoFactorProfileRepository,
)
from datum.contexts.identity.adapters.outbound.qr import SvgQrCodeRenderer
from datum.contexts.identity.adapters.outbound.security.two_factor import (
    AesGcmTwoFactorSecretCipher,
    HmacSha1TotpProvider,
)
from datum.contexts.identity.adapters.outbound.session import InMemoryTwoFactorSessionRegistry
from datum.contexts.identity.application.ports import (
    CurrentUserPrincipal,
    EmailMessage,
    TwoFactorStoreError,
)
from datum.contexts.identity.application.use_cases import (
    BeginTwoFactorSetupUseCase,
    CompleteTwoFactorSetupUseCase,
    EndTwoFactorSessionUseCase,
    EvaluateAccessUseCase,
    ResetTrialUseCase,
    TwoFactorAlreadyEnabledError,
    TwoFactorInternalError,
    TwoFactorInvalidCodeError,
    TwoFactorNotEnabledError,
    TwoFactorPolicy,
    TwoFactorProfileNotFoundError,
    TwoFactorSetupExpiredError,
    TwoFactorSetupNotFoundError,
    TwoFactorTrialExpiredError,
    TwoFactorValidationError,
    ValidateTwoFactorLoginUseCase,
)
from datum.contexts.identity.domain import (
    AccessDecision,
    PendingTotpSetup,
    ResourceRequirements,
)
from datum.shared_kernel.primitives import UserId

_KEY_HEX = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
_T0 = datetime(2026, 10, 19, 9, 0, 0, tzinfo=timezone.utc)
_USER_ID = UserId.from_string("00000000-0000-0000-0000-0000000000e1")
_SESSION_ID = "sess-e1"
_PROTECTED = ResourceRequirements(requires_auth=True, requires_totp=True)


@dataclass
class _RecordingNotifier:
    accept: bool = True
    sent: list[EmailMessage] = field(default_factory=list)

    def send(self, *, message: EmailMessage) -> bool:
        self.sent.append(message)
        return self.accept


class _FailingProfileRepository(InMemoryTwoFactorProfileRepository):
    def ensure_profile(self, **kwargs):  # type: ignore[no-untyped-def, override]
        raise TwoFactorStoreError("connection refused")

    def find_by_user_id(self, **kwargs):  # type: ignore[no-untyped-def, override]
        raise TwoFactorStoreError("connection refused")


class _ReplacedAfterReadPendingRepository(InMemoryPendingTotpSetupRepository):
    """
    Pending store where a newer setup lands right after the stale record is read.
    """

    def __init__(self, *, fresh: PendingTotpSetup) -> None:
        super().__init__()
        self._fresh = fresh

    def find_by_user_id(self, *, user_id: UserId) -> PendingTotpSetup | None:
        found = super().find_by_user_id(user_id=user_id)
        if found is not None and found != self._fresh:
            self.replace(pending=self._fresh)
        return found


@dataclass
class _Harness:
    """
    Use cases wired to in-memory adapters and real crypto.
    """

    profiles: InMemoryTwoFactorProfileRepository
    pending: InMemoryPendingTotpSetupRepository
    sessions: InMemoryTwoFactorSessionRegistry
    notifier: _RecordingNotifier
    begin: BeginTwoFactorSetupUseCase
    complete: CompleteTwoFactorSetupUseCase
    validate: ValidateTwoFactorLoginUseCase
    end: EndTwoFactorSessionUseCase
    evaluate: EvaluateAccessUseCase
    reset: ResetTrialUseCase


def _harness(
    *,
    profiles: InMemoryTwoFactorProfileRepository | None = None,
    pending: InMemoryPendingTotpSetupRepository | None = None,
    cipher: AesGcmTwoFactorSecretCipher | None = None,
) -> _Harness:
    profile_repository = (
        profiles if profiles is not None else InMemoryTwoFactorProfileRepository()
    )
    pending_repository = pending if pending is not None else InMemoryPendingTotpSetupRepository()
    sessions = InMemoryTwoFactorSessionRegistry()
    notifier = _RecordingNotifier()
    secret_cipher = cipher or AesGcmTwoFactorSecretCipher(key_hex=_KEY_HEX)
    provider = HmacSha1TotpProvider()
    policy = TwoFactorPolicy()
    return _Harness(
        profiles=profile_repository,
        pending=pending_repository,
        sessions=sessions,
        notifier=notifier,
        begin=BeginTwoFactorSetupUseCase(
            profile_repository=profile_repository,
            pending_repository=pending_repository,
            secret_cipher=secret_cipher,
            totp_provider=provider,
            qr_renderer=SvgQrCodeRenderer(),
            policy=policy,
        ),
        complete=CompleteTwoFactorSetupUseCase(
            profile_repository=profile_repository,
            pending_repository=pending_repository,
            secret_cipher=secret_cipher,
            totp_provider=provider,
            policy=policy,
        ),
        validate=ValidateTwoFactorLoginUseCase(
            profile_repository=profile_repository,
            secret_cipher=secret_cipher,
            totp_provider=provider,
            session_registry=sessions,
            policy=policy,
        ),
        end=EndTwoFactorSessionUseCase(session_registry=sessions),
        evaluate=EvaluateAccessUseCase(
            profile_repository=profile_repository,
            session_registry=sessions,
        ),
        reset=ResetTrialUseCase(
            profile_repository=profile_repository,
            email_notifier=notifier,
            policy=policy,
        ),
    )


def _code(secret: str, at: datetime) -> str:
    return pyotp.TOTP(secret).at(at)


def _wrong_code(secret: str, at: datetime) -> str:
    valid = {_code(secret, at + timedelta(seconds=offset)) for offset in (-30, 0, 30)}
    for candidate in ("000000", "111111", "222222", "333333"):
        if candidate not in valid:
            return candidate
    raise AssertionError("unreachable")


def _principal() -> CurrentUserPrincipal:
    return CurrentUserPrincipal(user_id=_USER_ID, email="alice@example.com", session_id=_SESSION_ID)


def _enable(harness: _Harness, *, at: datetime = _T0) -> str:
    secret = harness.begin.begin(
        user_id=_USER_ID,
        account_label="alice@example.com",
        now=at,
        email="alice@example.com",
    ).secret
    harness.complete.complete(user_id=_USER_ID, code=_code(secret, at), now=at)
    return secret


def test_begin_returns_enrollment_material_and_stores_encrypted_secret() -> None:
    harness = _harness()

    result = harness.begin.begin(
        user_id=_USER_ID,
        account_label="alice@example.com",
        now=_T0,
        email="alice@example.com",
    )

    assert result.otpauth_uri.startswith("otpauth://totp/Datum:alice%40example.com?")
    assert f"secret={result.secret}" in result.otpauth_uri
    assert result.qr_code_image.startswith("data:image/svg+xml;base64,")
    assert result.expires_at == _T0 + timedelta(minutes=15)
    pending = harness.pending.find_by_user_id(user_id=_USER_ID)
    assert pending is not None
    assert result.secret not in pending.totp_secret_enc
    profile = harness.profiles.find_by_user_id(user_id=_USER_ID)
    assert profile is not None and profile.totp_enabled is False


def test_begin_twice_keeps_only_latest_pending_secret() -> None:
    """
    Verify second setup replaces first pending secret so old codes stop working.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Each setup draws a fresh random secret.
    Raises:
        AssertionError: If the stale secret can still complete setup.
    Side Effects:
        None.
    """
    harness = _harness()
    first = harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0)
    second = harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0)
    stale_code = _code(first.secret, _T0)
    if stale_code == _code(second.secret, _T0):
        pytest.skip("random secrets produced identical codes")

    with pytest.raises(TwoFactorInvalidCodeError):
        harness.complete.complete(user_id=_USER_ID, code=stale_code, now=_T0)
    result = harness.complete.complete(
        user_id=_USER_ID,
        code=_code(second.secret, _T0),
        now=_T0,
    )

    assert result.promoted is True


def test_begin_rejects_already_enabled_profile() -> None:
    harness = _harness()
    _enable(harness)

    with pytest.raises(TwoFactorAlreadyEnabledError) as error_info:
        harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0)

    assert error_info.value.status_code == 409


def test_complete_enables_totp_and_starts_trial() -> None:
    harness = _harness()
    secret = harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0).secret

    result = harness.complete.complete(user_id=_USER_ID, code=_code(secret, _T0), now=_T0)

    assert result.promoted is True
    assert result.profile.totp_enabled is True
    assert result.profile.trial_start == _T0
    assert result.profile.trial_expiration == _T0 + timedelta(days=3)
    assert harness.pending.find_by_user_id(user_id=_USER_ID) is None
    with pytest.raises(TwoFactorSetupNotFoundError):
        harness.complete.complete(user_id=_USER_ID, code=_code(secret, _T0), now=_T0)


def test_complete_keeps_pending_after_invalid_code_for_retry() -> None:
    harness = _harness()
    secret = harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0).secret

    for _ in range(3):
        with pytest.raises(TwoFactorInvalidCodeError):
            harness.complete.complete(
                user_id=_USER_ID,
                code=_wrong_code(secret, _T0),
                now=_T0,
            )

    assert harness.pending.find_by_user_id(user_id=_USER_ID) is not None
    result = harness.complete.complete(user_id=_USER_ID, code=_code(secret, _T0), now=_T0)
    assert result.promoted is True


def test_complete_after_ttl_reports_expired_once_then_not_found() -> None:
    harness = _harness()
    secret = harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0).secret
    late = _T0 + timedelta(minutes=15, seconds=1)

    with pytest.raises(TwoFactorSetupExpiredError) as error_info:
        harness.complete.complete(user_id=_USER_ID, code=_code(secret, late), now=late)
    assert error_info.value.status_code == 410
    with pytest.raises(TwoFactorSetupNotFoundError):
        harness.complete.complete(user_id=_USER_ID, code=_code(secret, late), now=late)


@pytest.mark.parametrize("code", [None, "", "   "])
def test_missing_code_is_validation_error(code: str | None) -> None:
    harness = _harness()

    with pytest.raises(TwoFactorValidationError):
        harness.complete.complete(user_id=_USER_ID, code=code, now=_T0)
    with pytest.raises(TwoFactorValidationError):
        harness.validate.validate(user_id=_USER_ID, session_id=_SESSION_ID, code=code, now=_T0)


@pytest.mark.parametrize("code", ["12a45", "abc", "12345", "1234567", "12 456", "１２３４５６"])
def test_malformed_code_is_validation_error_before_any_lookup(code: str) -> None:
    """
    Verify non-six-digit codes are rejected before pending or profile state is consulted.

    Args:
        code: Malformed submitted code.
    Returns:
        None.
    Assumptions:
        Missing setup and expired trial would otherwise surface as different errors.
    Raises:
        AssertionError: If a lookup-driven error wins over format validation.
    Side Effects:
        None.
    """
    without_setup = _harness()
    with pytest.raises(TwoFactorValidationError) as error_info:
        without_setup.complete.complete(user_id=_USER_ID, code=code, now=_T0)
    assert error_info.value.message == "Invalid token format."
    assert error_info.value.status_code == 422

    expired_trial = _harness()
    _enable(expired_trial)
    after_trial = _T0 + timedelta(days=3, seconds=1)
    with pytest.raises(TwoFactorValidationError):
        expired_trial.validate.validate(
            user_id=_USER_ID,
            session_id=_SESSION_ID,
            code=code,
            now=after_trial,
        )

    with_pending = _harness()
    with_pending.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0)
    stored = with_pending.pending.find_by_user_id(user_id=_USER_ID)
    with pytest.raises(TwoFactorValidationError):
        with_pending.complete.complete(user_id=_USER_ID, code=code, now=_T0)
    assert with_pending.pending.find_by_user_id(user_id=_USER_ID) == stored


def test_complete_retry_after_promotion_keeps_original_trial() -> None:
    """
    Verify a second completion of the same pending secret does not restart the trial.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Re-inserted pending record stands for a concurrent retry that read it before the
        first completion deleted it.
    Raises:
        AssertionError: If promotion is repeated or the trial window moves.
    Side Effects:
        None.
    """
    harness = _harness()
    secret = harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0).secret
    pending = harness.pending.find_by_user_id(user_id=_USER_ID)
    assert pending is not None

    first = harness.complete.complete(user_id=_USER_ID, code=_code(secret, _T0), now=_T0)
    harness.pending.replace(pending=pending)
    retry_at = _T0 + timedelta(minutes=1)
    second = harness.complete.complete(
        user_id=_USER_ID,
        code=_code(secret, retry_at),
        now=retry_at,
    )

    assert first.promoted is True
    assert second.promoted is False
    assert second.profile.totp_enabled is True
    assert second.profile.trial_start == _T0
    assert second.profile.trial_expiration == _T0 + timedelta(days=3)
    assert harness.pending.find_by_user_id(user_id=_USER_ID) is None


def test_expired_setup_cleanup_keeps_setup_started_concurrently() -> None:
    stale = PendingTotpSetup(
        user_id=_USER_ID,
        totp_secret_enc="stale:nonce",
        created_at=_T0,
        expires_at=_T0 + timedelta(minutes=15),
    )
    late = _T0 + timedelta(minutes=16)
    fresh = PendingTotpSetup(
        user_id=_USER_ID,
        totp_secret_enc="fresh:nonce",
        created_at=late,
        expires_at=late + timedelta(minutes=15),
    )
    pending = _ReplacedAfterReadPendingRepository(fresh=fresh)
    pending.replace(pending=stale)
    harness = _harness(pending=pending)

    with pytest.raises(TwoFactorSetupExpiredError):
        harness.complete.complete(user_id=_USER_ID, code="123456", now=late)

    assert pending.find_by_user_id(user_id=_USER_ID) == fresh


def test_complete_without_begin_is_not_found() -> None:
    with pytest.raises(TwoFactorSetupNotFoundError):
        _harness().complete.complete(user_id=_USER_ID, code="123456", now=_T0)


def test_validate_marks_session_verified_and_sign_out_clears_it() -> None:
    harness = _harness()
    secret = _enable(harness)
    later = _T0 + timedelta(hours=1)

    result = harness.validate.validate(
        user_id=_USER_ID,
        session_id=_SESSION_ID,
        code=_code(secret, later),
        now=later,
    )

    assert result.session_id == _SESSION_ID
    assert result.trial_expiration == _T0 + timedelta(days=3)
    assert harness.sessions.is_verified(user_id=_USER_ID, session_id=_SESSION_ID) is True
    assert harness.sessions.is_verified(user_id=_USER_ID, session_id="other") is False

    harness.end.end(user_id=_USER_ID, session_id=_SESSION_ID)
    assert harness.sessions.is_verified(user_id=_USER_ID, session_id=_SESSION_ID) is False


def test_validate_rejects_wrong_code_and_not_enabled_profile() -> None:
    harness = _harness()
    with pytest.raises(TwoFactorNotEnabledError):
        harness.validate.validate(
            user_id=_USER_ID,
            session_id=_SESSION_ID,
            code="123456",
            now=_T0,
        )

    secret = _enable(harness)
    with pytest.raises(TwoFactorInvalidCodeError):
        harness.validate.validate(
            user_id=_USER_ID,
            session_id=_SESSION_ID,
            code=_wrong_code(secret, _T0),
            now=_T0,
        )
    assert harness.sessions.is_verified(user_id=_USER_ID, session_id=_SESSION_ID) is False


def test_end_to_end_trial_expires_after_three_days_even_with_valid_code() -> None:
    """
    Verify full flow: setup, confirm, login inside trial, then trial-expired after window.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Default policy grants a 3-day trial from setup completion.
    Raises:
        AssertionError: If trial boundary or gate decisions are wrong.
    Side Effects:
        None.
    """
    harness = _harness()
    secret = _enable(harness)
    principal = _principal()

    before = harness.evaluate.evaluate(principal=principal, resource=_PROTECTED, now=_T0)
    assert before.decision is AccessDecision.REDIRECT_LOGIN

    at_boundary = _T0 + timedelta(days=3)
    harness.validate.validate(
        user_id=_USER_ID,
        session_id=_SESSION_ID,
        code=_code(secret, at_boundary),
        now=at_boundary,
    )
    allowed = harness.evaluate.evaluate(principal=principal, resource=_PROTECTED, now=at_boundary)
    assert allowed.allowed is True

    expired_at = at_boundary + timedelta(seconds=1)
    with pytest.raises(TwoFactorTrialExpiredError) as error_info:
        harness.validate.validate(
            user_id=_USER_ID,
            session_id="sess-new",
            code=_code(secret, expired_at),
            now=expired_at,
        )
    assert error_info.value.payload()["trial_expired"] is True
    assert error_info.value.status_code == 403

    blocked = harness.evaluate.evaluate(principal=principal, resource=_PROTECTED, now=expired_at)
    assert blocked.decision is AccessDecision.REDIRECT_TRIAL_EXPIRED
    assert blocked.redirect_to == "/trial-expired"


def test_evaluate_access_for_anonymous_and_fresh_users() -> None:
    harness = _harness()

    anonymous = harness.evaluate.evaluate(principal=None, resource=_PROTECTED, now=_T0)
    fresh = harness.evaluate.evaluate(principal=_principal(), resource=_PROTECTED, now=_T0)
    setup_page = harness.evaluate.evaluate(
        principal=_principal(),
        resource=ResourceRequirements.for_path(path="/totp-setup"),
        now=_T0,
    )

    assert anonymous.decision is AccessDecision.REDIRECT_LOGIN
    assert fresh.decision is AccessDecision.REDIRECT_TOTP_SETUP
    assert setup_page.allowed is True
    profile = harness.profiles.find_by_user_id(user_id=_USER_ID)
    assert profile is not None and profile.email == "alice@example.com"


def test_reset_trial_restarts_window_and_notifies_user() -> None:
    harness = _harness()
    secret = _enable(harness)
    later = _T0 + timedelta(days=10)

    result = harness.reset.reset(email="ALICE@example.com", days=7, now=later)

    assert result.email == "alice@example.com"
    assert result.trial_start == later
    assert result.trial_expiration == later + timedelta(days=7)
    assert result.email_sent is True
    assert harness.notifier.sent[0].to == "ALICE@example.com"
    harness.validate.validate(
        user_id=_USER_ID,
        session_id=_SESSION_ID,
        code=_code(secret, later),
        now=later,
    )


def test_reset_trial_defaults_duration_and_tolerates_failed_email() -> None:
    harness = _harness()
    _enable(harness)
    harness.notifier.accept = False

    result = harness.reset.reset(email="alice@example.com", days=None, now=_T0)

    assert result.trial_expiration == _T0 + timedelta(days=3)
    assert result.email_sent is False


@pytest.mark.parametrize(
    ("email", "days", "error_type"),
    [
        (None, 3, TwoFactorValidationError),
        ("  ", 3, TwoFactorValidationError),
        ("alice@example.com", 0, TwoFactorValidationError),
        ("alice@example.com", -1, TwoFactorValidationError),
        ("nobody@example.com", 3, TwoFactorProfileNotFoundError),
    ],
)
def test_reset_trial_rejects_bad_input(
    email: str | None,
    days: int | None,
    error_type: type[Exception],
) -> None:
    harness = _harness()
    _enable(harness)

    with pytest.raises(error_type):
        harness.reset.reset(email=email, days=days, now=_T0)


def test_store_failures_surface_as_opaque_internal_error() -> None:
    harness = _harness(profiles=_FailingProfileRepository())

    with pytest.raises(TwoFactorInternalError) as begin_error:
        harness.begin.begin(user_id=_USER_ID, account_label="a@b.c", now=_T0)
    with pytest.raises(TwoFactorInternalError):
        harness.evaluate.evaluate(principal=_principal(), resource=_PROTECTED, now=_T0)

    assert begin_error.value.payload() == {
        "success": False,
        "error": "Internal server error.",
        "code": "internal_error",
    }
    assert begin_error.value.__cause__ is None


def test_cipher_key_mismatch_surfaces_as_internal_error() -> None:
    harness = _harness()
    secret = _enable(harness)
    other_key = _harness(
        cipher=AesGcmTwoFactorSecretCipher(key_hex="ff" * 32),
        profiles=harness.profiles,
    )

    with pytest.raises(TwoFactorInternalError):
        other_key.validate.validate(
            user_id=_USER_ID,
            session_id=_SESSION_ID,
            code=_code(secret, _T0),
            now=_T0,
        )


@pytest.mark.parametrize(
    "kwargs",
    [
        {"issuer": " "},
        {"issuer": "Da:tum"},
        {"verification_window": -1},
        {"trial_duration": timedelta(0)},
        {"pending_setup_ttl": timedelta(seconds=-1)},
    ],
)
def test_policy_rejects_invalid_values(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        TwoFactorPolicy(**kwargs)  # type: ignore[arg-type]

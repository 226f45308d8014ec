from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorProfileRepository,
)
from datum.contexts.identity.application.ports.two_factor_secret_cipher import (
    TwoFactorSecretCipher,
)
from datum.contexts.identity.application.ports.two_factor_session_registry import (
    TwoFactorSessionRegistry,
)
from datum.contexts.identity.application.ports.two_factor_totp_provider import (
    TwoFactorTotpProvider,
)
from datum.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorInvalidCodeError,
    TwoFactorNotEnabledError,
    TwoFactorTrialExpiredError,
)
from datum.contexts.identity.application.use_cases.two_factor_guards import (
    internal_failure_guard,
    normalize_submitted_code,
)
from datum.contexts.identity.application.use_cases.two_factor_policy import TwoFactorPolicy
from datum.contexts.identity.domain.entities import ensure_utc_datetime
from datum.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ValidateTwoFactorLoginResult:
    """
    ValidateTwoFactorLoginResult — second factor accepted for the current session.
    """

    session_id: str
    trial_expiration: datetime | None


class ValidateTwoFactorLoginUseCase:
    """
    ValidateTwoFactorLoginUseCase — verify login code and flag the session as verified.

    Trial expiration is checked before the secret is decrypted, so an expired trial is
    reported even for a correct code.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_session_registry.py
      - src/datum/contexts/identity/application/use_cases/evaluate_access.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        profile_repository: TwoFactorProfileRepository,
        secret_cipher: TwoFactorSecretCipher,
        totp_provider: TwoFactorTotpProvider,
        session_registry: TwoFactorSessionRegistry,
        policy: TwoFactorPolicy,
    ) -> None:
        """
        Initialize login verification dependencies.

        Args:
            profile_repository: Profile persistence port.
            secret_cipher: Secret decryption port.
            totp_provider: TOTP verification provider.
            session_registry: Per-session verification flag store.
            policy: Verification window.
        Returns:
            None.
        Assumptions:
            Dependencies are initialized and non-null.
        Raises:
            ValueError: If required dependency is missing.
        Side Effects:
            None.
        """
        if profile_repository is None:  # type: ignore[truthy-bool]
            raise ValueError("ValidateTwoFactorLoginUseCase requires profile_repository")
        if secret_cipher is None:  # type: ignore[truthy-bool]
            raise ValueError("ValidateTwoFactorLoginUseCase requires secret_cipher")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("ValidateTwoFactorLoginUseCase requires totp_provider")
        if session_registry is None:  # type: ignore[truthy-bool]
            raise ValueError("ValidateTwoFactorLoginUseCase requires session_registry")
        if policy is None:  # type: ignore[truthy-bool]
            raise ValueError("ValidateTwoFactorLoginUseCase requires policy")

        self._profile_repository = profile_repository
        self._secret_cipher = secret_cipher
        self._totp_provider = totp_provider
        self._session_registry = session_registry
        self._policy = policy

    def validate(
        self,
        *,
        user_id: UserId,
        session_id: str,
        code: str | None,
        now: datetime,
    ) -> ValidateTwoFactorLoginResult:
        """
        Check trial window, verify code and mark session as second-factor verified.

        Args:
            user_id: Authenticated identity user id.
            session_id: Login session the flag is bound to.
            code: User-submitted TOTP code.
            now: Current UTC timestamp.
        Returns:
            ValidateTwoFactorLoginResult: Successful verification marker.
        Assumptions:
            Retries are unlimited; no lockout is applied.
        Raises:
            TwoFactorValidationError: If code is missing or not six digits.
            TwoFactorNotEnabledError: If TOTP is not enabled for the profile.
            TwoFactorTrialExpiredError: If trial user's window is over.
            TwoFactorInvalidCodeError: If code does not verify.
            TwoFactorInternalError: If store or cipher fails.
        Side Effects:
            Sets session verification flag on success.
        """
        normalized_code = normalize_submitted_code(code=code)
        now = ensure_utc_datetime(value=now, field_name="now")
        with internal_failure_guard(operation="validate_login", user_id=user_id):
            profile = self._profile_repository.find_by_user_id(user_id=user_id)
            if profile is None or not profile.totp_enabled or not profile.totp_secret_enc:
                raise TwoFactorNotEnabledError()
            if profile.is_trial_expired(now=now):
                log.info(
                    "identity two-factor login blocked by expired trial user_id=%s "
                    "trial_expiration=%s",
                    user_id,
                    profile.trial_expiration.isoformat() if profile.trial_expiration else None,
                )
                raise TwoFactorTrialExpiredError()

            plaintext_secret = self._secret_cipher.decrypt_secret(
                secret_enc=profile.totp_secret_enc
            )
            if not self._totp_provider.verify_code(
                secret=plaintext_secret,
                code=normalized_code,
                at_time=now,
                window=self._policy.verification_window,
            ):
                log.info("identity two-factor login code rejected user_id=%s", user_id)
                raise TwoFactorInvalidCodeError()

        self._session_registry.mark_verified(user_id=user_id, session_id=session_id)
        return ValidateTwoFactorLoginResult(
            session_id=session_id,
            trial_expiration=profile.trial_expiration,
        )

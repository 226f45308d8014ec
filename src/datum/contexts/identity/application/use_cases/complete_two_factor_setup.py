from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from datum.contexts.identity.application.ports.pending_totp_setup_repository import (
    PendingTotpSetupRepository,
)
from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorProfileRepository,
)
from datum.contexts.identity.application.ports.two_factor_secret_cipher import (
    TwoFactorSecretCipher,
)
from datum.contexts.identity.application.ports.two_factor_totp_provider import (
    TwoFactorTotpProvider,
)
from datum.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorInternalError,
    TwoFactorInvalidCodeError,
    TwoFactorSetupExpiredError,
    TwoFactorSetupNotFoundError,
)
from datum.contexts.identity.application.use_cases.two_factor_guards import (
    internal_failure_guard,
    normalize_submitted_code,
)
from datum.contexts.identity.application.use_cases.two_factor_policy import TwoFactorPolicy
from datum.contexts.identity.domain.entities import TwoFactorProfile, ensure_utc_datetime
from datum.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompleteTwoFactorSetupResult:
    """
    CompleteTwoFactorSetupResult — enabled profile after confirming the first code.

    `promoted` is `False` when a concurrent retry had already enabled TOTP; in that case the
    trial window of the first promotion is kept.
    """

    profile: TwoFactorProfile
    promoted: bool

    def __post_init__(self) -> None:
        if not self.profile.totp_enabled:
            raise ValueError("CompleteTwoFactorSetupResult.profile must have TOTP enabled")


class CompleteTwoFactorSetupUseCase:
    """
    CompleteTwoFactorSetupUseCase — verify first code, enable TOTP and start the trial.

    Related:
      - src/datum/contexts/identity/application/ports/pending_totp_setup_repository.py
      - src/datum/contexts/identity/application/ports/two_factor_profile_repository.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        profile_repository: TwoFactorProfileRepository,
        pending_repository: PendingTotpSetupRepository,
        secret_cipher: TwoFactorSecretCipher,
        totp_provider: TwoFactorTotpProvider,
        policy: TwoFactorPolicy,
    ) -> None:
        """
        Initialize completion use-case dependencies.

        Args:
            profile_repository: Profile persistence port.
            pending_repository: Pending setup persistence port.
            secret_cipher: Secret decryption port.
            totp_provider: TOTP verification provider.
            policy: Verification window and trial duration.
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
            raise ValueError("CompleteTwoFactorSetupUseCase requires profile_repository")
        if pending_repository is None:  # type: ignore[truthy-bool]
            raise ValueError("CompleteTwoFactorSetupUseCase requires pending_repository")
        if secret_cipher is None:  # type: ignore[truthy-bool]
            raise ValueError("CompleteTwoFactorSetupUseCase requires secret_cipher")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("CompleteTwoFactorSetupUseCase requires totp_provider")
        if policy is None:  # type: ignore[truthy-bool]
            raise ValueError("CompleteTwoFactorSetupUseCase requires policy")

        self._profile_repository = profile_repository
        self._pending_repository = pending_repository
        self._secret_cipher = secret_cipher
        self._totp_provider = totp_provider
        self._policy = policy

    def complete(
        self,
        *,
        user_id: UserId,
        code: str | None,
        now: datetime,
    ) -> CompleteTwoFactorSetupResult:
        """
        Verify code against pending secret and promote it into the profile.

        Args:
            user_id: Authenticated identity user id.
            code: User-submitted TOTP code.
            now: Current UTC timestamp.
        Returns:
            CompleteTwoFactorSetupResult: Enabled profile snapshot.
        Assumptions:
            Pending record survives invalid codes so the user can retry until expiry.
        Raises:
            TwoFactorValidationError: If code is missing or not six digits.
            TwoFactorSetupNotFoundError: If no pending setup exists.
            TwoFactorSetupExpiredError: If pending setup is past TTL (record is deleted).
            TwoFactorInvalidCodeError: If code does not verify.
            TwoFactorInternalError: If store or cipher fails.
        Side Effects:
            Updates profile, deletes pending setup record.
        """
        normalized_code = normalize_submitted_code(code=code)
        now = ensure_utc_datetime(value=now, field_name="now")
        with internal_failure_guard(operation="complete_setup", user_id=user_id):
            pending = self._pending_repository.find_by_user_id(user_id=user_id)
            if pending is None:
                raise TwoFactorSetupNotFoundError()
            if pending.is_expired(now=now):
                self._pending_repository.delete(user_id=user_id, expires_at=pending.expires_at)
                log.info("identity two-factor setup expired user_id=%s", user_id)
                raise TwoFactorSetupExpiredError()

            plaintext_secret = self._secret_cipher.decrypt_secret(
                secret_enc=pending.totp_secret_enc
            )
            if not self._totp_provider.verify_code(
                secret=plaintext_secret,
                code=normalized_code,
                at_time=now,
                window=self._policy.verification_window,
            ):
                log.info("identity two-factor setup code rejected user_id=%s", user_id)
                raise TwoFactorInvalidCodeError()

            trial_expiration = now + self._policy.trial_duration
            promoted = self._profile_repository.promote_pending_secret(
                user_id=user_id,
                totp_secret_enc=pending.totp_secret_enc,
                trial_start=now,
                trial_expiration=trial_expiration,
                updated_at=now,
            )
            profile = promoted
            if profile is None:
                profile = self._profile_repository.find_by_user_id(user_id=user_id)
            self._pending_repository.delete(user_id=user_id, expires_at=pending.expires_at)

        if profile is None or not profile.totp_enabled:
            log.error("identity two-factor promotion found no profile user_id=%s", user_id)
            raise TwoFactorInternalError()

        if promoted is not None:
            log.info(
                "identity two-factor setup completed user_id=%s trial_start=%s "
                "trial_expiration=%s",
                user_id,
                now.isoformat(),
                trial_expiration.isoformat(),
            )
        else:
            log.info("identity two-factor setup already completed user_id=%s", user_id)
        return CompleteTwoFactorSetupResult(profile=profile, promoted=promoted is not None)

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from datum.contexts.identity.application.ports.pending_totp_setup_repository import (
    PendingTotpSetupRepository,
)
from datum.contexts.identity.application.ports.qr_code_renderer import QrCodeRenderer
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
    TwoFactorAlreadyEnabledError,
    TwoFactorInternalError,
)
from datum.contexts.identity.application.use_cases.two_factor_guards import (
    internal_failure_guard,
)
from datum.contexts.identity.application.use_cases.two_factor_policy import TwoFactorPolicy
from datum.contexts.identity.domain.entities import PendingTotpSetup, ensure_utc_datetime
from datum.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BeginTwoFactorSetupResult:
    """
    BeginTwoFactorSetupResult — enrollment material returned once by `/totp/setup`.

    Related:
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    secret: str
    otpauth_uri: str
    qr_code_image: str
    expires_at: datetime

    def __post_init__(self) -> None:
        """
        Validate that result carries a standard otpauth URI and an image data URI.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Clients show the QR image and offer the secret for manual entry.
        Raises:
            ValueError: If URI or image do not match expected scheme prefixes.
        Side Effects:
            None.
        """
        if not self.secret:
            raise ValueError("BeginTwoFactorSetupResult.secret must be non-empty")
        if not self.otpauth_uri.startswith("otpauth://totp/"):
            raise ValueError(
                "BeginTwoFactorSetupResult.otpauth_uri must start with 'otpauth://totp/'"
            )
        if not self.qr_code_image.startswith("data:image/"):
            raise ValueError("BeginTwoFactorSetupResult.qr_code_image must be an image data URI")


class BeginTwoFactorSetupUseCase:
    """
    BeginTwoFactorSetupUseCase — create encrypted pending secret replacing any prior one.

    Related:
      - src/datum/contexts/identity/application/ports/pending_totp_setup_repository.py
      - src/datum/contexts/identity/application/ports/two_factor_secret_cipher.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(
        self,
        *,
        profile_repository: TwoFactorProfileRepository,
        pending_repository: PendingTotpSetupRepository,
        secret_cipher: TwoFactorSecretCipher,
        totp_provider: TwoFactorTotpProvider,
        qr_renderer: QrCodeRenderer,
        policy: TwoFactorPolicy,
    ) -> None:
        """
        Initialize setup use-case dependencies and immutable policy.

        Args:
            profile_repository: Profile persistence port.
            pending_repository: Pending setup persistence port.
            secret_cipher: Authenticated encryption port for TOTP secret.
            totp_provider: Provider generating secrets and otpauth URI.
            qr_renderer: Renderer turning otpauth URI into image data URI.
            policy: Issuer and pending setup TTL.
        Returns:
            None.
        Assumptions:
            All dependencies are initialized and non-null.
        Raises:
            ValueError: If dependencies are missing.
        Side Effects:
            None.
        """
        if profile_repository is None:  # type: ignore[truthy-bool]
            raise ValueError("BeginTwoFactorSetupUseCase requires profile_repository")
        if pending_repository is None:  # type: ignore[truthy-bool]
            raise ValueError("BeginTwoFactorSetupUseCase requires pending_repository")
        if secret_cipher is None:  # type: ignore[truthy-bool]
            raise ValueError("BeginTwoFactorSetupUseCase requires secret_cipher")
        if totp_provider is None:  # type: ignore[truthy-bool]
            raise ValueError("BeginTwoFactorSetupUseCase requires totp_provider")
        if qr_renderer is None:  # type: ignore[truthy-bool]
            raise ValueError("BeginTwoFactorSetupUseCase requires qr_renderer")
        if policy is None:  # type: ignore[truthy-bool]
            raise ValueError("BeginTwoFactorSetupUseCase requires policy")

        self._profile_repository = profile_repository
        self._pending_repository = pending_repository
        self._secret_cipher = secret_cipher
        self._totp_provider = totp_provider
        self._qr_renderer = qr_renderer
        self._policy = policy

    def begin(
        self,
        *,
        user_id: UserId,
        account_label: str,
        now: datetime,
        email: str | None = None,
    ) -> BeginTwoFactorSetupResult:
        """
        Generate secret, persist its encrypted form as the only pending setup, return URI.

        Args:
            user_id: Authenticated identity user id.
            account_label: Account name shown in authenticator apps.
            now: Current UTC timestamp.
            email: Account email stored on lazily created profile.
        Returns:
            BeginTwoFactorSetupResult: Plain secret, otpauth URI and QR image.
        Assumptions:
            Enabled secrets are never rotated; setup is refused once enabled.
        Raises:
            TwoFactorAlreadyEnabledError: If user already enabled TOTP.
            TwoFactorInternalError: If store, cipher or QR rendering fails.
        Side Effects:
            Creates profile when absent and replaces pending setup record.
        """
        now = ensure_utc_datetime(value=now, field_name="now")
        with internal_failure_guard(operation="begin_setup", user_id=user_id):
            profile = self._profile_repository.ensure_profile(
                user_id=user_id,
                email=email,
                created_at=now,
            )
            if profile.totp_enabled:
                raise TwoFactorAlreadyEnabledError()

            plaintext_secret = self._totp_provider.create_secret()
            secret_enc = self._secret_cipher.encrypt_secret(secret=plaintext_secret)
            pending = self._pending_repository.replace(
                pending=PendingTotpSetup(
                    user_id=user_id,
                    totp_secret_enc=secret_enc,
                    created_at=now,
                    expires_at=now + self._policy.pending_setup_ttl,
                )
            )

        otpauth_uri = self._totp_provider.build_otpauth_uri(
            secret=plaintext_secret,
            account_label=account_label,
            issuer=self._policy.issuer,
        )
        try:
            qr_code_image = self._qr_renderer.render_data_uri(payload=otpauth_uri)
        except ValueError as error:
            log.error(
                "identity two-factor qr rendering failed user_id=%s error_type=%s",
                user_id,
                type(error).__name__,
            )
            raise TwoFactorInternalError() from None

        log.info(
            "identity two-factor setup begun user_id=%s expires_at=%s",
            user_id,
            pending.expires_at.isoformat(),
        )
        return BeginTwoFactorSetupResult(
            secret=plaintext_secret,
            otpauth_uri=otpauth_uri,
            qr_code_image=qr_code_image,
            expires_at=pending.expires_at,
        )

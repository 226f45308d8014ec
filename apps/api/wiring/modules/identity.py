"""
Composition helpers for identity API module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from fastapi import APIRouter

from apps.api.routes import build_identity_router as build_identity_api_router
from datum.contexts.identity.adapters.inbound.api.deps import (
    OptionalCurrentUserDependency,
    RequireAccessDependency,
    RequireCurrentUserDependency,
)
from datum.contexts.identity.adapters.outbound import (
    AesGcmTwoFactorSecretCipher,
    BearerTokenCurrentUser,
    HmacSha1TotpProvider,
    Hs256JwtCodec,
    InMemoryPendingTotpSetupRepository,
    InMemoryTwoFactorProfileRepository,
    InMemoryTwoFactorSessionRegistry,
    LogOnlyEmailNotifier,
    PostgresPendingTotpSetupRepository,
    PostgresTwoFactorProfileRepository,
    PsycopgIdentityPostgresGateway,
    ResendEmailNotifier,
    ResendEmailNotifierConfig,
    SvgQrCodeRenderer,
    SystemIdentityClock,
)
from datum.contexts.identity.application.ports import (
    EmailNotifier,
    IdentityClock,
    PendingTotpSetupRepository,
    TwoFactorProfileRepository,
)
from datum.contexts.identity.application.use_cases import (
    BeginTwoFactorSetupUseCase,
    CompleteTwoFactorSetupUseCase,
    EndTwoFactorSessionUseCase,
    EvaluateAccessUseCase,
    ResetTrialUseCase,
    TwoFactorPolicy,
    ValidateTwoFactorLoginUseCase,
)
from datum.contexts.identity.domain.services import ResourceRequirements

log = logging.getLogger(__name__)

_ENV_NAME_KEY = "DATUM_ENV"
_ENCRYPTION_KEY_KEY = "ENCRYPTION_KEY"
_IDENTITY_JWT_SECRET_KEY = "IDENTITY_JWT_SECRET"
_TOTP_ISSUER_KEY = "TOTP_ISSUER"
_TOTP_WINDOW_KEY = "TOTP_WINDOW"
_TRIAL_DURATION_DAYS_KEY = "TRIAL_DURATION_DAYS"
_TOTP_SETUP_TTL_MINUTES_KEY = "TOTP_SETUP_TTL_MINUTES"
_IDENTITY_PG_DSN_KEY = "IDENTITY_PG_DSN"
_ADMIN_EMAIL_KEY = "ADMIN_EMAIL"
_RESEND_API_KEY_KEY = "RESEND_API_KEY"
_EMAIL_FROM_KEY = "EMAIL_FROM"
_ALLOWED_ENVS = ("dev", "prod", "test")


@dataclass(frozen=True, slots=True)
class IdentityRuntimeSettings:
    """
    IdentityRuntimeSettings — runtime policy for identity two-factor wiring.

    Related:
      - apps/api/wiring/modules/identity.py
      - apps/api/main/app.py
      - src/datum/contexts/identity/application/use_cases/two_factor_policy.py
    """

    env_name: str
    encryption_key_hex: str
    identity_jwt_secret: str
    totp_issuer: str
    totp_window: int
    trial_duration_days: int
    setup_ttl_minutes: int
    postgres_dsn: str
    admin_email: str
    resend_api_key: str
    email_from: str

    def __post_init__(self) -> None:
        """
        Validate identity runtime settings invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Values are normalized by resolver before dataclass construction.
        Raises:
            ValueError: If one of invariants is violated.
        Side Effects:
            None.
        """
        if self.env_name not in _ALLOWED_ENVS:
            raise ValueError(
                f"IdentityRuntimeSettings.env_name must be one of {_ALLOWED_ENVS}, "
                f"got {self.env_name!r}"
            )
        if not self.encryption_key_hex:
            raise ValueError("IdentityRuntimeSettings.encryption_key_hex must be non-empty")
        if not self.identity_jwt_secret:
            raise ValueError("IdentityRuntimeSettings.identity_jwt_secret must be non-empty")
        if self.totp_window < 0:
            raise ValueError("IdentityRuntimeSettings.totp_window must be >= 0")
        if self.trial_duration_days <= 0:
            raise ValueError("IdentityRuntimeSettings.trial_duration_days must be > 0")
        if self.setup_ttl_minutes <= 0:
            raise ValueError("IdentityRuntimeSettings.setup_ttl_minutes must be > 0")

    @property
    def email_delivery_enabled(self) -> bool:
        return bool(self.resend_api_key and self.email_from)

    def two_factor_policy(self) -> TwoFactorPolicy:
        """
        Build use-case policy from resolved settings.

        Args:
            None.
        Returns:
            TwoFactorPolicy: Issuer, window and durations.
        Assumptions:
            None.
        Raises:
            ValueError: If issuer is rejected by policy validation.
        Side Effects:
            None.
        """
        return TwoFactorPolicy(
            issuer=self.totp_issuer,
            verification_window=self.totp_window,
            trial_duration=timedelta(days=self.trial_duration_days),
            pending_setup_ttl=timedelta(minutes=self.setup_ttl_minutes),
        )


@dataclass(frozen=True, slots=True)
class IdentityApiModule:
    """
    IdentityApiModule — wired identity router plus dependencies reused by other routers.

    Related:
      - apps/api/main/app.py
      - src/datum/contexts/identity/adapters/inbound/api/deps/access_gate.py
    """

    router: APIRouter
    current_user_dependency: RequireCurrentUserDependency
    optional_user_dependency: OptionalCurrentUserDependency
    evaluate_access_use_case: EvaluateAccessUseCase
    clock: IdentityClock

    def require_access(self, *, resource: ResourceRequirements) -> RequireAccessDependency:
        """
        Build access gate dependency protecting one resource.

        Args:
            resource: Requirements of the protected resource.
        Returns:
            RequireAccessDependency: FastAPI dependency raising `AccessDeniedHttpError`.
        Assumptions:
            `register_access_denied_exception_handler` is installed on the app.
        Raises:
            ValueError: If resource is missing.
        Side Effects:
            None.
        """
        return RequireAccessDependency(
            optional_user_dependency=self.optional_user_dependency,
            evaluate_access_use_case=self.evaluate_access_use_case,
            clock=self.clock,
            resource=resource,
        )


def build_identity_api_module(*, environ: Mapping[str, str]) -> IdentityApiModule:
    """
    Build fully wired identity module from environment settings.

    Related: apps.api.routes.identity,
      datum.contexts.identity.adapters.outbound,
      apps.api.main.app

    Args:
        environ: Runtime environment mapping.
    Returns:
        IdentityApiModule: Router and reusable dependencies.
    Assumptions:
        Settings are resolved by `_resolve_identity_runtime_settings`.
    Raises:
        ValueError: If required secrets are missing or values are invalid.
    Side Effects:
        None.
    """
    settings = _resolve_identity_runtime_settings(environ=environ)
    policy = settings.two_factor_policy()
    clock = SystemIdentityClock()
    profile_repository, pending_repository = _build_repositories(settings=settings)
    session_registry = InMemoryTwoFactorSessionRegistry()
    secret_cipher = AesGcmTwoFactorSecretCipher(key_hex=settings.encryption_key_hex)
    totp_provider = HmacSha1TotpProvider()
    jwt_codec = Hs256JwtCodec(
        secret_key=settings.identity_jwt_secret,
        clock=clock,
    )

    current_user_port = BearerTokenCurrentUser(jwt_codec=jwt_codec)
    current_user_dependency = RequireCurrentUserDependency(current_user=current_user_port)
    optional_user_dependency = OptionalCurrentUserDependency(current_user=current_user_port)
    evaluate_access = EvaluateAccessUseCase(
        profile_repository=profile_repository,
        session_registry=session_registry,
    )

    router = build_identity_api_router(
        begin_setup=BeginTwoFactorSetupUseCase(
            profile_repository=profile_repository,
            pending_repository=pending_repository,
            secret_cipher=secret_cipher,
            totp_provider=totp_provider,
            qr_renderer=SvgQrCodeRenderer(),
            policy=policy,
        ),
        complete_setup=CompleteTwoFactorSetupUseCase(
            profile_repository=profile_repository,
            pending_repository=pending_repository,
            secret_cipher=secret_cipher,
            totp_provider=totp_provider,
            policy=policy,
        ),
        validate_login=ValidateTwoFactorLoginUseCase(
            profile_repository=profile_repository,
            secret_cipher=secret_cipher,
            totp_provider=totp_provider,
            session_registry=session_registry,
            policy=policy,
        ),
        end_session=EndTwoFactorSessionUseCase(session_registry=session_registry),
        evaluate_access=evaluate_access,
        reset_trial=ResetTrialUseCase(
            profile_repository=profile_repository,
            email_notifier=_build_email_notifier(settings=settings),
            policy=policy,
        ),
        current_user_dependency=current_user_dependency,
        optional_user_dependency=optional_user_dependency,
        clock=clock,
        admin_email=settings.admin_email,
    )
    log.info(
        "identity module wired env=%s store=%s email=%s",
        settings.env_name,
        "postgres" if settings.postgres_dsn else "in_memory",
        "resend" if settings.email_delivery_enabled else "log_only",
    )
    return IdentityApiModule(
        router=router,
        current_user_dependency=current_user_dependency,
        optional_user_dependency=optional_user_dependency,
        evaluate_access_use_case=evaluate_access,
        clock=clock,
    )


def _build_repositories(
    *,
    settings: IdentityRuntimeSettings,
) -> tuple[TwoFactorProfileRepository, PendingTotpSetupRepository]:
    """
    Build profile and pending setup repositories based on runtime DSN availability.

    Args:
        settings: Resolved runtime settings.
    Returns:
        tuple[TwoFactorProfileRepository, PendingTotpSetupRepository]: Postgres or in-memory
        adapters sharing one gateway.
    Assumptions:
        Postgres DSN is optional in dev/test, in-memory fallback is acceptable for local runs.
    Raises:
        ValueError: If Postgres DSN is malformed for gateway construction.
    Side Effects:
        None.
    """
    if settings.postgres_dsn:
        gateway = PsycopgIdentityPostgresGateway(dsn=settings.postgres_dsn)
        return (
            PostgresTwoFactorProfileRepository(gateway=gateway),
            PostgresPendingTotpSetupRepository(gateway=gateway),
        )
    return InMemoryTwoFactorProfileRepository(), InMemoryPendingTotpSetupRepository()


def _build_email_notifier(*, settings: IdentityRuntimeSettings) -> EmailNotifier:
    if not settings.email_delivery_enabled:
        return LogOnlyEmailNotifier()
    return ResendEmailNotifier(
        config=ResendEmailNotifierConfig(
            api_key=settings.resend_api_key,
            sender=settings.email_from,
        )
    )


def _resolve_identity_runtime_settings(*, environ: Mapping[str, str]) -> IdentityRuntimeSettings:
    """
    Resolve identity runtime settings with fail-fast checks and defaults.

    Args:
        environ: Runtime environment mapping.
    Returns:
        IdentityRuntimeSettings: Validated normalized settings.
    Assumptions:
        Missing `DATUM_ENV` defaults to `dev`; secrets are required in every env.
    Raises:
        ValueError: If env values are invalid or required secrets are missing.
    Side Effects:
        None.
    """
    env_name = _resolve_env_name(environ=environ)
    encryption_key_hex = _resolve_required(environ=environ, key=_ENCRYPTION_KEY_KEY)
    identity_jwt_secret = _resolve_required(environ=environ, key=_IDENTITY_JWT_SECRET_KEY)

    return IdentityRuntimeSettings(
        env_name=env_name,
        encryption_key_hex=encryption_key_hex,
        identity_jwt_secret=identity_jwt_secret,
        totp_issuer=environ.get(_TOTP_ISSUER_KEY, "").strip() or "Datum",
        totp_window=_resolve_non_negative_int(
            environ=environ,
            key=_TOTP_WINDOW_KEY,
            default=1,
        ),
        trial_duration_days=_resolve_positive_int(
            environ=environ,
            key=_TRIAL_DURATION_DAYS_KEY,
            default=3,
        ),
        setup_ttl_minutes=_resolve_positive_int(
            environ=environ,
            key=_TOTP_SETUP_TTL_MINUTES_KEY,
            default=15,
        ),
        postgres_dsn=environ.get(_IDENTITY_PG_DSN_KEY, "").strip(),
        admin_email=environ.get(_ADMIN_EMAIL_KEY, "").strip(),
        resend_api_key=environ.get(_RESEND_API_KEY_KEY, "").strip(),
        email_from=environ.get(_EMAIL_FROM_KEY, "").strip(),
    )


def _resolve_env_name(*, environ: Mapping[str, str]) -> str:
    """
    Resolve normalized runtime env name for identity wiring.

    Args:
        environ: Runtime environment mapping.
    Returns:
        str: One of `dev`, `prod`, or `test`.
    Assumptions:
        Missing value defaults to `dev`.
    Raises:
        ValueError: If value is outside allowed list.
    Side Effects:
        None.
    """
    raw_env_name = environ.get(_ENV_NAME_KEY, "dev").strip().lower()
    if raw_env_name not in _ALLOWED_ENVS:
        raise ValueError(
            f"{_ENV_NAME_KEY} must be one of {_ALLOWED_ENVS}, got {raw_env_name!r}"
        )
    return raw_env_name


def _resolve_required(*, environ: Mapping[str, str], key: str) -> str:
    raw_value = environ.get(key, "").strip()
    if not raw_value:
        raise ValueError(f"{key} must be set")
    return raw_value


def _resolve_positive_int(*, environ: Mapping[str, str], key: str, default: int) -> int:
    """
    Resolve positive integer env setting with fallback default.

    Args:
        environ: Runtime environment mapping.
        key: Environment variable key.
        default: Fallback integer.
    Returns:
        int: Positive integer value.
    Assumptions:
        Empty env value means default should be used.
    Raises:
        ValueError: If value is not parseable or non-positive.
    Side Effects:
        None.
    """
    parsed = _resolve_int(environ=environ, key=key, default=default)
    if parsed <= 0:
        raise ValueError(f"{key} must be > 0, got {parsed}")
    return parsed


def _resolve_non_negative_int(*, environ: Mapping[str, str], key: str, default: int) -> int:
    parsed = _resolve_int(environ=environ, key=key, default=default)
    if parsed < 0:
        raise ValueError(f"{key} must be >= 0, got {parsed}")
    return parsed


def _resolve_int(*, environ: Mapping[str, str], key: str, default: int) -> int:
    raw_value = environ.get(key, "").strip()
    if not raw_value:
        return default
    try:
        return int(raw_value)
    except ValueError as error:
        raise ValueError(f"{key} must be integer, got {raw_value!r}") from error

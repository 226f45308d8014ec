"""
Identity API routes.
"""

from __future__ import annotations

from fastapi import APIRouter

from datum.contexts.identity.adapters.inbound.api.deps import (
    OptionalCurrentUserDependency,
    RequireCurrentUserDependency,
)
from datum.contexts.identity.adapters.inbound.api.routes import (
    build_access_router,
    build_admin_trial_router,
    build_two_factor_totp_router,
)
from datum.contexts.identity.application.ports import IdentityClock
from datum.contexts.identity.application.use_cases import (
    BeginTwoFactorSetupUseCase,
    CompleteTwoFactorSetupUseCase,
    EndTwoFactorSessionUseCase,
    EvaluateAccessUseCase,
    ResetTrialUseCase,
    ValidateTwoFactorLoginUseCase,
)


def build_identity_router(
    *,
    begin_setup: BeginTwoFactorSetupUseCase,
    complete_setup: CompleteTwoFactorSetupUseCase,
    validate_login: ValidateTwoFactorLoginUseCase,
    end_session: EndTwoFactorSessionUseCase,
    evaluate_access: EvaluateAccessUseCase,
    reset_trial: ResetTrialUseCase,
    current_user_dependency: RequireCurrentUserDependency,
    optional_user_dependency: OptionalCurrentUserDependency,
    clock: IdentityClock,
    admin_email: str = "",
) -> APIRouter:
    """
    Build identity router facade for FastAPI app composition root.

    Related:
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/access.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/admin_trial.py
      - apps/api/wiring/modules/identity.py

    Args:
        begin_setup: TOTP setup start use case.
        complete_setup: TOTP setup completion use case.
        validate_login: Login second-factor use case.
        end_session: Session flag cleanup use case.
        evaluate_access: Access gate use case.
        reset_trial: Admin trial reset use case.
        current_user_dependency: FastAPI dependency resolving authenticated principal.
        optional_user_dependency: FastAPI dependency resolving principal or `None`.
        clock: UTC clock shared by all routes.
        admin_email: Admin email allowed to reset trials; empty disables the endpoint.
    Returns:
        APIRouter: Configured identity router.
    Assumptions:
        All use cases share the same stores.
    Raises:
        ValueError: If one of route builders rejects missing dependencies.
    Side Effects:
        None.
    """
    router = APIRouter()
    router.include_router(
        build_two_factor_totp_router(
            begin_use_case=begin_setup,
            complete_use_case=complete_setup,
            validate_login_use_case=validate_login,
            end_session_use_case=end_session,
            current_user_dependency=current_user_dependency,
            clock=clock,
        )
    )
    router.include_router(
        build_access_router(
            evaluate_access_use_case=evaluate_access,
            optional_user_dependency=optional_user_dependency,
            clock=clock,
        )
    )
    router.include_router(
        build_admin_trial_router(
            reset_trial_use_case=reset_trial,
            current_user_dependency=current_user_dependency,
            clock=clock,
            admin_email=admin_email,
        )
    )
    return router

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from datum.contexts.identity.adapters.inbound.api.deps.current_user import (
    RequireCurrentUserDependency,
)
from datum.contexts.identity.application.ports.clock import IdentityClock
from datum.contexts.identity.application.ports.current_user import CurrentUserPrincipal
from datum.contexts.identity.application.use_cases import (
    ResetTrialUseCase,
    TwoFactorOperationError,
)

log = logging.getLogger(__name__)

_FORBIDDEN_PAYLOAD = {
    "success": False,
    "error": "Forbidden: Admin access required",
    "code": "forbidden",
}


class ResetTrialRequest(BaseModel):
    email: str | None = None
    days: int | None = None


class ResetTrialResponse(BaseModel):
    """
    ResetTrialResponse — API response payload for `POST /admin/trial/reset`.

    Related:
      - src/datum/contexts/identity/application/use_cases/reset_trial.py
      - apps/api/routes/identity.py
    """

    success: bool = True
    email: str
    trial_start: datetime
    trial_expiration: datetime
    email_sent: bool


def build_admin_trial_router(
    *,
    reset_trial_use_case: ResetTrialUseCase,
    current_user_dependency: RequireCurrentUserDependency,
    clock: IdentityClock,
    admin_email: str,
) -> APIRouter:
    """
    Build router exposing admin trial reset endpoint.

    Args:
        reset_trial_use_case: Trial reset use case.
        current_user_dependency: Auth dependency for current user principal.
        clock: UTC clock read once per request.
        admin_email: Email of the only principal allowed to reset trials.
    Returns:
        APIRouter: Router with `POST /admin/trial/reset`.
    Assumptions:
        Empty `admin_email` disables the endpoint (always 403).
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if reset_trial_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_admin_trial_router requires reset_trial_use_case")
    if current_user_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_admin_trial_router requires current_user_dependency")
    if clock is None:  # type: ignore[truthy-bool]
        raise ValueError("build_admin_trial_router requires clock")
    normalized_admin_email = admin_email.strip().lower()

    router = APIRouter(tags=["admin"])

    @router.post("/admin/trial/reset", response_model=ResetTrialResponse)
    def post_admin_trial_reset(
        request: ResetTrialRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> ResetTrialResponse:
        """
        Restart the trial window of the profile with the given email.

        Args:
            request: Target email and optional trial length in days.
            principal: Authenticated current user.
        Returns:
            ResetTrialResponse: New trial window and email delivery outcome.
        Assumptions:
            Admin is identified by exact (case-insensitive) email match.
        Raises:
            HTTPException: 403 for non-admin callers, use-case payloads otherwise.
        Side Effects:
            Updates trial dates and sends a best-effort notification email.
        """
        caller_email = (principal.email or "").strip().lower()
        if not normalized_admin_email or caller_email != normalized_admin_email:
            log.warning("admin trial reset rejected user_id=%s", principal.user_id)
            raise HTTPException(status_code=403, detail=dict(_FORBIDDEN_PAYLOAD))
        try:
            result = reset_trial_use_case.reset(
                email=request.email,
                days=request.days,
                now=clock.now(),
            )
        except TwoFactorOperationError as error:
            raise HTTPException(
                status_code=error.status_code,
                detail=error.payload(),
            ) from error
        return ResetTrialResponse(
            email=result.email,
            trial_start=result.trial_start,
            trial_expiration=result.trial_expiration,
            email_sent=result.email_sent,
        )

    return router

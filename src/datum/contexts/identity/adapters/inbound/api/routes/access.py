from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from datum.contexts.identity.adapters.inbound.api.deps.current_user import (
    OptionalCurrentUserDependency,
)
from datum.contexts.identity.application.ports.clock import IdentityClock
from datum.contexts.identity.application.ports.current_user import CurrentUserPrincipal
from datum.contexts.identity.application.use_cases import (
    EvaluateAccessUseCase,
    TwoFactorOperationError,
)
from datum.contexts.identity.domain.services import ResourceRequirements


class AccessDecisionResponse(BaseModel):
    """
    AccessDecisionResponse — API response payload for `GET /access`.

    Related:
      - src/datum/contexts/identity/domain/services/access_gate.py
      - src/datum/contexts/identity/application/use_cases/evaluate_access.py
    """

    decision: str
    redirect_to: str | None


def build_access_router(
    *,
    evaluate_access_use_case: EvaluateAccessUseCase,
    optional_user_dependency: OptionalCurrentUserDependency,
    clock: IdentityClock,
) -> APIRouter:
    """
    Build router answering access gate decisions for client routes.

    Args:
        evaluate_access_use_case: Access evaluation use case.
        optional_user_dependency: Dependency resolving principal or `None`.
        clock: UTC clock read once per request.
    Returns:
        APIRouter: Router with `GET /access`.
    Assumptions:
        Anonymous callers are answered, not rejected.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if evaluate_access_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_access_router requires evaluate_access_use_case")
    if optional_user_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_access_router requires optional_user_dependency")
    if clock is None:  # type: ignore[truthy-bool]
        raise ValueError("build_access_router requires clock")

    router = APIRouter(tags=["identity"])

    @router.get("/access", response_model=AccessDecisionResponse)
    def get_access(
        path: str = "/",
        requires_auth: bool = True,
        requires_totp: bool = False,
        principal: CurrentUserPrincipal | None = Depends(optional_user_dependency),
    ) -> AccessDecisionResponse:
        """
        Evaluate access gate for a client path and the current caller.

        Args:
            path: Client route being opened.
            requires_auth: Whether the route requires authentication.
            requires_totp: Whether the route requires session TOTP verification.
            principal: Authenticated caller or `None`.
        Returns:
            AccessDecisionResponse: Decision value and redirect path.
        Assumptions:
            `path == /totp-setup` is exempt from the setup redirect.
        Raises:
            HTTPException: 500 payload when profile store fails.
        Side Effects:
            May create profile for first-time authenticated caller.
        """
        resource = ResourceRequirements.for_path(
            path=path,
            requires_auth=requires_auth,
            requires_totp=requires_totp,
        )
        try:
            result = evaluate_access_use_case.evaluate(
                principal=principal,
                resource=resource,
                now=clock.now(),
            )
        except TwoFactorOperationError as error:
            raise HTTPException(
                status_code=error.status_code,
                detail=error.payload(),
            ) from error
        return AccessDecisionResponse(
            decision=result.decision.value,
            redirect_to=result.redirect_to,
        )

    return router

from __future__ import annotations

from typing import Any, cast

from fastapi import FastAPI, HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from datum.contexts.identity.adapters.inbound.api.deps.current_user import (
    OptionalCurrentUserDependency,
)
from datum.contexts.identity.application.ports.clock import IdentityClock
from datum.contexts.identity.application.ports.current_user import CurrentUserPrincipal
from datum.contexts.identity.application.use_cases import (
    EvaluateAccessUseCase,
    TwoFactorOperationError,
)
from datum.contexts.identity.domain.services import AccessDecision, ResourceRequirements

_DENIED_MESSAGES: dict[AccessDecision, str] = {
    AccessDecision.REDIRECT_LOGIN: "Authentication required.",
    AccessDecision.REDIRECT_TOTP_SETUP: "Two-factor setup required.",
    AccessDecision.REDIRECT_TRIAL_EXPIRED: "Your trial has expired.",
    AccessDecision.PENDING: "Profile is still loading.",
}


class AccessDeniedHttpError(PermissionError):
    """
    AccessDeniedHttpError — HTTP-facing error for non-`ALLOW` access gate decisions.

    Related:
      - src/datum/contexts/identity/domain/services/access_gate.py
      - src/datum/contexts/identity/application/use_cases/evaluate_access.py
      - apps/api/main/app.py
    """

    def __init__(self, *, decision: AccessDecision) -> None:
        """
        Initialize denial error from gate decision.

        Args:
            decision: Non-allow access decision.
        Returns:
            None.
        Assumptions:
            Handler maps this error to exact top-level JSON payload.
        Raises:
            ValueError: If decision is `ALLOW`.
        Side Effects:
            None.
        """
        if decision is AccessDecision.ALLOW:
            raise ValueError("AccessDeniedHttpError requires non-allow decision")
        message = _DENIED_MESSAGES[decision]
        super().__init__(message)
        self.decision = decision
        self.message = message

    @property
    def redirect_to(self) -> str | None:
        return self.decision.redirect_to

    @property
    def status_code(self) -> int:
        """
        Map decision to HTTP status: 401 for login, 202 while pending, 403 otherwise.

        Args:
            None.
        Returns:
            int: HTTP status code.
        Assumptions:
            `PENDING` is transient and the client is expected to retry.
        Raises:
            None.
        Side Effects:
            None.
        """
        if self.decision is AccessDecision.REDIRECT_LOGIN:
            return 401
        if self.decision is AccessDecision.PENDING:
            return 202
        return 403

    def payload(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.message,
            "decision": self.decision.value,
            "redirect_to": self.redirect_to,
        }


def access_denied_http_error_handler(
    _request: Request,
    error: Exception,
) -> JSONResponse:
    """
    Map `AccessDeniedHttpError` to JSON payload with decision and redirect target.

    Args:
        _request: Starlette request object (unused).
        error: Access denial error.
    Returns:
        JSONResponse: 401, 202 or 403 response.
    Assumptions:
        None.
    Raises:
        None.
    Side Effects:
        None.
    """
    typed_error = cast(AccessDeniedHttpError, error)
    return JSONResponse(
        status_code=typed_error.status_code,
        content=typed_error.payload(),
    )


def register_access_denied_exception_handler(*, app: FastAPI) -> None:
    """
    Register access-denied exception handler on FastAPI app instance.

    Args:
        app: FastAPI application where the handler should be installed.
    Returns:
        None.
    Assumptions:
        Called once during app construction.
    Raises:
        ValueError: If app reference is missing.
    Side Effects:
        Updates app-level exception handler registry.
    """
    if app is None:  # type: ignore[truthy-bool]
        raise ValueError("register_access_denied_exception_handler requires app")
    app.add_exception_handler(
        AccessDeniedHttpError,
        access_denied_http_error_handler,
    )


class RequireAccessDependency:
    """
    RequireAccessDependency — reusable FastAPI dependency guarding a resource by access gate.

    Related:
      - src/datum/contexts/identity/application/use_cases/evaluate_access.py
      - src/datum/contexts/identity/adapters/inbound/api/deps/current_user.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(
        self,
        *,
        optional_user_dependency: OptionalCurrentUserDependency,
        evaluate_access_use_case: EvaluateAccessUseCase,
        clock: IdentityClock,
        resource: ResourceRequirements,
    ) -> None:
        """
        Initialize dependency with principal resolver, gate use case and resource rules.

        Args:
            optional_user_dependency: Dependency resolving principal or `None`.
            evaluate_access_use_case: Access evaluation use case.
            clock: UTC clock read once per request.
            resource: Requirements of the protected resource.
        Returns:
            None.
        Assumptions:
            One dependency instance is built per protected resource.
        Raises:
            ValueError: If dependency arguments are missing.
        Side Effects:
            None.
        """
        if optional_user_dependency is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireAccessDependency requires optional_user_dependency")
        if evaluate_access_use_case is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireAccessDependency requires evaluate_access_use_case")
        if clock is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireAccessDependency requires clock")
        if resource is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireAccessDependency requires resource")
        self._optional_user_dependency = optional_user_dependency
        self._evaluate_access_use_case = evaluate_access_use_case
        self._clock = clock
        self._resource = resource

    def __call__(self, request: Request) -> CurrentUserPrincipal | None:
        """
        Evaluate access for the request caller and reject non-allow decisions.

        Args:
            request: FastAPI request carrying optional bearer token.
        Returns:
            CurrentUserPrincipal | None: Principal, or `None` for public resources.
        Assumptions:
            None.
        Raises:
            AccessDeniedHttpError: If gate decision is not `ALLOW`.
            HTTPException: 500 payload when profile store fails.
        Side Effects:
            May create profile for first-time authenticated caller.
        """
        principal = self._optional_user_dependency(request)
        try:
            result = self._evaluate_access_use_case.evaluate(
                principal=principal,
                resource=self._resource,
                now=self._clock.now(),
            )
        except TwoFactorOperationError as error:
            raise HTTPException(
                status_code=error.status_code,
                detail=error.payload(),
            ) from error
        if not result.allowed:
            raise AccessDeniedHttpError(decision=result.decision)
        return principal

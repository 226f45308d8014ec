from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from datum.contexts.identity.adapters.inbound.api.deps.current_user import (
    RequireCurrentUserDependency,
)
from datum.contexts.identity.application.ports.clock import IdentityClock
from datum.contexts.identity.application.ports.current_user import CurrentUserPrincipal
from datum.contexts.identity.application.use_cases import (
    BeginTwoFactorSetupUseCase,
    CompleteTwoFactorSetupUseCase,
    EndTwoFactorSessionUseCase,
    TwoFactorOperationError,
    ValidateTwoFactorLoginUseCase,
)


class TwoFactorSetupResponse(BaseModel):
    """
    TwoFactorSetupResponse — API response payload for `POST /totp/setup`.

    Related:
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
      - src/datum/contexts/identity/adapters/outbound/qr/svg_qr_code_renderer.py
      - apps/api/routes/identity.py
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    qr_code_image: str = Field(alias="qrCodeImage")
    secret: str
    otpauth_uri: str


class TwoFactorTokenRequest(BaseModel):
    """
    TwoFactorTokenRequest — request payload carrying a submitted TOTP code.

    `token` stays optional at the schema level so a missing code is reported by the
    use case as `validation_error` with the same payload as a blank one.
    """

    token: str | None = None


class TwoFactorSuccessResponse(BaseModel):
    success: bool = True


class TwoFactorLoginResponse(BaseModel):
    """
    TwoFactorLoginResponse — API response payload for `POST /totp/validate-login`.
    """

    success: bool = True
    trial_expired: bool = False


def build_two_factor_totp_router(
    *,
    begin_use_case: BeginTwoFactorSetupUseCase,
    complete_use_case: CompleteTwoFactorSetupUseCase,
    validate_login_use_case: ValidateTwoFactorLoginUseCase,
    end_session_use_case: EndTwoFactorSessionUseCase,
    current_user_dependency: RequireCurrentUserDependency,
    clock: IdentityClock,
) -> APIRouter:
    """
    Build router exposing TOTP setup, setup verification, login validation and sign-out.

    Args:
        begin_use_case: Setup start use case.
        complete_use_case: Setup completion use case.
        validate_login_use_case: Login second-factor use case.
        end_session_use_case: Session flag cleanup use case.
        current_user_dependency: Auth dependency for current user principal.
        clock: UTC clock read once per request.
    Returns:
        APIRouter: Router with `/totp/setup`, `/totp/verify-setup`,
        `/totp/validate-login` and `/totp/sign-out`.
    Assumptions:
        Current user dependency enforces bearer token access.
    Raises:
        ValueError: If required dependencies are missing.
    Side Effects:
        None.
    """
    if begin_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires begin_use_case")
    if complete_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires complete_use_case")
    if validate_login_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires validate_login_use_case")
    if end_session_use_case is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires end_session_use_case")
    if current_user_dependency is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires current_user_dependency")
    if clock is None:  # type: ignore[truthy-bool]
        raise ValueError("build_two_factor_totp_router requires clock")

    router = APIRouter(tags=["identity"])

    @router.post("/totp/setup", response_model=TwoFactorSetupResponse)
    def post_totp_setup(
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TwoFactorSetupResponse:
        """
        Start TOTP enrollment and return secret, otpauth URI and QR image.

        Args:
            principal: Authenticated current user.
        Returns:
            TwoFactorSetupResponse: Enrollment material for authenticator apps.
        Assumptions:
            Setup is rejected once TOTP is enabled.
        Raises:
            HTTPException: Deterministic payload on policy or internal errors.
        Side Effects:
            Replaces pending setup of the user.
        """
        try:
            result = begin_use_case.begin(
                user_id=principal.user_id,
                account_label=principal.account_label,
                email=principal.email,
                now=clock.now(),
            )
        except TwoFactorOperationError as error:
            raise HTTPException(
                status_code=error.status_code,
                detail=error.payload(),
            ) from error
        return TwoFactorSetupResponse(
            qr_code_image=result.qr_code_image,
            secret=result.secret,
            otpauth_uri=result.otpauth_uri,
        )

    @router.post("/totp/verify-setup", response_model=TwoFactorSuccessResponse)
    def post_totp_verify_setup(
        request: TwoFactorTokenRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TwoFactorSuccessResponse:
        """
        Verify first code against pending secret and enable TOTP.

        Args:
            request: Submitted TOTP code payload.
            principal: Authenticated current user.
        Returns:
            TwoFactorSuccessResponse: Success marker.
        Assumptions:
            `POST /totp/setup` was called within the pending setup TTL.
        Raises:
            HTTPException: Deterministic 4xx/500 payload on errors.
        Side Effects:
            Enables TOTP, starts the trial window and deletes pending setup.
        """
        try:
            complete_use_case.complete(
                user_id=principal.user_id,
                code=request.token,
                now=clock.now(),
            )
        except TwoFactorOperationError as error:
            raise HTTPException(
                status_code=error.status_code,
                detail=error.payload(),
            ) from error
        return TwoFactorSuccessResponse()

    @router.post("/totp/validate-login", response_model=TwoFactorLoginResponse)
    def post_totp_validate_login(
        request: TwoFactorTokenRequest,
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TwoFactorLoginResponse:
        """
        Verify login code and mark current session as second-factor verified.

        Args:
            request: Submitted TOTP code payload.
            principal: Authenticated current user.
        Returns:
            TwoFactorLoginResponse: Success marker with `trial_expired=false`.
        Assumptions:
            None.
        Raises:
            HTTPException: Deterministic payload, `trial_expired: true` for expired trials.
        Side Effects:
            Sets session verification flag.
        """
        try:
            validate_login_use_case.validate(
                user_id=principal.user_id,
                session_id=principal.session_id,
                code=request.token,
                now=clock.now(),
            )
        except TwoFactorOperationError as error:
            raise HTTPException(
                status_code=error.status_code,
                detail=error.payload(),
            ) from error
        return TwoFactorLoginResponse()

    @router.post("/totp/sign-out", response_model=TwoFactorSuccessResponse)
    def post_totp_sign_out(
        principal: CurrentUserPrincipal = Depends(current_user_dependency),
    ) -> TwoFactorSuccessResponse:
        end_session_use_case.end(
            user_id=principal.user_id,
            session_id=principal.session_id,
        )
        return TwoFactorSuccessResponse()

    return router

from .deps import (
    AccessDeniedHttpError,
    OptionalCurrentUserDependency,
    RequireAccessDependency,
    RequireCurrentUserDependency,
    access_denied_http_error_handler,
    register_access_denied_exception_handler,
)
from .routes import (
    AccessDecisionResponse,
    ResetTrialRequest,
    ResetTrialResponse,
    TwoFactorLoginResponse,
    TwoFactorSetupResponse,
    TwoFactorSuccessResponse,
    TwoFactorTokenRequest,
    build_access_router,
    build_admin_trial_router,
    build_two_factor_totp_router,
)

__all__ = [
    "AccessDecisionResponse",
    "AccessDeniedHttpError",
    "OptionalCurrentUserDependency",
    "RequireAccessDependency",
    "RequireCurrentUserDependency",
    "ResetTrialRequest",
    "ResetTrialResponse",
    "TwoFactorLoginResponse",
    "TwoFactorSetupResponse",
    "TwoFactorSuccessResponse",
    "TwoFactorTokenRequest",
    "access_denied_http_error_handler",
    "build_access_router",
    "build_admin_trial_router",
    "build_two_factor_totp_router",
    "register_access_denied_exception_handler",
]

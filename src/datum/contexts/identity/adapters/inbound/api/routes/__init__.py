from .access import AccessDecisionResponse, build_access_router
from .admin_trial import ResetTrialRequest, ResetTrialResponse, build_admin_trial_router
from .two_factor_totp import (
    TwoFactorLoginResponse,
    TwoFactorSetupResponse,
    TwoFactorSuccessResponse,
    TwoFactorTokenRequest,
    build_two_factor_totp_router,
)

__all__ = [
    "AccessDecisionResponse",
    "ResetTrialRequest",
    "ResetTrialResponse",
    "TwoFactorLoginResponse",
    "TwoFactorSetupResponse",
    "TwoFactorSuccessResponse",
    "TwoFactorTokenRequest",
    "build_access_router",
    "build_admin_trial_router",
    "build_two_factor_totp_router",
]

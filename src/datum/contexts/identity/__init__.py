from .application import (
    BeginTwoFactorSetupUseCase,
    CompleteTwoFactorSetupUseCase,
    CurrentUser,
    CurrentUserPrincipal,
    CurrentUserUnauthorizedError,
    EndTwoFactorSessionUseCase,
    EvaluateAccessUseCase,
    ResetTrialUseCase,
    TwoFactorOperationError,
    TwoFactorPolicy,
    ValidateTwoFactorLoginUseCase,
)
from .domain import (
    AccessDecision,
    PendingTotpSetup,
    ResourceRequirements,
    TwoFactorProfile,
    decide_access,
)

__all__ = [
    "AccessDecision",
    "BeginTwoFactorSetupUseCase",
    "CompleteTwoFactorSetupUseCase",
    "CurrentUser",
    "CurrentUserPrincipal",
    "CurrentUserUnauthorizedError",
    "EndTwoFactorSessionUseCase",
    "EvaluateAccessUseCase",
    "PendingTotpSetup",
    "ResetTrialUseCase",
    "ResourceRequirements",
    "TwoFactorOperationError",
    "TwoFactorPolicy",
    "TwoFactorProfile",
    "ValidateTwoFactorLoginUseCase",
    "decide_access",
]

from .begin_two_factor_setup import BeginTwoFactorSetupResult, BeginTwoFactorSetupUseCase
from .complete_two_factor_setup import (
    CompleteTwoFactorSetupResult,
    CompleteTwoFactorSetupUseCase,
)
from .end_two_factor_session import EndTwoFactorSessionUseCase
from .evaluate_access import EvaluateAccessResult, EvaluateAccessUseCase
from .reset_trial import ResetTrialResult, ResetTrialUseCase
from .two_factor_errors import (
    TwoFactorAlreadyEnabledError,
    TwoFactorInternalError,
    TwoFactorInvalidCodeError,
    TwoFactorNotEnabledError,
    TwoFactorOperationError,
    TwoFactorProfileNotFoundError,
    TwoFactorSetupExpiredError,
    TwoFactorSetupNotFoundError,
    TwoFactorTrialExpiredError,
    TwoFactorValidationError,
)
from .two_factor_policy import TwoFactorPolicy
from .validate_two_factor_login import (
    ValidateTwoFactorLoginResult,
    ValidateTwoFactorLoginUseCase,
)

__all__ = [
    "BeginTwoFactorSetupResult",
    "BeginTwoFactorSetupUseCase",
    "CompleteTwoFactorSetupResult",
    "CompleteTwoFactorSetupUseCase",
    "EndTwoFactorSessionUseCase",
    "EvaluateAccessResult",
    "EvaluateAccessUseCase",
    "ResetTrialResult",
    "ResetTrialUseCase",
    "TwoFactorAlreadyEnabledError",
    "TwoFactorInternalError",
    "TwoFactorInvalidCodeError",
    "TwoFactorNotEnabledError",
    "TwoFactorOperationError",
    "TwoFactorPolicy",
    "TwoFactorProfileNotFoundError",
    "TwoFactorSetupExpiredError",
    "TwoFactorSetupNotFoundError",
    "TwoFactorTrialExpiredError",
    "TwoFactorValidationError",
    "ValidateTwoFactorLoginResult",
    "ValidateTwoFactorLoginUseCase",
]

from .ports import (
    CurrentUser,
    CurrentUserPrincipal,
    CurrentUserUnauthorizedError,
    EmailMessage,
    EmailNotifier,
    IdentityClock,
    IdentityJwtClaims,
    JwtCodec,
    JwtDecodeError,
    PendingTotpSetupRepository,
    QrCodeRenderer,
    SecretCipherError,
    SecretEnvelopeFormatError,
    TwoFactorProfileRepository,
    TwoFactorSecretCipher,
    TwoFactorSessionRegistry,
    TwoFactorStoreError,
    TwoFactorTotpProvider,
)
from .use_cases import (
    BeginTwoFactorSetupResult,
    BeginTwoFactorSetupUseCase,
    CompleteTwoFactorSetupResult,
    CompleteTwoFactorSetupUseCase,
    EndTwoFactorSessionUseCase,
    EvaluateAccessResult,
    EvaluateAccessUseCase,
    ResetTrialResult,
    ResetTrialUseCase,
    TwoFactorOperationError,
    TwoFactorPolicy,
    ValidateTwoFactorLoginResult,
    ValidateTwoFactorLoginUseCase,
)

__all__ = [
    "BeginTwoFactorSetupResult",
    "BeginTwoFactorSetupUseCase",
    "CompleteTwoFactorSetupResult",
    "CompleteTwoFactorSetupUseCase",
    "CurrentUser",
    "CurrentUserPrincipal",
    "CurrentUserUnauthorizedError",
    "EmailMessage",
    "EmailNotifier",
    "EndTwoFactorSessionUseCase",
    "EvaluateAccessResult",
    "EvaluateAccessUseCase",
    "IdentityClock",
    "IdentityJwtClaims",
    "JwtCodec",
    "JwtDecodeError",
    "PendingTotpSetupRepository",
    "QrCodeRenderer",
    "ResetTrialResult",
    "ResetTrialUseCase",
    "SecretCipherError",
    "SecretEnvelopeFormatError",
    "TwoFactorOperationError",
    "TwoFactorPolicy",
    "TwoFactorProfileRepository",
    "TwoFactorSecretCipher",
    "TwoFactorSessionRegistry",
    "TwoFactorStoreError",
    "TwoFactorTotpProvider",
    "ValidateTwoFactorLoginResult",
    "ValidateTwoFactorLoginUseCase",
]

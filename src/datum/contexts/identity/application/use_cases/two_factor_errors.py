from __future__ import annotations


class TwoFactorOperationError(ValueError):
    """
    TwoFactorOperationError — base deterministic application error for TOTP flows.

    Related:
      - src/datum/contexts/identity/application/use_cases/complete_two_factor_setup.py
      - src/datum/contexts/identity/application/use_cases/validate_two_factor_login.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, code: str, message: str, status_code: int) -> None:
        """
        Initialize stable operation error attributes for HTTP mapping.

        Args:
            code: Machine-readable deterministic error code.
            message: Human-readable deterministic message.
            status_code: HTTP status expected by inbound adapter.
        Returns:
            None.
        Assumptions:
            Status code is final and does not require additional adapter mapping logic.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    def payload(self) -> dict[str, object]:
        """
        Build deterministic HTTP error payload with stable key order.

        Args:
            None.
        Returns:
            dict[str, object]: `{"success": false, "error": "...", "code": "..."}` payload.
        Assumptions:
            Payload is rendered as JSON response body by API error handler.
        Raises:
            None.
        Side Effects:
            None.
        """
        return {
            "success": False,
            "error": self.message,
            "code": self.code,
        }


class TwoFactorValidationError(TwoFactorOperationError):
    """
    TwoFactorValidationError — request input is missing or malformed.
    """

    def __init__(self, *, message: str = "Token is required.") -> None:
        super().__init__(code="validation_error", message=message, status_code=422)


class TwoFactorSetupNotFoundError(TwoFactorOperationError):
    """
    TwoFactorSetupNotFoundError — no pending setup exists; caller must restart setup.
    """

    def __init__(self) -> None:
        super().__init__(
            code="two_factor_setup_not_found",
            message="No pending two-factor setup found. Please start setup again.",
            status_code=404,
        )


class TwoFactorSetupExpiredError(TwoFactorOperationError):
    """
    TwoFactorSetupExpiredError — pending setup outlived its TTL and was deleted.
    """

    def __init__(self) -> None:
        super().__init__(
            code="two_factor_setup_expired",
            message="Two-factor setup has expired. Please start setup again.",
            status_code=410,
        )


class TwoFactorInvalidCodeError(TwoFactorOperationError):
    """
    TwoFactorInvalidCodeError — submitted code did not match any step in the window.

    Related:
      - src/datum/contexts/identity/application/use_cases/complete_two_factor_setup.py
      - src/datum/contexts/identity/application/use_cases/validate_two_factor_login.py
      - src/datum/contexts/identity/adapters/outbound/security/two_factor/totp_engine.py
    """

    def __init__(self) -> None:
        """
        Initialize deterministic invalid-code error.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Invalid codes are user-input errors mapped to HTTP 422; retries are allowed.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(
            code="invalid_two_factor_code",
            message="Invalid two-factor authentication code.",
            status_code=422,
        )


class TwoFactorNotEnabledError(TwoFactorOperationError):
    """
    TwoFactorNotEnabledError — login verification requested before setup completed.
    """

    def __init__(self) -> None:
        super().__init__(
            code="two_factor_not_enabled",
            message="Two-factor authentication is not enabled.",
            status_code=409,
        )


class TwoFactorAlreadyEnabledError(TwoFactorOperationError):
    """
    TwoFactorAlreadyEnabledError — setup requested for a profile with enabled TOTP.

    Related:
      - src/datum/contexts/identity/application/use_cases/begin_two_factor_setup.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self) -> None:
        """
        Initialize deterministic 409 conflict error for already-enabled TOTP state.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Enabled secrets are never rotated or disabled.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(
            code="two_factor_already_enabled",
            message="Two-factor authentication is already enabled.",
            status_code=409,
        )


class TwoFactorTrialExpiredError(TwoFactorOperationError):
    """
    TwoFactorTrialExpiredError — trial window is over; reported apart from invalid codes.

    Payload carries `trial_expired: true` so clients route to the trial-expired page.
    """

    def __init__(self) -> None:
        super().__init__(
            code="trial_expired",
            message="Your trial has expired.",
            status_code=403,
        )

    def payload(self) -> dict[str, object]:
        payload = super().payload()
        payload["trial_expired"] = True
        return payload


class TwoFactorProfileNotFoundError(TwoFactorOperationError):
    """
    TwoFactorProfileNotFoundError — no profile matches the requested email.
    """

    def __init__(self) -> None:
        super().__init__(
            code="profile_not_found",
            message="User not found.",
            status_code=404,
        )


class TwoFactorInternalError(TwoFactorOperationError):
    """
    TwoFactorInternalError — opaque failure wrapping store, cipher or renderer errors.

    Details are logged server-side only; the response never describes the cause.
    """

    def __init__(self) -> None:
        super().__init__(
            code="internal_error",
            message="Internal server error.",
            status_code=500,
        )

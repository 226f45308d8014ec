from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorStoreError,
)
from datum.contexts.identity.application.ports.two_factor_secret_cipher import (
    SecretCipherError,
)
from datum.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorInternalError,
    TwoFactorValidationError,
)
from datum.shared_kernel.primitives import UserId

log = logging.getLogger(__name__)

_CODE_LENGTH = 6
_ASCII_DIGITS = frozenset("0123456789")


def normalize_submitted_code(*, code: str | None) -> str:
    """
    Strip submitted code and reject missing or malformed input before any lookup.

    Args:
        code: Raw `token` value from request body.
    Returns:
        str: Stripped six-digit code.
    Assumptions:
        Only exactly six ASCII digits are accepted; wrong codes fail later in verification.
    Raises:
        TwoFactorValidationError: If code is missing, blank or not six ASCII digits.
    Side Effects:
        None.
    """
    if code is None:
        raise TwoFactorValidationError()
    normalized = code.strip()
    if not normalized:
        raise TwoFactorValidationError()
    if len(normalized) != _CODE_LENGTH or not set(normalized) <= _ASCII_DIGITS:
        raise TwoFactorValidationError(message="Invalid token format.")
    return normalized


@contextmanager
def internal_failure_guard(*, operation: str, user_id: UserId | None = None) -> Iterator[None]:
    """
    Convert store and cipher failures into opaque `TwoFactorInternalError`.

    Args:
        operation: Operation name used in server-side log line.
        user_id: Affected user, when known.
    Returns:
        Iterator[None]: Context manager body.
    Assumptions:
        Deterministic `TwoFactorOperationError` subclasses pass through untouched.
    Raises:
        TwoFactorInternalError: If body raises `TwoFactorStoreError` or `SecretCipherError`.
    Side Effects:
        Logs failure detail server-side.
    """
    try:
        yield
    except TwoFactorStoreError:
        log.exception(
            "identity two-factor store failure operation=%s user_id=%s",
            operation,
            user_id,
        )
        raise TwoFactorInternalError() from None
    except SecretCipherError as error:
        # plaintext and key never reach the log, only the failure class
        log.error(
            "identity two-factor cipher failure operation=%s user_id=%s error_type=%s",
            operation,
            user_id,
            type(error).__name__,
        )
        raise TwoFactorInternalError() from None

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from datum.shared_kernel.primitives import UserId


@dataclass(frozen=True, slots=True)
class CurrentUserPrincipal:
    """
    CurrentUserPrincipal — authenticated caller resolved from the bearer token.

    `session_id` scopes the per-session TOTP verification flag.

    Related:
      - src/datum/contexts/identity/adapters/inbound/api/deps/current_user.py
      - src/datum/contexts/identity/adapters/outbound/security/current_user/
        bearer_token_current_user.py
      - src/datum/contexts/identity/application/ports/two_factor_session_registry.py
    """

    user_id: UserId
    email: str | None
    session_id: str

    def __post_init__(self) -> None:
        if not self.session_id.strip():
            raise ValueError("CurrentUserPrincipal.session_id must be non-empty")

    @property
    def account_label(self) -> str:
        """Return label shown in authenticator apps: email when known, else user id."""
        if self.email:
            return self.email
        return str(self.user_id)


class CurrentUserUnauthorizedError(ValueError):
    """
    CurrentUserUnauthorizedError — caller identity is missing or invalid.

    Related:
      - src/datum/contexts/identity/adapters/inbound/api/deps/current_user.py
      - src/datum/contexts/identity/adapters/outbound/security/current_user/
        bearer_token_current_user.py
    """

    def __init__(self, *, code: str, message: str) -> None:
        """
        Initialize authorization error with stable code and message.

        Args:
            code: Machine-readable deterministic error code.
            message: Human-readable deterministic description.
        Returns:
            None.
        Assumptions:
            API layer exposes both values in the 401 payload.
        Raises:
            None.
        Side Effects:
            None.
        """
        super().__init__(message)
        self.code = code
        self.message = message


class CurrentUser(Protocol):
    """
    CurrentUser — port resolving `CurrentUserPrincipal` from a bearer token.
    """

    def require(self, *, token: str | None) -> CurrentUserPrincipal:
        """
        Resolve authenticated user principal or raise unauthorized error.

        Args:
            token: Bearer token from `Authorization` header; may be missing.
        Returns:
            CurrentUserPrincipal: Authenticated user context.
        Assumptions:
            Token is signed by the identity provider and not expired.
        Raises:
            CurrentUserUnauthorizedError: If token is missing or invalid.
        Side Effects:
            None.
        """
        ...

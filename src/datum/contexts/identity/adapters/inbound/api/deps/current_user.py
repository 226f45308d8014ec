from fastapi import HTTPException
from starlette.requests import Request

from datum.contexts.identity.application.ports.current_user import (
    CurrentUser,
    CurrentUserPrincipal,
    CurrentUserUnauthorizedError,
)

_BEARER_PREFIX = "bearer "


def read_bearer_token(request: Request) -> str | None:
    """
    Extract bearer token from `Authorization` header.

    Args:
        request: FastAPI HTTP request.
    Returns:
        str | None: Raw token, or `None` when header is missing or not a bearer scheme.
    Assumptions:
        Scheme name is case-insensitive.
    Raises:
        None.
    Side Effects:
        None.
    """
    header = request.headers.get("authorization")
    if header is None:
        return None
    normalized = header.strip()
    if normalized[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = normalized[len(_BEARER_PREFIX) :].strip()
    return token or None


class RequireCurrentUserDependency:
    """
    RequireCurrentUserDependency — FastAPI dependency resolving authenticated identity user.

    Related:
      - src/datum/contexts/identity/application/ports/current_user.py
      - src/datum/contexts/identity/adapters/outbound/security/current_user/
        bearer_token_current_user.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/two_factor_totp.py
    """

    def __init__(self, *, current_user: CurrentUser) -> None:
        """
        Initialize dependency with current-user port.

        Args:
            current_user: Port resolving user principal from bearer token.
        Returns:
            None.
        Assumptions:
            Tokens are sent in the `Authorization: Bearer` header.
        Raises:
            ValueError: If dependency is missing.
        Side Effects:
            None.
        """
        if current_user is None:  # type: ignore[truthy-bool]
            raise ValueError("RequireCurrentUserDependency requires current_user")
        self._current_user = current_user

    def __call__(self, request: Request) -> CurrentUserPrincipal:
        """
        Resolve authenticated principal from incoming request headers.

        Args:
            request: FastAPI HTTP request.
        Returns:
            CurrentUserPrincipal: Verified user context.
        Assumptions:
            None.
        Raises:
            HTTPException: 401 with deterministic payload for unauthorized requests.
        Side Effects:
            None.
        """
        try:
            return self._current_user.require(token=read_bearer_token(request))
        except CurrentUserUnauthorizedError as error:
            raise HTTPException(
                status_code=401,
                detail={
                    "success": False,
                    "error": error.message,
                    "code": error.code,
                },
            ) from error


class OptionalCurrentUserDependency:
    """
    OptionalCurrentUserDependency — resolve principal when present, `None` otherwise.

    Anonymous and invalid tokens are treated alike so the access gate can answer
    with a login redirect instead of a 401.
    """

    def __init__(self, *, current_user: CurrentUser) -> None:
        if current_user is None:  # type: ignore[truthy-bool]
            raise ValueError("OptionalCurrentUserDependency requires current_user")
        self._current_user = current_user

    def __call__(self, request: Request) -> CurrentUserPrincipal | None:
        token = read_bearer_token(request)
        if token is None:
            return None
        try:
            return self._current_user.require(token=token)
        except CurrentUserUnauthorizedError:
            return None

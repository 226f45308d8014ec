from __future__ import annotations

import hashlib

from datum.contexts.identity.application.ports.current_user import (
    CurrentUser,
    CurrentUserPrincipal,
    CurrentUserUnauthorizedError,
)
from datum.contexts.identity.application.ports.jwt_codec import JwtCodec, JwtDecodeError

_DERIVED_SESSION_ID_LENGTH = 32


class BearerTokenCurrentUser(CurrentUser):
    """
    BearerTokenCurrentUser — resolve principal from `Authorization: Bearer` JWT.

    Tokens without `session_id` claim get a session id derived from the token hash, so a
    refreshed token starts a new TOTP session.

    Related:
      - src/datum/contexts/identity/application/ports/current_user.py
      - src/datum/contexts/identity/adapters/outbound/security/jwt/hs256_jwt_codec.py
      - src/datum/contexts/identity/adapters/inbound/api/deps/current_user.py
    """

    def __init__(self, *, jwt_codec: JwtCodec) -> None:
        if jwt_codec is None:  # type: ignore[truthy-bool]
            raise ValueError("BearerTokenCurrentUser requires jwt_codec")
        self._jwt_codec = jwt_codec

    def require(self, *, token: str | None) -> CurrentUserPrincipal:
        """
        Decode bearer token into principal.

        Args:
            token: Raw bearer token without the `Bearer ` prefix.
        Returns:
            CurrentUserPrincipal: Authenticated caller.
        Assumptions:
            Codec verifies signature and expiration.
        Raises:
            CurrentUserUnauthorizedError: If token is missing or fails verification.
        Side Effects:
            None.
        """
        if token is None or not token.strip():
            raise CurrentUserUnauthorizedError(
                code="unauthorized",
                message="Authentication required",
            )
        try:
            claims = self._jwt_codec.decode(token=token)
        except JwtDecodeError as error:
            raise CurrentUserUnauthorizedError(code=error.code, message=error.message) from None

        session_id = claims.session_id or _derive_session_id(token=token.strip())
        return CurrentUserPrincipal(
            user_id=claims.user_id,
            email=claims.email,
            session_id=session_id,
        )


def _derive_session_id(*, token: str) -> str:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    return digest[:_DERIVED_SESSION_ID_LENGTH]

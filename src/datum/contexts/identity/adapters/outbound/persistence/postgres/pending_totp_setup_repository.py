from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from datum.contexts.identity.adapters.outbound.persistence.postgres._rows import to_utc
from datum.contexts.identity.adapters.outbound.persistence.postgres.gateway import (
    IdentityPostgresGateway,
)
from datum.contexts.identity.application.ports.pending_totp_setup_repository import (
    PendingTotpSetupRepository,
)
from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorStoreError,
)
from datum.contexts.identity.domain.entities import PendingTotpSetup
from datum.shared_kernel.primitives import UserId


class PostgresPendingTotpSetupRepository(PendingTotpSetupRepository):
    """
    PostgresPendingTotpSetupRepository — Postgres adapter for `totp_setup_tokens`.

    `user_id` is unique, so replacing a pending setup is one `ON CONFLICT` upsert.

    Related:
      - src/datum/contexts/identity/application/ports/pending_totp_setup_repository.py
      - alembic/versions/20261019_0001_identity_two_factor_v1.py
    """

    def __init__(
        self,
        *,
        gateway: IdentityPostgresGateway,
        setup_tokens_table: str = "totp_setup_tokens",
    ) -> None:
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresPendingTotpSetupRepository requires gateway")
        normalized_table = setup_tokens_table.strip()
        if not normalized_table:
            raise ValueError("PostgresPendingTotpSetupRepository requires non-empty table name")
        self._gateway = gateway
        self._table = normalized_table

    def find_by_user_id(self, *, user_id: UserId) -> PendingTotpSetup | None:
        query = f"""
        SELECT
            user_id,
            totp_secret_enc,
            created_at,
            expires_at
        FROM {self._table}
        WHERE user_id = %(user_id)s
        """
        row = self._gateway.fetch_one(query=query, parameters={"user_id": str(user_id)})
        if row is None:
            return None
        return _map_pending_row(row=row)

    def replace(self, *, pending: PendingTotpSetup) -> PendingTotpSetup:
        """
        Upsert pending setup so the user keeps exactly one record.

        Args:
            pending: New pending setup record.
        Returns:
            PendingTotpSetup: Persisted record.
        Assumptions:
            Unique constraint on `user_id` serializes concurrent setup calls.
        Raises:
            TwoFactorStoreError: If statement fails or returns no row.
        Side Effects:
            Executes one SQL upsert statement.
        """
        query = f"""
        INSERT INTO {self._table}
        (
            user_id,
            totp_secret_enc,
            created_at,
            expires_at
        )
        VALUES
        (
            %(user_id)s,
            %(totp_secret_enc)s,
            %(created_at)s,
            %(expires_at)s
        )
        ON CONFLICT (user_id)
        DO UPDATE
        SET
            totp_secret_enc = EXCLUDED.totp_secret_enc,
            created_at = EXCLUDED.created_at,
            expires_at = EXCLUDED.expires_at
        RETURNING
            user_id,
            totp_secret_enc,
            created_at,
            expires_at
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "user_id": str(pending.user_id),
                "totp_secret_enc": pending.totp_secret_enc,
                "created_at": pending.created_at,
                "expires_at": pending.expires_at,
            },
        )
        if row is None:
            raise TwoFactorStoreError("PostgresPendingTotpSetupRepository upsert returned no row")
        return _map_pending_row(row=row)

    def delete(self, *, user_id: UserId, expires_at: datetime | None = None) -> None:
        query = f"""
        DELETE FROM {self._table}
        WHERE user_id = %(user_id)s
          AND (%(expires_at)s::timestamptz IS NULL OR expires_at = %(expires_at)s)
        """
        self._gateway.execute(
            query=query,
            parameters={"user_id": str(user_id), "expires_at": expires_at},
        )


def _map_pending_row(*, row: Mapping[str, Any]) -> PendingTotpSetup:
    try:
        return PendingTotpSetup(
            user_id=UserId.from_string(str(row["user_id"])),
            totp_secret_enc=str(row["totp_secret_enc"]),
            created_at=to_utc(row["created_at"]),
            expires_at=to_utc(row["expires_at"]),
        )
    except (KeyError, TypeError, ValueError) as error:
        raise TwoFactorStoreError("PostgresPendingTotpSetupRepository cannot map row") from error

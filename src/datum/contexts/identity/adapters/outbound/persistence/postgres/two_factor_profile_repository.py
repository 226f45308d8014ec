from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from datum.contexts.identity.adapters.outbound.persistence.postgres._rows import (
    to_optional_utc,
    to_utc,
)
from datum.contexts.identity.adapters.outbound.persistence.postgres.gateway import (
    IdentityPostgresGateway,
)
from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorProfileRepository,
    TwoFactorStoreError,
)
from datum.contexts.identity.domain.entities import TwoFactorProfile
from datum.shared_kernel.primitives import UserId

_PROFILE_COLUMNS = """
    user_id,
    email,
    totp_secret_enc,
    totp_enabled,
    trial_start,
    trial_expiration,
    is_trial_user,
    updated_at
"""


class PostgresTwoFactorProfileRepository(TwoFactorProfileRepository):
    """
    PostgresTwoFactorProfileRepository — Postgres adapter for the `profiles` table.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_profile_repository.py
      - alembic/versions/20261019_0001_identity_two_factor_v1.py
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/gateway.py
    """

    def __init__(
        self,
        *,
        gateway: IdentityPostgresGateway,
        profiles_table: str = "profiles",
    ) -> None:
        """
        Initialize repository with SQL gateway and target table name.

        Args:
            gateway: SQL gateway abstraction.
            profiles_table: Target profiles table name.
        Returns:
            None.
        Assumptions:
            Table schema follows migration `20261019_0001_identity_two_factor_v1`.
        Raises:
            ValueError: If dependencies are invalid.
        Side Effects:
            None.
        """
        if gateway is None:  # type: ignore[truthy-bool]
            raise ValueError("PostgresTwoFactorProfileRepository requires gateway")
        normalized_table = profiles_table.strip()
        if not normalized_table:
            raise ValueError("PostgresTwoFactorProfileRepository requires non-empty table name")

        self._gateway = gateway
        self._table = normalized_table

    def find_by_user_id(self, *, user_id: UserId) -> TwoFactorProfile | None:
        query = f"""
        SELECT {_PROFILE_COLUMNS}
        FROM {self._table}
        WHERE user_id = %(user_id)s
        """
        row = self._gateway.fetch_one(query=query, parameters={"user_id": str(user_id)})
        if row is None:
            return None
        return _map_profile_row(row=row)

    def find_by_email(self, *, email: str) -> TwoFactorProfile | None:
        """
        Find profile by case-insensitive email.

        Args:
            email: Account email address.
        Returns:
            TwoFactorProfile | None: Most recently updated match or `None`.
        Assumptions:
            `lower(email)` index serves the lookup.
        Raises:
            TwoFactorStoreError: If query fails or row mapping is malformed.
        Side Effects:
            Executes one SQL SELECT statement.
        """
        query = f"""
        SELECT {_PROFILE_COLUMNS}
        FROM {self._table}
        WHERE lower(email) = lower(%(email)s)
        ORDER BY updated_at DESC
        LIMIT 1
        """
        row = self._gateway.fetch_one(query=query, parameters={"email": email.strip()})
        if row is None:
            return None
        return _map_profile_row(row=row)

    def ensure_profile(
        self,
        *,
        user_id: UserId,
        email: str | None,
        created_at: datetime,
    ) -> TwoFactorProfile:
        """
        Insert trial-user profile or return existing one in a single statement.

        Args:
            user_id: Identity user identifier.
            email: Account email, stored only when existing row has none.
            created_at: UTC timestamp for a created row.
        Returns:
            TwoFactorProfile: Persisted profile snapshot.
        Assumptions:
            `ON CONFLICT DO UPDATE` always returns the row, inserted or existing.
        Raises:
            TwoFactorStoreError: If statement fails or returns no row.
        Side Effects:
            Executes one SQL upsert statement.
        """
        query = f"""
        INSERT INTO {self._table}
        (
            user_id,
            email,
            totp_secret_enc,
            totp_enabled,
            trial_start,
            trial_expiration,
            is_trial_user,
            updated_at
        )
        VALUES
        (
            %(user_id)s,
            %(email)s,
            NULL,
            FALSE,
            NULL,
            NULL,
            TRUE,
            %(created_at)s
        )
        ON CONFLICT (user_id)
        DO UPDATE
        SET
            email = COALESCE({self._table}.email, EXCLUDED.email)
        RETURNING {_PROFILE_COLUMNS}
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "user_id": str(user_id),
                "email": email,
                "created_at": created_at,
            },
        )
        if row is None:
            raise TwoFactorStoreError("PostgresTwoFactorProfileRepository upsert returned no row")
        return _map_profile_row(row=row)

    def promote_pending_secret(
        self,
        *,
        user_id: UserId,
        totp_secret_enc: str,
        trial_start: datetime,
        trial_expiration: datetime,
        updated_at: datetime,
    ) -> TwoFactorProfile | None:
        """
        Enable TOTP and start trial with a conditional update.

        Args:
            user_id: Identity user identifier.
            totp_secret_enc: Encrypted secret envelope.
            trial_start: UTC trial start.
            trial_expiration: UTC trial end.
            updated_at: UTC update timestamp.
        Returns:
            TwoFactorProfile | None: Promoted row, or `None` when already enabled or missing.
        Assumptions:
            `WHERE totp_enabled = FALSE` makes concurrent promotions start one trial only.
        Raises:
            TwoFactorStoreError: If statement fails or row mapping is malformed.
        Side Effects:
            Executes one SQL UPDATE statement.
        """
        query = f"""
        UPDATE {self._table}
        SET
            totp_secret_enc = %(totp_secret_enc)s,
            totp_enabled = TRUE,
            trial_start = %(trial_start)s,
            trial_expiration = %(trial_expiration)s,
            updated_at = %(updated_at)s
        WHERE user_id = %(user_id)s
          AND totp_enabled = FALSE
        RETURNING {_PROFILE_COLUMNS}
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "user_id": str(user_id),
                "totp_secret_enc": totp_secret_enc,
                "trial_start": trial_start,
                "trial_expiration": trial_expiration,
                "updated_at": updated_at,
            },
        )
        if row is None:
            return None
        return _map_profile_row(row=row)

    def reset_trial(
        self,
        *,
        user_id: UserId,
        trial_start: datetime,
        trial_expiration: datetime,
        updated_at: datetime,
    ) -> TwoFactorProfile | None:
        query = f"""
        UPDATE {self._table}
        SET
            is_trial_user = TRUE,
            trial_start = %(trial_start)s,
            trial_expiration = %(trial_expiration)s,
            updated_at = %(updated_at)s
        WHERE user_id = %(user_id)s
        RETURNING {_PROFILE_COLUMNS}
        """
        row = self._gateway.fetch_one(
            query=query,
            parameters={
                "user_id": str(user_id),
                "trial_start": trial_start,
                "trial_expiration": trial_expiration,
                "updated_at": updated_at,
            },
        )
        if row is None:
            return None
        return _map_profile_row(row=row)


def _map_profile_row(*, row: Mapping[str, Any]) -> TwoFactorProfile:
    """
    Map SQL row mapping into immutable domain `TwoFactorProfile`.

    Args:
        row: SQL result mapping.
    Returns:
        TwoFactorProfile: Domain profile snapshot.
    Assumptions:
        Row follows schema of `profiles` table.
    Raises:
        TwoFactorStoreError: If required fields are missing or malformed.
    Side Effects:
        None.
    """
    try:
        return TwoFactorProfile(
            user_id=UserId.from_string(str(row["user_id"])),
            email=row["email"],
            totp_secret_enc=row["totp_secret_enc"],
            totp_enabled=bool(row["totp_enabled"]),
            trial_start=to_optional_utc(row["trial_start"]),
            trial_expiration=to_optional_utc(row["trial_expiration"]),
            is_trial_user=bool(row["is_trial_user"]),
            updated_at=to_utc(row["updated_at"]),
        )
    except (KeyError, TypeError, ValueError) as error:
        raise TwoFactorStoreError("PostgresTwoFactorProfileRepository cannot map row") from error

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol, cast

import psycopg
from psycopg.rows import dict_row

from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorStoreError,
)

log = logging.getLogger(__name__)


class IdentityPostgresGateway(Protocol):
    """
    IdentityPostgresGateway — statement runner used by two-factor Postgres repositories.

    Repositories own SQL text and row mapping; gateways own connections and driver errors.

    Related:
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/
        two_factor_profile_repository.py
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/
        pending_totp_setup_repository.py
      - apps/api/wiring/modules/identity.py
    """

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        """
        Run one statement and return its first row keyed by column name.

        Args:
            query: Parameterized SQL (`%(name)s` placeholders).
            parameters: Values bound to placeholders.
        Returns:
            Mapping[str, Any] | None: First row, or `None` when nothing matched.
        Assumptions:
            Writes use `RETURNING` to report the stored row.
        Raises:
            TwoFactorStoreError: If the database cannot be reached or rejects the statement.
        Side Effects:
            May modify stored rows.
        """
        ...

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        """
        Run one write statement that produces no rows.

        Args:
            query: Parameterized SQL (`%(name)s` placeholders).
            parameters: Values bound to placeholders.
        Returns:
            None.
        Assumptions:
            Caller does not need affected row count.
        Raises:
            TwoFactorStoreError: If the database cannot be reached or rejects the statement.
        Side Effects:
            Modifies stored rows.
        """
        ...


class PsycopgIdentityPostgresGateway(IdentityPostgresGateway):
    """
    PsycopgIdentityPostgresGateway — psycopg 3 gateway with one connection per statement.

    The connection context commits on success and rolls back on error, so every statement
    is its own transaction. Driver errors become `TwoFactorStoreError` with the original
    exception chained for logs.

    Related:
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/gateway.py
      - alembic/versions/20261019_0001_identity_two_factor_v1.py
    """

    def __init__(self, *, dsn: str, connect_timeout_seconds: int = 5) -> None:
        """
        Store connection settings; no connection is opened here.

        Args:
            dsn: libpq connection string or `postgresql://` URL.
            connect_timeout_seconds: Upper bound for establishing one connection.
        Returns:
            None.
        Assumptions:
            Target database already has `profiles` and `totp_setup_tokens` tables.
        Raises:
            ValueError: If DSN is blank or timeout is not positive.
        Side Effects:
            None.
        """
        normalized_dsn = dsn.strip()
        if not normalized_dsn:
            raise ValueError("PsycopgIdentityPostgresGateway requires non-empty dsn")
        if connect_timeout_seconds <= 0:
            raise ValueError("PsycopgIdentityPostgresGateway requires connect_timeout_seconds > 0")
        self._dsn = normalized_dsn
        self._connect_timeout_seconds = connect_timeout_seconds

    def fetch_one(self, *, query: str, parameters: Mapping[str, Any]) -> Mapping[str, Any] | None:
        row = self._run(query=query, parameters=parameters, fetch=True)
        if row is None:
            return None
        return dict(row)

    def execute(self, *, query: str, parameters: Mapping[str, Any]) -> None:
        self._run(query=query, parameters=parameters, fetch=False)

    def _run(
        self,
        *,
        query: str,
        parameters: Mapping[str, Any],
        fetch: bool,
    ) -> Mapping[str, Any] | None:
        """
        Open connection, run statement and optionally read the first row.

        Args:
            query: Parameterized SQL.
            parameters: Bound values.
            fetch: Whether to read one row after execution.
        Returns:
            Mapping[str, Any] | None: First row when `fetch` is set, else `None`.
        Assumptions:
            Rows are produced by `dict_row` factory.
        Raises:
            TwoFactorStoreError: On any `psycopg.Error`.
        Side Effects:
            Opens and closes one database connection.
        """
        try:
            with psycopg.connect(
                self._dsn,
                connect_timeout=self._connect_timeout_seconds,
                row_factory=cast(Any, dict_row),
            ) as connection:
                with connection.cursor() as cursor:
                    cursor.execute(cast(Any, query), parameters)
                    if not fetch:
                        return None
                    return cast(Mapping[str, Any] | None, cursor.fetchone())
        except psycopg.Error as error:
            log.warning("identity postgres statement failed: error=%s", type(error).__name__)
            raise TwoFactorStoreError(
                f"identity postgres statement failed: {type(error).__name__}"
            ) from error

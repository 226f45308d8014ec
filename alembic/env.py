from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection

from alembic import context

config = context.config

if config.config_file_name is not None and not config.attributes.get("connection"):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

log = logging.getLogger("alembic.env")

target_metadata = None

_DSN_ENV_KEY = "IDENTITY_PG_DSN"


def _resolve_url() -> str:
    """
    Resolve SQLAlchemy URL from `alembic.ini` or `IDENTITY_PG_DSN`.

    Args:
        None.
    Returns:
        str: SQLAlchemy URL string.
    Assumptions:
        Environment DSN is a `postgresql://` URL when used directly with the alembic CLI.
    Raises:
        ValueError: If neither source provides a URL.
    Side Effects:
        None.
    """
    url = (config.get_main_option("sqlalchemy.url") or "").strip()
    if not url:
        url = os.environ.get(_DSN_ENV_KEY, "").strip()
    if not url:
        raise ValueError(f"sqlalchemy.url or {_DSN_ENV_KEY} must be set")
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def run_migrations_offline() -> None:
    """
    Emit identity schema SQL without opening a DB connection.

    Related:
      - alembic/versions/20261019_0001_identity_two_factor_v1.py
      - apps/migrations/main.py
    """
    context.configure(
        url=_resolve_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations on the connection injected by the lock-holding runner, or a new one.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Injected connection comes from `apps.migrations.main` advisory-lock flow.
    Raises:
        Exception: Alembic configuration/runtime errors.
    Side Effects:
        Opens DB connection (when not injected) and applies schema changes.
    """
    injected_connection = config.attributes.get("connection")
    if isinstance(injected_connection, Connection):
        context.configure(
            connection=injected_connection,
            target_metadata=target_metadata,
        )
        with context.begin_transaction():
            context.run_migrations()
        return

    section = dict(config.get_section(config.config_ini_section, {}))
    section["sqlalchemy.url"] = _resolve_url()
    connectable = engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()
    log.info("identity migrations applied")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()

"""Create identity two-factor tables for profiles and pending TOTP setups."""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """
    Apply identity two-factor storage schema.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Migration is additive and safe on fresh environments.
    Raises:
        Exception: Postgres execution errors from Alembic runtime.
    Side Effects:
        Creates `profiles` and `totp_setup_tokens` tables, constraints, and indexes.
    """
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS profiles (
            user_id UUID PRIMARY KEY,
            email TEXT NULL,
            totp_secret_enc TEXT NULL,
            totp_enabled BOOLEAN NOT NULL DEFAULT FALSE,
            trial_start TIMESTAMPTZ NULL,
            trial_expiration TIMESTAMPTZ NULL,
            is_trial_user BOOLEAN NOT NULL DEFAULT TRUE,
            updated_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT profiles_enabled_requires_secret_chk
                CHECK (NOT totp_enabled OR totp_secret_enc IS NOT NULL),
            CONSTRAINT profiles_trial_dates_together_chk
                CHECK ((trial_start IS NULL) = (trial_expiration IS NULL)),
            CONSTRAINT profiles_trial_order_chk
                CHECK (trial_expiration IS NULL OR trial_expiration >= trial_start)
        )
        """
    )
    op.execute(
        """
        CREATE INDEX IF NOT EXISTS profiles_email_lower_idx
            ON profiles (lower(email))
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS totp_setup_tokens (
            user_id UUID PRIMARY KEY,
            totp_secret_enc TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL,
            expires_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT totp_setup_tokens_expiry_chk
                CHECK (expires_at > created_at)
        )
        """
    )


def downgrade() -> None:
    """
    Drop identity two-factor storage schema.

    Args:
        None.
    Returns:
        None.
    Assumptions:
        Stored secrets are disposable in the target environment.
    Raises:
        Exception: Postgres execution errors from Alembic runtime.
    Side Effects:
        Drops `totp_setup_tokens` and `profiles` tables.
    """
    op.execute("DROP TABLE IF EXISTS totp_setup_tokens")
    op.execute("DROP INDEX IF EXISTS profiles_email_lower_idx")
    op.execute("DROP TABLE IF EXISTS profiles")

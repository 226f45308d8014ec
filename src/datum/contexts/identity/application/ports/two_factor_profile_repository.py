from __future__ import annotations

from datetime import datetime
from typing import Protocol

from datum.contexts.identity.domain.entities import TwoFactorProfile
from datum.shared_kernel.primitives import UserId


class TwoFactorStoreError(RuntimeError):
    """
    TwoFactorStoreError — persistence adapter could not complete a read or write.

    Use cases log the cause and surface an opaque internal error to callers.
    """


class TwoFactorProfileRepository(Protocol):
    """
    TwoFactorProfileRepository — port storing per-user TOTP enablement and trial window.

    Related:
      - src/datum/contexts/identity/domain/entities/two_factor_profile.py
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/
        two_factor_profile_repository.py
      - src/datum/contexts/identity/adapters/outbound/persistence/in_memory/
        two_factor_profile_repository.py
    """

    def find_by_user_id(self, *, user_id: UserId) -> TwoFactorProfile | None:
        """
        Find profile snapshot by stable user identifier.

        Args:
            user_id: Identity user identifier.
        Returns:
            TwoFactorProfile | None: Stored profile or `None` when absent.
        Assumptions:
            `user_id` uniquely identifies one profile row.
        Raises:
            TwoFactorStoreError: If storage read fails or row cannot be mapped.
        Side Effects:
            Reads one storage record.
        """
        ...

    def find_by_email(self, *, email: str) -> TwoFactorProfile | None:
        """
        Find profile snapshot by case-insensitive email.

        Args:
            email: Account email address.
        Returns:
            TwoFactorProfile | None: Stored profile or `None` when absent.
        Assumptions:
            Emails are unique across profiles.
        Raises:
            TwoFactorStoreError: If storage read fails or row cannot be mapped.
        Side Effects:
            Reads one storage record.
        """
        ...

    def ensure_profile(
        self,
        *,
        user_id: UserId,
        email: str | None,
        created_at: datetime,
    ) -> TwoFactorProfile:
        """
        Return existing profile or lazily create a fresh trial-user profile.

        Args:
            user_id: Identity user identifier.
            email: Account email to store when it is not yet known.
            created_at: UTC timestamp used as `updated_at` of a created row.
        Returns:
            TwoFactorProfile: Existing or newly created profile.
        Assumptions:
            New profiles start with TOTP disabled, no trial dates and `is_trial_user=True`.
        Raises:
            TwoFactorStoreError: If storage write fails.
        Side Effects:
            May insert one storage record.
        """
        ...

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
        Enable TOTP with the confirmed secret and start the trial window, once.

        Args:
            user_id: Identity user identifier.
            totp_secret_enc: Encrypted secret copied from the pending setup record.
            trial_start: UTC start of the trial window.
            trial_expiration: UTC end of the trial window.
            updated_at: UTC timestamp of this write operation.
        Returns:
            TwoFactorProfile | None: Promoted profile, or `None` when the profile is missing
            or TOTP was already enabled (conditional write matched nothing).
        Assumptions:
            Write is atomic and conditional on `totp_enabled = false`.
        Raises:
            TwoFactorStoreError: If storage write fails.
        Side Effects:
            Updates at most one storage record.
        """
        ...

    def reset_trial(
        self,
        *,
        user_id: UserId,
        trial_start: datetime,
        trial_expiration: datetime,
        updated_at: datetime,
    ) -> TwoFactorProfile | None:
        """
        Restart the trial window of an existing profile.

        Args:
            user_id: Identity user identifier.
            trial_start: UTC start of the new trial window.
            trial_expiration: UTC end of the new trial window.
            updated_at: UTC timestamp of this write operation.
        Returns:
            TwoFactorProfile | None: Updated profile or `None` when profile is absent.
        Assumptions:
            Resetting also marks profile as a trial user.
        Raises:
            TwoFactorStoreError: If storage write fails.
        Side Effects:
            Updates at most one storage record.
        """
        ...

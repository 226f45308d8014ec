from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime

from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorProfileRepository,
)
from datum.contexts.identity.domain.entities import TwoFactorProfile
from datum.shared_kernel.primitives import UserId


class InMemoryTwoFactorProfileRepository(TwoFactorProfileRepository):
    """
    InMemoryTwoFactorProfileRepository — process-local profile storage guarded by a lock.

    Related:
      - src/datum/contexts/identity/application/ports/two_factor_profile_repository.py
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/
        two_factor_profile_repository.py
      - tests/unit/contexts/identity/application/test_two_factor_totp_use_cases.py
    """

    def __init__(self) -> None:
        """
        Initialize empty in-memory profile storage.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            Repository instance is process-local and isolated per test run.
        Raises:
            None.
        Side Effects:
            None.
        """
        self._rows: dict[str, TwoFactorProfile] = {}
        self._lock = threading.Lock()

    def find_by_user_id(self, *, user_id: UserId) -> TwoFactorProfile | None:
        with self._lock:
            return self._rows.get(str(user_id))

    def find_by_email(self, *, email: str) -> TwoFactorProfile | None:
        """
        Find first profile whose email matches case-insensitively.

        Args:
            email: Account email address.
        Returns:
            TwoFactorProfile | None: Matching profile or `None`.
        Assumptions:
            Linear scan is acceptable for process-local storage.
        Raises:
            None.
        Side Effects:
            None.
        """
        needle = email.strip().lower()
        with self._lock:
            for row in self._rows.values():
                if row.email is not None and row.email.lower() == needle:
                    return row
        return None

    def ensure_profile(
        self,
        *,
        user_id: UserId,
        email: str | None,
        created_at: datetime,
    ) -> TwoFactorProfile:
        """
        Return existing profile, filling a missing email, or create a trial-user profile.

        Args:
            user_id: Identity user identifier.
            email: Account email, if known.
            created_at: UTC timestamp for a created row.
        Returns:
            TwoFactorProfile: Stored profile snapshot.
        Assumptions:
            Check and insert happen under one lock acquisition.
        Raises:
            ValueError: If created profile violates domain invariants.
        Side Effects:
            May insert or update one in-memory row.
        """
        key = str(user_id)
        with self._lock:
            existing = self._rows.get(key)
            if existing is not None:
                if existing.email is None and email:
                    existing = replace(existing, email=email)
                    self._rows[key] = existing
                return existing
            row = TwoFactorProfile(
                user_id=user_id,
                email=email,
                totp_secret_enc=None,
                totp_enabled=False,
                trial_start=None,
                trial_expiration=None,
                is_trial_user=True,
                updated_at=created_at,
            )
            self._rows[key] = row
            return row

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
        Enable TOTP only when the stored profile is not enabled yet.

        Args:
            user_id: Identity user identifier.
            totp_secret_enc: Encrypted secret to store.
            trial_start: UTC trial start.
            trial_expiration: UTC trial end.
            updated_at: UTC update timestamp.
        Returns:
            TwoFactorProfile | None: Promoted profile or `None` when missing or already enabled.
        Assumptions:
            Compare-and-set happens under the lock.
        Raises:
            ValueError: If resulting profile violates domain invariants.
        Side Effects:
            May update one in-memory row.
        """
        key = str(user_id)
        with self._lock:
            existing = self._rows.get(key)
            if existing is None or existing.totp_enabled:
                return None
            promoted = replace(
                existing,
                totp_secret_enc=totp_secret_enc,
                totp_enabled=True,
                trial_start=trial_start,
                trial_expiration=trial_expiration,
                updated_at=updated_at,
            )
            self._rows[key] = promoted
            return promoted

    def reset_trial(
        self,
        *,
        user_id: UserId,
        trial_start: datetime,
        trial_expiration: datetime,
        updated_at: datetime,
    ) -> TwoFactorProfile | None:
        key = str(user_id)
        with self._lock:
            existing = self._rows.get(key)
            if existing is None:
                return None
            updated = replace(
                existing,
                is_trial_user=True,
                trial_start=trial_start,
                trial_expiration=trial_expiration,
                updated_at=updated_at,
            )
            self._rows[key] = updated
            return updated

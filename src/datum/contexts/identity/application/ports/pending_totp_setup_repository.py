from __future__ import annotations

from datetime import datetime
from typing import Protocol

from datum.contexts.identity.domain.entities import PendingTotpSetup
from datum.shared_kernel.primitives import UserId


class PendingTotpSetupRepository(Protocol):
    """
    PendingTotpSetupRepository — port storing at most one pending setup per user.

    Related:
      - src/datum/contexts/identity/domain/entities/pending_totp_setup.py
      - src/datum/contexts/identity/adapters/outbound/persistence/postgres/
        pending_totp_setup_repository.py
      - src/datum/contexts/identity/adapters/outbound/persistence/in_memory/
        pending_totp_setup_repository.py
    """

    def find_by_user_id(self, *, user_id: UserId) -> PendingTotpSetup | None:
        """
        Find pending setup record for user.

        Args:
            user_id: Identity user identifier.
        Returns:
            PendingTotpSetup | None: Stored record or `None` when absent.
        Assumptions:
            Expired records may still be returned; callers check expiry.
        Raises:
            TwoFactorStoreError: If storage read fails.
        Side Effects:
            Reads one storage record.
        """
        ...

    def replace(self, *, pending: PendingTotpSetup) -> PendingTotpSetup:
        """
        Atomically drop any previous pending record of the user and store `pending`.

        Args:
            pending: New pending setup record.
        Returns:
            PendingTotpSetup: Persisted record.
        Assumptions:
            Storage keeps one record per user.
        Raises:
            TwoFactorStoreError: If storage write fails.
        Side Effects:
            Deletes and inserts storage records.
        """
        ...

    def delete(self, *, user_id: UserId, expires_at: datetime | None = None) -> None:
        """
        Delete pending setup record of user if present.

        Args:
            user_id: Identity user identifier.
            expires_at: When set, delete only the record with this exact expiry.
        Returns:
            None.
        Assumptions:
            Deleting an absent record is a no-op; a record replaced by a newer setup
            survives a delete conditioned on the old `expires_at`.
        Raises:
            TwoFactorStoreError: If storage write fails.
        Side Effects:
            Deletes at most one storage record.
        """
        ...

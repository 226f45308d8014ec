from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from datum.contexts.identity.application.ports.email_notifier import (
    EmailMessage,
    EmailNotifier,
)
from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorProfileRepository,
)
from datum.contexts.identity.application.use_cases.two_factor_errors import (
    TwoFactorProfileNotFoundError,
    TwoFactorValidationError,
)
from datum.contexts.identity.application.use_cases.two_factor_guards import (
    internal_failure_guard,
)
from datum.contexts.identity.application.use_cases.two_factor_policy import TwoFactorPolicy
from datum.contexts.identity.domain.entities import ensure_utc_datetime

log = logging.getLogger(__name__)

_APPROVAL_SUBJECT = "Your Trial Has Been Extended"


@dataclass(frozen=True, slots=True)
class ResetTrialResult:
    """
    ResetTrialResult — new trial window of a profile and the notification outcome.
    """

    email: str
    trial_start: datetime
    trial_expiration: datetime
    email_sent: bool


class ResetTrialUseCase:
    """
    ResetTrialUseCase — restart a user's trial window and notify them by email.

    Admin authorization is enforced by the inbound route, not here.

    Related:
      - src/datum/contexts/identity/application/ports/email_notifier.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/admin_trial.py
    """

    def __init__(
        self,
        *,
        profile_repository: TwoFactorProfileRepository,
        email_notifier: EmailNotifier,
        policy: TwoFactorPolicy,
    ) -> None:
        if profile_repository is None:  # type: ignore[truthy-bool]
            raise ValueError("ResetTrialUseCase requires profile_repository")
        if email_notifier is None:  # type: ignore[truthy-bool]
            raise ValueError("ResetTrialUseCase requires email_notifier")
        if policy is None:  # type: ignore[truthy-bool]
            raise ValueError("ResetTrialUseCase requires policy")
        self._profile_repository = profile_repository
        self._email_notifier = email_notifier
        self._policy = policy

    def reset(self, *, email: str | None, days: int | None, now: datetime) -> ResetTrialResult:
        """
        Set `trial_start=now` and `trial_expiration=now+days` for profile with `email`.

        Args:
            email: Target account email.
            days: Trial length in days; policy trial duration when `None`.
            now: Current UTC timestamp.
        Returns:
            ResetTrialResult: New trial window and whether approval email was accepted.
        Assumptions:
            Email delivery is best-effort and never fails the reset.
        Raises:
            TwoFactorValidationError: If email is blank or days is not positive.
            TwoFactorProfileNotFoundError: If no profile has this email.
            TwoFactorInternalError: If store fails.
        Side Effects:
            Updates one profile and sends one email.
        """
        normalized_email = (email or "").strip()
        if not normalized_email:
            raise TwoFactorValidationError(message="Email is required.")
        if days is not None and days <= 0:
            raise TwoFactorValidationError(message="Days must be a positive integer.")
        now = ensure_utc_datetime(value=now, field_name="now")
        duration = timedelta(days=days) if days is not None else self._policy.trial_duration

        with internal_failure_guard(operation="reset_trial"):
            profile = self._profile_repository.find_by_email(email=normalized_email)
            if profile is None:
                raise TwoFactorProfileNotFoundError()
            updated = self._profile_repository.reset_trial(
                user_id=profile.user_id,
                trial_start=now,
                trial_expiration=now + duration,
                updated_at=now,
            )
        if updated is None or updated.trial_start is None or updated.trial_expiration is None:
            raise TwoFactorProfileNotFoundError()

        log.info(
            "identity trial reset user_id=%s trial_expiration=%s",
            updated.user_id,
            updated.trial_expiration.isoformat(),
        )
        email_sent = self._email_notifier.send(
            message=_build_approval_email(
                to=normalized_email,
                trial_expiration=updated.trial_expiration,
            )
        )
        if not email_sent:
            log.warning("identity trial approval email not sent user_id=%s", updated.user_id)
        return ResetTrialResult(
            email=updated.email or normalized_email,
            trial_start=updated.trial_start,
            trial_expiration=updated.trial_expiration,
            email_sent=email_sent,
        )


def _build_approval_email(*, to: str, trial_expiration: datetime) -> EmailMessage:
    """
    Render trial approval email for the user.

    Args:
        to: Recipient email.
        trial_expiration: New UTC trial expiration.
    Returns:
        EmailMessage: Ready-to-send message.
    Assumptions:
        Expiration is shown in UTC.
    Raises:
        ValueError: If recipient is not an email address.
    Side Effects:
        None.
    """
    expiration_text = html.escape(trial_expiration.strftime("%Y-%m-%d %H:%M UTC"))
    body = (
        "<h2>Trial Extended!</h2>"
        "<p>Good news! Your trial extension request has been approved.</p>"
        f"<p><strong>New Trial Expiration:</strong> {expiration_text}</p>"
        "<p>You can now log in and continue using Datum.</p>"
    )
    return EmailMessage(to=to, subject=_APPROVAL_SUBJECT, html=body)

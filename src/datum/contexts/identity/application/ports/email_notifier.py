from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class EmailMessage:
    """
    EmailMessage — plain transactional email addressed to one recipient.
    """

    to: str
    subject: str
    html: str

    def __post_init__(self) -> None:
        if "@" not in self.to:
            raise ValueError("EmailMessage.to must be an email address")
        if not self.subject.strip():
            raise ValueError("EmailMessage.subject must be non-empty")


class EmailNotifier(Protocol):
    """
    EmailNotifier — best-effort outbound email delivery.

    Related:
      - src/datum/contexts/identity/adapters/outbound/messaging/email/resend_email_notifier.py
      - src/datum/contexts/identity/adapters/outbound/messaging/email/log_only_email_notifier.py
      - src/datum/contexts/identity/application/use_cases/reset_trial.py
    """

    def send(self, *, message: EmailMessage) -> bool:
        """
        Deliver message to its recipient.

        Args:
            message: Email to deliver.
        Returns:
            bool: `True` when the provider accepted the message, `False` otherwise.
        Assumptions:
            Delivery failures are logged by the adapter and never raised.
        Raises:
            None.
        Side Effects:
            May perform one outbound HTTP request.
        """
        ...

from __future__ import annotations

import logging

from datum.contexts.identity.application.ports.email_notifier import EmailMessage, EmailNotifier

log = logging.getLogger(__name__)


class LogOnlyEmailNotifier(EmailNotifier):
    """
    LogOnlyEmailNotifier — dev/test adapter that logs emails instead of sending them.

    Related:
      - src/datum/contexts/identity/application/ports/email_notifier.py
      - apps/api/wiring/modules/identity.py
    """

    def send(self, *, message: EmailMessage) -> bool:
        """
        Log email envelope and report it as delivered.

        Args:
            message: Email to "deliver".
        Returns:
            bool: Always `True`.
        Assumptions:
            Used when no email provider is configured.
        Raises:
            None.
        Side Effects:
            Emits one log line.
        """
        log.info(
            "identity log-only email to=%s subject=%s",
            message.to,
            message.subject,
        )
        return True

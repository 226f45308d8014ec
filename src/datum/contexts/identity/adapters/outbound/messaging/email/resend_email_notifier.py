from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, cast

import requests

from datum.contexts.identity.application.ports.email_notifier import EmailMessage, EmailNotifier

log = logging.getLogger(__name__)

_DEFAULT_API_BASE_URL = "https://api.resend.com"
_DEFAULT_SEND_TIMEOUT_S = 10.0


@dataclass(frozen=True, slots=True)
class ResendEmailNotifierConfig:
    """
    ResendEmailNotifierConfig — runtime settings for Resend HTTP email adapter.

    Related:
      - apps/api/wiring/modules/identity.py
      - src/datum/contexts/identity/adapters/outbound/messaging/email/resend_email_notifier.py
    """

    api_key: str
    sender: str
    api_base_url: str = _DEFAULT_API_BASE_URL
    send_timeout_s: float = _DEFAULT_SEND_TIMEOUT_S

    def __post_init__(self) -> None:
        """
        Validate Resend notifier config invariants.

        Args:
            None.
        Returns:
            None.
        Assumptions:
            API key is provided through environment and must never be empty.
        Raises:
            ValueError: If one of config values is invalid.
        Side Effects:
            None.
        """
        normalized_key = self.api_key.strip()
        normalized_sender = self.sender.strip()
        normalized_api_base = self.api_base_url.strip()
        if not normalized_key:
            raise ValueError("ResendEmailNotifierConfig.api_key must be non-empty")
        if "@" not in normalized_sender:
            raise ValueError("ResendEmailNotifierConfig.sender must be an email address")
        if not normalized_api_base.startswith(("https://", "http://")):
            raise ValueError(
                "ResendEmailNotifierConfig.api_base_url must start with http:// or https://"
            )
        if self.send_timeout_s <= 0:
            raise ValueError("ResendEmailNotifierConfig.send_timeout_s must be > 0")
        object.__setattr__(self, "api_key", normalized_key)
        object.__setattr__(self, "sender", normalized_sender)
        object.__setattr__(self, "api_base_url", normalized_api_base.rstrip("/"))


class EmailHttpResponse(Protocol):
    status_code: int

    @property
    def text(self) -> str:
        ...


class EmailHttpSession(Protocol):
    """
    EmailHttpSession — minimal HTTP session contract so tests can inject a fake.
    """

    def post(
        self,
        *,
        url: str,
        json: dict[str, Any],
        headers: dict[str, str],
        timeout: float,
    ) -> EmailHttpResponse:
        ...


class ResendEmailNotifier(EmailNotifier):
    """
    ResendEmailNotifier — best-effort email delivery through the Resend HTTP API.

    Related:
      - src/datum/contexts/identity/application/ports/email_notifier.py
      - src/datum/contexts/identity/application/use_cases/reset_trial.py
      - apps/api/wiring/modules/identity.py
    """

    def __init__(
        self,
        *,
        config: ResendEmailNotifierConfig,
        session: EmailHttpSession | None = None,
    ) -> None:
        """
        Initialize Resend notifier.

        Args:
            config: Validated notifier config.
            session: Optional injected HTTP session for tests.
        Returns:
            None.
        Assumptions:
            One session is reused for connection pooling.
        Raises:
            ValueError: If config is missing.
        Side Effects:
            Creates `requests.Session` when no custom session is injected.
        """
        if config is None:  # type: ignore[truthy-bool]
            raise ValueError("ResendEmailNotifier requires config")
        self._config = config
        self._session = (
            session if session is not None else cast(EmailHttpSession, requests.Session())
        )

    def send(self, *, message: EmailMessage) -> bool:
        """
        Send one email in best-effort mode.

        Args:
            message: Email to deliver.
        Returns:
            bool: `True` when Resend accepted the message with a 2xx status.
        Assumptions:
            Delivery errors must never fail the calling use case.
        Raises:
            None.
        Side Effects:
            Performs one outbound HTTP request.
        """
        try:
            response = self._session.post(
                url=f"{self._config.api_base_url}/emails",
                json={
                    "from": self._config.sender,
                    "to": message.to,
                    "subject": message.subject,
                    "html": message.html,
                },
                headers={"Authorization": f"Bearer {self._config.api_key}"},
                timeout=self._config.send_timeout_s,
            )
        except Exception:  # noqa: BLE001
            log.exception("identity email delivery failed subject=%s", message.subject)
            return False

        if not 200 <= response.status_code < 300:
            log.warning(
                "identity email delivery rejected status_code=%s subject=%s body=%s",
                response.status_code,
                message.subject,
                response.text[:200],
            )
            return False
        log.info("identity email delivered subject=%s", message.subject)
        return True

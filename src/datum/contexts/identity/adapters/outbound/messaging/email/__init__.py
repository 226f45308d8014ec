from .log_only_email_notifier import LogOnlyEmailNotifier
from .resend_email_notifier import ResendEmailNotifier, ResendEmailNotifierConfig

__all__ = [
    "LogOnlyEmailNotifier",
    "ResendEmailNotifier",
    "ResendEmailNotifierConfig",
]

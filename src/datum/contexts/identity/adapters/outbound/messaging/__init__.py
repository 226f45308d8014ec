from .email import LogOnlyEmailNotifier, ResendEmailNotifier, ResendEmailNotifierConfig

__all__ = [
    "LogOnlyEmailNotifier",
    "ResendEmailNotifier",
    "ResendEmailNotifierConfig",
]

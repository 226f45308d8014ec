from .system_identity_clock import SystemIdentityClock

__all__ = ["SystemIdentityClock"]

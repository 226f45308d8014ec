from .in_memory_session_registry import InMemoryTwoFactorSessionRegistry

__all__ = ["InMemoryTwoFactorSessionRegistry"]

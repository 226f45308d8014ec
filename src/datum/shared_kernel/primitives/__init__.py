"""
Shared Kernel primitives.

Re-exports the domain primitives shared between bounded contexts:

    from datum.shared_kernel.primitives import UserId
"""

from .user_id import UserId

__all__ = [
    "UserId",
]

from .identity import build_identity_router

__all__ = [
    "build_identity_router",
]

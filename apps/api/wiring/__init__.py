from .modules import IdentityApiModule, IdentityRuntimeSettings, build_identity_api_module

__all__ = [
    "IdentityApiModule",
    "IdentityRuntimeSettings",
    "build_identity_api_module",
]

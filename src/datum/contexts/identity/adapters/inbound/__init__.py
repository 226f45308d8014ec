from .api import (
    AccessDeniedHttpError,
    OptionalCurrentUserDependency,
    RequireAccessDependency,
    RequireCurrentUserDependency,
    build_access_router,
    build_admin_trial_router,
    build_two_factor_totp_router,
    register_access_denied_exception_handler,
)

__all__ = [
    "AccessDeniedHttpError",
    "OptionalCurrentUserDependency",
    "RequireAccessDependency",
    "RequireCurrentUserDependency",
    "build_access_router",
    "build_admin_trial_router",
    "build_two_factor_totp_router",
    "register_access_denied_exception_handler",
]

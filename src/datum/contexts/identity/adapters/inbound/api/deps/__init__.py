from .access_gate import (
    AccessDeniedHttpError,
    RequireAccessDependency,
    access_denied_http_error_handler,
    register_access_denied_exception_handler,
)
from .current_user import (
    OptionalCurrentUserDependency,
    RequireCurrentUserDependency,
    read_bearer_token,
)

__all__ = [
    "AccessDeniedHttpError",
    "OptionalCurrentUserDependency",
    "RequireAccessDependency",
    "RequireCurrentUserDependency",
    "access_denied_http_error_handler",
    "read_bearer_token",
    "register_access_denied_exception_handler",
]

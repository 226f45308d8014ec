from .access_gate import (
    LOGIN_PATH,
    TOTP_SETUP_PATH,
    TRIAL_EXPIRED_PATH,
    AccessDecision,
    AccessGateInput,
    ResourceRequirements,
    decide_access,
)

__all__ = [
    "AccessDecision",
    "AccessGateInput",
    "LOGIN_PATH",
    "ResourceRequirements",
    "TOTP_SETUP_PATH",
    "TRIAL_EXPIRED_PATH",
    "decide_access",
]

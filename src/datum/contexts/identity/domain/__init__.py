from .entities import PendingTotpSetup, TwoFactorProfile
from .services import AccessDecision, AccessGateInput, ResourceRequirements, decide_access

__all__ = [
    "AccessDecision",
    "AccessGateInput",
    "PendingTotpSetup",
    "ResourceRequirements",
    "TwoFactorProfile",
    "decide_access",
]

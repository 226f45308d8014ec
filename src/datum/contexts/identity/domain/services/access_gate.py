from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

LOGIN_PATH = "/login"
TOTP_SETUP_PATH = "/totp-setup"
TRIAL_EXPIRED_PATH = "/trial-expired"


class AccessDecision(str, Enum):
    """
    AccessDecision — outcome of the access gate for one requested resource.

    Related:
      - src/datum/contexts/identity/domain/services/access_gate.py
      - src/datum/contexts/identity/application/use_cases/evaluate_access.py
      - src/datum/contexts/identity/adapters/inbound/api/deps/access_gate.py
    """

    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_TOTP_SETUP = "redirect_totp_setup"
    REDIRECT_TRIAL_EXPIRED = "redirect_trial_expired"
    PENDING = "pending"

    @property
    def redirect_to(self) -> str | None:
        """
        Return client route associated with redirect decisions.

        Args:
            None.
        Returns:
            str | None: Target path, or `None` for `ALLOW` and `PENDING`.
        Assumptions:
            Paths match client routes of the web UI.
        Raises:
            None.
        Side Effects:
            None.
        """
        return _REDIRECT_PATHS.get(self)


_REDIRECT_PATHS: dict[AccessDecision, str] = {
    AccessDecision.REDIRECT_LOGIN: LOGIN_PATH,
    AccessDecision.REDIRECT_TOTP_SETUP: TOTP_SETUP_PATH,
    AccessDecision.REDIRECT_TRIAL_EXPIRED: TRIAL_EXPIRED_PATH,
}


@dataclass(frozen=True, slots=True)
class ResourceRequirements:
    """
    ResourceRequirements — what a protected resource demands from the caller.

    Related:
      - src/datum/contexts/identity/adapters/inbound/api/routes/access.py
      - src/datum/contexts/identity/adapters/inbound/api/deps/access_gate.py
    """

    requires_auth: bool = True
    requires_totp: bool = False
    is_totp_setup_page: bool = False

    @classmethod
    def for_path(
        cls,
        *,
        path: str,
        requires_auth: bool = True,
        requires_totp: bool = False,
    ) -> ResourceRequirements:
        """
        Build requirements for a client path, flagging the TOTP setup page itself.

        Args:
            path: Requested client route.
            requires_auth: Whether the route needs an authenticated identity.
            requires_totp: Whether the route needs TOTP verified in this session.
        Returns:
            ResourceRequirements: Requirements with `is_totp_setup_page` derived from path.
        Assumptions:
            Trailing slashes are not significant.
        Raises:
            None.
        Side Effects:
            None.
        """
        normalized = path.strip().rstrip("/") or "/"
        return cls(
            requires_auth=requires_auth,
            requires_totp=requires_totp,
            is_totp_setup_page=normalized == TOTP_SETUP_PATH,
        )


@dataclass(frozen=True, slots=True)
class AccessGateInput:
    """
    AccessGateInput — flattened caller state consumed by `decide_access`.
    """

    authenticated: bool
    profile_loaded: bool
    totp_enabled: bool
    totp_verified_this_session: bool
    trial_expired: bool
    resource: ResourceRequirements


def decide_access(gate_input: AccessGateInput) -> AccessDecision:
    """
    Fold authentication, TOTP and trial state into one access decision.

    Args:
        gate_input: Caller state and resource requirements.
    Returns:
        AccessDecision: First matching rule wins.
    Assumptions:
        Trial expiration preempts TOTP setup redirection, so an expired trial user is
        never routed into setup.
    Raises:
        None.
    Side Effects:
        None.
    """
    resource = gate_input.resource
    if resource.requires_auth and not gate_input.authenticated:
        return AccessDecision.REDIRECT_LOGIN
    if gate_input.authenticated and not gate_input.profile_loaded:
        return AccessDecision.PENDING
    if gate_input.authenticated and gate_input.trial_expired:
        return AccessDecision.REDIRECT_TRIAL_EXPIRED
    if (
        gate_input.authenticated
        and not gate_input.totp_enabled
        and not resource.is_totp_setup_page
    ):
        return AccessDecision.REDIRECT_TOTP_SETUP
    if (
        resource.requires_totp
        and gate_input.totp_enabled
        and not gate_input.totp_verified_this_session
    ):
        # second factor still missing for this session
        return AccessDecision.REDIRECT_LOGIN
    return AccessDecision.ALLOW

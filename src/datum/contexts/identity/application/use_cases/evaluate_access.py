from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from datum.contexts.identity.application.ports.current_user import CurrentUserPrincipal
from datum.contexts.identity.application.ports.two_factor_profile_repository import (
    TwoFactorProfileRepository,
)
from datum.contexts.identity.application.ports.two_factor_session_registry import (
    TwoFactorSessionRegistry,
)
from datum.contexts.identity.application.use_cases.two_factor_guards import (
    internal_failure_guard,
)
from datum.contexts.identity.domain.entities import ensure_utc_datetime
from datum.contexts.identity.domain.services import (
    AccessDecision,
    AccessGateInput,
    ResourceRequirements,
    decide_access,
)


@dataclass(frozen=True, slots=True)
class EvaluateAccessResult:
    """
    EvaluateAccessResult — access decision plus client redirect target.
    """

    decision: AccessDecision

    @property
    def redirect_to(self) -> str | None:
        return self.decision.redirect_to

    @property
    def allowed(self) -> bool:
        return self.decision is AccessDecision.ALLOW


class EvaluateAccessUseCase:
    """
    EvaluateAccessUseCase — gather caller state and fold it through `decide_access`.

    Related:
      - src/datum/contexts/identity/domain/services/access_gate.py
      - src/datum/contexts/identity/adapters/inbound/api/deps/access_gate.py
      - src/datum/contexts/identity/adapters/inbound/api/routes/access.py
    """

    def __init__(
        self,
        *,
        profile_repository: TwoFactorProfileRepository,
        session_registry: TwoFactorSessionRegistry,
    ) -> None:
        """
        Initialize access evaluation dependencies.

        Args:
            profile_repository: Profile persistence port.
            session_registry: Per-session verification flag store.
        Returns:
            None.
        Assumptions:
            Dependencies are initialized and non-null.
        Raises:
            ValueError: If required dependency is missing.
        Side Effects:
            None.
        """
        if profile_repository is None:  # type: ignore[truthy-bool]
            raise ValueError("EvaluateAccessUseCase requires profile_repository")
        if session_registry is None:  # type: ignore[truthy-bool]
            raise ValueError("EvaluateAccessUseCase requires session_registry")
        self._profile_repository = profile_repository
        self._session_registry = session_registry

    def evaluate(
        self,
        *,
        principal: CurrentUserPrincipal | None,
        resource: ResourceRequirements,
        now: datetime,
    ) -> EvaluateAccessResult:
        """
        Decide access for an optional caller and a resource.

        Args:
            principal: Authenticated caller, or `None` for anonymous requests.
            resource: Requirements of the requested resource.
            now: Current UTC timestamp.
        Returns:
            EvaluateAccessResult: Decision with redirect path.
        Assumptions:
            Authenticated callers always get a profile (created lazily), so `PENDING` is only
            produced by the gate for callers whose profile could not be loaded.
        Raises:
            TwoFactorInternalError: If store fails.
        Side Effects:
            May create profile for first-time authenticated caller.
        """
        now = ensure_utc_datetime(value=now, field_name="now")
        if principal is None:
            gate_input = AccessGateInput(
                authenticated=False,
                profile_loaded=False,
                totp_enabled=False,
                totp_verified_this_session=False,
                trial_expired=False,
                resource=resource,
            )
            return EvaluateAccessResult(decision=decide_access(gate_input))

        with internal_failure_guard(operation="evaluate_access", user_id=principal.user_id):
            profile = self._profile_repository.ensure_profile(
                user_id=principal.user_id,
                email=principal.email,
                created_at=now,
            )
        gate_input = AccessGateInput(
            authenticated=True,
            profile_loaded=True,
            totp_enabled=profile.totp_enabled,
            totp_verified_this_session=self._session_registry.is_verified(
                user_id=principal.user_id,
                session_id=principal.session_id,
            ),
            trial_expired=profile.is_trial_expired(now=now),
            resource=resource,
        )
        return EvaluateAccessResult(decision=decide_access(gate_input))

"""Access gate for anchor and verify operations.

A pure decision function over an already-validated CallerContext. It never
parses or verifies tokens; that happened at the identity provider before
the context was built.
"""

from __future__ import annotations

import structlog

from certanchor.domain.errors.access import ForbiddenError
from certanchor.domain.models.access import AccessDecision
from certanchor.domain.models.caller_context import CallerContext, Operation

DEFAULT_ISSUER_ROLE = "issuer"

logger = structlog.get_logger(__name__)


class AccessGate:
    """Allow/deny decisions per operation.

    - ANCHOR: allowed iff the caller holds the issuer role.
    - VERIFY: always allowed, no identity required.
    """

    def __init__(self, issuer_role: str = DEFAULT_ISSUER_ROLE) -> None:
        if not issuer_role:
            raise ValueError("issuer_role cannot be empty")
        self._issuer_role = issuer_role

    @property
    def issuer_role(self) -> str:
        return self._issuer_role

    def authorize(self, caller: CallerContext, operation: Operation) -> AccessDecision:
        """Decide whether caller may perform operation."""
        if operation is Operation.VERIFY:
            return AccessDecision.allow()
        if operation is Operation.ANCHOR and caller.has_role(self._issuer_role):
            return AccessDecision.allow()
        return AccessDecision.deny()

    def require(self, caller: CallerContext, operation: Operation) -> None:
        """Raise ForbiddenError unless caller may perform operation."""
        decision = self.authorize(caller, operation)
        if decision.allowed:
            return
        logger.warning(
            "access_denied",
            subject=caller.subject,
            operation=operation.value,
            required_role=self._issuer_role,
            reason=decision.reason,
        )
        raise ForbiddenError(
            subject=caller.subject,
            operation=operation.value,
            required_role=self._issuer_role,
        )

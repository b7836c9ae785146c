"""Access decision model returned by the access gate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

FORBIDDEN_REASON = "Forbidden"


@dataclass(frozen=True)
class AccessDecision:
    """Allow or deny, with a reason when denied.

    Attributes:
        allowed: True if the operation may proceed.
        reason: Denial reason; None when allowed.
    """

    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> AccessDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str = FORBIDDEN_REASON) -> AccessDecision:
        return cls(allowed=False, reason=reason)

"""Caller context built once per request from already-validated claims.

The identity provider has verified the caller before the request reaches
this service. CallerContext is the fixed-shape view of its output; the
access gate only ever sees this type, never raw claims.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Operation(str, Enum):
    """Operations subject to the access gate."""

    ANCHOR = "anchor"
    VERIFY = "verify"


@dataclass(frozen=True)
class CallerContext:
    """Read-only identity of the caller for one request.

    Attributes:
        subject: Subject identifier supplied by the identity provider.
        roles: Set of role names granted to the subject.
    """

    subject: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.subject:
            raise ValueError("subject cannot be empty")
        if not isinstance(self.roles, frozenset):
            object.__setattr__(self, "roles", frozenset(self.roles))

    @classmethod
    def from_claims(cls, subject: str, roles: str | None) -> CallerContext:
        """Build a context from a subject and a comma-separated role list.

        Blank entries are dropped and surrounding whitespace is ignored.
        """
        parsed = frozenset(
            role.strip() for role in (roles or "").split(",") if role.strip()
        )
        return cls(subject=subject.strip(), roles=parsed)

    def has_role(self, role: str) -> bool:
        return role in self.roles

"""Access control errors.

Raised by the access gate when a caller's role set does not grant the
requested operation. Checked before any hashing, storage or ledger work.
"""

from certanchor.domain.exceptions import CertAnchorError


class ForbiddenError(CertAnchorError):
    """Raised when the caller lacks the role required for an operation.

    Attributes:
        subject: Subject identifier of the denied caller.
        operation: Name of the operation that was denied.
        required_role: Role that would have granted the operation.
    """

    def __init__(self, subject: str, operation: str, required_role: str) -> None:
        self.subject = subject
        self.operation = operation
        self.required_role = required_role
        super().__init__(
            f"Caller {subject!r} lacks role {required_role!r} for {operation}"
        )

"""Structured logger shared by the anchoring services.

Services call ``_init_logger`` once in ``__init__`` and ask for a scoped
logger per operation:

    class VerificationService(LoggingMixin):
        def __init__(self, ledger: LedgerClientProtocol) -> None:
            self._ledger = ledger
            self._init_logger(component="verification")

        async def verify(self, content: bytes) -> VerificationResult:
            log = self._log_operation("verify", size_bytes=len(content))
            log.info("verification_requested")
"""

import structlog

from certanchor.application.observability.correlation import get_correlation_id


class LoggingMixin:
    """Gives a service a ``_log`` bound to its class name and component.

    Attributes:
        _log: Logger carrying ``service`` and ``component``.
    """

    _log: structlog.BoundLogger

    def _init_logger(self, component: str = "anchoring") -> None:
        self._log = structlog.get_logger().bind(
            service=type(self).__name__,
            component=component,
        )

    def _log_operation(self, operation: str, **context: object) -> structlog.BoundLogger:
        """Logger for one operation, tagged with the request's correlation id.

        Context values that are None are left out, so optional fields such
        as a not-yet-assigned sequence number do not clutter the log line.
        """
        fields = {key: value for key, value in context.items() if value is not None}
        return self._log.bind(
            operation=operation,
            correlation_id=get_correlation_id(),
            **fields,
        )

"""Request correlation ids.

The id sits in a contextvar, so it survives ``await`` and is copied into
tasks created while handling a request. The sequencer worker runs in its
own task and logs with the ticket and fingerprint instead; an anchor can be
followed from the request log to the worker log through the fingerprint.
"""

from contextvars import ContextVar
from typing import Any, Optional
from uuid import uuid4

_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    return str(uuid4())


def get_correlation_id() -> str:
    """Current correlation id, "" outside a request."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


def adopt_correlation_id(incoming: Optional[str]) -> str:
    """Use the caller's id when it sent one, otherwise mint a new one.

    Returns:
        The id now set for the current context.
    """
    correlation_id = incoming or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor: add the context's correlation id to each entry.

    An id bound explicitly on the logger is kept as is.
    """
    correlation_id = get_correlation_id()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    return event_dict

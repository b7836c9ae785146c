"""Caller identity from gateway headers.

The authenticating gateway in front of this service has already validated
the caller and forwards the result as two headers:

    X-Caller-Subject: subject identifier
    X-Caller-Roles:   comma-separated role names

They are turned into a CallerContext exactly once per request. No token
is decoded here.
"""

from typing import Annotated

import structlog
from fastapi import Header, HTTPException, Request, status

from certanchor.domain.models.caller_context import CallerContext

logger = structlog.get_logger(__name__)


def get_caller_context(
    request: Request,
    x_caller_subject: Annotated[
        str | None,
        Header(description="Subject identifier asserted by the identity gateway."),
    ] = None,
    x_caller_roles: Annotated[
        str | None,
        Header(description="Comma-separated roles asserted by the identity gateway."),
    ] = None,
) -> CallerContext:
    """Build the CallerContext for this request.

    Raises:
        HTTPException 401: No subject was forwarded.
    """
    if not x_caller_subject or not x_caller_subject.strip():
        logger.warning(
            "identity_missing",
            component="identity",
            path=request.url.path,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "type": "urn:certanchor:error:unauthenticated",
                "title": "Unauthenticated",
                "status": 401,
                "detail": "Caller identity is required for this operation",
                "instance": str(request.url),
            },
        )
    return CallerContext.from_claims(x_caller_subject, x_caller_roles)

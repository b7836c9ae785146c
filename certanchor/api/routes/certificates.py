"""Certificate anchoring and verification routes.

Endpoints:
    POST /certificates               anchor an uploaded document (issuer only)
    POST /certificates/verify        verify an uploaded document
    GET  /certificates/{fingerprint} verify a fingerprint the caller holds

Developer Golden Rules:
1. IDENTITY FROM GATEWAY - the caller is read from forwarded headers once
2. FAIL LOUD - every failure is an RFC 7807 body with a distinct status
3. NO INTERNALS - problem bodies never carry stack traces or credentials
4. UNAVAILABLE IS NOT FALSE - a ledger outage is 503, never anchored=false

Error mapping:
    ForbiddenError          403
    missing identity        401
    empty upload / bad hex  400
    LedgerRejectedError     422
    SequencerBusyError      429 + Retry-After
    PartialAnchorError      502 (carries fingerprint and ledgerReference)
    LedgerTransientError    503
    LedgerUnavailableError  503
    ObjectStoreError        503
"""

from typing import Annotated, Any, Optional

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status

from certanchor.api.dependencies.certificates import (
    get_anchor_service,
    get_verification_service,
)
from certanchor.api.dependencies.identity import get_caller_context
from certanchor.api.models.certificates import (
    AnchorResponse,
    ProblemDetail,
    VerificationResponse,
)
from certanchor.application.services.anchor_service import AnchorService
from certanchor.application.services.verification_service import VerificationService
from certanchor.domain.errors.access import ForbiddenError
from certanchor.domain.errors.ledger import (
    LedgerRejectedError,
    LedgerTransientError,
    LedgerUnavailableError,
)
from certanchor.domain.errors.sequencer import SequencerBusyError
from certanchor.domain.errors.storage import ObjectStoreError, PartialAnchorError
from certanchor.domain.models.caller_context import CallerContext
from certanchor.domain.models.fingerprint import ContentFingerprint

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/certificates", tags=["certificates"])

UPLOAD_FIELD = "certificate"
LEDGER_RETRY_AFTER_SECONDS = 30

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ProblemDetail, "description": "Missing upload or malformed fingerprint"},
    503: {"model": ProblemDetail, "description": "Ledger or object store unavailable"},
}


def _problem(
    status_code: int,
    slug: str,
    title: str,
    detail: str,
    request: Request,
    headers: Optional[dict[str, str]] = None,
    **extensions: Any,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "type": f"urn:certanchor:error:{slug}",
            "title": title,
            "status": status_code,
            "detail": detail,
            "instance": str(request.url),
            **extensions,
        },
        headers=headers,
    )


async def _read_upload(upload: Optional[UploadFile], request: Request) -> bytes:
    if upload is None:
        raise _problem(
            400,
            "missing-upload",
            "Missing Upload",
            f"Multipart field '{UPLOAD_FIELD}' is required",
            request,
        )
    content = await upload.read()
    if not content:
        raise _problem(
            400, "empty-upload", "Empty Upload", "Uploaded document is empty", request
        )
    return content


@router.post(
    "",
    response_model=AnchorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Anchor a certificate",
    responses={
        **_ERROR_RESPONSES,
        401: {"model": ProblemDetail, "description": "Caller identity missing"},
        403: {"model": ProblemDetail, "description": "Caller is not an issuer"},
        422: {"model": ProblemDetail, "description": "Ledger rejected the anchor"},
        429: {"model": ProblemDetail, "description": "Anchor queue full"},
        502: {"model": ProblemDetail, "description": "Anchored but document not stored"},
    },
)
async def anchor_certificate(
    request: Request,
    caller: Annotated[CallerContext, Depends(get_caller_context)],
    service: Annotated[AnchorService, Depends(get_anchor_service)],
    certificate: Annotated[Optional[UploadFile], File()] = None,
) -> AnchorResponse:
    """Fingerprint, store and anchor an uploaded certificate.

    An already-anchored document returns its existing ledger reference with
    alreadyAnchored=true and writes nothing new to the ledger.
    """
    content = await _read_upload(certificate, request)
    log = logger.bind(subject=caller.subject, operation="anchor")

    try:
        result = await service.anchor(
            content,
            caller,
            filename=certificate.filename if certificate else None,
            content_type=certificate.content_type if certificate else None,
        )
    except ForbiddenError:
        raise _problem(
            403,
            "forbidden",
            "Forbidden",
            "Caller is not allowed to anchor certificates",
            request,
        ) from None
    except SequencerBusyError as e:
        raise _problem(
            429,
            "busy",
            "Anchor Queue Full",
            "Too many anchors in progress, retry later",
            request,
            headers={"Retry-After": str(e.retry_after_seconds)},
            retry_after_seconds=e.retry_after_seconds,
        ) from None
    except LedgerRejectedError as e:
        raise _problem(
            422,
            "ledger-rejected",
            "Ledger Rejected Anchor",
            "The ledger refused the anchoring transaction",
            request,
            fingerprint=e.fingerprint,
            reason=e.reason,
        ) from None
    except PartialAnchorError as e:
        raise _problem(
            502,
            "partial-anchor",
            "Partial Anchor",
            "Fingerprint anchored but the document could not be stored",
            request,
            fingerprint=e.fingerprint,
            ledgerReference=e.ledger_reference,
        ) from None
    except LedgerTransientError as e:
        raise _problem(
            503,
            "ledger-transient",
            "Ledger Unavailable",
            "The ledger did not confirm the anchor, retry later",
            request,
            headers={"Retry-After": str(LEDGER_RETRY_AFTER_SECONDS)},
            fingerprint=e.fingerprint,
        ) from None
    except LedgerUnavailableError as e:
        raise _problem(
            503,
            "ledger-unavailable",
            "Ledger Unavailable",
            "The ledger could not be reached",
            request,
            headers={"Retry-After": str(LEDGER_RETRY_AFTER_SECONDS)},
            fingerprint=e.fingerprint,
        ) from None
    except ObjectStoreError:
        raise _problem(
            503,
            "storage-unavailable",
            "Storage Unavailable",
            "The document could not be stored; nothing was anchored",
            request,
        ) from None
    except Exception as e:
        log.exception("anchor_unexpected_error", error_type=type(e).__name__)
        raise _problem(
            500, "internal", "Internal Server Error", "Unexpected error", request
        ) from None

    return AnchorResponse(
        fingerprint=result.fingerprint.hex(),
        ledger_reference=result.ledger_reference.transaction_id,
        already_anchored=result.already_anchored,
        storage_locator=result.storage_locator,
    )


async def _verify(
    request: Request,
    service: VerificationService,
    content: Optional[bytes] = None,
    fingerprint: Optional[ContentFingerprint] = None,
) -> VerificationResponse:
    try:
        if fingerprint is not None:
            result = await service.verify_fingerprint(fingerprint)
        else:
            result = await service.verify(content or b"")
    except LedgerUnavailableError as e:
        raise _problem(
            503,
            "ledger-unavailable",
            "Ledger Unavailable",
            "Verification could not be completed, the ledger is unreachable",
            request,
            headers={"Retry-After": str(LEDGER_RETRY_AFTER_SECONDS)},
            fingerprint=e.fingerprint,
        ) from None
    except Exception as e:
        logger.exception("verify_unexpected_error", error_type=type(e).__name__)
        raise _problem(
            500, "internal", "Internal Server Error", "Unexpected error", request
        ) from None

    return VerificationResponse(fingerprint=result.fingerprint.hex(), anchored=result.anchored)


@router.post(
    "/verify",
    response_model=VerificationResponse,
    summary="Verify an uploaded certificate",
    responses=_ERROR_RESPONSES,
)
async def verify_certificate(
    request: Request,
    service: Annotated[VerificationService, Depends(get_verification_service)],
    certificate: Annotated[Optional[UploadFile], File()] = None,
) -> VerificationResponse:
    """Check whether the uploaded document's fingerprint is anchored."""
    content = await _read_upload(certificate, request)
    return await _verify(request, service, content=content)


@router.get(
    "/{fingerprint}",
    response_model=VerificationResponse,
    summary="Verify a fingerprint",
    responses=_ERROR_RESPONSES,
)
async def verify_fingerprint(
    fingerprint: str,
    request: Request,
    service: Annotated[VerificationService, Depends(get_verification_service)],
) -> VerificationResponse:
    """Check whether a hex fingerprint is anchored."""
    try:
        parsed = ContentFingerprint.from_hex(fingerprint)
    except ValueError:
        raise _problem(
            400,
            "malformed-fingerprint",
            "Malformed Fingerprint",
            "Fingerprint must be 64 hex characters",
            request,
        ) from None
    return await _verify(request, service, fingerprint=parsed)

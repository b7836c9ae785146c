"""Unit tests for the certificate routes.

Services are replaced through app.dependency_overrides so every error in
the taxonomy can be driven straight into the route.
"""

import hashlib
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from certanchor.api.dependencies.certificates import (
    get_anchor_service,
    get_verification_service,
)
from certanchor.api.routes.certificates import router
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
from certanchor.domain.models.anchor import AnchorResult, LedgerReference
from certanchor.domain.models.fingerprint import ContentFingerprint
from certanchor.domain.models.verification import VerificationResult

CERT = b"%PDF-1.7 transcript"
DIGEST = hashlib.sha256(CERT).hexdigest()
TX = "0x" + "12" * 32
ISSUER_HEADERS = {"X-Caller-Subject": "registrar-01", "X-Caller-Roles": "issuer"}


def _upload(content: bytes = CERT) -> dict[str, tuple[str, bytes, str]]:
    return {"certificate": ("cert.pdf", content, "application/pdf")}


@pytest.fixture
def anchor_service() -> MagicMock:
    service = MagicMock(spec=AnchorService)
    service.anchor = AsyncMock(
        return_value=AnchorResult(
            fingerprint=ContentFingerprint.from_hex(DIGEST),
            ledger_reference=LedgerReference(transaction_id=TX, sequence=0, block_number=1),
            already_anchored=False,
            storage_locator="memory://stub-bucket/certificates/registrar-01/1-cert.pdf",
        )
    )
    return service


@pytest.fixture
def verification_service() -> MagicMock:
    service = MagicMock(spec=VerificationService)
    result = VerificationResult(fingerprint=ContentFingerprint.from_hex(DIGEST), anchored=True)
    service.verify = AsyncMock(return_value=result)
    service.verify_fingerprint = AsyncMock(return_value=result)
    return service


@pytest.fixture
def client(anchor_service: MagicMock, verification_service: MagicMock) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_anchor_service] = lambda: anchor_service
    app.dependency_overrides[get_verification_service] = lambda: verification_service
    return TestClient(app)


class TestAnchorEndpoint:
    def test_anchor_returns_201_with_camel_case_body(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        response = client.post("/certificates", files=_upload(), headers=ISSUER_HEADERS)

        assert response.status_code == 201
        assert response.json() == {
            "fingerprint": DIGEST,
            "ledgerReference": TX,
            "alreadyAnchored": False,
            "storageLocator": "memory://stub-bucket/certificates/registrar-01/1-cert.pdf",
        }
        args, kwargs = anchor_service.anchor.call_args
        assert args[0] == CERT
        assert args[1].subject == "registrar-01"
        assert args[1].roles == frozenset({"issuer"})
        assert kwargs == {"filename": "cert.pdf", "content_type": "application/pdf"}

    def test_missing_identity_is_401(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        response = client.post("/certificates", files=_upload())

        assert response.status_code == 401
        assert response.json()["detail"]["type"] == "urn:certanchor:error:unauthenticated"
        anchor_service.anchor.assert_not_called()

    def test_blank_subject_is_401(self, client: TestClient) -> None:
        response = client.post(
            "/certificates", files=_upload(), headers={"X-Caller-Subject": "  "}
        )

        assert response.status_code == 401

    def test_missing_upload_is_400(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        response = client.post("/certificates", headers=ISSUER_HEADERS)

        assert response.status_code == 400
        assert response.json()["detail"]["type"] == "urn:certanchor:error:missing-upload"
        anchor_service.anchor.assert_not_called()

    def test_empty_upload_is_400(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        response = client.post("/certificates", files=_upload(b""), headers=ISSUER_HEADERS)

        assert response.status_code == 400
        assert response.json()["detail"]["type"] == "urn:certanchor:error:empty-upload"
        anchor_service.anchor.assert_not_called()

    def test_forbidden_is_403(self, client: TestClient, anchor_service: MagicMock) -> None:
        anchor_service.anchor.side_effect = ForbiddenError(
            subject="student-42", operation="anchor", required_role="issuer"
        )

        response = client.post(
            "/certificates",
            files=_upload(),
            headers={"X-Caller-Subject": "student-42", "X-Caller-Roles": "student"},
        )

        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["type"] == "urn:certanchor:error:forbidden"
        assert detail["status"] == 403
        assert detail["instance"].endswith("/certificates")

    def test_busy_is_429_with_retry_after(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        anchor_service.anchor.side_effect = SequencerBusyError(
            queue_depth=2, max_queue_depth=2, retry_after_seconds=7
        )

        response = client.post("/certificates", files=_upload(), headers=ISSUER_HEADERS)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "7"
        assert response.json()["detail"]["retry_after_seconds"] == 7

    def test_rejection_is_422(self, client: TestClient, anchor_service: MagicMock) -> None:
        anchor_service.anchor.side_effect = LedgerRejectedError(
            "reverted", fingerprint=DIGEST, sequence=3, reason="reverted"
        )

        response = client.post("/certificates", files=_upload(), headers=ISSUER_HEADERS)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["reason"] == "reverted"
        assert detail["fingerprint"] == DIGEST

    def test_partial_anchor_is_502_with_reference(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        anchor_service.anchor.side_effect = PartialAnchorError(
            fingerprint=DIGEST, ledger_reference=TX, key="certificates/r/1-cert.pdf"
        )

        response = client.post("/certificates", files=_upload(), headers=ISSUER_HEADERS)

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["fingerprint"] == DIGEST
        assert detail["ledgerReference"] == TX

    @pytest.mark.parametrize(
        ("error", "slug"),
        [
            (LedgerTransientError("timeout", fingerprint=DIGEST), "ledger-transient"),
            (LedgerUnavailableError("down", fingerprint=DIGEST), "ledger-unavailable"),
            (ObjectStoreError("bucket gone", key="k"), "storage-unavailable"),
        ],
    )
    def test_unavailable_dependencies_are_503(
        self,
        client: TestClient,
        anchor_service: MagicMock,
        error: Exception,
        slug: str,
    ) -> None:
        anchor_service.anchor.side_effect = error

        response = client.post("/certificates", files=_upload(), headers=ISSUER_HEADERS)

        assert response.status_code == 503
        assert response.json()["detail"]["type"] == f"urn:certanchor:error:{slug}"

    def test_transient_failure_sets_retry_after(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        anchor_service.anchor.side_effect = LedgerTransientError("timeout")

        response = client.post("/certificates", files=_upload(), headers=ISSUER_HEADERS)

        assert response.headers["Retry-After"] == "30"

    def test_unexpected_error_is_generic_500(
        self, client: TestClient, anchor_service: MagicMock
    ) -> None:
        anchor_service.anchor.side_effect = RuntimeError("private key 0xdeadbeef")

        response = client.post("/certificates", files=_upload(), headers=ISSUER_HEADERS)

        assert response.status_code == 500
        assert "0xdeadbeef" not in response.text
        assert response.json()["detail"]["detail"] == "Unexpected error"


class TestVerifyEndpoints:
    def test_verify_upload_needs_no_identity(
        self, client: TestClient, verification_service: MagicMock
    ) -> None:
        response = client.post("/certificates/verify", files=_upload())

        assert response.status_code == 200
        assert response.json() == {"fingerprint": DIGEST, "anchored": True}
        verification_service.verify.assert_awaited_once_with(CERT)

    def test_verify_not_anchored(
        self, client: TestClient, verification_service: MagicMock
    ) -> None:
        verification_service.verify.return_value = VerificationResult(
            fingerprint=ContentFingerprint.from_hex(DIGEST), anchored=False
        )

        response = client.post("/certificates/verify", files=_upload())

        assert response.json()["anchored"] is False

    def test_verify_empty_upload_is_400(self, client: TestClient) -> None:
        response = client.post("/certificates/verify", files=_upload(b""))

        assert response.status_code == 400

    def test_verify_unavailable_is_503_never_false(
        self, client: TestClient, verification_service: MagicMock
    ) -> None:
        verification_service.verify.side_effect = LedgerUnavailableError(
            "down", fingerprint=DIGEST
        )

        response = client.post("/certificates/verify", files=_upload())

        assert response.status_code == 503
        assert "anchored" not in response.json()
        assert response.headers["Retry-After"] == "30"

    def test_verify_by_fingerprint(
        self, client: TestClient, verification_service: MagicMock
    ) -> None:
        response = client.get(f"/certificates/{DIGEST.upper()}")

        assert response.status_code == 200
        called_with = verification_service.verify_fingerprint.call_args.args[0]
        assert called_with.hex() == DIGEST

    @pytest.mark.parametrize("value", ["abc", "z" * 64, "0" * 63])
    def test_malformed_fingerprint_is_400(
        self, client: TestClient, verification_service: MagicMock, value: str
    ) -> None:
        response = client.get(f"/certificates/{value}")

        assert response.status_code == 400
        assert (
            response.json()["detail"]["type"]
            == "urn:certanchor:error:malformed-fingerprint"
        )
        verification_service.verify_fingerprint.assert_not_called()

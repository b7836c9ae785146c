"""
Pytest configuration and shared fixtures for CertAnchor tests.

Testing Standards:
- Async tests run under pytest-asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- LedgerClientStub and ObjectStoreStub are the default fakes; both support
  fault injection
"""

from collections.abc import AsyncIterator
from datetime import datetime, timezone

import pytest

from certanchor.application.services.access_gate import AccessGate
from certanchor.application.services.anchor_service import AnchorService
from certanchor.application.services.fingerprint_service import Sha256FingerprintService
from certanchor.application.services.nonce_sequencer import NonceSequencer
from certanchor.application.services.verification_service import VerificationService
from certanchor.domain.models.caller_context import CallerContext
from certanchor.infrastructure.stubs.ledger_client_stub import LedgerClientStub
from certanchor.infrastructure.stubs.object_store_stub import ObjectStoreStub

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


async def no_sleep(_: float) -> None:
    """Backoff sleep replacement that returns immediately."""
    return None


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from certanchor import __version__

    return __version__


@pytest.fixture
def fingerprints() -> Sha256FingerprintService:
    return Sha256FingerprintService()


@pytest.fixture
def ledger() -> LedgerClientStub:
    return LedgerClientStub()


@pytest.fixture
def object_store() -> ObjectStoreStub:
    return ObjectStoreStub()


@pytest.fixture
def access_gate() -> AccessGate:
    return AccessGate(issuer_role="issuer")


@pytest.fixture
def issuer() -> CallerContext:
    return CallerContext.from_claims("registrar-01", "issuer,staff")


@pytest.fixture
def student() -> CallerContext:
    return CallerContext.from_claims("student-42", "student")


@pytest.fixture
async def sequencer(ledger: LedgerClientStub) -> AsyncIterator[NonceSequencer]:
    """Running sequencer over the stub ledger with instant backoff."""
    seq = NonceSequencer(
        ledger=ledger,
        max_queue_depth=10,
        retry_count=2,
        backoff_base_seconds=0.0,
        backoff_max_seconds=0.0,
        confirmation_timeout_seconds=1.0,
        sleep=no_sleep,
    )
    await seq.start()
    yield seq
    await seq.stop()


@pytest.fixture
def anchor_service(
    access_gate: AccessGate,
    fingerprints: Sha256FingerprintService,
    ledger: LedgerClientStub,
    sequencer: NonceSequencer,
    object_store: ObjectStoreStub,
) -> AnchorService:
    return AnchorService(
        access_gate=access_gate,
        fingerprint_computer=fingerprints,
        ledger=ledger,
        sequencer=sequencer,
        object_store=object_store,
        store_timeout_seconds=1.0,
        time_source=lambda: FIXED_NOW,
    )


@pytest.fixture
def verification_service(
    fingerprints: Sha256FingerprintService, ledger: LedgerClientStub
) -> VerificationService:
    return VerificationService(fingerprint_computer=fingerprints, ledger=ledger)

"""Bootstrap wiring for the anchoring services.

Reads AppConfig, picks the ledger and object store backends and builds one
instance of each service per process. The API layer reaches the services
only through the getters here.

    LEDGER_BACKEND=stub  -> LedgerClientStub (in-memory)
    LEDGER_BACKEND=evm   -> EvmLedgerClient (web3)
    STORAGE_BACKEND=stub -> ObjectStoreStub (in-memory)
    STORAGE_BACKEND=s3   -> S3ObjectStore (boto3)
"""

from __future__ import annotations

from typing import Optional

import structlog

from certanchor.application.ports.ledger_client import LedgerClientProtocol
from certanchor.application.ports.object_store import ObjectStoreProtocol
from certanchor.application.services.access_gate import AccessGate
from certanchor.application.services.anchor_service import AnchorService
from certanchor.application.services.fingerprint_service import Sha256FingerprintService
from certanchor.application.services.nonce_sequencer import NonceSequencer
from certanchor.application.services.verification_service import VerificationService
from certanchor.bootstrap.metrics import get_metrics_collector
from certanchor.config.app_config import AppConfig
from certanchor.config.ledger_config import LedgerConfig
from certanchor.config.storage_config import StorageConfig
from certanchor.infrastructure.adapters.ledger.evm_ledger_client import EvmLedgerClient
from certanchor.infrastructure.adapters.storage.s3_object_store import S3ObjectStore
from certanchor.infrastructure.stubs.ledger_client_stub import LedgerClientStub
from certanchor.infrastructure.stubs.object_store_stub import ObjectStoreStub

logger = structlog.get_logger(__name__)

_app_config: Optional[AppConfig] = None
_ledger_client: Optional[LedgerClientProtocol] = None
_object_store: Optional[ObjectStoreProtocol] = None
_fingerprint_service: Optional[Sha256FingerprintService] = None
_access_gate: Optional[AccessGate] = None
_nonce_sequencer: Optional[NonceSequencer] = None
_anchor_service: Optional[AnchorService] = None
_verification_service: Optional[VerificationService] = None


def build_ledger_client(config: LedgerConfig) -> LedgerClientProtocol:
    """Create the ledger client for the configured backend.

    Raises:
        ConfigurationError: evm backend without its required settings.
    """
    config.require_backend_settings()
    if config.backend == "evm":
        client = EvmLedgerClient.from_config(config)
        logger.info(
            "ledger_backend_selected",
            backend="evm",
            chain_id=config.chain_id,
            submitter=client.submitter,
        )
        return client
    logger.warning("ledger_backend_selected", backend="stub")
    return LedgerClientStub()


def build_object_store(config: StorageConfig) -> ObjectStoreProtocol:
    """Create the object store for the configured backend.

    Raises:
        ConfigurationError: s3 backend without a bucket.
    """
    config.require_backend_settings()
    if config.backend == "s3":
        logger.info("storage_backend_selected", backend="s3", bucket=config.bucket)
        return S3ObjectStore.from_config(config)
    logger.warning("storage_backend_selected", backend="stub")
    return ObjectStoreStub()


def get_app_config() -> AppConfig:
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_environment()
    return _app_config


def set_app_config(config: AppConfig) -> None:
    """Override configuration (testing). Call before any service getter."""
    global _app_config
    _app_config = config


def get_ledger_client() -> LedgerClientProtocol:
    global _ledger_client
    if _ledger_client is None:
        _ledger_client = build_ledger_client(get_app_config().ledger)
    return _ledger_client


def get_object_store() -> ObjectStoreProtocol:
    global _object_store
    if _object_store is None:
        _object_store = build_object_store(get_app_config().storage)
    return _object_store


def get_fingerprint_service() -> Sha256FingerprintService:
    global _fingerprint_service
    if _fingerprint_service is None:
        _fingerprint_service = Sha256FingerprintService()
    return _fingerprint_service


def get_access_gate() -> AccessGate:
    global _access_gate
    if _access_gate is None:
        _access_gate = AccessGate(issuer_role=get_app_config().issuer_role)
    return _access_gate


def get_nonce_sequencer() -> NonceSequencer:
    global _nonce_sequencer
    if _nonce_sequencer is None:
        config = get_app_config()
        _nonce_sequencer = NonceSequencer(
            ledger=get_ledger_client(),
            max_queue_depth=config.sequencer.max_queue_depth,
            retry_count=config.sequencer.retry_count,
            backoff_base_seconds=config.sequencer.backoff_base_seconds,
            backoff_max_seconds=config.sequencer.backoff_max_seconds,
            confirmation_timeout_seconds=config.ledger.confirmation_timeout_seconds,
            retry_after_seconds=config.sequencer.retry_after_seconds,
            metrics=get_metrics_collector(),
        )
    return _nonce_sequencer


def get_anchor_service() -> AnchorService:
    global _anchor_service
    if _anchor_service is None:
        config = get_app_config()
        _anchor_service = AnchorService(
            access_gate=get_access_gate(),
            fingerprint_computer=get_fingerprint_service(),
            ledger=get_ledger_client(),
            sequencer=get_nonce_sequencer(),
            object_store=get_object_store(),
            key_prefix=config.storage.prefix,
            store_timeout_seconds=config.storage.timeout_seconds,
            metrics=get_metrics_collector(),
        )
    return _anchor_service


def get_verification_service() -> VerificationService:
    global _verification_service
    if _verification_service is None:
        _verification_service = VerificationService(
            fingerprint_computer=get_fingerprint_service(),
            ledger=get_ledger_client(),
        )
    return _verification_service


async def start_anchoring() -> None:
    """Validate configuration, build the services and start the sequencer.

    Raises:
        ConfigurationError: A selected backend is missing settings.
        LedgerUnavailableError: The signer position cannot be read.
    """
    get_app_config().require_backend_settings()
    get_anchor_service()
    get_verification_service()
    await get_nonce_sequencer().start()


async def stop_anchoring() -> None:
    if _nonce_sequencer is not None:
        await _nonce_sequencer.stop()


def reset_anchoring() -> None:
    """Reset all singletons (testing cleanup)."""
    global _app_config, _ledger_client, _object_store, _fingerprint_service
    global _access_gate, _nonce_sequencer, _anchor_service, _verification_service
    _app_config = None
    _ledger_client = None
    _object_store = None
    _fingerprint_service = None
    _access_gate = None
    _nonce_sequencer = None
    _anchor_service = None
    _verification_service = None

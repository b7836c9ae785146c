"""Ledger and sequencer configuration.

Environment Variables (Ledger):
- LEDGER_BACKEND: "stub" or "evm" (default: stub)
- LEDGER_RPC_URL: JSON-RPC endpoint of the ledger node
- LEDGER_PRIVATE_KEY: Signing key of the anchoring identity
- LEDGER_CONTRACT_ADDRESS: Registry contract address
- LEDGER_CHAIN_ID: Chain id used when signing (default: 11155111, Sepolia)
- LEDGER_CONFIRMATION_TIMEOUT: Seconds to wait for a receipt (default: 120)
- LEDGER_GAS_LIMIT: Gas limit for storeHash (default: 150000)
- LEDGER_START_BLOCK: First block scanned for existing anchors (default: 0)
- LEDGER_LOG_WINDOW: Blocks per event-log request (default: 10000)
- LEDGER_REQUEST_TIMEOUT: HTTP timeout for a single RPC call (default: 30)

Environment Variables (Sequencer):
- SEQUENCER_MAX_QUEUE_DEPTH: Waiting anchors before 429 (default: 100)
- SEQUENCER_RETRY_COUNT: Transient retries per sequence number (default: 3)
- SEQUENCER_BACKOFF_BASE: First backoff delay in seconds (default: 0.5)
- SEQUENCER_BACKOFF_MAX: Backoff cap in seconds (default: 8.0)
- SEQUENCER_RETRY_AFTER: Retry-After header value for 429 (default: 5)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from certanchor.config._env import get_float_env, get_int_env, get_str_env
from certanchor.domain.errors.configuration import ConfigurationError

LEDGER_BACKENDS = frozenset({"stub", "evm"})
SEPOLIA_CHAIN_ID = 11155111


@dataclass(frozen=True)
class LedgerConfig:
    """Connection settings for the ledger client.

    Attributes:
        backend: "stub" for the in-memory ledger, "evm" for a real chain.
        rpc_url: JSON-RPC endpoint. Required for evm.
        private_key: Signing key. Required for evm, never printed.
        contract_address: Registry contract. Required for evm.
        chain_id: Chain id used when signing.
        confirmation_timeout_seconds: Wait for a receipt before a submission
            counts as a transient failure.
        gas_limit: Gas limit for storeHash transactions.
        start_block: First block scanned when looking up an existing anchor.
        log_window_blocks: Block range of one event-log request. Hosted RPC
            endpoints cap this range.
        request_timeout_seconds: HTTP timeout for one RPC call.
    """

    backend: str = "stub"
    rpc_url: Optional[str] = None
    private_key: Optional[str] = field(default=None, repr=False)
    contract_address: Optional[str] = None
    chain_id: int = SEPOLIA_CHAIN_ID
    confirmation_timeout_seconds: float = 120.0
    gas_limit: int = 150_000
    start_block: int = 0
    log_window_blocks: int = 10_000
    request_timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.backend not in LEDGER_BACKENDS:
            raise ValueError(
                f"backend must be one of {sorted(LEDGER_BACKENDS)}, got {self.backend!r}"
            )
        if self.chain_id < 1:
            raise ValueError(f"chain_id must be positive, got {self.chain_id}")
        if self.confirmation_timeout_seconds <= 0:
            raise ValueError(
                "confirmation_timeout_seconds must be positive, "
                f"got {self.confirmation_timeout_seconds}"
            )
        if self.gas_limit < 21_000:
            raise ValueError(f"gas_limit must be at least 21000, got {self.gas_limit}")
        if self.start_block < 0:
            raise ValueError(f"start_block must be non-negative, got {self.start_block}")
        if self.log_window_blocks < 1:
            raise ValueError(
                f"log_window_blocks must be positive, got {self.log_window_blocks}"
            )
        if self.request_timeout_seconds <= 0:
            raise ValueError(
                "request_timeout_seconds must be positive, "
                f"got {self.request_timeout_seconds}"
            )

    def require_backend_settings(self) -> None:
        """Check that the selected backend has everything it needs.

        Raises:
            ConfigurationError: The evm backend is missing a setting.
        """
        if self.backend != "evm":
            return
        for setting, value in (
            ("LEDGER_RPC_URL", self.rpc_url),
            ("LEDGER_PRIVATE_KEY", self.private_key),
            ("LEDGER_CONTRACT_ADDRESS", self.contract_address),
        ):
            if not value:
                raise ConfigurationError(setting, "required when LEDGER_BACKEND=evm")

    @classmethod
    def from_environment(cls) -> "LedgerConfig":
        return cls(
            backend=(get_str_env("LEDGER_BACKEND", "stub") or "stub").lower(),
            rpc_url=get_str_env("LEDGER_RPC_URL"),
            private_key=get_str_env("LEDGER_PRIVATE_KEY"),
            contract_address=get_str_env("LEDGER_CONTRACT_ADDRESS"),
            chain_id=get_int_env("LEDGER_CHAIN_ID", SEPOLIA_CHAIN_ID),
            confirmation_timeout_seconds=get_float_env(
                "LEDGER_CONFIRMATION_TIMEOUT", 120.0
            ),
            gas_limit=get_int_env("LEDGER_GAS_LIMIT", 150_000),
            start_block=get_int_env("LEDGER_START_BLOCK", 0),
            log_window_blocks=get_int_env("LEDGER_LOG_WINDOW", 10_000),
            request_timeout_seconds=get_float_env("LEDGER_REQUEST_TIMEOUT", 30.0),
        )


@dataclass(frozen=True)
class SequencerConfig:
    """Backpressure and retry settings for the NonceSequencer.

    Attributes:
        max_queue_depth: Anchors waiting behind the one in flight before
            new submissions are refused.
        retry_count: Transient retries of one sequence number.
        backoff_base_seconds: Delay before the first retry; doubles per retry.
        backoff_max_seconds: Upper bound for the retry delay.
        retry_after_seconds: Retry-After value sent with 429 responses.
    """

    max_queue_depth: int = 100
    retry_count: int = 3
    backoff_base_seconds: float = 0.5
    backoff_max_seconds: float = 8.0
    retry_after_seconds: int = 5

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_queue_depth < 1:
            raise ValueError(
                f"max_queue_depth must be positive, got {self.max_queue_depth}"
            )
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be non-negative, got {self.retry_count}")
        if self.backoff_base_seconds < 0:
            raise ValueError(
                "backoff_base_seconds must be non-negative, "
                f"got {self.backoff_base_seconds}"
            )
        if self.backoff_max_seconds < self.backoff_base_seconds:
            raise ValueError(
                f"backoff_max_seconds ({self.backoff_max_seconds}) must not be less "
                f"than backoff_base_seconds ({self.backoff_base_seconds})"
            )
        if self.retry_after_seconds < 1:
            raise ValueError(
                f"retry_after_seconds must be at least 1, got {self.retry_after_seconds}"
            )

    @classmethod
    def from_environment(cls) -> "SequencerConfig":
        return cls(
            max_queue_depth=get_int_env("SEQUENCER_MAX_QUEUE_DEPTH", 100),
            retry_count=get_int_env("SEQUENCER_RETRY_COUNT", 3),
            backoff_base_seconds=get_float_env("SEQUENCER_BACKOFF_BASE", 0.5),
            backoff_max_seconds=get_float_env("SEQUENCER_BACKOFF_MAX", 8.0),
            retry_after_seconds=get_int_env("SEQUENCER_RETRY_AFTER", 5),
        )


# Testing config with short delays and a small queue
TEST_SEQUENCER_CONFIG = SequencerConfig(
    max_queue_depth=2,
    retry_count=2,
    backoff_base_seconds=0.0,
    backoff_max_seconds=0.0,
    retry_after_seconds=1,
)

"""EVM ledger client backed by web3.

Anchors are written through a registry contract:

    storeHash(string hash)            -- mutating, emits HashStored
    verifyHash(string hash) -> bool   -- view
    event HashStored(string hash, address indexed issuer, uint256 timestamp)

The fingerprint travels as its 64-character lowercase hex string, so any
client hashing the same bytes with SHA-256 reads the same entry.

web3 and the HTTP provider are synchronous; every call runs in a worker
thread via asyncio.to_thread so the event loop keeps serving other
requests while a submission waits for its receipt.

Nonces are never chosen here. submit_and_confirm signs with the sequence
number handed in by the NonceSequencer. A transaction whose receipt did not
arrive in time is remembered by sequence number; a retry of the same
fingerprint at that number waits on the broadcast transaction again instead
of signing a new one.

Existing anchors are found by scanning HashStored events emitted by this
signer, newest block first, in windows of log_window_blocks. Set
start_block to the registry deployment block so the scan stops there.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog
from eth_account import Account
from web3 import HTTPProvider, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from certanchor.application.ports.ledger_client import LedgerClientProtocol
from certanchor.config.ledger_config import LedgerConfig
from certanchor.domain.errors.ledger import (
    ALREADY_ANCHORED_REASON,
    NONCE_MISMATCH_REASON,
    REVERTED_REASON,
    LedgerRejectedError,
    LedgerTransientError,
    LedgerUnavailableError,
)
from certanchor.domain.models.anchor import LedgerReference
from certanchor.domain.models.fingerprint import ContentFingerprint

logger = structlog.get_logger(__name__)

REGISTRY_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "storeHash",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "hash", "type": "string"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "verifyHash",
        "stateMutability": "view",
        "inputs": [{"name": "hash", "type": "string"}],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "type": "event",
        "name": "HashStored",
        "anonymous": False,
        "inputs": [
            {"name": "hash", "type": "string", "indexed": False},
            {"name": "issuer", "type": "address", "indexed": True},
            {"name": "timestamp", "type": "uint256", "indexed": False},
        ],
    },
]

# RPC error fragments that mean the node will never accept this transaction
_REJECTION_MARKERS = {
    "nonce too low": NONCE_MISMATCH_REASON,
    "insufficient funds": "insufficient_funds",
    "intrinsic gas too low": "malformed",
    "invalid sender": "malformed",
    "exceeds block gas limit": "malformed",
}

# The node already holds this exact signed transaction in its pool
_ALREADY_KNOWN_MARKERS = ("already known", "known transaction")

DEFAULT_LOG_WINDOW_BLOCKS = 10_000


def _revert_reason(message: str) -> str:
    return ALREADY_ANCHORED_REASON if "already" in message.lower() else REVERTED_REASON


def _is_already_known(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _ALREADY_KNOWN_MARKERS)


def _classify_rpc_error(message: str) -> Optional[str]:
    lowered = message.lower()
    for marker, reason in _REJECTION_MARKERS.items():
        if marker in lowered:
            return reason
    return None


class EvmLedgerClient(LedgerClientProtocol):
    """LedgerClientProtocol implementation for an EVM registry contract."""

    def __init__(
        self,
        web3: Web3,
        account: Any,
        contract_address: str,
        chain_id: int,
        gas_limit: int,
        start_block: int = 0,
        poll_latency_seconds: float = 2.0,
        log_window_blocks: int = DEFAULT_LOG_WINDOW_BLOCKS,
    ) -> None:
        """Initialize the client.

        Args:
            web3: Connected Web3 instance.
            account: Local signing account (eth_account LocalAccount).
            contract_address: Registry contract address.
            chain_id: Chain id used when signing.
            gas_limit: Gas limit for storeHash transactions.
            start_block: First block scanned when looking up references.
            poll_latency_seconds: Receipt polling interval.
            log_window_blocks: Block range of one get_logs request.
        """
        self._w3 = web3
        self._account = account
        self._chain_id = chain_id
        self._gas_limit = gas_limit
        self._start_block = start_block
        self._poll_latency = poll_latency_seconds
        self._log_window = log_window_blocks
        # sequence -> (digest, tx hash) of transactions still awaiting a receipt
        self._sent: dict[int, tuple[str, Any]] = {}
        self._contract = web3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=REGISTRY_ABI,
        )
        self._log = logger.bind(component="evm_ledger", submitter=account.address)

    @classmethod
    def from_config(cls, config: LedgerConfig) -> EvmLedgerClient:
        """Build a client from validated ledger configuration."""
        web3 = Web3(
            HTTPProvider(
                config.rpc_url,
                request_kwargs={"timeout": config.request_timeout_seconds},
            )
        )
        account = Account.from_key(config.private_key)
        return cls(
            web3=web3,
            account=account,
            contract_address=config.contract_address or "",
            chain_id=config.chain_id,
            gas_limit=config.gas_limit,
            start_block=config.start_block,
            log_window_blocks=config.log_window_blocks,
        )

    @property
    def submitter(self) -> str:
        return self._account.address

    async def query(self, fingerprint: ContentFingerprint) -> bool:
        try:
            return bool(await asyncio.to_thread(self._verify_hash, fingerprint.hex()))
        except (OSError, ValueError, Web3Exception) as exc:
            self._log.warning(
                "ledger_query_failed",
                fingerprint=fingerprint.hex(),
                error_type=type(exc).__name__,
            )
            raise LedgerUnavailableError(
                "Ledger query failed", fingerprint=fingerprint.hex()
            ) from exc

    async def lookup(self, fingerprint: ContentFingerprint) -> Optional[LedgerReference]:
        try:
            return await asyncio.to_thread(self._find_reference, fingerprint.hex())
        except (OSError, ValueError, Web3Exception) as exc:
            raise LedgerUnavailableError(
                "Ledger lookup failed", fingerprint=fingerprint.hex()
            ) from exc

    async def submit_and_confirm(
        self,
        fingerprint: ContentFingerprint,
        sequence: int,
        timeout_seconds: float,
    ) -> LedgerReference:
        return await asyncio.to_thread(
            self._send_and_wait, fingerprint.hex(), sequence, timeout_seconds
        )

    async def consumed_sequence(self) -> int:
        try:
            return int(
                await asyncio.to_thread(
                    self._w3.eth.get_transaction_count, self._account.address, "latest"
                )
            )
        except (OSError, ValueError, Web3Exception) as exc:
            raise LedgerUnavailableError("Could not read signer nonce") from exc

    def _verify_hash(self, digest: str) -> bool:
        return self._contract.functions.verifyHash(digest).call()

    def _find_reference(self, digest: str) -> Optional[LedgerReference]:
        upper = int(self._w3.eth.block_number)
        while upper >= self._start_block:
            lower = max(self._start_block, upper - self._log_window + 1)
            entries = self._contract.events.HashStored.get_logs(
                argument_filters={"issuer": self._account.address},
                from_block=lower,
                to_block=upper,
            )
            for entry in entries:
                if entry["args"]["hash"] != digest:
                    continue
                tx_hash = entry["transactionHash"]
                transaction = self._w3.eth.get_transaction(tx_hash)
                return LedgerReference(
                    transaction_id=Web3.to_hex(tx_hash),
                    sequence=int(transaction["nonce"]),
                    block_number=int(entry["blockNumber"]),
                )
            upper = lower - 1
        return None

    def _send_and_wait(
        self, digest: str, sequence: int, timeout_seconds: float
    ) -> LedgerReference:
        log = self._log.bind(fingerprint=digest, sequence=sequence)
        sent = self._sent.get(sequence)
        if sent is not None and sent[0] == digest:
            tx_hash = sent[1]
            log.info(
                "ledger_transaction_awaited_again", transaction_id=Web3.to_hex(tx_hash)
            )
        else:
            tx_hash = self._broadcast(digest, sequence, log)
            self._sent[sequence] = (digest, tx_hash)

        transaction_id = Web3.to_hex(tx_hash)
        try:
            receipt = self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout_seconds,
                poll_latency=self._poll_latency,
            )
        except TimeExhausted as exc:
            raise LedgerTransientError(
                f"Transaction {transaction_id} not confirmed within {timeout_seconds}s",
                fingerprint=digest,
                sequence=sequence,
            ) from exc
        except (OSError, ValueError, Web3Exception) as exc:
            raise LedgerTransientError(
                f"Lost contact while confirming {transaction_id}",
                fingerprint=digest,
                sequence=sequence,
            ) from exc

        self._forget_through(sequence)
        if receipt["status"] != 1:
            raise LedgerRejectedError(
                f"Transaction {transaction_id} reverted",
                fingerprint=digest,
                sequence=sequence,
                reason=REVERTED_REASON,
            )

        log.info(
            "ledger_transaction_confirmed",
            transaction_id=transaction_id,
            block_number=receipt["blockNumber"],
        )
        return LedgerReference(
            transaction_id=transaction_id,
            sequence=sequence,
            block_number=int(receipt["blockNumber"]),
        )

    def _broadcast(self, digest: str, sequence: int, log: Any) -> Any:
        signed = None
        try:
            tx = self._contract.functions.storeHash(digest).build_transaction(
                {
                    "from": self._account.address,
                    "nonce": sequence,
                    "chainId": self._chain_id,
                    "gas": self._gas_limit,
                }
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as exc:
            raise LedgerRejectedError(
                "Registry rejected the anchor",
                fingerprint=digest,
                sequence=sequence,
                reason=_revert_reason(str(exc)),
            ) from exc
        except (ValueError, Web3Exception) as exc:
            if signed is not None and _is_already_known(str(exc)):
                log.info(
                    "ledger_transaction_already_pooled",
                    transaction_id=Web3.to_hex(signed.hash),
                )
                return signed.hash
            reason = _classify_rpc_error(str(exc))
            if reason is not None:
                raise LedgerRejectedError(
                    "Ledger refused the transaction",
                    fingerprint=digest,
                    sequence=sequence,
                    reason=reason,
                ) from exc
            raise LedgerTransientError(
                "Ledger submission failed", fingerprint=digest, sequence=sequence
            ) from exc
        except OSError as exc:
            raise LedgerTransientError(
                "Ledger endpoint unreachable", fingerprint=digest, sequence=sequence
            ) from exc

        log.info("ledger_transaction_sent", transaction_id=Web3.to_hex(tx_hash))
        return tx_hash

    def _forget_through(self, sequence: int) -> None:
        for stale in [number for number in self._sent if number <= sequence]:
            del self._sent[stale]

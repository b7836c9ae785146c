"""Unit tests for EvmLedgerClient.

web3 is replaced with a MagicMock so no node is contacted; the tests pin
how RPC outcomes map onto the ledger error taxonomy.
"""

from unittest.mock import MagicMock

import pytest
from eth_account import Account
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from certanchor.application.services.fingerprint_service import Sha256FingerprintService
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
from certanchor.infrastructure.adapters.ledger.evm_ledger_client import (
    REGISTRY_ABI,
    EvmLedgerClient,
)

CONTRACT = "0x" + "ab" * 20
SUBMITTER = "0x" + "cd" * 20
TX_HASH = bytes.fromhex("ef" * 32)
FINGERPRINT = Sha256FingerprintService().fingerprint(b"certificate bytes")


@pytest.fixture
def web3() -> MagicMock:
    w3 = MagicMock()
    w3.eth.send_raw_transaction.return_value = TX_HASH
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "blockNumber": 42}
    w3.eth.block_number = 150
    return w3


@pytest.fixture
def account() -> MagicMock:
    acct = MagicMock()
    acct.address = SUBMITTER
    acct.sign_transaction.return_value = MagicMock(
        raw_transaction=b"signed", hash=TX_HASH
    )
    return acct


@pytest.fixture
def client(web3: MagicMock, account: MagicMock) -> EvmLedgerClient:
    return EvmLedgerClient(
        web3=web3,
        account=account,
        contract_address=CONTRACT,
        chain_id=11155111,
        gas_limit=150_000,
        start_block=100,
        poll_latency_seconds=0.1,
    )


def _contract(web3: MagicMock) -> MagicMock:
    return web3.eth.contract.return_value


class TestConstruction:
    def test_contract_bound_to_checksummed_address(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.contract.assert_called_once_with(
            address=Web3.to_checksum_address(CONTRACT), abi=REGISTRY_ABI
        )
        assert client.submitter == SUBMITTER

    def test_from_config_builds_signing_account(self) -> None:
        """from_config works offline: no RPC call happens until first use."""
        private_key = "0x" + "11" * 32
        config = LedgerConfig(
            backend="evm",
            rpc_url="http://127.0.0.1:8545",
            private_key=private_key,
            contract_address=CONTRACT,
        )

        client = EvmLedgerClient.from_config(config)

        assert client.submitter == Account.from_key(private_key).address


class TestSubmitAndConfirm:
    @pytest.mark.asyncio
    async def test_confirmed_receipt_returns_reference(
        self, client: EvmLedgerClient, web3: MagicMock, account: MagicMock
    ) -> None:
        reference = await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

        assert reference == LedgerReference(
            transaction_id="0x" + "ef" * 32, sequence=7, block_number=42
        )
        _contract(web3).functions.storeHash.assert_called_once_with(FINGERPRINT.hex())
        build = _contract(web3).functions.storeHash.return_value.build_transaction
        build.assert_called_once_with(
            {
                "from": SUBMITTER,
                "nonce": 7,
                "chainId": 11155111,
                "gas": 150_000,
            }
        )
        web3.eth.send_raw_transaction.assert_called_once_with(b"signed")
        web3.eth.wait_for_transaction_receipt.assert_called_once_with(
            TX_HASH, timeout=30.0, poll_latency=0.1
        )

    @pytest.mark.asyncio
    async def test_reverted_receipt_is_rejection(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.wait_for_transaction_receipt.return_value = {
            "status": 0,
            "blockNumber": 43,
        }

        with pytest.raises(LedgerRejectedError) as exc_info:
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

        assert exc_info.value.reason == "reverted"
        assert exc_info.value.sequence == 7

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("message", "reason"),
        [
            ("execution reverted: already stored", ALREADY_ANCHORED_REASON),
            ("execution reverted: empty hash", REVERTED_REASON),
        ],
    )
    async def test_contract_logic_error_is_rejection(
        self, client: EvmLedgerClient, web3: MagicMock, message: str, reason: str
    ) -> None:
        build = _contract(web3).functions.storeHash.return_value.build_transaction
        build.side_effect = ContractLogicError(message)

        with pytest.raises(LedgerRejectedError) as exc_info:
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

        assert exc_info.value.reason == reason
        web3.eth.send_raw_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_receipt_timeout_is_transient(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("no receipt")

        with pytest.raises(LedgerTransientError) as exc_info:
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

        assert exc_info.value.sequence == 7

    @pytest.mark.asyncio
    async def test_retry_after_timeout_waits_on_the_broadcast_transaction(
        self, client: EvmLedgerClient, web3: MagicMock, account: MagicMock
    ) -> None:
        web3.eth.wait_for_transaction_receipt.side_effect = [
            TimeExhausted("no receipt"),
            {"status": 1, "blockNumber": 44},
        ]

        with pytest.raises(LedgerTransientError):
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)
        reference = await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

        assert reference.block_number == 44
        web3.eth.send_raw_transaction.assert_called_once_with(b"signed")
        account.sign_transaction.assert_called_once()
        assert web3.eth.wait_for_transaction_receipt.call_count == 2
        for call in web3.eth.wait_for_transaction_receipt.call_args_list:
            assert call.args == (TX_HASH,)

    @pytest.mark.asyncio
    async def test_other_fingerprint_at_same_sequence_is_broadcast(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        other = Sha256FingerprintService().fingerprint(b"other certificate")
        web3.eth.wait_for_transaction_receipt.side_effect = [
            TimeExhausted("no receipt"),
            {"status": 1, "blockNumber": 44},
        ]

        with pytest.raises(LedgerTransientError):
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)
        await client.submit_and_confirm(other, 7, 30.0)

        assert web3.eth.send_raw_transaction.call_count == 2

    @pytest.mark.asyncio
    async def test_already_known_transaction_is_awaited(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.send_raw_transaction.side_effect = ValueError(
            {"code": -32000, "message": "already known"}
        )

        reference = await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

        assert reference == LedgerReference(
            transaction_id="0x" + "ef" * 32, sequence=7, block_number=42
        )
        web3.eth.wait_for_transaction_receipt.assert_called_once_with(
            TX_HASH, timeout=30.0, poll_latency=0.1
        )

    @pytest.mark.asyncio
    async def test_connection_failure_is_transient(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.send_raw_transaction.side_effect = ConnectionError("refused")

        with pytest.raises(LedgerTransientError):
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("message", "reason"),
        [
            ("nonce too low: next nonce 8, tx nonce 7", NONCE_MISMATCH_REASON),
            ("insufficient funds for gas * price + value", "insufficient_funds"),
            ("intrinsic gas too low", "malformed"),
        ],
    )
    async def test_node_refusals_are_classified(
        self,
        client: EvmLedgerClient,
        web3: MagicMock,
        message: str,
        reason: str,
    ) -> None:
        web3.eth.send_raw_transaction.side_effect = ValueError({"message": message})

        with pytest.raises(LedgerRejectedError) as exc_info:
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)

        assert exc_info.value.reason == reason

    @pytest.mark.asyncio
    async def test_unclassified_node_error_is_transient(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.send_raw_transaction.side_effect = ValueError(
            {"message": "replacement transaction underpriced"}
        )

        with pytest.raises(LedgerTransientError):
            await client.submit_and_confirm(FINGERPRINT, 7, 30.0)


class TestReads:
    @pytest.mark.asyncio
    async def test_query_calls_verify_hash(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        verify = _contract(web3).functions.verifyHash
        verify.return_value.call.return_value = True

        assert await client.query(FINGERPRINT) is True
        verify.assert_called_once_with(FINGERPRINT.hex())

    @pytest.mark.asyncio
    async def test_query_failure_is_unavailable_not_false(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        verify = _contract(web3).functions.verifyHash
        verify.return_value.call.side_effect = ConnectionError("node down")

        with pytest.raises(LedgerUnavailableError) as exc_info:
            await client.query(FINGERPRINT)

        assert exc_info.value.fingerprint == FINGERPRINT.hex()

    @pytest.mark.asyncio
    async def test_lookup_finds_matching_event(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        get_logs = _contract(web3).events.HashStored.get_logs
        get_logs.return_value = [
            {
                "args": {"hash": "00" * 32},
                "transactionHash": bytes.fromhex("aa" * 32),
                "blockNumber": 101,
            },
            {
                "args": {"hash": FINGERPRINT.hex()},
                "transactionHash": TX_HASH,
                "blockNumber": 120,
            },
        ]
        web3.eth.get_transaction.return_value = {"nonce": 3}

        reference = await client.lookup(FINGERPRINT)

        assert reference == LedgerReference(
            transaction_id="0x" + "ef" * 32, sequence=3, block_number=120
        )
        get_logs.assert_called_once_with(
            argument_filters={"issuer": SUBMITTER}, from_block=100, to_block=150
        )
        web3.eth.get_transaction.assert_called_once_with(TX_HASH)

    @pytest.mark.asyncio
    async def test_lookup_returns_none_without_event(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        _contract(web3).events.HashStored.get_logs.return_value = []

        assert await client.lookup(FINGERPRINT) is None

    @pytest.mark.asyncio
    async def test_lookup_scans_bounded_windows_newest_first(
        self, web3: MagicMock, account: MagicMock
    ) -> None:
        client = EvmLedgerClient(
            web3=web3,
            account=account,
            contract_address=CONTRACT,
            chain_id=11155111,
            gas_limit=150_000,
            start_block=0,
            log_window_blocks=1_000,
        )
        web3.eth.block_number = 2_500
        requested: list[tuple[int, int]] = []

        def get_logs(argument_filters: dict, from_block: int, to_block: int) -> list:
            if to_block - from_block + 1 > 1_000:
                raise ValueError({"message": "query exceeds max block range 1000"})
            assert argument_filters == {"issuer": SUBMITTER}
            requested.append((from_block, to_block))
            if from_block <= 300 <= to_block:
                return [
                    {
                        "args": {"hash": FINGERPRINT.hex()},
                        "transactionHash": TX_HASH,
                        "blockNumber": 300,
                    }
                ]
            return []

        _contract(web3).events.HashStored.get_logs.side_effect = get_logs
        web3.eth.get_transaction.return_value = {"nonce": 9}

        reference = await client.lookup(FINGERPRINT)

        assert reference is not None
        assert reference.block_number == 300
        assert requested == [(1_501, 2_500), (501, 1_500), (0, 500)]

    @pytest.mark.asyncio
    async def test_lookup_range_error_is_unavailable(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        _contract(web3).events.HashStored.get_logs.side_effect = ValueError(
            {"message": "query returned more than 10000 results"}
        )

        with pytest.raises(LedgerUnavailableError):
            await client.lookup(FINGERPRINT)

    @pytest.mark.asyncio
    async def test_consumed_sequence_reads_latest_nonce(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.get_transaction_count.return_value = 12

        assert await client.consumed_sequence() == 12
        web3.eth.get_transaction_count.assert_called_once_with(SUBMITTER, "latest")

    @pytest.mark.asyncio
    async def test_consumed_sequence_failure_is_unavailable(
        self, client: EvmLedgerClient, web3: MagicMock
    ) -> None:
        web3.eth.get_transaction_count.side_effect = OSError("timed out")

        with pytest.raises(LedgerUnavailableError):
            await client.consumed_sequence()

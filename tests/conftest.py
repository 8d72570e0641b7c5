import threading
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from eth_txfuzz_core.accounts import Account, AccountPool
from eth_txfuzz_core.clients.base_client import INodeClient
from eth_txfuzz_core.errors import ConfirmationTimeout, NodeConnectionError, SubmissionError
from eth_txfuzz_core.signer import SignedTx
from eth_txfuzz_core.spam_config import SpamConfig
from eth_txfuzz_core.tx import AccessList, Transaction

GWEI = 10**9


def key_for(i: int) -> str:
    return "0x" + format(i + 1, "064x")


class FakeNodeClient(INodeClient):
    """
    In-memory node: keeps latest/pending nonces per address, records every
    call and mines a transaction when wait_mined is called.
    """
    def __init__(self, chain_id: int = 1337, fee_cap: int = 30 * GWEI, tip_cap: int = 2 * GWEI,
                 block_gas_limit: int = 30_000_000, access_list: Optional[AccessList] = None):
        self._chain_id = chain_id
        self.fee_cap = fee_cap
        self.tip_cap = tip_cap
        self.blob_base_fee = 1
        self.block_gas_limit = block_gas_limit
        self.access_list: AccessList = access_list or []
        self.fail_suggestions = False
        self.fail_senders: Set[str] = set()
        self.accept_limit: Optional[int] = None # Reject every submission after this many
        self.mine = True

        self.latest: Dict[str, int] = {}
        self.pending: Dict[str, int] = {}
        self.submissions: List[SignedTx] = []
        self.nonce_queries: List[Tuple[str, str]] = []
        self.access_list_calls: List[Tuple[Transaction, str]] = []
        self.mined: List[str] = []
        self._by_hash: Dict[str, SignedTx] = {}
        self._lock = threading.Lock()

    def chain_id(self) -> int:
        return self._chain_id

    def nonce_at(self, address: str, block_tag: str = "pending") -> int:
        with self._lock:
            self.nonce_queries.append((address, block_tag))
            if block_tag == "latest":
                return self.latest.get(address, 0)
            return self.pending.get(address, self.latest.get(address, 0))

    def suggest_fee_cap(self) -> int:
        if self.fail_suggestions:
            raise NodeConnectionError("eth_gasPrice unavailable")
        return self.fee_cap

    def suggest_tip_cap(self) -> int:
        if self.fail_suggestions:
            raise NodeConnectionError("eth_maxPriorityFeePerGas unavailable")
        return self.tip_cap

    def suggest_blob_fee_cap(self) -> int:
        if self.fail_suggestions:
            raise NodeConnectionError("eth_blobBaseFee unavailable")
        return self.blob_base_fee

    def header_by_number(self, number: Optional[int] = None) -> Dict[str, Any]:
        return {'number': number or 1, 'gasLimit': self.block_gas_limit}

    def create_access_list(self, tx: Transaction, sender: str) -> AccessList:
        with self._lock:
            self.access_list_calls.append((tx, sender))
        return [dict(entry) for entry in self.access_list]

    def send_raw_transaction(self, signed_tx: SignedTx) -> str:
        with self._lock:
            if signed_tx.sender in self.fail_senders:
                raise SubmissionError(f"rejected transaction from {signed_tx.sender}")
            if self.accept_limit is not None and len(self.submissions) >= self.accept_limit:
                raise SubmissionError("txpool is full")
            sender, nonce = signed_tx.sender, signed_tx.nonce
            # A replacement drops whatever was queued above its nonce.
            self.pending[sender] = nonce + 1
            self.submissions.append(signed_tx)
            tx_hash = "0x" + bytes(signed_tx.hash).hex()
            self._by_hash[tx_hash] = signed_tx
            return tx_hash

    def wait_mined(self, tx_hash, timeout: float) -> Dict[str, Any]:
        if not self.mine:
            raise ConfirmationTimeout(f"Transaction {tx_hash} not mined within {timeout}s")
        with self._lock:
            signed_tx = self._by_hash[tx_hash]
            sender = signed_tx.sender
            self.latest[sender] = max(self.latest.get(sender, 0), signed_tx.nonce + 1)
            self.mined.append(tx_hash)
        return {'transactionHash': tx_hash, 'status': 1}

    def submissions_from(self, address: str) -> List[SignedTx]:
        return [signed_tx for signed_tx in self.submissions if signed_tx.sender == address]

    def pending_queries_for(self, address: str) -> int:
        return sum(1 for queried, tag in self.nonce_queries if queried == address and tag == "pending")


@pytest.fixture
def fake_node():
    return FakeNodeClient()


@pytest.fixture
def pool():
    return AccountPool.from_private_keys([key_for(i) for i in range(3)])


@pytest.fixture
def faucet():
    return Account.from_key(key_for(99))


@pytest.fixture
def make_config(fake_node, pool, faucet):
    """Builds a SpamConfig against the fake node with no throttling."""
    def _make(**overrides):
        options = dict(
            client=fake_node,
            faucet=faucet,
            accounts=pool,
            n=5,
            access_list=False,
            seed=42,
            inter_tx_delay=0,
            tx_timeout=1.0,
        )
        options.update(overrides)
        return SpamConfig(**options)
    return _make

import abc
from typing import Any, Dict, Optional, Union

from eth_txfuzz_core.signer import SignedTx
from eth_txfuzz_core.tx import AccessList, Transaction


class INodeClient(abc.ABC):
    """
    Abstract Base Class defining the node RPC capability consumed by the
    spam engine. Implementations must tolerate concurrent use by several
    worker threads. Every method either returns a typed value or raises;
    callers must not assume retries are idempotent.
    """

    @abc.abstractmethod
    def chain_id(self) -> int:
        """Returns the chain id reported by the node."""

    @abc.abstractmethod
    def nonce_at(self, address: str, block_tag: str = "pending") -> int:
        """
        Returns the account nonce at the given block tag.

        Args:
            address: Checksummed account address.
            block_tag: "latest" for the confirmed view, "pending" to include
                       transactions sitting in the node's pool.
        """

    @abc.abstractmethod
    def suggest_fee_cap(self) -> int:
        """Returns the node's suggested fee cap (eth_gasPrice)."""

    @abc.abstractmethod
    def suggest_tip_cap(self) -> int:
        """Returns the node's suggested tip cap (eth_maxPriorityFeePerGas)."""

    @abc.abstractmethod
    def suggest_blob_fee_cap(self) -> int:
        """Returns the node's current blob base fee (eth_blobBaseFee)."""

    @abc.abstractmethod
    def header_by_number(self, number: Optional[int] = None) -> Dict[str, Any]:
        """Returns a block header; None selects the latest block."""

    @abc.abstractmethod
    def create_access_list(self, tx: Transaction, sender: str) -> AccessList:
        """Simulates `tx` from `sender` and returns the accessed addresses and slots."""

    @abc.abstractmethod
    def send_raw_transaction(self, signed_tx: SignedTx) -> str:
        """Submits a signed transaction and returns its hash."""

    @abc.abstractmethod
    def wait_mined(self, tx_hash: Union[str, bytes], timeout: float) -> Dict[str, Any]:
        """
        Blocks until the transaction is mined and returns its receipt.
        Raises ConfirmationTimeout when `timeout` seconds pass first.
        """

"""
Signing capability. The signature scheme is opaque to the spam engine; it
only relies on signing being a pure function of the unsigned transaction,
the chain id and the account secret.
"""
from typing import Any, Dict

from hexbytes import HexBytes

from .accounts import Account
from .tx import BlobTransaction, Transaction


class SignedTx:
    """A signed transaction together with the unsigned object it was built from."""
    def __init__(self, transaction: Transaction, sender: str, raw_transaction: bytes, tx_hash: bytes):
        self.transaction: Transaction = transaction
        self.sender: str = sender
        self.raw_transaction: HexBytes = HexBytes(raw_transaction)
        self.hash: HexBytes = HexBytes(tx_hash)

    @property
    def nonce(self) -> int:
        return self.transaction.nonce

    def __repr__(self) -> str:
        return f"SignedTx(sender='{self.sender[:10]}...', nonce={self.nonce}, hash='{self.hash.hex()}')"


class Signer:
    """Signs transactions with an account's local key via eth_account."""

    def sign(self, tx: Transaction, chain_id: int, account: Account) -> SignedTx:
        tx_params: Dict[str, Any] = tx.to_tx_params(chain_id)
        if isinstance(tx, BlobTransaction):
            signed = account.local_account.sign_transaction(tx_params, blobs=tx.blobs)
        else:
            signed = account.local_account.sign_transaction(tx_params)
        return SignedTx(tx, account.address, signed.raw_transaction, signed.hash)

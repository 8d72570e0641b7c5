"""
Defines the transaction working set (TxConf) and the fully-specified
transaction objects handed to the signer.
"""
from typing import Any, Dict, List, Optional

from eth_utils import to_checksum_address

AccessList = List[Dict[str, Any]] # [{'address': '0x..', 'storageKeys': ['0x..', ...]}, ...]


def _hex(value: int) -> str:
    return hex(value)


def normalize_access_list(raw_access_list: Optional[List[Dict[str, Any]]]) -> AccessList:
    """
    Converts an access list as returned by eth_createAccessList into the
    form expected by eth_account: checksummed addresses and 0x-prefixed
    32-byte storage keys.
    """
    normalized: AccessList = []
    for entry in raw_access_list or []:
        storage_keys = []
        for key in entry.get('storageKeys', []):
            if isinstance(key, (bytes, bytearray)):
                key = "0x" + bytes(key).hex()
            storage_keys.append("0x" + key[2:].rjust(64, "0"))
        normalized.append({
            'address': to_checksum_address(entry['address']),
            'storageKeys': storage_keys,
        })
    return normalized


class TxConf:
    """
    Ephemeral per-transaction working set. Built fresh for every transaction,
    consumed by exactly one strategy and discarded after signing.
    """
    def __init__(self,
                 client: Any, # INodeClient or None when running offline
                 nonce: int,
                 sender: str,
                 to: Optional[str],
                 value: int,
                 gas_limit: int,
                 gas_fee_cap: int,
                 gas_tip_cap: int,
                 chain_id: int,
                 code: bytes
                ):
        self.client = client
        self.nonce: int = nonce
        self.sender: str = sender
        self.to: Optional[str] = to
        self.value: int = value
        self.gas_limit: int = gas_limit
        self.gas_fee_cap: int = gas_fee_cap
        self.gas_tip_cap: int = gas_tip_cap
        self.chain_id: int = chain_id
        self.code: bytes = code

    def __repr__(self) -> str:
        to_repr = self.to[:10] + "..." if self.to else None
        return (f"TxConf(sender='{self.sender[:10]}...', nonce={self.nonce}, to={to_repr}, "
                f"feeCap={self.gas_fee_cap}, tipCap={self.gas_tip_cap}, code={len(self.code)}B)")


class Transaction:
    """
    A complete EIP-1559 (type 2) transaction. Every field is mandatory; a
    transaction with a missing field is a programming error and is rejected
    at construction time. `to` is None for contract creation and `chain_id`
    is None only for provisional transactions that are simulated, never signed.
    """
    tx_type: int = 2

    def __init__(self,
                 chain_id: Optional[int],
                 nonce: int,
                 max_priority_fee_per_gas: int,
                 max_fee_per_gas: int,
                 gas: int,
                 to: Optional[str],
                 value: int,
                 data: bytes,
                 access_list: AccessList
                ):
        for name, field in (('nonce', nonce), ('max_priority_fee_per_gas', max_priority_fee_per_gas),
                            ('max_fee_per_gas', max_fee_per_gas), ('gas', gas), ('value', value),
                            ('data', data), ('access_list', access_list)):
            if field is None:
                raise ValueError(f"Transaction field '{name}' must be set")
        self.chain_id: Optional[int] = chain_id
        self.nonce: int = nonce
        self.max_priority_fee_per_gas: int = max_priority_fee_per_gas
        self.max_fee_per_gas: int = max_fee_per_gas
        self.gas: int = gas
        self.to: Optional[str] = to
        self.value: int = value
        self.data: bytes = bytes(data)
        self.access_list: AccessList = access_list

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None

    def to_tx_params(self, chain_id: int) -> Dict[str, Any]:
        """Builds the transaction dictionary accepted by eth_account's sign_transaction."""
        params: Dict[str, Any] = {
            'type': self.tx_type,
            'chainId': chain_id,
            'nonce': self.nonce,
            'maxPriorityFeePerGas': self.max_priority_fee_per_gas,
            'maxFeePerGas': self.max_fee_per_gas,
            'gas': self.gas,
            'value': self.value,
            'data': "0x" + self.data.hex(),
            'accessList': self.access_list,
        }
        if self.to is not None: # Omitted 'to' means contract creation
            params['to'] = to_checksum_address(self.to)
        return params

    def to_call_params(self, sender: str) -> Dict[str, Any]:
        """Builds the JSON-RPC call object used to simulate this transaction."""
        params: Dict[str, Any] = {
            'from': to_checksum_address(sender),
            'nonce': _hex(self.nonce),
            'gas': _hex(self.gas),
            'maxFeePerGas': _hex(self.max_fee_per_gas),
            'maxPriorityFeePerGas': _hex(self.max_priority_fee_per_gas),
            'value': _hex(self.value),
            'data': "0x" + self.data.hex(),
        }
        if self.to is not None:
            params['to'] = to_checksum_address(self.to)
        return params

    def __repr__(self) -> str:
        to_repr = f"'{self.to[:10]}...'" if self.to else "CREATE"
        return (f"Transaction(type={self.tx_type}, nonce={self.nonce}, to={to_repr}, gas={self.gas}, "
                f"maxFeePerGas={self.max_fee_per_gas}, maxPriorityFeePerGas={self.max_priority_fee_per_gas}, "
                f"data={len(self.data)}B, accessList={len(self.access_list)})")


class BlobTransaction(Transaction):
    """
    An EIP-4844 (type 3) transaction. Blob transactions cannot create
    contracts, so a recipient is mandatory. The raw blobs travel with the
    object so the signer can compute commitments and the network wrapper.
    """
    tx_type: int = 3

    def __init__(self,
                 chain_id: Optional[int],
                 nonce: int,
                 max_priority_fee_per_gas: int,
                 max_fee_per_gas: int,
                 gas: int,
                 to: str,
                 value: int,
                 data: bytes,
                 access_list: AccessList,
                 max_fee_per_blob_gas: int,
                 blobs: List[bytes]
                ):
        if to is None:
            raise ValueError("Blob transactions require a recipient")
        if max_fee_per_blob_gas is None or not blobs:
            raise ValueError("Blob transactions require a blob fee cap and at least one blob")
        super().__init__(chain_id, nonce, max_priority_fee_per_gas, max_fee_per_gas,
                         gas, to, value, data, access_list)
        self.max_fee_per_blob_gas: int = max_fee_per_blob_gas
        self.blobs: List[bytes] = blobs

    def to_tx_params(self, chain_id: int) -> Dict[str, Any]:
        params = super().to_tx_params(chain_id)
        params['maxFeePerBlobGas'] = self.max_fee_per_blob_gas
        return params

    def __repr__(self) -> str:
        return (super().__repr__()[:-1] +
                f", maxFeePerBlobGas={self.max_fee_per_blob_gas}, blobs={len(self.blobs)})")

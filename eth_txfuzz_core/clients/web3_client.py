"""
Node RPC client backed by web3.py, with raw JSON-RPC requests for the
methods web3.py does not wrap uniformly across versions.
"""
import itertools
import json
import logging
from typing import Any, Dict, List, Optional, Union

import requests
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from eth_txfuzz_core import config as core_config
from eth_txfuzz_core.clients.base_client import INodeClient
from eth_txfuzz_core.errors import ConfirmationTimeout, NodeConnectionError, SubmissionError
from eth_txfuzz_core.signer import SignedTx
from eth_txfuzz_core.tx import AccessList, Transaction, normalize_access_list

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (requests.exceptions.RequestException, Web3Exception, ValueError)


class Web3NodeClient(INodeClient):
    """
    Talks to a node over HTTP JSON-RPC. A single instance is shared by all
    spam workers.
    """

    def __init__(self, rpc_url: str = core_config.DEFAULT_TARGET_URL,
                 poa: bool = False,
                 request_timeout: float = core_config.DEFAULT_RPC_TIMEOUT_SECONDS,
                 check_connection: bool = True):
        """
        Args:
            rpc_url: The node's JSON-RPC endpoint (e.g., "http://127.0.0.1:8545").
            poa: Inject the extra-data POA middleware, needed for clique dev chains.
            request_timeout: Timeout in seconds for each HTTP request.
            check_connection: Fail fast if the node is not reachable.
        """
        self.rpc_url = rpc_url
        self.request_timeout = request_timeout
        self.w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': request_timeout}))
        if poa:
            self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        self._request_ids = itertools.count(1)

        if check_connection:
            if not self.w3.is_connected():
                raise NodeConnectionError(f"Failed to connect to node at {rpc_url}")
            logger.info("Web3NodeClient connected to %s", rpc_url)

    def _make_rpc_request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Makes a raw JSON-RPC request and returns its 'result'.
        Raises NodeConnectionError on transport failures and RPC errors.
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._request_ids),
        }
        try:
            response = requests.post(self.rpc_url, json=payload,
                                     headers={"Content-Type": "application/json"},
                                     timeout=self.request_timeout)
            response.raise_for_status()
            json_response = response.json()
        except requests.exceptions.RequestException as e:
            raise NodeConnectionError(f"RPC request {method} to {self.rpc_url} failed: {e}") from e
        except json.JSONDecodeError as e:
            raise NodeConnectionError(f"Failed to decode JSON response for {method}: {e}") from e

        if json_response.get('error') is not None:
            raise NodeConnectionError(f"RPC error for method {method}: {json_response['error']}")
        return json_response.get('result')

    def chain_id(self) -> int:
        try:
            return self.w3.eth.chain_id
        except _TRANSPORT_ERRORS as e:
            raise NodeConnectionError(f"eth_chainId failed: {e}") from e

    def nonce_at(self, address: str, block_tag: str = "pending") -> int:
        try:
            return self.w3.eth.get_transaction_count(Web3.to_checksum_address(address), block_tag)
        except _TRANSPORT_ERRORS as e:
            raise NodeConnectionError(f"eth_getTransactionCount({address}, {block_tag}) failed: {e}") from e

    def suggest_fee_cap(self) -> int:
        try:
            return self.w3.eth.gas_price
        except _TRANSPORT_ERRORS as e:
            raise NodeConnectionError(f"eth_gasPrice failed: {e}") from e

    def suggest_tip_cap(self) -> int:
        try:
            return self.w3.eth.max_priority_fee
        except _TRANSPORT_ERRORS as e:
            raise NodeConnectionError(f"eth_maxPriorityFeePerGas failed: {e}") from e

    def suggest_blob_fee_cap(self) -> int:
        result = self._make_rpc_request("eth_blobBaseFee")
        if not isinstance(result, str):
            raise NodeConnectionError(f"Unexpected eth_blobBaseFee result: {result!r}")
        return int(result, 16)

    def header_by_number(self, number: Optional[int] = None) -> Dict[str, Any]:
        block_identifier = 'latest' if number is None else number
        try:
            return dict(self.w3.eth.get_block(block_identifier))
        except _TRANSPORT_ERRORS as e:
            raise NodeConnectionError(f"eth_getBlockByNumber({block_identifier}) failed: {e}") from e

    def create_access_list(self, tx: Transaction, sender: str) -> AccessList:
        result = self._make_rpc_request("eth_createAccessList", [tx.to_call_params(sender), "pending"])
        if not isinstance(result, dict):
            raise NodeConnectionError(f"Unexpected eth_createAccessList result: {result!r}")
        if result.get('error'):
            # The simulation reverted; the access list gathered so far is still returned.
            logger.debug("Access list simulation for %s reported: %s", sender, result['error'])
        return normalize_access_list(result.get('accessList'))

    def send_raw_transaction(self, signed_tx: SignedTx) -> str:
        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except _TRANSPORT_ERRORS as e:
            raise SubmissionError(
                f"Could not submit transaction from {signed_tx.sender} (nonce {signed_tx.nonce}): {e}"
            ) from e
        return Web3.to_hex(tx_hash)

    def wait_mined(self, tx_hash: Union[str, bytes], timeout: float) -> Dict[str, Any]:
        tx_hash_hex = tx_hash if isinstance(tx_hash, str) else Web3.to_hex(tx_hash)
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
        except TimeExhausted as e:
            raise ConfirmationTimeout(f"Transaction {tx_hash_hex} not mined within {timeout}s") from e
        except _TRANSPORT_ERRORS as e:
            raise NodeConnectionError(f"Waiting for receipt of {tx_hash_hex} failed: {e}") from e
        return dict(receipt)

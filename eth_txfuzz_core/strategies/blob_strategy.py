"""
Random EIP-4844 blob transactions.
"""
import logging
import random
from typing import List, Optional

from .. import config as core_config
from ..clients.base_client import INodeClient
from ..errors import NodeConnectionError
from ..fees import get_caps
from ..filler import Filler
from ..generator import ProgramGenerator
from ..tx import BlobTransaction
from .registry import create_access_list, init_default_tx_conf

logger = logging.getLogger(__name__)

FIELD_ELEMENTS_PER_BLOB = core_config.BLOB_SIZE // 32


def random_blob(filler: Filler) -> bytes:
    """
    Builds one blob from filler bytes. Every 32-byte field element starts
    with a zero byte so it stays below the BLS modulus.

    :param filler: Source of the random payload.
    :return: A blob of exactly core_config.BLOB_SIZE bytes.
    """
    blob = bytearray()
    for _ in range(FIELD_ELEMENTS_PER_BLOB):
        blob.append(0)
        blob.extend(filler.read(31))
    return bytes(blob)


def random_blobs(filler: Filler, count: int) -> List[bytes]:
    if count <= 0:
        return []
    return [random_blob(filler) for _ in range(count)]


def blob_fee_cap(client: Optional[INodeClient]) -> int:
    """Twice the current blob base fee, or core_config.FALLBACK_BLOB_FEE_CAP."""
    if client is None:
        return core_config.FALLBACK_BLOB_FEE_CAP
    try:
        return max(1, 2 * client.suggest_blob_fee_cap())
    except NodeConnectionError as e:
        logger.warning("Could not get blob base fee, using %d: %s", core_config.FALLBACK_BLOB_FEE_CAP, e)
        return core_config.FALLBACK_BLOB_FEE_CAP


def random_blob_tx(client: Optional[INodeClient],
                   filler: Filler,
                   sender: str,
                   nonce: int,
                   gas_fee_cap: Optional[int] = None,
                   gas_tip_cap: Optional[int] = None,
                   chain_id: Optional[int] = None,
                   access_list: bool = False,
                   rng: Optional[random.Random] = None,
                   generator: Optional[ProgramGenerator] = None,
                   gas_limit: int = core_config.DEFAULT_TX_GAS_LIMIT,
                   max_blobs: int = core_config.MAX_BLOBS_PER_TX
                  ) -> BlobTransaction:
    """
    Creates a random blob transaction to a random recipient carrying between
    one and `max_blobs` blobs. With `access_list` set, half of the
    transactions carry a node-simulated access list.
    """
    rng = rng or random.Random()
    conf = init_default_tx_conf(client, filler, sender, nonce, gas_fee_cap, gas_tip_cap,
                                chain_id, gas_limit, rng, generator)
    tx_access_list = []
    if access_list and rng.random() < 0.5:
        tx_access_list = create_access_list(conf, conf.to)
    tip, fee_cap = get_caps(conf.client, conf.gas_fee_cap)
    blobs = random_blobs(filler, rng.randint(1, max(1, max_blobs)))

    return BlobTransaction(
        chain_id=conf.chain_id,
        nonce=conf.nonce,
        max_priority_fee_per_gas=tip,
        max_fee_per_gas=fee_cap,
        gas=conf.gas_limit,
        to=conf.to,
        value=conf.value,
        data=conf.code,
        access_list=tx_access_list,
        max_fee_per_blob_gas=blob_fee_cap(client),
        blobs=blobs,
    )

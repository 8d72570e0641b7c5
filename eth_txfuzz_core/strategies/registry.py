"""
The fee-market transaction strategies and the entry points that pick one
of them at random for a freshly generated TxConf.
"""
import logging
import random
from typing import Callable, Optional, TypeVar

from eth_utils import to_checksum_address

from .. import config as core_config
from ..clients.base_client import INodeClient
from ..errors import NodeConnectionError
from ..fees import get_caps
from ..filler import Filler
from ..generator import ProgramGenerator, RandomProgramGenerator
from ..tx import AccessList, Transaction, TxConf
from .base_strategy import StrategyRegistry, TxShape

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR: ProgramGenerator = RandomProgramGenerator()

T = TypeVar('T')


def random_address(rng: random.Random) -> str:
    return to_checksum_address(rng.getrandbits(160).to_bytes(20, 'big'))


def random_code(filler: Filler, generator: Optional[ProgramGenerator] = None) -> bytes:
    """Generates a program from the filler, truncated to core_config.MAX_CODE_BYTES."""
    code = (generator or DEFAULT_GENERATOR).generate_program(filler)
    return code[:core_config.MAX_CODE_BYTES]


def _suggest_or(query: Callable[[], T], fallback: T, what: str) -> T:
    try:
        return query()
    except NodeConnectionError as e:
        logger.warning("Could not get %s from node, using %s: %s", what, fallback, e)
        return fallback


def init_default_tx_conf(client: Optional[INodeClient],
                         filler: Filler,
                         sender: str,
                         nonce: int,
                         gas_fee_cap: Optional[int] = None,
                         gas_tip_cap: Optional[int] = None,
                         chain_id: Optional[int] = None,
                         gas_limit: int = core_config.DEFAULT_TX_GAS_LIMIT,
                         rng: Optional[random.Random] = None,
                         generator: Optional[ProgramGenerator] = None
                        ) -> TxConf:
    """
    Builds the working set for one transaction. Unset fee caps and chain id
    are queried from the node when one is available.
    """
    rng = rng or random.Random()
    if client is not None:
        if gas_fee_cap is None:
            gas_fee_cap = _suggest_or(client.suggest_fee_cap, core_config.FALLBACK_FEE_CAP, "fee cap")
        if gas_tip_cap is None:
            gas_tip_cap = _suggest_or(client.suggest_tip_cap, core_config.FALLBACK_TIP_CAP, "tip cap")
        if chain_id is None:
            chain_id = _suggest_or(client.chain_id, core_config.DEFAULT_CHAIN_ID, "chain id")

    return TxConf(
        client=client,
        nonce=nonce,
        sender=sender,
        to=random_address(rng),
        value=0,
        gas_limit=gas_limit,
        gas_fee_cap=core_config.FALLBACK_FEE_CAP if gas_fee_cap is None else gas_fee_cap,
        gas_tip_cap=core_config.FALLBACK_TIP_CAP if gas_tip_cap is None else gas_tip_cap,
        chain_id=core_config.DEFAULT_CHAIN_ID if chain_id is None else chain_id,
        code=random_code(filler, generator),
    )


def new_1559_tx(conf: TxConf, to: Optional[str], tip: int, fee_cap: int,
                access_list: AccessList) -> Transaction:
    return Transaction(
        chain_id=conf.chain_id,
        nonce=conf.nonce,
        max_priority_fee_per_gas=tip,
        max_fee_per_gas=fee_cap,
        gas=conf.gas_limit,
        to=to,
        value=conf.value,
        data=conf.code,
        access_list=access_list,
    )


def provisional_tx(conf: TxConf, to: Optional[str]) -> Transaction:
    """The access-list-free transaction that is simulated to collect an access list."""
    return Transaction(
        chain_id=None,
        nonce=conf.nonce,
        max_priority_fee_per_gas=min(conf.gas_tip_cap, conf.gas_fee_cap),
        max_fee_per_gas=conf.gas_fee_cap,
        gas=conf.gas_limit,
        to=to,
        value=conf.value,
        data=conf.code,
        access_list=[],
    )


def create_access_list(conf: TxConf, to: Optional[str]) -> AccessList:
    if conf.client is None:
        raise NodeConnectionError("Creating an access list requires a node connection")
    return conf.client.create_access_list(provisional_tx(conf, to), conf.sender)


def contract_creation_1559(conf: TxConf) -> Transaction:
    tip, fee_cap = get_caps(conf.client, conf.gas_fee_cap)
    return new_1559_tx(conf, None, tip, fee_cap, [])


def transfer_1559(conf: TxConf) -> Transaction:
    tip, fee_cap = get_caps(conf.client, conf.gas_fee_cap)
    return new_1559_tx(conf, conf.to, tip, fee_cap, [])


def full_al_contract_creation_1559(conf: TxConf) -> Transaction:
    access_list = create_access_list(conf, None)
    tip, fee_cap = get_caps(conf.client, conf.gas_fee_cap)
    return new_1559_tx(conf, None, tip, fee_cap, access_list)


def full_al_transfer_1559(conf: TxConf) -> Transaction:
    access_list = create_access_list(conf, conf.to)
    tip, fee_cap = get_caps(conf.client, conf.gas_fee_cap)
    return new_1559_tx(conf, conf.to, tip, fee_cap, access_list)


DEFAULT_REGISTRY = StrategyRegistry({
    TxShape.CONTRACT_CREATION: contract_creation_1559,
    TxShape.TRANSFER: transfer_1559,
    TxShape.FULL_AL_CONTRACT_CREATION: full_al_contract_creation_1559,
    TxShape.FULL_AL_TRANSFER: full_al_transfer_1559,
})


def random_valid_tx(client: Optional[INodeClient],
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
                    registry: StrategyRegistry = DEFAULT_REGISTRY
                   ) -> Transaction:
    """
    Creates a random well-formed transaction. Well-formed does not mean it
    will succeed; node failures while deriving the access list propagate.
    """
    rng = rng or random.Random()
    conf = init_default_tx_conf(client, filler, sender, nonce, gas_fee_cap, gas_tip_cap,
                                chain_id, gas_limit, rng, generator)
    shape = registry.select(access_list, rng)
    logger.debug("Building %s for %s", shape.value, conf)
    return registry.build(shape, conf)


def random_tx(filler: Filler, rng: Optional[random.Random] = None,
              generator: Optional[ProgramGenerator] = None) -> Transaction:
    """Creates a random offline transaction with random nonce, fee caps and chain id."""
    rng = rng or random.Random()
    return random_valid_tx(
        client=None,
        filler=filler,
        sender=to_checksum_address(bytes(20)),
        nonce=rng.getrandbits(63),
        gas_fee_cap=rng.getrandbits(63),
        gas_tip_cap=rng.getrandbits(63),
        chain_id=rng.getrandbits(63),
        access_list=False,
        rng=rng,
        generator=generator,
    )

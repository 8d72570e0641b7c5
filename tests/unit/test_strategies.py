import random

import pytest
from unittest.mock import Mock
from hypothesis import given, strategies as st

from eth_txfuzz_core import config as core_config
from eth_txfuzz_core.clients.base_client import INodeClient
from eth_txfuzz_core.errors import NodeConnectionError
from eth_txfuzz_core.filler import Filler
from eth_txfuzz_core.generator import ProgramGenerator
from eth_txfuzz_core.strategies.base_strategy import StrategyRegistry, TxShape
from eth_txfuzz_core.strategies.blob_strategy import random_blob_tx
from eth_txfuzz_core.strategies.registry import (
    DEFAULT_REGISTRY,
    contract_creation_1559,
    full_al_contract_creation_1559,
    full_al_transfer_1559,
    init_default_tx_conf,
    random_tx,
    random_valid_tx,
    transfer_1559,
)
from eth_txfuzz_core.tx import BlobTransaction

from conftest import FakeNodeClient

SENDER = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
SIMULATED_ACCESS_LIST = [{
    'address': "0x1111111111111111111111111111111111111111",
    'storageKeys': ["0x" + "00" * 31 + "01"],
}]


@pytest.fixture
def filler():
    return Filler(bytes(random.Random(7).getrandbits(8) for _ in range(4096)))


def _conf(client, filler, nonce=9):
    return init_default_tx_conf(client, filler, SENDER, nonce, rng=random.Random(1))


class TestStrategyRegistry:
    def test_access_list_shapes_extend_plain_shapes(self):
        no_al = set(DEFAULT_REGISTRY.no_al_shapes)
        al = set(DEFAULT_REGISTRY.al_shapes)
        assert no_al == {TxShape.CONTRACT_CREATION, TxShape.TRANSFER}
        assert no_al < al
        assert al == set(TxShape)

    def test_registry_must_cover_every_shape(self):
        with pytest.raises(ValueError, match="FULL_AL_TRANSFER"):
            StrategyRegistry({
                TxShape.CONTRACT_CREATION: contract_creation_1559,
                TxShape.TRANSFER: transfer_1559,
                TxShape.FULL_AL_CONTRACT_CREATION: full_al_contract_creation_1559,
            })

    def test_selection_is_uniform_over_applicable_shapes(self):
        rng = random.Random(0)
        counts = {shape: 0 for shape in TxShape}
        for _ in range(4000):
            counts[DEFAULT_REGISTRY.select(True, rng)] += 1
        assert all(800 < count < 1200 for count in counts.values())

        for _ in range(100):
            assert not DEFAULT_REGISTRY.select(False, rng).uses_access_list


class TestInitDefaultTxConf:
    def test_code_is_truncated(self, filler):
        generator = Mock(spec=ProgramGenerator)
        generator.generate_program.return_value = b"\x60" * 500
        conf = init_default_tx_conf(None, filler, SENDER, 0, 10, 1, 5, generator=generator)
        assert conf.code == b"\x60" * core_config.MAX_CODE_BYTES

    def test_queries_node_for_missing_values(self, filler):
        node = FakeNodeClient(chain_id=7, fee_cap=40, tip_cap=3)
        conf = _conf(node, filler)
        assert (conf.gas_fee_cap, conf.gas_tip_cap, conf.chain_id) == (40, 3, 7)
        assert conf.value == 0
        assert conf.gas_limit == core_config.DEFAULT_TX_GAS_LIMIT
        assert conf.to is not None and len(conf.to) == 42

    def test_failed_queries_fall_back(self, filler):
        node = Mock(spec=INodeClient)
        node.suggest_fee_cap.side_effect = NodeConnectionError("down")
        node.suggest_tip_cap.side_effect = NodeConnectionError("down")
        node.chain_id.side_effect = NodeConnectionError("down")
        conf = _conf(node, filler)
        assert conf.gas_fee_cap == core_config.FALLBACK_FEE_CAP
        assert conf.gas_tip_cap == core_config.FALLBACK_TIP_CAP
        assert conf.chain_id == core_config.DEFAULT_CHAIN_ID


class TestStrategies:
    def test_contract_creation_has_no_recipient(self, filler):
        conf = _conf(None, filler)
        tx = contract_creation_1559(conf)
        assert tx.is_contract_creation
        assert tx.data == conf.code
        assert tx.access_list == []
        assert 'to' not in tx.to_tx_params(1)

    def test_transfer_targets_conf_recipient(self, filler):
        conf = _conf(None, filler)
        tx = transfer_1559(conf)
        assert tx.to == conf.to
        assert tx.to_tx_params(1)['to'] == conf.to

    @pytest.mark.parametrize("strategy, creates", [
        (full_al_transfer_1559, False),
        (full_al_contract_creation_1559, True),
    ])
    def test_access_list_rebuild_keeps_identity(self, filler, strategy, creates):
        node = FakeNodeClient(access_list=SIMULATED_ACCESS_LIST)
        conf = _conf(node, filler)
        tx = strategy(conf)

        assert len(node.access_list_calls) == 1
        provisional, sender = node.access_list_calls[0]
        assert sender == SENDER
        assert provisional.chain_id is None
        assert provisional.access_list == []

        assert tx.access_list == SIMULATED_ACCESS_LIST
        assert tx.nonce == provisional.nonce == conf.nonce
        assert tx.data == provisional.data == conf.code
        assert tx.to == provisional.to
        assert tx.is_contract_creation is creates
        assert tx.max_priority_fee_per_gas <= tx.max_fee_per_gas

    def test_access_list_failure_propagates(self, filler):
        node = FakeNodeClient()
        node.create_access_list = Mock(side_effect=NodeConnectionError("trace failed"))
        with pytest.raises(NodeConnectionError):
            full_al_transfer_1559(_conf(node, filler))

    def test_access_list_requires_a_node(self, filler):
        with pytest.raises(NodeConnectionError):
            full_al_contract_creation_1559(_conf(None, filler))


class TestRandomValidTx:
    def test_without_access_list_builds_plain_shapes(self, filler):
        node = FakeNodeClient()
        rng = random.Random(3)
        for nonce in range(20):
            tx = random_valid_tx(node, filler, SENDER, nonce, access_list=False, rng=rng)
            assert tx.access_list == []
            assert tx.nonce == nonce
            assert len(tx.data) <= core_config.MAX_CODE_BYTES
        assert node.access_list_calls == []

    def test_failed_fee_suggestions_keep_tip_below_fee_cap(self, filler):
        node = FakeNodeClient()
        node.fail_suggestions = True
        rng = random.Random(4)
        for nonce in range(20):
            tx = random_valid_tx(node, filler, SENDER, nonce, rng=rng)
            assert tx.max_priority_fee_per_gas <= tx.max_fee_per_gas

    @given(seed=st.integers(min_value=0, max_value=2**32))
    def test_random_offline_tx_is_well_formed(self, seed):
        rng = random.Random(seed)
        tx = random_tx(Filler(rng.randbytes(256)), rng)
        assert tx.max_priority_fee_per_gas <= tx.max_fee_per_gas
        assert tx.chain_id is not None
        assert tx.access_list == []


class TestRandomBlobTx:
    def test_blob_tx_is_well_formed(self, filler):
        node = FakeNodeClient()
        node.blob_base_fee = 5
        tx = random_blob_tx(node, filler, SENDER, 3, rng=random.Random(2))

        assert isinstance(tx, BlobTransaction)
        assert tx.tx_type == 3
        assert tx.to is not None
        assert tx.max_fee_per_blob_gas == 10
        assert 1 <= len(tx.blobs) <= core_config.MAX_BLOBS_PER_TX
        for blob in tx.blobs:
            assert len(blob) == core_config.BLOB_SIZE
            assert all(blob[i] == 0 for i in range(0, len(blob), 32))
        assert tx.to_tx_params(1)['maxFeePerBlobGas'] == 10

    def test_blob_fee_falls_back_offline(self, filler):
        tx = random_blob_tx(None, filler, SENDER, 0, rng=random.Random(5))
        assert tx.max_fee_per_blob_gas == core_config.FALLBACK_BLOB_FEE_CAP
        assert tx.max_priority_fee_per_gas <= tx.max_fee_per_gas

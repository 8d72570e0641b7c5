import random

import pytest
from hypothesis import given, strategies as st

from eth_txfuzz_core import config as core_config
from eth_txfuzz_core.corpus import Corpus, load_corpus
from eth_txfuzz_core.errors import ConfigError
from eth_txfuzz_core.filler import Filler
from eth_txfuzz_core.generator import RandomProgramGenerator
from eth_txfuzz_core.mutation import Mutator, build_filler, derive_seed, prepare_worker_randomness


def _drain(filler: Filler) -> bytes:
    return filler.read(len(filler))


class TestDeriveSeed:
    @given(run_seed=st.integers(min_value=0, max_value=2**64 - 1), index=st.integers(min_value=0, max_value=1000))
    def test_is_deterministic_and_64_bit(self, run_seed, index):
        seed = derive_seed(run_seed, index)
        assert seed == derive_seed(run_seed, index)
        assert 0 <= seed < 2**64

    def test_accounts_get_distinct_seeds(self):
        seeds = {derive_seed(42, index) for index in range(100)}
        assert len(seeds) == 100


class TestWorkerRandomness:
    def test_same_seed_yields_same_bytes(self):
        first = prepare_worker_randomness(1234, 0)
        second = prepare_worker_randomness(1234, 0)
        assert _drain(first.filler) == _drain(second.filler)
        assert first.rng.random() == second.rng.random()

    def test_accounts_receive_distinct_streams(self):
        streams = [_drain(prepare_worker_randomness(1234, index).filler) for index in range(5)]
        assert len(set(streams)) == 5

    def test_random_buffer_is_sized(self):
        mutator = Mutator.from_seed(9)
        filler = build_filler(mutator)
        # Mutation may insert or remove a handful of bytes.
        assert abs(len(filler) - core_config.RANDOM_BUFFER_SIZE) < core_config.RANDOM_BUFFER_SIZE // 64 + 1

    def test_same_seed_same_corpus_entry_is_deterministic(self):
        corpus = Corpus([("a", b"\x01" * 300), ("b", b"\x02" * 300)])
        first = prepare_worker_randomness(77, 3, corpus)
        second = prepare_worker_randomness(77, 3, corpus)
        assert _drain(first.filler) == _drain(second.filler)

    def test_corpus_entries_are_never_mutated(self):
        entries = [("seed0", bytes(range(256))), ("seed1", b"\xff" * 128)]
        corpus = Corpus(entries)
        for index in range(20):
            prepare_worker_randomness(5, index, corpus)
        assert list(corpus) == entries


class TestMutator:
    def test_mutation_is_reproducible(self):
        data_a = bytearray(range(200))
        data_b = bytearray(range(200))
        Mutator.from_seed(11).mutate_bytes(data_a)
        Mutator.from_seed(11).mutate_bytes(data_b)
        assert data_a == data_b

    def test_handles_empty_input(self):
        data = bytearray()
        Mutator(random.Random(0)).mutate_bytes(data)
        assert len(data) <= 1


class TestFiller:
    def test_read_wraps_around(self):
        filler = Filler(b"abc")
        assert filler.read(5) == b"abcab"
        assert filler.used_up
        assert filler.position == 2

    def test_empty_seed_is_usable(self):
        filler = Filler(b"")
        assert filler.byte() == 0


class TestGenerator:
    def test_program_is_deterministic_in_filler(self):
        data = bytes(random.Random(3).getrandbits(8) for _ in range(1024))
        generator = RandomProgramGenerator()
        assert generator.generate_program(Filler(data)) == generator.generate_program(Filler(data))

    def test_cursor_advances_between_programs(self):
        filler = Filler(bytes(random.Random(4).getrandbits(8) for _ in range(1024)))
        generator = RandomProgramGenerator()
        generator.generate_program(filler)
        assert filler.position > 0


class TestCorpusLoading:
    def test_loads_files_in_name_order(self, tmp_path):
        (tmp_path / "b.bin").write_bytes(b"second")
        (tmp_path / "a.bin").write_bytes(b"first")
        (tmp_path / "subdir").mkdir()

        corpus = load_corpus(str(tmp_path))
        assert len(corpus) == 2
        assert corpus.name(0) == "a.bin"
        assert bytes(corpus.draw(1)) == b"second"

    def test_draw_returns_a_private_copy(self):
        corpus = Corpus([("x", b"\x00\x00")])
        drawn = corpus.draw(0)
        drawn[0] = 0xff
        assert corpus.draw(0) == bytearray(b"\x00\x00")

    def test_missing_directory_is_a_config_error(self, tmp_path):
        with pytest.raises(ConfigError):
            load_corpus(str(tmp_path / "missing"))

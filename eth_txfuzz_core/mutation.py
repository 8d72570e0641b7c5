"""
Seeded byte mutation feeding the program generator.

Every account gets its own Mutator seeded with derive_seed(run_seed, index),
so workers never share a randomness source and a run is reproducible from
its seed alone.
"""
import random
from typing import Callable, List, Optional

from eth_utils import keccak

from . import config as core_config
from .corpus import Corpus
from .filler import Filler

_UINT64_MASK = (1 << 64) - 1
_INTERESTING_BYTES = (0x00, 0x01, 0x10, 0x20, 0x40, 0x7f, 0x80, 0xfe, 0xff)


def derive_seed(run_seed: int, account_index: int) -> int:
    """Derives an independent 64-bit seed for one account from the run seed."""
    material = (run_seed & _UINT64_MASK).to_bytes(8, 'big') + account_index.to_bytes(8, 'big')
    return int.from_bytes(keccak(material)[:8], 'big')


class Mutator:
    """Draws and mutates bytes from a private random.Random."""

    def __init__(self, rng: random.Random):
        self.rng = rng
        self._mutations: List[Callable[[bytearray], None]] = [
            self._flip_bit,
            self._set_random_byte,
            self._set_interesting_byte,
            self._insert_byte,
            self._remove_byte,
            self._swap_bytes,
            self._duplicate_chunk,
            self._zero_chunk,
        ]

    @classmethod
    def from_seed(cls, seed: int) -> 'Mutator':
        return cls(random.Random(seed))

    def fill_bytes(self, size: int) -> bytearray:
        if size <= 0:
            return bytearray()
        return bytearray(self.rng.getrandbits(8 * size).to_bytes(size, 'little'))

    def rand_index(self, upper: int) -> int:
        return self.rng.randrange(upper)

    def mutate_bytes(self, data: bytearray) -> None:
        """Applies a random number of mutations to `data` in place."""
        rounds = 1 + self.rng.randrange(max(1, len(data) // 64))
        for _ in range(rounds):
            self.rng.choice(self._mutations)(data)

    def _flip_bit(self, data: bytearray) -> None:
        if data:
            pos = self.rng.randrange(len(data))
            data[pos] ^= 1 << self.rng.randrange(8)

    def _set_random_byte(self, data: bytearray) -> None:
        if data:
            data[self.rng.randrange(len(data))] = self.rng.randrange(256)

    def _set_interesting_byte(self, data: bytearray) -> None:
        if data:
            data[self.rng.randrange(len(data))] = self.rng.choice(_INTERESTING_BYTES)

    def _insert_byte(self, data: bytearray) -> None:
        data.insert(self.rng.randrange(len(data) + 1), self.rng.randrange(256))

    def _remove_byte(self, data: bytearray) -> None:
        if len(data) > 1:
            del data[self.rng.randrange(len(data))]

    def _swap_bytes(self, data: bytearray) -> None:
        if len(data) > 1:
            i, j = self.rng.randrange(len(data)), self.rng.randrange(len(data))
            data[i], data[j] = data[j], data[i]

    def _duplicate_chunk(self, data: bytearray) -> None:
        if len(data) < 2:
            return
        size = self.rng.randrange(1, min(len(data), 64) + 1)
        src = self.rng.randrange(len(data) - size + 1)
        dst = self.rng.randrange(len(data) - size + 1)
        data[dst:dst + size] = data[src:src + size]

    def _zero_chunk(self, data: bytearray) -> None:
        if not data:
            return
        size = self.rng.randrange(1, min(len(data), 32) + 1)
        start = self.rng.randrange(len(data) - size + 1)
        data[start:start + size] = bytes(size)


def build_filler(mutator: Mutator, corpus: Optional[Corpus] = None,
                 buffer_size: int = core_config.RANDOM_BUFFER_SIZE) -> Filler:
    """
    Produces the filler for one account and spam run. With a corpus, a random
    entry is copied and mutated; otherwise a seeded random buffer is mutated
    a second time to lower its entropy.
    """
    random_buffer = mutator.fill_bytes(buffer_size)
    if corpus:
        element = corpus.draw(mutator.rand_index(len(corpus)))
        mutator.mutate_bytes(element)
        return Filler(element)
    mutator.mutate_bytes(random_buffer)
    return Filler(random_buffer)


class WorkerRandomness:
    """The private randomness handed to one spam worker."""

    def __init__(self, account_index: int, rng: random.Random, filler: Filler):
        self.account_index = account_index
        self.rng = rng
        self.filler = filler

    def __repr__(self) -> str:
        return f"WorkerRandomness(idx={self.account_index}, filler={self.filler})"


def prepare_worker_randomness(run_seed: int, account_index: int,
                              corpus: Optional[Corpus] = None) -> WorkerRandomness:
    mutator = Mutator.from_seed(derive_seed(run_seed, account_index))
    filler = build_filler(mutator, corpus)
    return WorkerRandomness(account_index, mutator.rng, filler)

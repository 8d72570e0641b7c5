"""
Program generation from a Filler. The spam engine treats the generator as
a black box: given a filler it returns a byte sequence, which the
transaction builder embeds (truncated) as calldata or init code.
"""
import abc
from typing import List

from .filler import Filler

PUSH0 = 0x5f
PUSH1 = 0x60

# Opcodes that are safe to emit without operand bookkeeping.
_PLAIN_OPCODES: List[int] = [
    0x00, 0x01, 0x02, 0x03, 0x04, 0x05, 0x06, 0x07, 0x08, 0x09, 0x0a, 0x0b,  # STOP..SIGNEXTEND
    0x10, 0x11, 0x12, 0x13, 0x14, 0x15, 0x16, 0x17, 0x18, 0x19, 0x1a, 0x1b, 0x1c, 0x1d,  # comparisons, bitwise
    0x20,                                                                      # KECCAK256
    0x30, 0x31, 0x32, 0x33, 0x34, 0x35, 0x36, 0x37, 0x38, 0x39, 0x3a, 0x3b, 0x3c, 0x3d, 0x3e, 0x3f,
    0x40, 0x41, 0x42, 0x43, 0x44, 0x45, 0x46, 0x47, 0x48, 0x49, 0x4a,          # block context
    0x50, 0x51, 0x52, 0x53, 0x54, 0x55, 0x56, 0x57, 0x58, 0x59, 0x5a, 0x5b, 0x5c, 0x5d, 0x5e,
    0x80, 0x81, 0x82, 0x83, 0x8f, 0x90, 0x91, 0x9f,                            # DUP / SWAP
    0xa0, 0xa1, 0xa2, 0xa3, 0xa4,                                              # LOG0..LOG4
    0xf0, 0xf1, 0xf2, 0xf3, 0xf4, 0xf5, 0xfa, 0xfd, 0xfe, 0xff,                # system
]

# Call-like snippets: 5x PUSH0, COINBASE, GAS, <op>
_CALL_OPCODES: List[int] = [0xf1, 0xf2, 0xf4, 0xfa]


class ProgramGenerator(abc.ABC):
    """Capability producing a bytecode program from a filler's randomness."""

    @abc.abstractmethod
    def generate_program(self, filler: Filler) -> bytes:
        """Returns a program; output length is unbounded."""


class RandomProgramGenerator(ProgramGenerator):
    """
    Emits a random mix of pushes, plain opcodes and call snippets. The
    output is not guaranteed to execute successfully, only to be a byte
    sequence derived deterministically from the filler.
    """
    def __init__(self, max_steps: int = 64):
        self.max_steps = max_steps

    def generate_program(self, filler: Filler) -> bytes:
        code = bytearray()
        steps = filler.small_int() % self.max_steps + 1
        for _ in range(steps):
            choice = filler.byte() % 4
            if choice == 0:
                size = filler.byte() % 32 + 1
                code.append(PUSH1 + size - 1)
                code += filler.read(size)
            elif choice == 1:
                code.append(PUSH0)
            elif choice == 2:
                code.append(_PLAIN_OPCODES[filler.byte() % len(_PLAIN_OPCODES)])
            else:
                code += bytes([PUSH0] * 5 + [0x41, 0x5a, _CALL_OPCODES[filler.byte() % len(_CALL_OPCODES)]])
        return bytes(code)

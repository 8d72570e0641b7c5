"""
A cursor over a seed byte buffer. The program generator pulls its
randomness from a Filler; the cursor persists between calls so that one
buffer feeds every transaction of an account's spam loop.
"""


class Filler:
    def __init__(self, data: bytes):
        self._data: bytes = bytes(data) if data else b"\x00"
        self._pointer: int = 0
        self.used_up: bool = False # Set once the cursor has wrapped around

    def _advance(self, count: int) -> None:
        self._pointer += count
        if self._pointer >= len(self._data):
            self._pointer %= len(self._data)
            self.used_up = True

    def byte(self) -> int:
        value = self._data[self._pointer]
        self._advance(1)
        return value

    def small_int(self) -> int:
        return self.byte()

    def read(self, count: int) -> bytes:
        """Returns the next `count` bytes, wrapping around the buffer if needed."""
        out = bytearray()
        while len(out) < count:
            take = min(count - len(out), len(self._data) - self._pointer)
            out += self._data[self._pointer:self._pointer + take]
            self._advance(take)
        return bytes(out)

    @property
    def position(self) -> int:
        return self._pointer

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Filler(size={len(self._data)}, position={self._pointer}, used_up={self.used_up})"

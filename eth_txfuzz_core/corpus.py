"""
Loading of the optional seed corpus: an ordered, immutable collection of
named byte blobs read once at startup.
"""
import logging
import os
from typing import Iterator, List, Optional, Tuple

from .errors import ConfigError

logger = logging.getLogger(__name__)


class Corpus:
    """Workers draw entries by index only; every draw is a private copy."""

    def __init__(self, entries: Optional[List[Tuple[str, bytes]]] = None):
        self._entries: Tuple[Tuple[str, bytes], ...] = tuple(
            (name, bytes(blob)) for name, blob in (entries or [])
        )

    def draw(self, index: int) -> bytearray:
        return bytearray(self._entries[index][1])

    def name(self, index: int) -> str:
        return self._entries[index][0]

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __iter__(self) -> Iterator[Tuple[str, bytes]]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"Corpus(entries={len(self._entries)})"


def load_corpus(path: str) -> Corpus:
    """
    Reads every regular file in the directory `path`, in name order, as one
    corpus element.
    """
    try:
        names = sorted(os.listdir(path))
    except OSError as e:
        raise ConfigError(f"Cannot read corpus directory {path}: {e}") from e

    entries: List[Tuple[str, bytes]] = []
    for name in names:
        file_path = os.path.join(path, name)
        if not os.path.isfile(file_path):
            continue
        with open(file_path, "rb") as f:
            entries.append((name, f.read()))
    logger.info("Loaded %d corpus elements from %s", len(entries), path)
    return Corpus(entries)

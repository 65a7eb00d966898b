# docbrain/memory/chunker.py

import logging
import math
from typing import Iterator, List, Optional

from docbrain.config import CHUNK_SIZE

logger = logging.getLogger(__name__)


class ChunkSequence:
    """
    Lazy view of a text as consecutive fixed-size chunks.

    Guarantees:
    • chunks are produced on demand, never all at once
    • every iteration restarts from the first chunk
    • no gaps, no overlap: "".join(chunks) == text
    • every chunk except possibly the last has exactly `size` characters
    """

    def __init__(self, text: Optional[str], size: int = CHUNK_SIZE):

        if size <= 0:
            raise ValueError(f"Invalid chunk size: {size}")

        self._text = text or ""
        self._size = size

    @property
    def size(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[str]:

        for start in range(0, len(self._text), self._size):
            yield self._text[start:start + self._size]

    def __len__(self) -> int:
        return math.ceil(len(self._text) / self._size)

    def head(self, count: int) -> List[str]:
        """First `count` chunks, without touching the rest of the text."""

        return [
            self._text[start:start + self._size]
            for start in range(0, min(len(self._text), count * self._size), self._size)
        ]


def iter_chunks(text: Optional[str], size: int = CHUNK_SIZE) -> ChunkSequence:

    chunks = ChunkSequence(text, size)

    logger.debug(
        "Chunk sequence created",
        extra={
            "text_length": len(text or ""),
            "chunk_size": size,
            "chunks": len(chunks),
        },
    )

    return chunks

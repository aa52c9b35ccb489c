"""Re-chunking of arbitrarily sized fragments into fixed-size chunks."""
from __future__ import annotations

import logging
from typing import Iterable, Iterator

from sealstream.config import DEFAULT_CHUNK_SIZE, resolve_stream_params
from sealstream.crypto.memory import secure_zeroize
from sealstream.errors import StreamStateError

logger = logging.getLogger(__name__)

BytesLike = bytes | bytearray | memoryview


class Chunker:
    """Accumulates fragments and hands out chunks of exactly ``chunk_size`` bytes.

    ``offset`` bytes are dropped from the logical start of the stream; when the
    first fragment is shorter than ``offset`` the following fragments keep being
    skipped until the offset is used up. Only the chunk returned by
    :meth:`flush` may be shorter than ``chunk_size`` (it may also be empty).
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, offset: int = 0) -> None:
        params = resolve_stream_params(chunk_size=chunk_size, offset=offset)
        self.chunk_size = params.chunk_size
        self._buf: bytearray | None = bytearray(self.chunk_size)
        self._fill = 0
        self._skip = params.offset
        self._flushed = False

    @property
    def buffered(self) -> int:
        return self._fill

    def push(self, fragment: BytesLike) -> list[bytes]:
        """Add a fragment and return every chunk it completed."""
        if self._flushed or self._buf is None:
            raise StreamStateError("Chunker already flushed")
        view = memoryview(fragment).cast("B")
        pos = 0
        if self._skip:
            skipped = min(self._skip, len(view))
            self._skip -= skipped
            pos = skipped

        chunks: list[bytes] = []
        while pos < len(view):
            room = self.chunk_size - self._fill
            take = min(room, len(view) - pos)
            self._buf[self._fill : self._fill + take] = view[pos : pos + take]
            pos += take
            self._fill += take
            if self._fill == self.chunk_size:
                chunks.append(bytes(self._buf))
                self._fill = 0
        return chunks

    def flush(self) -> bytes:
        """Return the remaining partial chunk and release the buffer."""
        if self._flushed or self._buf is None:
            raise StreamStateError("Chunker already flushed")
        self._flushed = True
        tail = bytes(self._buf[: self._fill])
        if self._skip:
            logger.debug("Stream ended with %d offset bytes left to skip", self._skip)
        self.close()
        return tail

    def close(self) -> None:
        secure_zeroize(self._buf)
        self._buf = None
        self._fill = 0


def rebuffer(
    fragments: Iterable[BytesLike],
    offset: int = 0,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[bytes]:
    """Lazily turn ``fragments`` into fixed-size chunks.

    The returned iterator is finite and cannot be restarted. It always yields
    a final chunk, which is empty when the input length (after ``offset``) is a
    multiple of ``chunk_size``.
    """
    chunker = Chunker(chunk_size=chunk_size, offset=offset)

    def _run() -> Iterator[bytes]:
        try:
            for fragment in fragments:
                yield from chunker.push(fragment)
            yield chunker.flush()
        finally:
            chunker.close()

    return _run()


__all__ = ["Chunker", "rebuffer"]

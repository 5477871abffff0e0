from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable, Iterator

from checkdisk.log_setup import TRACE

logger = logging.getLogger(__name__)

_NEWLINE = 0x0A
_BACKSPACE = 0x08

# badblocks redraws a ~70 byte status line; one read usually covers a redraw.
READ_CHUNK_SIZE = 80


class LineReconstructor:
    """Recover logical lines from output that redraws itself with backspaces.

    badblocks -s prints its status string, then a burst of ``\\b`` to erase
    it before the next redraw, and only writes ``\\n`` between phases. A line
    is emitted on every newline and on the first backspace of each burst, so
    each redraw yields exactly one snapshot. Further backspaces in the same
    burst only erase. The partial line left at end of input is dropped.

    Bytes other than ``\\n`` and ``\\b`` are opaque; no decoding happens here.
    """

    def __init__(self) -> None:
        self._line = bytearray()
        self._fresh_run = True

    def feed(self, chunk: bytes) -> list[bytes]:
        """Consume one chunk and return the lines it completed.

        State carries over between calls, so a backspace burst split across
        two reads still produces a single snapshot.

        Args:
            chunk: Raw bytes as read from the stream.

        Returns:
            Completed logical lines in stream order, without terminators.
        """
        lines: list[bytes] = []
        for byte in chunk:
            if byte == _NEWLINE:
                lines.append(bytes(self._line))
                self._line.clear()
                self._fresh_run = True
            elif byte == _BACKSPACE:
                if self._fresh_run:
                    lines.append(bytes(self._line))
                    self._fresh_run = False
                if self._line:
                    del self._line[-1]
            else:
                self._line.append(byte)
                self._fresh_run = True
        for line in lines:
            logger.log(TRACE, "line %r", line)
        return lines

    @property
    def pending(self) -> bytes:
        """Bytes of the current unterminated line."""
        return bytes(self._line)


def iter_lines(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """Lazily yield logical lines from an iterable of byte chunks."""
    reconstructor = LineReconstructor()
    for chunk in chunks:
        yield from reconstructor.feed(chunk)
    if reconstructor.pending:
        logger.debug("Dropping unterminated trailing output: %r", reconstructor.pending)


async def aiter_lines(
    stream: asyncio.StreamReader, chunk_size: int = READ_CHUNK_SIZE
) -> AsyncIterator[bytes]:
    """Lazily yield logical lines read from an asyncio stream.

    Stops at EOF. A read error ends the sequence as well, after logging it,
    so whatever was classified so far can still be persisted.

    Args:
        stream: Typically the stderr pipe of the badblocks process.
        chunk_size: Maximum number of bytes per read.
    """
    reconstructor = LineReconstructor()
    while True:
        try:
            chunk = await stream.read(chunk_size)
        except OSError as exc:
            logger.warning("Error reading scanner output: %s", exc)
            break
        if not chunk:
            break
        for line in reconstructor.feed(chunk):
            yield line
    if reconstructor.pending:
        logger.debug("Dropping unterminated trailing output: %r", reconstructor.pending)

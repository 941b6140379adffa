"""NDJSON frame decoder for the chat response stream.

Turns a chunked byte stream into Frame values, one per newline-terminated
line. Chunk boundaries are arbitrary: a line (or a multi-byte UTF-8
character) may be split across any number of chunks. Lines that are not
valid frames are skipped so one bad line never aborts the stream.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from hydra.schemas.streaming import Frame

logger = logging.getLogger(__name__)


class FrameDecoder:
    """Incremental line-buffered decoder.

    Feed raw chunks with ``feed()``; each call returns the frames completed
    by that chunk. ``close()`` discards whatever partial line remains.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.skipped = 0

    @property
    def pending(self) -> str:
        """Buffered text not yet terminated by a newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[Frame]:
        """Append a chunk and return every frame it completes."""
        self._buffer += self._decoder.decode(chunk)

        frames: list[Frame] = []
        while True:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]

            frame = self._parse_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def close(self) -> None:
        """End of stream: drop any unterminated trailing content."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        if tail.strip():
            logger.debug("Discarding %d chars of unterminated trailing data", len(tail))
        self._buffer = ""

    def _parse_line(self, line: str) -> Frame | None:
        if not line.strip():
            return None
        try:
            return Frame.model_validate(json.loads(line))
        except (ValueError, RecursionError):
            # ValueError also covers JSONDecodeError, ValidationError and oversized
            # integer literals; RecursionError comes from deeply nested arrays.
            # Either way the line is dropped and decoding continues.
            self.skipped += 1
            logger.debug("Skipping undecodable stream line: %.80r", line)
            return None


async def decode_frames(chunks: AsyncIterable[bytes]) -> AsyncIterator[Frame]:
    """Lazily decode an async byte stream into frames.

    Terminates when the underlying stream ends. Exceptions raised by the
    byte stream itself (transport failures) propagate to the caller.
    """
    decoder = FrameDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
    decoder.close()

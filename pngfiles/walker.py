"""
Forward-only walk over the chunks of a PNG stream.

Iterating a ChunkWalker yields one ChunkHeader per chunk without touching
its data. The caller settles every header with one of:

    :skip:      move past data and CRC, nothing is read or checked
    :copy:      stream the raw chunk bytes to a sink in bounded blocks
    :read_data: load the data and verify the CRC

Only chunks that are actually read cost memory. Image data (IDAT) of any
size passes through skip/copy without being buffered.
"""
import logging
import struct
from typing import NamedTuple

from pngfiles import PNG
from pngfiles.errors import NotAPng, TruncatedChunk, UnexpectedEof

logger = logging.getLogger(__name__)


class ChunkHeader(NamedTuple):
    type: bytes
    length: int
    offset: int   #position of the length field in the stream

    @property
    def end(self) -> int:
        return self.offset + 12 + self.length

    def __str__(self):
        return f"{self.type.decode('ascii')} length: {self.length}, offset: {self.offset}"


class ChunkWalker:
    def __init__(self, stream):
        self._stream = stream
        self._pending = None   #header whose data has not been consumed yet
        self._position = len(PNG.PngSignature)
        self._started = False
        self.finished = False

        #signature check
        try:
            signature = PNG.read_exact(stream, len(PNG.PngSignature), "signature", 0)
        except TruncatedChunk:
            signature = b''
        if signature != PNG.PngSignature:
            raise NotAPng('Input file is not PNG format')

    def __iter__(self):
        if self._started:
            raise RuntimeError("ChunkWalker cannot be restarted")
        self._started = True
        return self._walk()

    def _walk(self):
        first = True
        while True:
            if self._pending is not None:
                self.skip(self._pending)

            header = PNG.read_header(self._stream, self._position)
            if header is None:
                raise UnexpectedEof(f"Stream ended at offset {self._position} before IEND")
            length, chunk_type = header

            if first and chunk_type != b'IHDR':
                raise NotAPng(f"First chunk is {chunk_type!r}, expected IHDR")
            first = False

            current = ChunkHeader(chunk_type, length, self._position)
            self._pending = current
            yield current

            if current.type == b'IEND':
                if self._pending is not None:
                    self.skip(self._pending)
                self.finished = True
                return

    def _settle(self, header: ChunkHeader):
        if header is not self._pending:
            raise ValueError(f"{header} is not the current chunk")
        self._pending = None
        self._position = header.end

    def skip(self, header: ChunkHeader):
        """
        Advance past data and CRC of ``header`` without reading or checking them.
        """
        self._settle(header)
        remaining = header.length + 4
        logger.debug("skip %s", header)

        if self._seekable():
            target = self._stream.tell() + remaining
            end = self._stream.seek(0, 2)
            if end < target:
                raise TruncatedChunk(f"Truncated {header}: stream ends at offset {end}")
            self._stream.seek(target)
            return

        while remaining:
            block = self._stream.read(min(remaining, PNG.COPY_BLOCK_SIZE))
            if not block:
                raise TruncatedChunk(f"Truncated {header}")
            remaining -= len(block)

    def copy(self, header: ChunkHeader, sink) -> int:
        """
        Write the chunk verbatim (length, type, data, original CRC) to ``sink``.
        """
        self._settle(header)
        logger.debug("copy %s", header)
        sink.write(struct.pack('>I', header.length))
        sink.write(header.type)

        remaining = header.length + 4
        while remaining:
            block = self._stream.read(min(remaining, PNG.COPY_BLOCK_SIZE))
            if not block:
                raise TruncatedChunk(f"Truncated {header}")
            sink.write(block)
            remaining -= len(block)
        return 12 + header.length

    def read_data(self, header: ChunkHeader) -> PNG.Chunk:
        """
        Materialize the chunk and verify its CRC.
        """
        self._settle(header)
        logger.debug("read %s", header)
        return PNG.read_body(self._stream, header.type, header.length, header.offset)

    def trailing_bytes(self) -> int:
        """
        Number of bytes after IEND, only known for seekable streams (0 otherwise).
        """
        if not self.finished:
            raise RuntimeError("IEND has not been reached yet")
        if not self._seekable():
            return 0
        here = self._stream.tell()
        end = self._stream.seek(0, 2)
        self._stream.seek(here)
        return end - here

    def _seekable(self):
        seekable = getattr(self._stream, "seekable", None)
        return bool(seekable and seekable())


import struct
import zlib
from typing import NamedTuple

from pngfiles.errors import CrcMismatch, InvalidChunk, TruncatedChunk

#1 constants of the PNG format
PngSignature: bytes = b'\x89PNG\r\n\x1a\n'   #8 byte PNG header
MAX_CHUNK_LENGTH = 2**31 - 1
COPY_BLOCK_SIZE = 64 * 1024   #largest piece of a chunk held in memory while copying


class Chunk(NamedTuple):
    type: bytes
    data: bytes
    crc: int

    @property
    def length(self) -> int:
        return len(self.data)


def chunk_crc(chunk_type: bytes, data: bytes) -> int:
    #CRC-32 over type + data, length is not covered
    return zlib.crc32(data, zlib.crc32(chunk_type))


def is_ancillary(chunk_type: bytes) -> bool:
    return bool(chunk_type[0] & 0x20)


def is_safe_to_copy(chunk_type: bytes) -> bool:
    return bool(chunk_type[3] & 0x20)


def check_type(chunk_type: bytes, offset=None):
    if len(chunk_type) != 4 or not all(
        0x41 <= b <= 0x5A or 0x61 <= b <= 0x7A for b in chunk_type
    ):
        raise InvalidChunk(f"Invalid chunk type {chunk_type!r} at offset {offset}")


def read_exact(stream, size: int, what: str = "chunk", offset=None) -> bytes:
    """
    Read exactly ``size`` bytes, raising TruncatedChunk if the stream ends first.
    """
    buf = stream.read(size)
    if len(buf) == size:
        return buf
    parts = [buf]
    got = len(buf)
    while buf and got < size:
        buf = stream.read(size - got)
        parts.append(buf)
        got += len(buf)
    if got < size:
        raise TruncatedChunk(
            f"Truncated {what} at offset {offset}: expected {size} bytes, got {got}"
        )
    return b''.join(parts)


def read_header(stream, offset=None):
    """
    Read the 8 byte [length][type] prefix of the next chunk.

    Returns None when the stream is exhausted exactly at a chunk boundary.
    """
    head = stream.read(8)
    if not head:
        return None
    if len(head) < 8:
        head += read_exact(stream, 8 - len(head), "chunk header", offset)
    length, chunk_type = struct.unpack('>I4s', head)
    check_type(chunk_type, offset)
    if length > MAX_CHUNK_LENGTH:
        raise InvalidChunk(
            f"{chunk_type.decode('ascii')} chunk at offset {offset} declares "
            f"length {length} above {MAX_CHUNK_LENGTH}"
        )
    return length, chunk_type


def read_body(stream, chunk_type: bytes, length: int, offset=None) -> Chunk:
    """
    Read data and CRC of a chunk whose header was already consumed and verify the CRC.
    """
    name = chunk_type.decode('ascii')
    data = read_exact(stream, length, f"{name} chunk data", offset)
    crc, = struct.unpack('>I', read_exact(stream, 4, f"{name} chunk crc", offset))

    calc_crc = chunk_crc(chunk_type, data)
    if crc != calc_crc:
        raise CrcMismatch(
            f"CRC check failed for {name} chunk at offset {offset}: "
            f"stored {crc:08x}, computed {calc_crc:08x}"
        )
    return Chunk(chunk_type, data, crc)


def read_chunk(stream, offset=None) -> Chunk:
    #chunk = [4B length][4B type][payload][4B CRC]
    header = read_header(stream, offset)
    if header is None:
        raise TruncatedChunk(f"Expected a chunk at offset {offset}, stream is empty")
    length, chunk_type = header
    return read_body(stream, chunk_type, length, offset)


def write_chunk(sink, chunk_type: bytes, data: bytes) -> int:
    """
    Write one chunk with a freshly computed CRC and return the bytes written.
    """
    check_type(chunk_type)
    if len(data) > MAX_CHUNK_LENGTH:
        raise ValueError(f"Chunk data cannot be bigger than {MAX_CHUNK_LENGTH} bytes")
    sink.write(struct.pack('>I', len(data)))
    sink.write(chunk_type)
    sink.write(data)
    sink.write(struct.pack('>I', chunk_crc(chunk_type, data)))
    return 12 + len(data)


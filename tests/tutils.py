import io
import struct
import zlib

import numpy as np
from PIL import Image, PngImagePlugin

from pngfiles import PNG, file_chunk

IHDR_1x1 = struct.pack('>IIBBBBB', 1, 1, 8, 0, 0, 0, 0)   #1x1 grayscale


def chunk_bytes(chunk_type: bytes, data: bytes) -> bytes:
    f = io.BytesIO()
    PNG.write_chunk(f, chunk_type, data)
    return f.getvalue()


def make_png(*chunks, before_idat=(), trailing=b'') -> bytes:
    """
    Minimal valid PNG. ``chunks`` ((type, data) pairs) go between IDAT and IEND.
    """
    parts = [PNG.PngSignature, chunk_bytes(b'IHDR', IHDR_1x1)]
    parts += [chunk_bytes(t, d) for t, d in before_idat]
    parts.append(chunk_bytes(b'IDAT', zlib.compress(b'\x00\x00')))
    parts += [chunk_bytes(t, d) for t, d in chunks]
    parts.append(chunk_bytes(b'IEND', b''))
    return b''.join(parts) + trailing


def carriers(name, payload, max_fragment_size=file_chunk.MAX_FRAGMENT_SIZE):
    return [(file_chunk.CARRIER_TYPE, blob) for blob in file_chunk.split(name, payload, max_fragment_size)]


def raw_chunks(data: bytes) -> list:
    """
    [(type, raw chunk bytes)] up to and including IEND.
    """
    assert data[:8] == PNG.PngSignature
    out = []
    pos = 8
    while True:
        length, chunk_type = struct.unpack_from('>I4s', data, pos)
        out.append((chunk_type, data[pos:pos + 12 + length]))
        pos += 12 + length
        if chunk_type == b'IEND':
            return out


def chunk_types(data: bytes) -> list:
    return [t for t, _ in raw_chunks(data)]


def pillow_png(width=64, height=48, text=None) -> bytes:
    rng = np.random.default_rng(1234)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    info = None
    if text:
        info = PngImagePlugin.PngInfo()
        for key, value in text.items():
            info.add_text(key, value)
    f = io.BytesIO()
    Image.fromarray(pixels).save(f, format='PNG', pnginfo=info)
    return f.getvalue()


def pixels(data: bytes) -> np.ndarray:
    with Image.open(io.BytesIO(data)) as im:
        return np.asarray(im.convert('RGB'))


class NonSeekable(io.RawIOBase):
    """
    Forward-only reader returning at most ``step`` bytes per read.
    """
    def __init__(self, data, step=7):
        super().__init__()
        self._data = data
        self._pos = 0
        self._step = step

    def readable(self):
        return True

    def seekable(self):
        return False

    def read(self, size=-1):
        if size < 0:
            size = len(self._data) - self._pos
        size = min(size, self._step)
        chunk = self._data[self._pos:self._pos + size]
        self._pos += len(chunk)
        return chunk


def flip_byte(data: bytes, index: int) -> bytes:
    return data[:index] + bytes([data[index] ^ 0xFF]) + data[index + 1:]


def offset_of(data: bytes, chunk_type: bytes, nth=0) -> int:
    """
    Position of the length field of the nth chunk of ``chunk_type``.
    """
    pos = 8
    seen = 0
    for t, raw in raw_chunks(data):
        if t == chunk_type:
            if seen == nth:
                return pos
            seen += 1
        pos += len(raw)
    raise KeyError(chunk_type)

"""
Append embedded files to a PNG stream as carrier chunks right before IEND.
"""
import logging

from pngfiles import PNG, file_chunk
from pngfiles.errors import NameCollision
from pngfiles.fileutils import atomic_write
from pngfiles.walker import ChunkWalker

logger = logging.getLogger(__name__)


def _payload_bytes(payload):
    #payload sources are bytes-like objects or binary files
    if hasattr(payload, 'read'):
        return payload.read()
    return payload


def encode(source, files, destination, max_fragment_size=file_chunk.MAX_FRAGMENT_SIZE) -> int:
    """
    Copy the PNG in ``source`` to ``destination`` and embed ``files``
    (name -> payload) in their iteration order.

    Chunks already in the image are copied verbatim. Existing carriers are
    read only to make sure no requested name is taken already.

    Returns the number of carrier chunks written.
    """
    for name in files:
        file_chunk.encode_name(name)
    if max_fragment_size < 1:
        raise ValueError("max_fragment_size must be at least 1")

    walker = ChunkWalker(source)
    destination.write(PNG.PngSignature)
    written = 0

    for header in walker:
        if header.type == file_chunk.CARRIER_TYPE:
            chunk = walker.read_data(header)
            name = file_chunk.parse_name(chunk.data)
            if name in files:
                raise NameCollision(name)
            PNG.write_chunk(destination, chunk.type, chunk.data)
            continue

        if header.type == b'IEND':
            #new carriers go last, right before IEND
            for name, payload in files.items():
                blobs = file_chunk.split(name, _payload_bytes(payload), max_fragment_size)
                for blob in blobs:
                    PNG.write_chunk(destination, file_chunk.CARRIER_TYPE, blob)
                written += len(blobs)
                logger.info("embedded %s in %d chunk(s)", name, len(blobs))

        walker.copy(header, destination)

    trailing = walker.trailing_bytes()
    if trailing:
        logger.warning("dropped %d bytes found after IEND", trailing)
    return written


def encode_path(input_path, output_path, files, max_fragment_size=file_chunk.MAX_FRAGMENT_SIZE) -> int:
    """
    Embed ``files`` (name -> bytes) into the image at ``input_path`` and save it as ``output_path``.
    """
    with atomic_write(output_path) as dst:
        with open(input_path, 'rb') as src:
            count = encode(src, files, dst, max_fragment_size)
    logger.info("saved %s", output_path)
    return count

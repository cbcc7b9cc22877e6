"""
Rewrite a PNG stream without the carrier chunks of some embedded files.
"""
import logging

from pngfiles import PNG, file_chunk
from pngfiles.errors import FileNotFound
from pngfiles.fileutils import atomic_write
from pngfiles.walker import ChunkWalker

logger = logging.getLogger(__name__)


def remove(source, names, destination) -> int:
    """
    Copy ``source`` to ``destination`` leaving out every carrier chunk of ``names``.

    Raises FileNotFound for the first name that had no carrier at all.
    Returns the number of carrier chunks dropped.
    """
    requested = list(dict.fromkeys(names))
    removing = set(requested)
    found = set()
    dropped = 0

    walker = ChunkWalker(source)
    destination.write(PNG.PngSignature)

    for header in walker:
        if header.type != file_chunk.CARRIER_TYPE:
            walker.copy(header, destination)
            continue
        chunk = walker.read_data(header)
        name = file_chunk.parse_name(chunk.data)
        if name in removing:
            found.add(name)
            dropped += 1
            logger.debug("dropping fragment of %s at offset %d", name, header.offset)
            continue
        #CRC was verified on read, so the rewritten chunk is byte-identical
        PNG.write_chunk(destination, chunk.type, chunk.data)

    for name in requested:
        if name not in found:
            raise FileNotFound(name)
        logger.info("removed %s", name)

    trailing = walker.trailing_bytes()
    if trailing:
        logger.warning("dropped %d bytes found after IEND", trailing)
    return dropped


def remove_path(input_path, names, output_path=None) -> int:
    """
    Remove ``names`` from the image at ``input_path``.

    Without ``output_path`` the input is replaced, but only after it was read to the end.
    """
    output_path = output_path or input_path
    with atomic_write(output_path) as dst:
        with open(input_path, 'rb') as src:
            count = remove(src, names, dst)
    logger.info("saved %s", output_path)
    return count

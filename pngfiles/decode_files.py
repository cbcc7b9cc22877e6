"""
Extract embedded files from a PNG stream.

Only carrier chunks are ever read. Every other chunk, image data
included, is skipped without being loaded or checksummed.
"""
import logging
import os
from typing import NamedTuple

from pngfiles import file_chunk
from pngfiles.errors import FileNotFound, NameCollision
from pngfiles.walker import ChunkWalker

logger = logging.getLogger(__name__)


class EmbeddedFile(NamedTuple):
    name: str
    fragments: int
    total_fragments: int
    size: int

    @property
    def complete(self) -> bool:
        return self.fragments == self.total_fragments


def decode(source, requested_names) -> dict:
    """
    Return {name: payload} for every requested name.

    Raises FileNotFound for the first requested name without any carrier and
    IncompleteFile / DuplicateFragment when a file's fragments do not add up.
    Nothing is returned unless every name succeeds.
    """
    requested = list(dict.fromkeys(requested_names))
    wanted = set(requested)
    arena = file_chunk.Reassembler()
    walker = ChunkWalker(source)

    for header in walker:
        if header.type != file_chunk.CARRIER_TYPE:
            walker.skip(header)
            continue
        chunk = walker.read_data(header)
        name = file_chunk.parse_name(chunk.data)
        if name not in wanted:
            logger.debug("ignoring fragment of %s", name)
            continue
        arena.add(file_chunk.parse_carrier(chunk.data))

    files = {}
    for name in requested:
        if name not in arena:
            raise FileNotFound(name)
        files[name] = arena.drain(name)
        logger.info("extracted %s (%d bytes)", name, len(files[name]))
    return files


def list_files(source) -> list:
    """
    Describe every file embedded in ``source`` in order of first appearance.
    """
    found = {}
    walker = ChunkWalker(source)
    for header in walker:
        if header.type != file_chunk.CARRIER_TYPE:
            walker.skip(header)
            continue
        carrier = file_chunk.parse_carrier(walker.read_data(header).data)
        fragments, total, size = found.get(carrier.name, (0, carrier.total_fragments, 0))
        found[carrier.name] = (fragments + 1, total, size + len(carrier.fragment))
    return [EmbeddedFile(name, *info) for name, info in found.items()]


def decode_path(input_path, names, output_dir='.') -> list:
    """
    Extract ``names`` from the image at ``input_path`` into ``output_dir``.

    Returns the paths written. No file is written unless all names decode.
    """
    names = list(dict.fromkeys(names))
    targets = {}
    for name in names:
        base = os.path.basename(name)
        if base in targets:
            raise NameCollision(name, f"{name} and {targets[base]} would both be written to {base}")
        targets[base] = name

    with open(input_path, 'rb') as src:
        files = decode(src, names)

    os.makedirs(output_dir, exist_ok=True)
    written = []
    for name, payload in files.items():
        path = os.path.join(output_dir, os.path.basename(name))
        with open(path, 'wb') as f:
            f.write(payload)
        written.append(path)
    return written

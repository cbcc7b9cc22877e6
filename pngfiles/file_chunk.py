"""
Framing of embedded files inside private "fiLe" chunks.

One file becomes one or more carrier chunks. Each carrier holds

    [2B name length][name, UTF-8][4B sequence index][4B total fragments][fragment]

with all integers big-endian. Nothing here does I/O.
"""
import math
import struct
from typing import NamedTuple

from pngfiles import PNG
from pngfiles.errors import DuplicateFragment, IncompleteFile, MalformedCarrier

# fiLe
# ||||
# |||+- safe-to-copy bit is 1 (lowercase)
# ||+-- reserved bit is 0     (uppercase)
# |+--- private bit is 1      (lowercase)
# +---- ancillary bit is 1    (lowercase)
CARRIER_TYPE: bytes = b'fiLe'
MAX_FRAGMENT_SIZE = 1024 * 1024
MAX_NAME_LENGTH = 0xFFFF

_NAME_LENGTH = struct.Struct('>H')
_SEQUENCE = struct.Struct('>II')


class Carrier(NamedTuple):
    name: str
    sequence_index: int
    total_fragments: int
    fragment: bytes


def encode_name(name: str) -> bytes:
    raw = name.encode('utf-8')
    if not raw:
        raise ValueError("Embedded file name cannot be empty")
    if len(raw) > MAX_NAME_LENGTH:
        raise ValueError(f"Embedded file name longer than {MAX_NAME_LENGTH} bytes: {name[:40]}...")
    return raw


def split(name: str, payload: bytes, max_fragment_size: int = MAX_FRAGMENT_SIZE) -> list:
    """
    Pack ``payload`` into carrier chunk data blobs of at most ``max_fragment_size`` payload bytes each.

    An empty payload still yields one (empty) fragment.
    """
    raw_name = encode_name(name)
    header_size = _NAME_LENGTH.size + len(raw_name) + _SEQUENCE.size
    if max_fragment_size < 1:
        raise ValueError("max_fragment_size must be at least 1")
    if header_size + max_fragment_size > PNG.MAX_CHUNK_LENGTH:
        raise ValueError(f"max_fragment_size {max_fragment_size} does not fit in one chunk")

    payload = memoryview(payload)
    total = max(1, math.ceil(len(payload) / max_fragment_size))
    prefix = _NAME_LENGTH.pack(len(raw_name)) + raw_name

    blobs = []
    for index in range(total):
        fragment = payload[index * max_fragment_size:(index + 1) * max_fragment_size]
        blobs.append(b''.join((prefix, _SEQUENCE.pack(index, total), fragment)))
    return blobs


def _parse_name(data: bytes):
    if len(data) < _NAME_LENGTH.size:
        raise MalformedCarrier(f"Carrier of {len(data)} bytes is too short for a name length")
    name_length, = _NAME_LENGTH.unpack_from(data)
    end = _NAME_LENGTH.size + name_length
    if name_length == 0 or end > len(data):
        raise MalformedCarrier(
            f"Carrier name length {name_length} does not fit in {len(data)} bytes"
        )
    try:
        return bytes(data[_NAME_LENGTH.size:end]).decode('utf-8'), end
    except UnicodeDecodeError as e:
        raise MalformedCarrier(f"Carrier name is not valid UTF-8: {e}") from e


def parse_name(data: bytes) -> str:
    """
    Read only the name of a carrier.
    """
    return _parse_name(data)[0]


def parse_carrier(data: bytes) -> Carrier:
    name, pos = _parse_name(data)
    if pos + _SEQUENCE.size > len(data):
        raise MalformedCarrier(f"Carrier for {name} is missing its sequence header")
    sequence_index, total_fragments = _SEQUENCE.unpack_from(data, pos)
    if total_fragments == 0 or sequence_index >= total_fragments:
        raise MalformedCarrier(
            f"Carrier for {name} declares fragment {sequence_index} of {total_fragments}"
        )
    return Carrier(name, sequence_index, total_fragments, bytes(data[pos + _SEQUENCE.size:]))


def reassemble(fragments) -> bytes:
    """
    Join carriers of one file, given in any order, into the original payload.
    """
    fragments = list(fragments)
    if not fragments:
        raise ValueError("Nothing to reassemble")
    name = fragments[0].name
    total = fragments[0].total_fragments

    slots = {}
    for carrier in fragments:
        if carrier.name != name:
            raise ValueError(f"Cannot reassemble {carrier.name} together with {name}")
        if carrier.total_fragments != total:
            raise MalformedCarrier(
                f"Fragments of {name} disagree on total: {total} and {carrier.total_fragments}"
            )
        if carrier.sequence_index in slots:
            raise DuplicateFragment(name, f"Fragment {carrier.sequence_index} of {name} appears twice")
        slots[carrier.sequence_index] = carrier.fragment

    missing = [i for i in range(total) if i not in slots]
    if missing:
        raise IncompleteFile(
            name, f"{name} is missing {len(missing)} of {total} fragments (first: {missing[0]})"
        )
    return b''.join(slots[i] for i in range(total))


class Reassembler:
    """
    Arena of fragments keyed by (name, sequence index).

    Fragments may arrive in any order; a file is joined into one buffer only
    when it is drained.
    """
    def __init__(self):
        self._fragments = {}
        self._totals = {}

    def add(self, carrier: Carrier):
        total = self._totals.setdefault(carrier.name, carrier.total_fragments)
        if total != carrier.total_fragments:
            raise MalformedCarrier(
                f"Fragments of {carrier.name} disagree on total: "
                f"{total} and {carrier.total_fragments}"
            )
        key = (carrier.name, carrier.sequence_index)
        if key in self._fragments:
            raise DuplicateFragment(
                carrier.name, f"Fragment {carrier.sequence_index} of {carrier.name} appears twice"
            )
        self._fragments[key] = carrier

    def __contains__(self, name):
        return name in self._totals

    def is_complete(self, name) -> bool:
        total = self._totals.get(name)
        return total is not None and all((name, i) in self._fragments for i in range(total))

    def drain(self, name) -> bytes:
        total = self._totals.pop(name)
        carriers = [self._fragments.pop((name, i)) for i in range(total) if (name, i) in self._fragments]
        return reassemble(carriers)

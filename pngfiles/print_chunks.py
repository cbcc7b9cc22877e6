import struct
import sys

from pngfiles import file_chunk
from pngfiles.walker import ChunkWalker

#small ancillary chunks worth decoding when listing, everything else is skipped
described = {b'IHDR', b'tEXt', b'tIME', b'gAMA', b'pHYs', file_chunk.CARRIER_TYPE}

#fixed size layouts
layouts = {
    b'IHDR': struct.Struct('>IIBBBBB'),
    b'gAMA': struct.Struct('>I'),
    b'tIME': struct.Struct('>HBBBBB'),
    b'pHYs': struct.Struct('>IIB'),
}


def describe(chunk_type: bytes, d: bytes) -> str:
    """
    One line summary of a chunk's data, empty when there is nothing to say.
    """
    layout = layouts.get(chunk_type)
    if layout is not None and len(d) != layout.size:
        return f"[Malformed {chunk_type.decode('ascii')}: {len(d)} bytes, expected {layout.size}]"

    if chunk_type == b'IHDR':
        w, h, bitd, colort, compm, filterm, interlacem = layout.unpack(d)
        return (f"width={w}, height={h}, bit_depth={bitd}, color_type={colort}, "
                f"compression={compm}, filter={filterm}, interlace={interlacem}")

    if chunk_type == b'gAMA':
        gamma, = layout.unpack(d)
        return f"gamma={gamma/100000.0}"

    if chunk_type == b'tIME':
        y, mo, day, h, mi, s = layout.unpack(d)
        return f"{y:04}-{mo:02}-{day:02} {h:02}:{mi:02}:{s:02}"

    if chunk_type == b'pHYs':
        x_ppu, y_ppu, unit = layout.unpack(d)
        unit_descr = 'meter' if unit == 1 else 'unknown'
        return f"x_ppu={x_ppu}, y_ppu={y_ppu}, unit={unit} ({unit_descr})"

    if chunk_type == b'tEXt':
        #uncompressed text: key\0value
        try:
            key, val = d.split(b'\x00', 1)
        except ValueError:
            return "[Malformed tEXt]"
        return f"key='{key.decode('latin-1')}', text='{val.decode('latin-1')}'"

    if chunk_type == file_chunk.CARRIER_TYPE:
        carrier = file_chunk.parse_carrier(d)
        return (f"file='{carrier.name}', fragment {carrier.sequence_index + 1}"
                f"/{carrier.total_fragments}, {len(carrier.fragment)} bytes")
    return ""


def printChunks(source, out=None):
    """
    Print every chunk header of ``source``; small known chunks are decoded too.
    """
    out = out or sys.stdout
    walker = ChunkWalker(source)
    for header in walker:
        print(header, file=out)
        if header.type in described:
            details = describe(header.type, walker.read_data(header).data)
            if details:
                print(f"  {details}", file=out)
        else:
            walker.skip(header)
    trailing = walker.trailing_bytes()
    if trailing:
        print(f"Bytes behind IEND: {trailing}", file=out)


def printFiles(files, out=None):
    out = out or sys.stdout
    if not files:
        print("No embedded files", file=out)
        return
    for f in files:
        state = "" if f.complete else f" (incomplete: {f.fragments}/{f.total_fragments} fragments)"
        print(f"{f.name}  {f.size} bytes{state}", file=out)

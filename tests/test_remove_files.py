import io

import pytest

from pngfiles import file_chunk
from pngfiles.decode_files import decode
from pngfiles.errors import CrcMismatch, FileNotFound
from pngfiles.remove_files import remove, remove_path

import tutils


def do_remove(data, names):
    out = io.BytesIO()
    count = remove(io.BytesIO(data), names, out)
    return out.getvalue(), count


def test_removal_completeness():
    data = tutils.make_png(*tutils.carriers("secret.txt", b"hello"))
    assert decode(io.BytesIO(data), ["secret.txt"]) == {"secret.txt": b"hello"}
    removed, count = do_remove(data, {"secret.txt"})
    assert count == 1
    with pytest.raises(FileNotFound):
        decode(io.BytesIO(removed), ["secret.txt"])
    assert removed == tutils.make_png()


def test_all_fragments_removed():
    data = tutils.make_png(*tutils.carriers("f", b"0123456789", 3))
    removed, count = do_remove(data, ["f"])
    assert count == 4
    assert file_chunk.CARRIER_TYPE not in tutils.chunk_types(removed)


def test_other_chunks_kept_verbatim():
    a = tutils.carriers("a", b"1")
    b = tutils.carriers("b", b"22", 1)
    data = tutils.make_png(a[0], b[0], (b'tEXt', b'k\x00v'), b[1], before_idat=[(b'gAMA', b'\x00\x00\xb1\x8f')])
    removed, count = do_remove(data, ["a"])
    assert count == 1
    assert removed == tutils.make_png(b[0], (b'tEXt', b'k\x00v'), b[1], before_idat=[(b'gAMA', b'\x00\x00\xb1\x8f')])
    assert decode(io.BytesIO(removed), ["b"]) == {"b": b"22"}


def test_unknown_name():
    data = tutils.make_png(*tutils.carriers("a", b"1"))
    with pytest.raises(FileNotFound) as e:
        do_remove(data, ["a", "b"])
    assert e.value.name == "b"


def test_idat_crc_not_checked():
    data = tutils.make_png(*tutils.carriers("a", b"1"))
    broken = tutils.flip_byte(data, tutils.offset_of(data, b'IDAT') + 9)
    removed, _ = do_remove(broken, ["a"])
    assert removed == tutils.flip_byte(tutils.make_png(), tutils.offset_of(data, b'IDAT') + 9)


def test_carrier_crc_checked():
    data = tutils.make_png(*tutils.carriers("a", b"1"), *tutils.carriers("b", b"2"))
    broken = tutils.flip_byte(data, tutils.offset_of(data, file_chunk.CARRIER_TYPE, 1) + 12)
    with pytest.raises(CrcMismatch):
        do_remove(broken, ["a"])


def test_remove_path_in_place(tmp_path):
    path = tmp_path / "img.png"
    path.write_bytes(tutils.make_png(*tutils.carriers("a", b"1"), *tutils.carriers("b", b"2")))
    assert remove_path(path, ["a"]) == 1
    assert path.read_bytes() == tutils.make_png(*tutils.carriers("b", b"2"))
    assert [p.name for p in tmp_path.iterdir()] == ["img.png"]


def test_remove_path_to_output(tmp_path):
    original = tutils.make_png(*tutils.carriers("a", b"1"))
    src = tmp_path / "img.png"
    src.write_bytes(original)
    dst = tmp_path / "clean.png"
    remove_path(src, ["a"], dst)
    assert src.read_bytes() == original
    assert dst.read_bytes() == tutils.make_png()


def test_remove_path_failure_keeps_input(tmp_path):
    original = tutils.make_png(*tutils.carriers("a", b"1"))
    path = tmp_path / "img.png"
    path.write_bytes(original)
    with pytest.raises(FileNotFound):
        remove_path(path, ["missing"])
    assert path.read_bytes() == original
    assert [p.name for p in tmp_path.iterdir()] == ["img.png"]

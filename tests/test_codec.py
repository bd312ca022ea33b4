import io
import random

import pytest

from bitops import BitReader, BitWriter
from codec import (
    MAGIC_NUMBER,
    HeaderFormat,
    HuffmanCodec,
    compress_bytes,
    uncompress_bytes,
)
from errors import (
    BadMagicError,
    CorruptTreeError,
    EmptyInputError,
    HuffError,
    InputMismatchError,
    UnexpectedEndOfStreamError,
    UnsupportedFormatError,
)
from huffman import PSEUDO_EOF

FORMATS = [HeaderFormat.COUNTS, HeaderFormat.TREE]


def _compress(data, header_format, force=True, viewer=None):
    codec = HuffmanCodec(viewer)
    codec.preprocess(data, header_format)
    out = io.BytesIO()
    bits = codec.compress(data, out, force=force)
    return codec, out.getvalue(), bits


@pytest.mark.parametrize("header_format", FORMATS)
def test_roundtrip_text(sample_text, header_format, progress_recorder):
    codec, comp, bits = _compress(sample_text, header_format)
    assert len(comp) == (bits + 7) // 8

    on_prog, calls = progress_recorder
    out = io.BytesIO()
    written = HuffmanCodec().uncompress(comp, out, on_progress=on_prog)
    assert out.getvalue() == sample_text
    assert written == len(sample_text) * 8
    assert calls[-1] == (len(comp), len(comp))


@pytest.mark.parametrize("header_format", FORMATS)
def test_roundtrip_random_bytes(header_format):
    rng = random.Random(7)
    data = bytes(rng.getrandbits(8) for _ in range(4096))
    assert uncompress_bytes(compress_bytes(data, header_format)) == data


@pytest.mark.parametrize("header_format", FORMATS)
def test_single_symbol_input(header_format):
    data = b"\x00" * 1000
    comp = compress_bytes(data, header_format)
    assert uncompress_bytes(comp) == data


@pytest.mark.parametrize("header_format", FORMATS)
def test_compression_is_deterministic(header_format):
    data = b"abcdabcdeeffgg" * 10
    assert compress_bytes(data, header_format) == compress_bytes(data, header_format)


def test_counts_header_layout():
    data = b"aab"
    codec, comp, bits = _compress(data, HeaderFormat.COUNTS)
    reader = BitReader(comp)
    assert reader.read_bits(32) == MAGIC_NUMBER
    assert reader.read_bits(32) == HeaderFormat.COUNTS
    counts = [reader.read_bits(32) for _ in range(256)]
    assert counts[ord("a")] == 2 and counts[ord("b")] == 1
    assert sum(counts) == 3
    payload = "".join(codec.codes[b] for b in data) + codec.codes[PSEUDO_EOF]
    assert bits == 64 + 256 * 32 + len(payload)
    assert "".join(str(reader.read_bit()) for _ in range(len(payload))) == payload


def test_tree_header_layout():
    data = b"abcd"
    codec, comp, bits = _compress(data, HeaderFormat.TREE)
    reader = BitReader(comp)
    assert reader.read_bits(32) == MAGIC_NUMBER
    assert reader.read_bits(32) == HeaderFormat.TREE
    tree_len = reader.read_bits(32)
    assert tree_len == len(codec.tree.serialize()) == 54
    tree_bits = "".join(str(reader.read_bit()) for _ in range(tree_len))
    assert tree_bits == codec.tree.serialize()
    payload = "110" "111" "00" "01" "10"
    assert bits == 96 + tree_len + len(payload)
    assert "".join(str(reader.read_bit()) for _ in range(len(payload))) == payload


def test_eof_code_terminates_payload_once():
    data = b"hello"
    codec, comp, bits = _compress(data, HeaderFormat.COUNTS)
    eof = codec.codes[PSEUDO_EOF]
    header = 64 + 256 * 32
    reader = BitReader(comp)
    reader.read_bits(header)
    stream = "".join(str(reader.read_bit()) for _ in range(bits - header))
    assert stream.endswith(eof)
    assert stream == "".join(codec.codes[b] for b in data) + eof


def test_preprocess_reports_savings(sample_text, recording_viewer):
    codec = HuffmanCodec(recording_viewer)
    saved = codec.preprocess(sample_text)
    assert saved == len(sample_text) * 8 - codec.bits_compressed
    assert saved > 0
    assert not codec.request_force
    assert recording_viewer.messages == []
    assert codec.frequencies[ord("o")] == sample_text.count(b"o")


def test_preprocess_accepts_file_objects(sample_text):
    codec = HuffmanCodec()
    assert codec.preprocess(io.BytesIO(sample_text)) == HuffmanCodec().preprocess(sample_text)


def test_force_required_when_output_grows(recording_viewer):
    data = bytes(range(256))
    codec = HuffmanCodec(recording_viewer)
    saved = codec.preprocess(data, HeaderFormat.TREE)
    assert saved < 0
    assert codec.request_force
    assert len(recording_viewer.messages) == 1
    assert "force" in recording_viewer.messages[0]

    out = io.BytesIO()
    assert codec.compress(data, out) == 0
    assert out.getvalue() == b""

    bits = codec.compress(data, out, force=True)
    assert bits > 0
    assert uncompress_bytes(out.getvalue()) == data


def test_compress_before_preprocess_raises():
    with pytest.raises(RuntimeError):
        HuffmanCodec().compress(b"abc", io.BytesIO())


def test_empty_input_raises():
    with pytest.raises(EmptyInputError):
        HuffmanCodec().preprocess(b"")
    with pytest.raises(ValueError):
        HuffmanCodec().preprocess(io.BytesIO())


def test_unsupported_format_on_preprocess():
    with pytest.raises(UnsupportedFormatError):
        HuffmanCodec().preprocess(b"abc", HeaderFormat.CUSTOM)
    with pytest.raises(UnsupportedFormatError):
        HuffmanCodec().preprocess(b"abc", 42)


def test_bad_magic_raises(sample_text):
    comp = bytearray(compress_bytes(sample_text))
    comp[0] ^= 0xFF
    with pytest.raises(BadMagicError):
        uncompress_bytes(bytes(comp))


@pytest.mark.parametrize("selector", [HeaderFormat.CUSTOM, 7])
def test_unknown_format_selector_raises(selector):
    bw = BitWriter()
    bw.write_bits(MAGIC_NUMBER, 32)
    bw.write_bits(selector, 32)
    with pytest.raises(UnsupportedFormatError):
        uncompress_bytes(bw.close())


def test_truncated_counts_header_fails_cleanly(sample_text):
    comp = compress_bytes(sample_text, HeaderFormat.COUNTS)
    out = io.BytesIO()
    with pytest.raises(UnexpectedEndOfStreamError):
        HuffmanCodec().uncompress(comp[:100], out)
    assert out.getvalue() == b""


def test_truncated_tree_header_fails_cleanly(sample_text):
    comp = compress_bytes(sample_text, HeaderFormat.TREE)
    with pytest.raises(UnexpectedEndOfStreamError):
        uncompress_bytes(comp[:20])


@pytest.mark.parametrize("header_format", FORMATS)
def test_missing_eof_code_raises(header_format):
    data = b"abcdefghij" * 50
    codec, comp, bits = _compress(data, header_format)
    header = 64 + (256 * 32 if header_format == HeaderFormat.COUNTS
                   else 32 + len(codec.tree.serialize()))
    cut = (header + (bits - header) // 2) // 8
    with pytest.raises(EOFError):
        uncompress_bytes(comp[:cut])


def test_tree_with_out_of_range_leaf_raises():
    bw = BitWriter()
    bw.write_bits(MAGIC_NUMBER, 32)
    bw.write_bits(HeaderFormat.TREE, 32)
    tree_bits = "0" + "1" + "111111111" + "1" + "100000000"
    bw.write_bits(len(tree_bits), 32)
    bw.write_bits(int(tree_bits, 2), len(tree_bits))
    bw.write_bits(0b01, 2)
    with pytest.raises(CorruptTreeError):
        uncompress_bytes(bw.close())


def test_all_zero_counts_header_decodes_to_nothing():
    bw = BitWriter()
    bw.write_bits(MAGIC_NUMBER, 32)
    bw.write_bits(HeaderFormat.COUNTS, 32)
    for _ in range(256):
        bw.write_bits(0, 32)
    bw.write_bit(0)
    assert uncompress_bytes(bw.close()) == b""


def test_errors_share_a_base_class():
    for exc in (BadMagicError, CorruptTreeError, EmptyInputError,
                UnexpectedEndOfStreamError, UnsupportedFormatError):
        assert issubclass(exc, HuffError)


@pytest.mark.parametrize("header_format", FORMATS)
def test_same_file_object_for_preprocess_and_compress(header_format):
    data = b"hello huffman, hello huffman world"
    src = io.BytesIO(b"prefix:" + data)
    src.seek(len(b"prefix:"))
    codec = HuffmanCodec()
    codec.preprocess(src, header_format)
    out = io.BytesIO()
    bits = codec.compress(src, out, force=True)
    assert bits > 0
    assert uncompress_bytes(out.getvalue()) == data


def test_compress_rejects_byte_not_preprocessed():
    codec = HuffmanCodec()
    codec.preprocess(b"aaab")
    out = io.BytesIO()
    with pytest.raises(InputMismatchError):
        codec.compress(b"aaac", out, force=True)
    assert out.getvalue() == b""


def test_compress_rejects_input_of_other_length():
    codec = HuffmanCodec()
    codec.preprocess(b"aaab")
    with pytest.raises(InputMismatchError):
        codec.compress(b"aaabb", io.BytesIO(), force=True)


def test_deep_tree_header_raises_corrupt_tree():
    bw = BitWriter()
    bw.write_bits(MAGIC_NUMBER, 32)
    bw.write_bits(HeaderFormat.TREE, 32)
    bw.write_bits(5000, 32)
    bw.write_bits(0, 5000)
    with pytest.raises(HuffError) as excinfo:
        uncompress_bytes(bw.close())
    assert isinstance(excinfo.value, CorruptTreeError)


def test_truncated_payload_writes_nothing():
    data = b"abcdefghij" * 50
    comp = compress_bytes(data, HeaderFormat.TREE)
    out = io.BytesIO()
    with pytest.raises(UnexpectedEndOfStreamError):
        HuffmanCodec().uncompress(comp[:-20], out)
    assert out.getvalue() == b""

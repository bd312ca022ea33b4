import io
import logging
from enum import IntEnum
from typing import BinaryIO, Callable, Dict, List, Optional, Tuple, Union

from bitops import BitReader, BitWriter
from errors import (
    BadMagicError,
    CorruptTreeError,
    EmptyInputError,
    InputMismatchError,
    UnexpectedEndOfStreamError,
    UnsupportedFormatError,
)
from huffman import ALPH_SIZE, PSEUDO_EOF, HuffmanTree, count_frequencies
from viewer import LoggingViewer, Viewer

MAGIC_NUMBER = 0xFACE8200  #: Leading 32-bit constant of every compressed stream
BITS_PER_INT = 32
BITS_PER_WORD = 8

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, BinaryIO]
ProgressCallback = Optional[Callable[[int, int], None]]


class HeaderFormat(IntEnum):
    """Header format selectors written after the magic number."""

    COUNTS = 0  #: 256 raw 32-bit counts
    TREE = 1  #: 32-bit length followed by the preorder tree bits
    CUSTOM = 2  #: Reserved, not supported


def _read_all(src: Source) -> bytes:
    """Return the whole input as bytes, reading file objects to the end."""
    if isinstance(src, (bytes, bytearray, memoryview)):
        return bytes(src)
    return src.read()


def _tell(src: Source) -> Optional[int]:
    """Current offset of a seekable file object, ``None`` for anything else."""
    if isinstance(src, (bytes, bytearray, memoryview)):
        return None
    seekable = getattr(src, "seekable", None)
    if seekable is not None and seekable():
        return src.tell()
    return None


def _check_format(value: int) -> HeaderFormat:
    """Validate a header format selector.

    :raises UnsupportedFormatError: If ``value`` is not COUNTS or TREE.
    """
    try:
        header_format = HeaderFormat(value)
    except ValueError:
        raise UnsupportedFormatError(
            f"Unknown header format: {value}"
        ) from None
    if header_format not in (HeaderFormat.COUNTS, HeaderFormat.TREE):
        raise UnsupportedFormatError(
            f"Header format {header_format.name} is not supported"
        )
    return header_format


class HuffmanCodec:
    """Two-pass static Huffman compressor/decompressor.

    A compression cycle is ``preprocess`` followed by ``compress`` on the same
    input. ``uncompress`` is independent and rebuilds everything it needs
    from the stream header.

    Compressed stream layout (big-endian, MSB first):

    - Magic: ``MAGIC_NUMBER`` (32 bits)
    - Header format: ``HeaderFormat`` value (32 bits)
    - COUNTS body: 256 counts of 32 bits for symbols ``0..255``
    - TREE body: tree bit length ``N`` (32 bits), then ``N`` tree bits
    - One Huffman code per input byte, then the ``PSEUDO_EOF`` code once

    :ivar viewer: Receiver for advisory messages.
    :type viewer: Viewer
    :ivar header_format: Format chosen at the last ``preprocess`` call.
    :type header_format: HeaderFormat | None
    :ivar freq: Dense frequency table from the last ``preprocess`` call.
    :type freq: List[int] | None
    :ivar tree: Huffman tree from the last ``preprocess`` call.
    :type tree: HuffmanTree | None
    :ivar request_force: Whether compression would grow the payload and
                         therefore needs ``force=True``.
    :type request_force: bool
    """

    def __init__(self, viewer: Optional[Viewer] = None):
        """Create an idle codec.

        :param viewer: Message receiver; defaults to :class:`LoggingViewer`.
        :type viewer: Viewer | None
        :returns: None
        :rtype: None
        """
        self.viewer = viewer if viewer is not None else LoggingViewer()
        self.header_format: Optional[HeaderFormat] = None
        self.freq: Optional[List[int]] = None
        self.tree: Optional[HuffmanTree] = None
        self.lookup: Dict[int, str] = {}
        self.bits_uncompressed = 0
        self.bits_compressed = 0
        self.request_force = False
        self.input_length = 0
        self._source: Optional[Source] = None
        self._source_offset: Optional[int] = None

    def set_viewer(self, viewer: Viewer) -> None:
        self.viewer = viewer

    @property
    def codes(self) -> Dict[int, str]:
        """Symbol to code table from the last ``preprocess`` call."""
        return dict(self.lookup)

    @property
    def frequencies(self) -> Optional[List[int]]:
        """Frequency table from the last ``preprocess`` call."""
        return None if self.freq is None else list(self.freq)

    def preprocess(
        self,
        src: Source,
        header_format: int = HeaderFormat.COUNTS,
    ) -> int:
        """Count symbols, build the tree and estimate the savings.

        The estimate compares ``8 * len(data)`` with the payload bits implied
        by the code table; header bits are not included. A negative result
        sets ``request_force`` and sends an advisory to the viewer.

        :param src: Input bytes or a binary file object (read to the end).
        :type src: bytes | BinaryIO
        :param header_format: Header format to use for ``compress``.
        :type header_format: int
        :returns: Bits saved by compression; negative if it would grow.
        :rtype: int
        :raises EmptyInputError: If the input holds no bytes.
        :raises UnsupportedFormatError: For an unknown ``header_format``.
        """
        self.header_format = _check_format(header_format)
        self._source = src
        self._source_offset = _tell(src)
        data = _read_all(src)
        if not data:
            raise EmptyInputError("preprocess failed. No bytes to read in input")

        self.input_length = len(data)
        self.freq = count_frequencies(data)
        self.tree = HuffmanTree.build(self.freq)
        self.lookup = self.tree.codes()
        self.bits_uncompressed = len(data) * BITS_PER_WORD
        self.bits_compressed = sum(
            self.freq[symbol] * len(code)
            for symbol, code in self.lookup.items()
            if symbol < ALPH_SIZE
        )
        saved = self.bits_uncompressed - self.bits_compressed
        self.request_force = saved < 0
        logger.debug(
            "Preprocessed %d bytes: %d distinct symbols, %d payload bits",
            len(data), len(self.lookup), self.bits_compressed,
        )
        if self.request_force:
            self.viewer.show_message(
                f"Compressed file has {-saved} more bits than the "
                "uncompressed file.\n"
                'Select "force" compression option to compress.'
            )
        return saved

    def compress(
        self,
        src: Source,
        dst: BinaryIO,
        header_format: Optional[int] = None,
        force: bool = False,
        on_progress: ProgressCallback = None,
    ) -> int:
        """Write the compressed form of the preprocessed input to ``dst``.

        Nothing is written when ``preprocess`` asked for force and ``force``
        is false.

        :param src: The same input given to ``preprocess``. A file object
                    passed to both calls is rewound to where
                    ``preprocess`` started reading, if it is seekable.
        :type src: bytes | BinaryIO
        :param dst: Binary stream receiving the compressed data.
        :type dst: BinaryIO
        :param header_format: Header format; defaults to the one passed to
                              ``preprocess``.
        :type header_format: int | None
        :param bool force: Compress even if the output would be larger.
        :param on_progress: Optional callback ``on_progress(done, total)``
                            invoked periodically with input bytes encoded.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Number of bits written, header included; ``0`` if skipped.
        :rtype: int
        :raises RuntimeError: If ``preprocess`` has not been called.
        :raises InputMismatchError: If ``src`` differs from the preprocessed
                                    input.
        """
        if self.tree is None:
            raise RuntimeError("preprocess must be called before compress")
        if self.request_force and not force:
            logger.info("Compression skipped: output would be larger, force not set")
            return 0
        if header_format is None:
            header_format = self.header_format
        header_format = _check_format(header_format)

        if src is self._source and self._source_offset is not None:
            src.seek(self._source_offset)
        data = _read_all(src)
        if len(data) != self.input_length:
            raise InputMismatchError(
                f"compress got {len(data)} bytes, preprocess counted "
                f"{self.input_length}"
            )
        table = _code_table(self.lookup)
        total = len(data)
        step = max(1, total // 100)

        with BitWriter(dst) as out:
            out.write_bits(MAGIC_NUMBER, BITS_PER_INT)
            out.write_bits(header_format, BITS_PER_INT)
            if header_format == HeaderFormat.COUNTS:
                self._write_counts(out)
            else:
                self._write_tree(out)
            logger.debug("Header is %d bits (%s)", out.bits_written, header_format.name)

            for done, byte in enumerate(data, 1):
                try:
                    code, length = table[byte]
                except KeyError:
                    raise InputMismatchError(
                        f"Byte {byte:#04x} was not counted by preprocess"
                    ) from None
                out.write_bits(code, length)
                if on_progress is not None and (done % step == 0 or done == total):
                    on_progress(done, total)
            code, length = table[PSEUDO_EOF]
            out.write_bits(code, length)
            bits_written = out.bits_written

        logger.debug("Compressed %d bytes into %d bits", total, bits_written)
        return bits_written

    def _write_counts(self, out: BitWriter) -> None:
        for symbol in range(ALPH_SIZE):
            out.write_bits(self.freq[symbol], BITS_PER_INT)

    def _write_tree(self, out: BitWriter) -> None:
        tree_bits = self.tree.serialize()
        out.write_bits(len(tree_bits), BITS_PER_INT)
        out.write_bits(int(tree_bits, 2), len(tree_bits))

    def uncompress(
        self,
        src: Source,
        dst: BinaryIO,
        on_progress: ProgressCallback = None,
    ) -> int:
        """Decode a stream produced by :meth:`compress` into ``dst``.

        :param src: Compressed bytes or a binary file object.
        :type src: bytes | BinaryIO
        :param dst: Binary stream receiving the original bytes.
        :type dst: BinaryIO
        :param on_progress: Optional callback ``on_progress(done, total)``
                            invoked periodically with compressed bytes consumed.
        :type on_progress: Optional[Callable[[int, int], None]]
        :returns: Number of bits written to ``dst``.
        :rtype: int
        :raises BadMagicError: If the stream does not start with ``MAGIC_NUMBER``.
        :raises UnsupportedFormatError: For an unknown header format.
        :raises CorruptTreeError: If an embedded tree cannot be decoded.
        :raises UnexpectedEndOfStreamError: If the data ends before the
                                            ``PSEUDO_EOF`` code.
        """
        data = _read_all(src)
        reader = BitReader(data)

        with BitWriter(dst) as out:
            magic = _read_header_bits(reader, BITS_PER_INT, "magic number")
            if magic != MAGIC_NUMBER:
                raise BadMagicError(
                    f"Error reading compressed file: bad magic number {magic:#010x}"
                )
            header_format = _check_format(
                _read_header_bits(reader, BITS_PER_INT, "header format")
            )
            if header_format == HeaderFormat.COUNTS:
                tree = self._read_counts(reader)
            else:
                tree = self._read_tree(reader)
            self._decode_payload(reader, out, tree, on_progress)
            bits_written = out.bits_written

        logger.debug("Uncompressed %d bytes into %d bits", len(data), bits_written)
        return bits_written

    def _read_counts(self, reader: BitReader) -> HuffmanTree:
        freq = [0] * (ALPH_SIZE + 1)
        for symbol in range(ALPH_SIZE):
            freq[symbol] = _read_header_bits(reader, BITS_PER_INT, "counts header")
        return HuffmanTree.build(freq)

    def _read_tree(self, reader: BitReader) -> HuffmanTree:
        length = _read_header_bits(reader, BITS_PER_INT, "tree size")
        if length > reader.bits_remaining:
            raise UnexpectedEndOfStreamError(
                f"Truncated tree header: {length} bits announced, "
                f"{reader.bits_remaining} available"
            )
        tree_bits = "".join(str(reader.read_bit()) for _ in range(length))
        tree = HuffmanTree.deserialize(tree_bits, length)
        for leaf in tree.leaves():
            if leaf.symbol > PSEUDO_EOF:
                raise CorruptTreeError(f"Leaf value {leaf.symbol} is out of range")
        return tree

    @staticmethod
    def _decode_payload(
        reader: BitReader,
        out: BitWriter,
        tree: HuffmanTree,
        on_progress: ProgressCallback,
    ) -> None:
        """Walk the tree bit by bit, writing symbols until ``PSEUDO_EOF``."""
        root = tree.root
        node = root
        total = len(reader.data)
        last_reported = -1
        while True:
            try:
                bit = reader.read_bit()
            except EOFError:
                raise UnexpectedEndOfStreamError(
                    "Error reading compressed file: unexpected end of input, "
                    "no PSEUDO_EOF value"
                ) from None
            if not node.is_leaf():
                node = node.right if bit else node.left
            if not node.is_leaf():
                continue
            if node.symbol == PSEUDO_EOF:
                break
            out.write_bits(node.symbol, BITS_PER_WORD)
            node = root
            if on_progress is not None and reader.pos != last_reported:
                last_reported = reader.pos
                on_progress(reader.pos, total)
        if on_progress is not None:
            on_progress(total, total)


def _read_header_bits(reader: BitReader, nbits: int, what: str) -> int:
    try:
        return reader.read_bits(nbits)
    except EOFError:
        raise UnexpectedEndOfStreamError(f"Truncated {what}") from None


def _code_table(lookup: Dict[int, str]) -> Dict[int, Tuple[int, int]]:
    """Turn bit-string codes into ``(value, length)`` pairs for ``write_bits``."""
    return {symbol: (int(code, 2), len(code)) for symbol, code in lookup.items()}


def compress_bytes(
    data: bytes,
    header_format: int = HeaderFormat.COUNTS,
    force: bool = True,
) -> bytes:
    """Preprocess and compress ``data`` in one call.

    :returns: The compressed stream, or ``b""`` if compression was skipped.
    :rtype: bytes
    """
    codec = HuffmanCodec()
    codec.preprocess(data, header_format)
    out = io.BytesIO()
    codec.compress(data, out, header_format, force=force)
    return out.getvalue()


def uncompress_bytes(data: bytes) -> bytes:
    """Decode a complete compressed stream held in memory."""
    out = io.BytesIO()
    HuffmanCodec().uncompress(data, out)
    return out.getvalue()

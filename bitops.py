from typing import BinaryIO, Optional


class BitWriter:
    """Bit-packing writer.

    Accumulates individual bits into bytes and buffers them until closed,
    at which point the bytes are handed to an optional binary ``sink``.

    :ivar sink: Binary file-like object receiving the packed bytes, or ``None``.
    :type sink: BinaryIO | None
    :ivar buffer: Fully written bytes.
    :type buffer: bytearray
    :ivar bit_buffer: 8-bit scratch register for accumulating pending bits.
    :type bit_buffer: int
    :ivar bit_count: Number of valid bits currently stored in ``bit_buffer`` (0-7).
    :type bit_count: int
    """

    def __init__(self, sink: Optional[BinaryIO] = None):
        """Initialize an empty bit writer.

        :param sink: Optional binary stream that receives the output on
                     :meth:`close`.
        :type sink: BinaryIO | None
        :returns: None
        :rtype: None
        """
        self.sink = sink
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0
        self.closed = False
        self._bits_written = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        else:
            self.discard()
        return False

    def discard(self) -> None:
        """Close without handing buffered bytes to ``sink``.

        Used when an operation fails part way so that no truncated output
        reaches the sink.

        :returns: None
        :rtype: None
        """
        self.closed = True
        self.buffer = bytearray()
        self.bit_buffer = 0
        self.bit_count = 0

    @property
    def bits_written(self) -> int:
        """Number of bits passed to :meth:`write_bits` so far (padding excluded)."""
        return self._bits_written

    def write_bits(self, value: int, nbits: int):
        """Write the lowest ``nbits`` of ``value`` to the buffer, MSB first.

        :param value: Integer whose bits will be written.
        :type value: int
        :param nbits: Number of bits from ``value`` to write (0-32 typical).
        :type nbits: int
        :returns: None
        :rtype: None
        :raises ValueError: If the writer has already been closed.
        """
        if self.closed:
            raise ValueError("write to a closed BitWriter")
        for i in range(nbits - 1, -1, -1):
            self.bit_buffer = (self.bit_buffer << 1) | ((value >> i) & 1)
            self.bit_count += 1
            if self.bit_count == 8:
                self.buffer.append(self.bit_buffer)
                self.bit_buffer = 0
                self.bit_count = 0
        self._bits_written += max(nbits, 0)

    def write_bit(self, bit: int):
        """Write a single bit.

        :param bit: ``0`` or ``1`` (any non-zero value counts as ``1``).
        :type bit: int
        :returns: None
        :rtype: None
        """
        self.write_bits(1 if bit else 0, 1)

    def close(self) -> bytes:
        """Flush remaining bits (if any) and return the full byte output.

        Any partial byte in ``bit_buffer`` is padded with zeros to complete the
        byte. Pending bytes are written to ``sink`` and the sink is flushed.
        Closing twice is harmless.

        :returns: All bytes produced by this writer.
        :rtype: bytes
        """
        if not self.closed:
            if self.bit_count > 0:
                self.bit_buffer <<= (8 - self.bit_count)
                self.buffer.append(self.bit_buffer)
                self.bit_buffer = 0
                self.bit_count = 0
            self.closed = True
            if self.sink is not None:
                self.sink.write(bytes(self.buffer))
                self.sink.flush()
        return bytes(self.buffer)


class BitReader:
    """Efficient bit-packing reader.

    Reads arbitrary bit lengths from a bytes-like object.

    :ivar data: Input data to read bits from.
    :type data: bytes
    :ivar pos: Current position in ``data`` (byte index).
    :type pos: int
    :ivar bit_buffer: Scratch register holding the current source byte.
    :type bit_buffer: int
    :ivar bit_count: Number of unread bits remaining in ``bit_buffer`` (0-8).
    :type bit_count: int
    """

    def __init__(self, data: bytes):
        """Create a bit reader for the given input ``data``.

        :param data: Source data to read from.
        :type data: bytes
        :returns: None
        :rtype: None
        """
        self.data = data
        self.pos = 0
        self.bit_buffer = 0
        self.bit_count = 0

    def read_bits(self, nbits: int) -> int:
        """Read ``nbits`` bits from the stream and return them as an integer.

        Bits are returned MSB-first in the integer.

        :param nbits: Number of bits to read.
        :type nbits: int
        :returns: The integer value composed of the next ``nbits`` bits.
        :rtype: int
        :raises EOFError: If the end of data is reached before reading ``nbits``.
        """
        result = 0
        for _ in range(nbits):
            if self.bit_count == 0:
                if self.pos >= len(self.data):
                    raise EOFError("Unexpected end of data")
                self.bit_buffer = self.data[self.pos]
                self.pos += 1
                self.bit_count = 8
            result = (result << 1) | ((self.bit_buffer >> (self.bit_count - 1)) & 1)
            self.bit_count -= 1
        return result

    def read_bit(self) -> int:
        """Read a single bit.

        :returns: ``0`` or ``1``.
        :rtype: int
        :raises EOFError: If no bits are left.
        """
        return self.read_bits(1)

    @property
    def bits_remaining(self) -> int:
        """Number of unread bits, including trailing pad bits."""
        return (len(self.data) - self.pos) * 8 + self.bit_count

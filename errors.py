class HuffError(Exception):
    """Base class for every failure raised by the Huffman codec."""


class EmptyInputError(HuffError, ValueError):
    """Raised when there are no bytes to count during preprocessing."""


class BadMagicError(HuffError, ValueError):
    """Raised when a compressed stream does not start with the magic number."""


class UnsupportedFormatError(HuffError, ValueError):
    """Raised for a header format selector the codec does not handle."""


class CorruptTreeError(HuffError, ValueError):
    """Raised when an embedded tree description cannot be decoded."""


class UnexpectedEndOfStreamError(HuffError, EOFError):
    """Raised when compressed data ends before the end-of-stream code."""


class InvalidArgumentError(HuffError, ValueError):
    """Raised for malformed fixed-width codes."""


class InputMismatchError(HuffError, ValueError):
    """Raised when ``compress`` is given data that was not preprocessed."""

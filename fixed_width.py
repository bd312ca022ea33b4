"""Nine-bit fixed-width codes for leaf values of a serialized tree.

Nine bits cover the 256 byte values plus the end-of-stream symbol.
"""
from errors import InvalidArgumentError

WIDTH = 9  #: Number of characters in a fixed-width code
BIT_WEIGHTS = (256, 128, 64, 32, 16, 8, 4, 2, 1)  #: MSB first


def to_binary(value: int) -> str:
    """Encode ``value`` as a 9-character string of ``'0'``/``'1'``.

    :param value: Integer in ``0..511`` (symbols only use ``0..256``).
    :type value: int
    :returns: The MSB-first bit string.
    :rtype: str
    :raises InvalidArgumentError: If ``value`` does not fit in 9 bits.
    """
    if not 0 <= value < 2 * BIT_WEIGHTS[0]:
        raise InvalidArgumentError(f"Value {value} does not fit in {WIDTH} bits")
    bits = []
    for weight in BIT_WEIGHTS:
        if value >= weight:
            value -= weight
            bits.append("1")
        else:
            bits.append("0")
    return "".join(bits)


def to_decimal(code: str) -> int:
    """Decode a 9-character bit string produced by :func:`to_binary`.

    Only the length is validated; the first nine characters are summed
    against their weights.

    :param code: Bit string, at least 9 characters long.
    :type code: str
    :returns: The decoded integer.
    :rtype: int
    :raises InvalidArgumentError: If ``code`` is shorter than 9 characters.
    """
    if code is None or len(code) < WIDTH:
        raise InvalidArgumentError(f"Code length is less than {WIDTH} bits")
    return sum(w for w, bit in zip(BIT_WEIGHTS, code) if bit == "1")

"""
16-bit Address Values
=====================

Helpers for the 16-bit addresses and lengths found in container headers
and in the generated BASIC program. All three target machines have a 64K
address space, so every address and every blob length must fit in 16
unsigned bits.
"""

from typing import Optional

from basicloader.errors import AddressError


UINT16_MAX = 0xFFFF


def check_uint16(value: int, what: str = "value") -> int:
    """
    Check that a value fits in 16 unsigned bits.

    Args:
        value: The value to check
        what: Description used in the error message

    Returns:
        The value unchanged

    Raises:
        ValueError: If the value is negative or above $FFFF
    """
    if not 0 <= value <= UINT16_MAX:
        raise ValueError(f"{what} {value} does not fit in 16 bits")
    return value


def word_be(hi: int, lo: int) -> int:
    """Build a 16-bit value from a big-endian byte pair."""
    return _pair(hi, lo)


def word_le(lo: int, hi: int) -> int:
    """Build a 16-bit value from a little-endian byte pair."""
    return _pair(hi, lo)


def _pair(hi: int, lo: int) -> int:
    if not (0 <= hi <= 0xFF and 0 <= lo <= 0xFF):
        raise ValueError(f"byte pair ({hi}, {lo}) is not two 8-bit values")
    return (hi << 8) | lo


def split_word(value: int) -> tuple[int, int]:
    """Split a 16-bit value into (high byte, low byte)."""
    check_uint16(value)
    return value >> 8, value & 0xFF


def parse_address(text: str) -> int:
    """
    Parse an address written in decimal, ``0x`` hex or ``$`` hex.

    Args:
        text: The address text, e.g. "15872", "0x3E00" or "$3E00"

    Returns:
        The address as an integer

    Raises:
        ValueError: If the text is not a number or does not fit in 16 bits

    Example:
        >>> parse_address("$3E00")
        15872
    """
    text = text.strip()
    if text.startswith("$"):
        value = int(text[1:], 16)
    elif text.lower().startswith("0x"):
        value = int(text[2:], 16)
    else:
        value = int(text, 10)
    return check_uint16(value, "address")


def check_exec_range(
    start: int,
    exec_address: int,
    end: int,
    filename: Optional[str] = None,
) -> None:
    """
    Check that an exec address lies inside the blob.

    Used both by the layout reconciler and by the decoders of container
    formats that carry their own exec address.

    Args:
        start: First address of the blob
        exec_address: Proposed exec address
        end: Last address of the blob
        filename: Input file the addresses came from, for the message

    Raises:
        AddressError: If exec lies below start or beyond end
    """
    where = f' (input file "{filename}")' if filename else ""

    if exec_address < start:
        raise AddressError(
            f"Exec location below start location{where}: "
            f"exec ${exec_address:04X}, start ${start:04X}"
        )

    if exec_address > end:
        raise AddressError(
            f"Exec location beyond end location{where}: "
            f"exec ${exec_address:04X}, end ${end:04X}"
        )

"""
PETSCII Name Conversion
=======================

Directory names in T64 and PRG containers are stored in PETSCII, the
one-byte-per-character set of the Commodore 64. This module converts
those names to a printable display form and back, using two 256-entry
lookup tables built once at import time.

Only the subset needed for file names is mapped. Graphics characters
and control codes display as "." and cannot be written back.
"""

from typing import Final

# Padding bytes stripped from the end of fixed-width name fields
NAME_PADDING: Final[bytes] = b"\x20\xa0\x00"

UNPRINTABLE: Final[str] = "."
UNENCODABLE: Final[int] = 0x3F  # "?"

_SPECIAL_GLYPHS: Final[dict[int, str]] = {
    0x5C: "£",
    0x5E: "↑",
    0x5F: "←",
    0xA0: " ",  # shifted space
}


def _build_display_table() -> tuple[str, ...]:
    table = [UNPRINTABLE] * 256
    for code in range(0x20, 0x5E):
        table[code] = chr(code)
    for code in range(0xC1, 0xDB):
        table[code] = chr(code - 0x80)
    for code, glyph in _SPECIAL_GLYPHS.items():
        table[code] = glyph
    return tuple(table)


def _build_encode_table() -> dict[str, int]:
    table = {chr(code): code for code in range(0x20, 0x5E)}
    for code in range(0x41, 0x5B):
        table[chr(code).lower()] = code
    for code, glyph in _SPECIAL_GLYPHS.items():
        if glyph != " ":
            table[glyph] = code
    return table


_DISPLAY_TABLE: Final[tuple[str, ...]] = _build_display_table()
_ENCODE_TABLE: Final[dict[str, int]] = _build_encode_table()


def petscii_to_display(raw: bytes) -> str:
    """
    Convert PETSCII bytes to a printable string.

    Args:
        raw: PETSCII encoded bytes

    Returns:
        Display string with one character per input byte

    Example:
        >>> petscii_to_display(b"GIANA\\xa0SISTERS")
        'GIANA SISTERS'
    """
    return "".join(_DISPLAY_TABLE[byte] for byte in raw)


def display_to_petscii(text: str) -> bytes:
    """
    Convert a display string to PETSCII bytes.

    Lowercase letters are folded to the uppercase PETSCII range. Characters
    without a PETSCII equivalent become "?".

    Args:
        text: Display string

    Returns:
        PETSCII encoded bytes, one per input character
    """
    return bytes(_ENCODE_TABLE.get(char, UNENCODABLE) for char in text)


def trim_name(raw: bytes) -> bytes:
    """Strip trailing padding from a fixed-width name field."""
    return raw.rstrip(NAME_PADDING)


def pad_name(raw: bytes, width: int, fill: int = 0x20) -> bytes:
    """Truncate or pad a PETSCII name to a fixed-width field."""
    return raw[:width].ljust(width, bytes([fill]))

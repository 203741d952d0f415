"""
Container Format Detection
==========================

Pure predicates that classify a buffer or a file as a candidate for one
container format without parsing it.

- PRG: any buffer of at least two bytes (room for a load address). The
  check is deliberately permissive: it says the buffer is large enough,
  not that it holds a real program.
- T64: the buffer starts with the "C64" magic and is at least as long as
  the 64-byte tape header. Checks by path additionally require the
  ".t64" suffix (case-insensitive).

Usage Examples
--------------
    >>> from c64arc.archive import detect_format, ArchiveType
    >>> detect_format(bytes([0x01, 0x08]))
    <ArchiveType.PRG: 2>
"""

from pathlib import Path
from typing import Optional, Union
import logging

from c64arc.archive.records import (
    ArchiveType,
    PRG_HEADER_SIZE,
    T64_HEADER_SIZE,
    T64_MAGIC,
)

logger = logging.getLogger(__name__)


def check_file_suffix(filepath: Union[str, Path], suffix: str) -> bool:
    """Compare a path's suffix with `suffix`, ignoring case."""
    return Path(filepath).suffix.lower() == suffix.lower()


def check_file_size(filepath: Union[str, Path], minimum: int) -> bool:
    """Check that a file exists and is at least `minimum` bytes long."""
    try:
        return Path(filepath).stat().st_size >= minimum
    except OSError:
        return False


# =============================================================================
# Buffer Predicates
# =============================================================================

def is_prg(data: bytes) -> bool:
    """Return True iff `data` can hold a PRG load address."""
    return len(data) >= PRG_HEADER_SIZE


def is_t64(data: bytes) -> bool:
    """
    Return True iff `data` carries the T64 magic and a complete header.

    A buffer that starts with the magic bytes but is truncated before the
    end of the tape header is rejected.
    """
    if len(data) < T64_HEADER_SIZE:
        return False
    return bytes(data[:len(T64_MAGIC)]) == T64_MAGIC


def detect_format(data: bytes) -> Optional[ArchiveType]:
    """
    Classify a buffer.

    T64 is tried first because it is the stricter predicate; any other
    buffer of two bytes or more is a PRG candidate.

    Returns:
        The matching ArchiveType, or None if no format matches
    """
    if is_t64(data):
        logger.debug(f"Detected T64 archive ({len(data)} bytes)")
        return ArchiveType.T64
    if is_prg(data):
        logger.debug(f"Detected PRG archive ({len(data)} bytes)")
        return ArchiveType.PRG
    logger.debug(f"No archive format matches {len(data)} bytes")
    return None


# =============================================================================
# Path Predicates
# =============================================================================

def is_prg_file(filepath: Union[str, Path]) -> bool:
    """Return True iff `filepath` names a ".prg" file of at least 2 bytes."""
    if not check_file_suffix(filepath, ArchiveType.PRG.suffix):
        return False
    return check_file_size(filepath, PRG_HEADER_SIZE)


def is_t64_file(filepath: Union[str, Path]) -> bool:
    """
    Return True iff `filepath` names a ".t64" file with a valid tape header.

    Checks the suffix, the file size and the magic bytes.
    """
    if not check_file_suffix(filepath, ArchiveType.T64.suffix):
        return False
    if not check_file_size(filepath, T64_HEADER_SIZE):
        return False
    with open(filepath, "rb") as f:
        return is_t64(f.read(T64_HEADER_SIZE))


def detect_file_format(filepath: Union[str, Path]) -> Optional[ArchiveType]:
    """
    Classify a file by its suffix, size and (for T64) magic bytes.

    Returns:
        The matching ArchiveType, or None if no format matches
    """
    if is_t64_file(filepath):
        return ArchiveType.T64
    if is_prg_file(filepath):
        return ArchiveType.PRG
    return None

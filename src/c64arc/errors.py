"""
c64arc Error Hierarchy
======================

This module defines the exception hierarchy for the c64arc package.
All exceptions inherit from ArchiveError, allowing callers to catch all
archive-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
ArchiveError (base)
├── UnrecognizedFormatError - buffer is not a container of the requested format
├── CorruptHeaderError - format recognized but header is irreparable
├── InvalidDirectoryEntryError - an entry's data range violates buffer bounds
├── EmptySourceError - converter was given an archive without items
├── NoItemSelectedError - cursor query while no item is selected
└── ConversionError - a container could not be synthesized

Design Philosophy
-----------------
Construction-time errors are terminal: factory methods either return a
fully valid archive or raise one of the exceptions above. Repairable
inconsistencies never surface here; they are logged and recorded in a
RepairReport instead.

Cursor misuse (selecting an out-of-range item, reading past the end of
an item) is not an error either. It degrades to the "no item selected"
state and read_next_byte() returns None.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class ArchiveError(Exception):
    """
    Base exception for all c64arc errors.

    All exceptions in the package inherit from this class, allowing callers
    to catch every archive-related error with a single except clause:

        try:
            archive = open_archive_file("games.t64")
        except ArchiveError as e:
            print(f"Error: {e}")

    Attributes:
        message: The error description
        source: File name or format label the error relates to (optional)
    """

    def __init__(self, message: str, source: Optional[str] = None):
        self.message = message
        self.source = source
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Prefix the message with its source when one is known."""
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


# =============================================================================
# Construction Exceptions
# =============================================================================

class UnrecognizedFormatError(ArchiveError):
    """
    The buffer does not carry the requested container format at all.

    Raised when:
    - A T64 buffer is missing the "C64" magic bytes
    - A buffer is shorter than the format's minimum header size
    - A file path carries an unknown suffix
    """
    pass


class CorruptHeaderError(ArchiveError):
    """
    Format recognized, but the header is structurally invalid and cannot
    be repaired.

    Examples:
        - A directory entry points past the end of the file
        - A "read to end of file" repair would exceed the 64K address space
    """
    pass


class InvalidDirectoryEntryError(ArchiveError):
    """
    A directory entry violates the buffer bounds.

    Attributes:
        slot: Index of the offending directory slot (optional)
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        slot: Optional[int] = None,
    ):
        self.slot = slot
        if slot is not None:
            message = f"directory slot {slot}: {message}"
        super().__init__(message, source)


# =============================================================================
# Operational Exceptions
# =============================================================================

class EmptySourceError(ArchiveError):
    """The converter was asked to export from an archive with no items."""
    pass


class NoItemSelectedError(ArchiveError):
    """A query about the selected item was made while no item is selected."""
    pass


class ConversionError(ArchiveError):
    """
    A new container could not be synthesized from the source archive.

    Raised when the drained byte count disagrees with the size reported by
    the source, or when an item cannot be represented in the target layout
    (load address 0, data beyond the 64K address space).
    """
    pass

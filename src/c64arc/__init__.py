"""
c64arc - Commodore 64 Program Container Toolkit
===============================================

This package reads, validates, repairs and converts the container formats
used to store Commodore 64 program images: T64 tape archives and raw PRG
program dumps.

The core turns an untrusted byte buffer into a validated archive that can
be enumerated, have items selected, and be read byte by byte, ready to be
copied into an emulator's memory at each item's load address.

Main Components
---------------
- **archive**: T64/PRG detection, repair, readers and converters
- **petscii**: PETSCII <-> display name conversion
- **config**: reader and writer settings
- **cli**: the `c64arc` command-line tool

Quick Start
-----------
Read an archive:
    >>> from c64arc import open_archive_file
    >>> archive = open_archive_file("games.t64")
    >>> archive.number_of_items()
    3

Convert its first program to a PRG file:
    >>> from c64arc import export_prg
    >>> Path("game.prg").write_bytes(export_prg(archive))

Or use the command-line tool:
    $ c64arc list games.t64
    $ c64arc convert games.t64 -o game.prg

Reference Documentation
-----------------------
- T64 format: https://vice-emu.sourceforge.io/vice_17.html#SEC332
- PRG format: https://vice-emu.sourceforge.io/vice_17.html#SEC331
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from c64arc.config import ArchiveConfig
from c64arc.errors import (
    ArchiveError,
    UnrecognizedFormatError,
    CorruptHeaderError,
    InvalidDirectoryEntryError,
    EmptySourceError,
    NoItemSelectedError,
    ConversionError,
)
from c64arc.archive import (
    AnyArchive,
    ArchiveType,
    DirectoryEntry,
    ItemKind,
    T64Archive,
    PRGArchive,
    T64Builder,
    RepairReport,
    detect_format,
    detect_file_format,
    open_archive,
    open_archive_file,
    repair_t64,
    export_prg,
    export_t64,
    convert,
)
from c64arc.petscii import petscii_to_display, display_to_petscii

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "ArchiveConfig",
    # Exception hierarchy
    "ArchiveError",
    "UnrecognizedFormatError",
    "CorruptHeaderError",
    "InvalidDirectoryEntryError",
    "EmptySourceError",
    "NoItemSelectedError",
    "ConversionError",
    # Archives
    "AnyArchive",
    "ArchiveType",
    "DirectoryEntry",
    "ItemKind",
    "T64Archive",
    "PRGArchive",
    "T64Builder",
    "RepairReport",
    "detect_format",
    "detect_file_format",
    "open_archive",
    "open_archive_file",
    "repair_t64",
    "export_prg",
    "export_t64",
    "convert",
    # Names
    "petscii_to_display",
    "display_to_petscii",
]

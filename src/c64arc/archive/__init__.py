"""
Commodore 64 Program Containers
===============================

This package reads, validates, repairs and converts the two container
formats used to distribute C64 program images:

- **T64**: tape archive with a directory of named items, each with a
  load address and a data range
- **PRG**: raw program dump, a two-byte load address followed by the
  payload

This package provides:
- **Format detection**: classify a buffer or a file path
- **Consistency repair**: fix zero item counts and CONVC64 end addresses
- **Archive readers**: T64Archive and PRGArchive with a byte cursor
- **Converters**: PRG and T64 export from any archive

Quick Start
-----------
Listing a tape archive:

    >>> from c64arc.archive import open_archive_file
    >>> archive = open_archive_file("games.t64")
    >>> for i in range(archive.number_of_items()):
    ...     print(archive.name_of_item(i), archive.size_of_item(i))

Reading an item byte by byte:

    >>> archive.select_item(0)
    >>> while (byte := archive.read_next_byte()) is not None:
    ...     memory[address] = byte

Extracting the first program:

    >>> from c64arc.archive import export_prg
    >>> Path("first.prg").write_bytes(export_prg(archive))
"""

# =============================================================================
# Public API Exports
# =============================================================================

# Record type definitions and enums
from c64arc.archive.records import (
    ArchiveType,
    EntryType,
    FileType,
    ItemKind,
    T64Header,
    T64Slot,
    DirectoryEntry,
    CONVC64_END_SENTINEL,
    T64_HEADER_SIZE,
    T64_MAGIC,
    PRG_HEADER_SIZE,
)

# Detection predicates
from c64arc.archive.detect import (
    is_prg,
    is_t64,
    is_prg_file,
    is_t64_file,
    detect_format,
    detect_file_format,
)

# Consistency repair
from c64arc.archive.repair import (
    RepairReport,
    EndAddressFix,
    repair_t64,
    count_present_slots,
    directory_item_is_present,
)

# Capability interface and readers
from c64arc.archive.base import AnyArchive
from c64arc.archive.parser import (
    T64Archive,
    PRGArchive,
    parse_t64_directory,
    parse_prg_directory,
    open_archive,
    open_archive_file,
)

# Builders and converters
from c64arc.archive.builder import (
    T64Builder,
    build_prg,
    drain_item,
    export_prg,
    export_t64,
    make_prg_archive,
    make_t64_archive,
    convert,
)

# =============================================================================
# Module-level __all__ for explicit exports
# =============================================================================

__all__ = [
    # Records
    "ArchiveType",
    "EntryType",
    "FileType",
    "ItemKind",
    "T64Header",
    "T64Slot",
    "DirectoryEntry",
    "CONVC64_END_SENTINEL",
    "T64_HEADER_SIZE",
    "T64_MAGIC",
    "PRG_HEADER_SIZE",
    # Detection
    "is_prg",
    "is_t64",
    "is_prg_file",
    "is_t64_file",
    "detect_format",
    "detect_file_format",
    # Repair
    "RepairReport",
    "EndAddressFix",
    "repair_t64",
    "count_present_slots",
    "directory_item_is_present",
    # Readers
    "AnyArchive",
    "T64Archive",
    "PRGArchive",
    "parse_t64_directory",
    "parse_prg_directory",
    "open_archive",
    "open_archive_file",
    # Builders
    "T64Builder",
    "build_prg",
    "drain_item",
    "export_prg",
    "export_t64",
    "make_prg_archive",
    "make_t64_archive",
    "convert",
]

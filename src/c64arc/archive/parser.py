"""
T64 and PRG Archive Readers
===========================

This module turns an untrusted byte buffer into a validated archive.

Reading a T64 archive runs three steps:
1. Detection: magic bytes and minimum length (detect.py)
2. Consistency repair: zero item count, CONVC64 end address (repair.py)
3. Directory parsing: one DirectoryEntry per present slot

Reading a PRG archive synthesizes a single entry from the load address
in the first two bytes.

Every factory either returns a fully valid archive or raises an
ArchiveError subclass; no partially constructed archive escapes.

Usage Examples
--------------
Reading a tape archive:
    >>> from c64arc.archive import T64Archive
    >>> archive = T64Archive.from_file("games.t64")
    >>> for i in range(archive.number_of_items()):
    ...     print(archive.name_of_item(i), hex(archive.destination_address_of_item(i)))

Letting the format be detected:
    >>> from c64arc.archive import open_archive
    >>> archive = open_archive(bytes([0x01, 0x08]))
    >>> archive.type_as_string()
    'PRG'
"""

from pathlib import Path
from typing import Optional, Union
import logging

from c64arc.config import ArchiveConfig
from c64arc.errors import (
    ArchiveError,
    InvalidDirectoryEntryError,
    UnrecognizedFormatError,
)
from c64arc.archive.base import AnyArchive
from c64arc.archive.detect import detect_file_format, detect_format, is_prg, is_t64
from c64arc.archive.records import (
    ArchiveType,
    DirectoryEntry,
    EntryType,
    FileType,
    ItemKind,
    PRG_HEADER_SIZE,
    T64_HEADER_SIZE,
    T64Header,
    T64Slot,
    lo_hi,
)
from c64arc.archive.repair import RepairReport, directory_capacity, repair_t64
from c64arc.petscii import display_to_petscii

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Directory Parsing
# =============================================================================

def parse_t64_directory(data: bytes, source: Optional[str] = None) -> list[DirectoryEntry]:
    """
    Extract the ordered directory entries of a (repaired) T64 buffer.

    Slots are scanned in order; slots with a zero start address are
    skipped until the declared number of items has been collected.

    Args:
        data: T64 bytes with a valid header
        source: Name used in error messages (optional)

    Returns:
        List of DirectoryEntry, one per item

    Raises:
        InvalidDirectoryEntryError: If a slot or its data lies outside the
            buffer, or fewer items are present than declared
    """
    header = T64Header.from_bytes(data)
    item_count = header.used_entries
    capacity = directory_capacity(data)
    entries: list[DirectoryEntry] = []

    for slot in range(capacity):
        if len(entries) == item_count:
            break

        record = T64Slot.from_bytes(data, slot)
        if not record.is_present:
            continue

        entry = record.to_entry()
        if not entry.fits_in(len(data)):
            raise InvalidDirectoryEntryError(
                f"data ${entry.data_start:X}-${entry.data_end:X} lies outside "
                f"the file ({len(data)} bytes)",
                source,
                slot=record.index,
            )

        logger.debug(
            f"Parsed item '{entry.get_display_name()}' ({entry.kind.value}) "
            f"${entry.load_address:04X}-${entry.end_address:04X}, {entry.size} bytes"
        )
        entries.append(entry)

    if len(entries) < item_count:
        raise InvalidDirectoryEntryError(
            f"directory declares {item_count} items but only "
            f"{len(entries)} slots in the file are in use",
            source,
        )

    return entries


def parse_prg_directory(data: bytes, name: str = "") -> list[DirectoryEntry]:
    """
    Synthesize the single directory entry of a PRG buffer.

    Args:
        data: PRG bytes (at least 2)
        name: Display name of the program

    Returns:
        A one-element list
    """
    return [
        DirectoryEntry(
            raw_name=display_to_petscii(name),
            kind=ItemKind.PRG,
            load_address=lo_hi(data[0], data[1]),
            data_start=PRG_HEADER_SIZE,
            data_end=len(data),
            slot=0,
            entry_type=EntryType.NORMAL,
            file_type=FileType.PRG,
        )
    ]


# =============================================================================
# T64 Archive
# =============================================================================

class T64Archive(AnyArchive):
    """
    A T64 tape archive.

    Construct instances with from_bytes() or from_file(); both validate and
    repair the buffer before parsing the directory.

    Attributes:
        header: The (repaired) tape header
        repair_report: Repairs applied while reading
    """

    ARCHIVE_TYPE = ArchiveType.T64

    def __init__(
        self,
        data: bytes,
        items: list[DirectoryEntry],
        header: T64Header,
        repair_report: Optional[RepairReport] = None,
    ):
        super().__init__(data, items, name=header.get_display_name())
        self.header = header
        self.repair_report = repair_report or RepairReport()

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        source: Optional[str] = None,
        config: Optional[ArchiveConfig] = None,
    ) -> "T64Archive":
        """
        Read a T64 archive from raw bytes.

        Args:
            data: The raw T64 bytes (not modified)
            source: Name used in log and error messages (optional)
            config: Reader settings (default: ArchiveConfig())

        Returns:
            A validated T64Archive with no item selected

        Raises:
            UnrecognizedFormatError: If the magic or header is missing
            CorruptHeaderError: If the header cannot be repaired
            InvalidDirectoryEntryError: If an entry violates buffer bounds
        """
        config = config or ArchiveConfig()

        if not is_t64(data):
            raise UnrecognizedFormatError(
                f"not a T64 archive (need \"C64\" magic and {T64_HEADER_SIZE} "
                f"header bytes, got {len(data)} bytes)",
                source,
            )

        try:
            if config.repair:
                data, report = repair_t64(data, source)
            else:
                data, report = bytes(data), RepairReport()

            header = T64Header.from_bytes(data)
            items = parse_t64_directory(data, source)
        except ArchiveError as e:
            logger.error(f"Failed to read T64 archive: {e}")
            raise

        archive = cls(data, items, header, report)
        logger.debug(
            f"Read T64 archive '{archive.name}' with {len(items)} items "
            f"({len(data)} bytes)"
        )
        return archive

    @classmethod
    def from_file(
        cls,
        filepath: Union[str, Path],
        config: Optional[ArchiveConfig] = None,
    ) -> "T64Archive":
        """
        Read a T64 archive from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist
            UnrecognizedFormatError: If the file is not a T64 archive
        """
        filepath = Path(filepath)
        data = filepath.read_bytes()
        return cls.from_bytes(data, source=filepath.name, config=config)

    def get_display_description(self) -> str:
        """Tape description from the header, in display form."""
        return self.header.get_display_description()


# =============================================================================
# PRG Archive
# =============================================================================

class PRGArchive(AnyArchive):
    """
    A raw program dump: a load address followed by the payload.

    PRG archives always contain exactly one item. Its name is the archive
    name, which is the file stem when read with from_file().
    """

    ARCHIVE_TYPE = ArchiveType.PRG

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        name: str = "",
        source: Optional[str] = None,
    ) -> "PRGArchive":
        """
        Read a PRG archive from raw bytes.

        Args:
            data: The raw PRG bytes
            name: Program name (display form)
            source: Name used in error messages (optional)

        Raises:
            UnrecognizedFormatError: If the buffer is shorter than 2 bytes
        """
        if not is_prg(data):
            raise UnrecognizedFormatError(
                f"not a PRG file (need {PRG_HEADER_SIZE} bytes, got {len(data)})",
                source,
            )

        items = parse_prg_directory(data, name)
        logger.debug(
            f"Read PRG archive '{name}' loading at ${items[0].load_address:04X}, "
            f"{items[0].size} bytes"
        )
        return cls(data, items, name=name)

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> "PRGArchive":
        """Read a PRG file from disk, naming it after the file stem."""
        filepath = Path(filepath)
        data = filepath.read_bytes()
        return cls.from_bytes(data, name=filepath.stem.upper(), source=filepath.name)


# =============================================================================
# Factories
# =============================================================================

def open_archive(
    data: bytes,
    archive_type: Optional[ArchiveType] = None,
    name: str = "",
    source: Optional[str] = None,
    config: Optional[ArchiveConfig] = None,
) -> AnyArchive:
    """
    Read an archive of any supported format from raw bytes.

    Args:
        data: The raw container bytes
        archive_type: Format tag; detected from the buffer if omitted
        name: Archive name for formats without an embedded name (PRG)
        source: Name used in error messages (optional)
        config: Reader settings (default: ArchiveConfig())

    Returns:
        A T64Archive or PRGArchive

    Raises:
        UnrecognizedFormatError: If no format matches
        CorruptHeaderError: If a T64 header cannot be repaired
        InvalidDirectoryEntryError: If an entry violates buffer bounds
    """
    if archive_type is None:
        archive_type = detect_format(data)
        if archive_type is None:
            raise UnrecognizedFormatError(
                f"unrecognized archive format ({len(data)} bytes)", source
            )

    if archive_type == ArchiveType.T64:
        return T64Archive.from_bytes(data, source=source, config=config)
    return PRGArchive.from_bytes(data, name=name, source=source)


def open_archive_file(
    filepath: Union[str, Path],
    config: Optional[ArchiveConfig] = None,
) -> AnyArchive:
    """
    Read an archive from disk, choosing the format by suffix and contents.

    Raises:
        FileNotFoundError: If the file doesn't exist
        UnrecognizedFormatError: If the file is neither a T64 nor a PRG file
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"No such file: {filepath}")

    archive_type = detect_file_format(filepath)
    if archive_type is None:
        raise UnrecognizedFormatError(
            "expected a .t64 or .prg file of sufficient size", filepath.name
        )

    if archive_type == ArchiveType.T64:
        return T64Archive.from_file(filepath, config=config)
    return PRGArchive.from_file(filepath)

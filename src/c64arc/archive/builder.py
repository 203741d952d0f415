"""
Container Builders and Format Conversion
=======================================

This module synthesizes new T64 and PRG containers. The converters only
use the AnyArchive capability interface, so any archive format can be
the source:

    number_of_items(), select_item(), size_of_selected_item(),
    destination_address_of_item(), name_of_item(), read_next_byte()

PRG export reduces the source to its FIRST item. T64 export copies every
item of the source into a fresh tape archive.

Usage
-----
Converting a tape archive's first program to a PRG file:

    >>> from c64arc.archive import T64Archive, export_prg
    >>> archive = T64Archive.from_file("games.t64")
    >>> Path("first.prg").write_bytes(export_prg(archive))

Building a tape archive from scratch:

    >>> builder = T64Builder(tape_name="DEMOS")
    >>> builder.add_item("INTRO", 0x0801, payload)
    >>> t64_data = builder.build()
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import logging
import struct

from c64arc.config import ArchiveConfig
from c64arc.errors import ConversionError, EmptySourceError
from c64arc.archive.base import AnyArchive
from c64arc.archive.parser import PRGArchive, T64Archive
from c64arc.archive.records import (
    ADDRESS_SPACE,
    ArchiveType,
    CONVC64_END_SENTINEL,
    EntryType,
    FileType,
    PRG_HEADER_SIZE,
    T64_HEADER_SIZE,
    T64_NAME_SIZE,
    T64_SLOT_SIZE,
    T64_TAPE_NAME_SIZE,
    T64Header,
    T64Slot,
)
from c64arc.petscii import display_to_petscii

# Logger for this module
logger = logging.getLogger(__name__)

# Item exported by the PRG converter
EXPORT_ITEM = 0


# =============================================================================
# Source Draining
# =============================================================================

def drain_item(source: AnyArchive, n: int) -> bytes:
    """
    Copy item n of `source` through its cursor.

    The buffer is sized from size_of_selected_item() before reading and
    the number of bytes drained must match it exactly.

    Raises:
        ConversionError: If the source yields more or fewer bytes than
            it reports
    """
    source.select_item(n)
    size = source.size_of_selected_item()
    payload = bytearray(size)

    source.select_item(n)
    written = 0
    while (byte := source.read_next_byte()) is not None:
        if written >= size:
            raise ConversionError(
                f"item {n} yields more than the {size} bytes it reports",
                source.type_as_string(),
            )
        payload[written] = byte
        written += 1

    if written != size:
        raise ConversionError(
            f"item {n} yields {written} bytes but reports {size}",
            source.type_as_string(),
        )
    return bytes(payload)


# =============================================================================
# PRG Export
# =============================================================================

def build_prg(load_address: int, payload: bytes) -> bytes:
    """
    Serialize a raw program dump.

    Args:
        load_address: 16-bit destination address
        payload: Program bytes

    Returns:
        Load address (little-endian) followed by the payload
    """
    if not 0 <= load_address < ADDRESS_SPACE:
        raise ConversionError(f"load address ${load_address:X} is not a 16-bit value")
    return struct.pack("<H", load_address) + bytes(payload)


def export_prg(source: AnyArchive) -> bytes:
    """
    Build PRG bytes from the first item of any archive.

    Multi-item archives are reduced to their first entry.

    Args:
        source: Archive to export from (its cursor is moved)

    Returns:
        Complete PRG file as bytes

    Raises:
        EmptySourceError: If the source has no items
        ConversionError: If the source's cursor disagrees with its size
    """
    if source.number_of_items() <= EXPORT_ITEM:
        raise EmptySourceError(
            "cannot create a PRG file from an archive without items",
            source.type_as_string(),
        )

    logger.debug(f"Creating PRG archive from {source.type_as_string()} archive...")

    source.select_item(EXPORT_ITEM)
    size = PRG_HEADER_SIZE + source.size_of_selected_item()
    load_address = source.destination_address_of_item(EXPORT_ITEM)

    result = build_prg(load_address, drain_item(source, EXPORT_ITEM))
    if len(result) != size:
        raise ConversionError(
            f"built {len(result)} bytes, expected {size}",
            source.type_as_string(),
        )

    logger.info(f"Built PRG file: ${load_address:04X}, {size - PRG_HEADER_SIZE} bytes")
    return result


def make_prg_archive(source: AnyArchive) -> PRGArchive:
    """
    Convert the first item of any archive to a PRGArchive.

    The new archive is named after the exported item.
    """
    data = export_prg(source)
    return PRGArchive.from_bytes(data, name=source.name_of_item(EXPORT_ITEM))


# =============================================================================
# T64 Builder
# =============================================================================

@dataclass
class T64Item:
    """An item queued for a T64 container."""
    raw_name: bytes
    load_address: int
    payload: bytes
    file_type: int = FileType.PRG

    @property
    def end_address(self) -> int:
        """Address one past the last loaded byte."""
        return self.load_address + len(self.payload)

    @property
    def reads_to_end(self) -> bool:
        """True if the stored end address equals the CONVC64 sentinel."""
        return self.end_address == CONVC64_END_SENTINEL


@dataclass
class T64Builder:
    """
    Builds T64 tape archives.

    Attributes:
        tape_name: Tape name in display form (max 24 characters)
        config: Writer settings (description, version, minimum slots)

    Example:
        >>> builder = T64Builder(tape_name="GAMES")
        >>> builder.add_item("PACMAN", 0x0801, payload)
        >>> data = builder.build()
    """
    tape_name: str = ""

    config: ArchiveConfig = field(default_factory=ArchiveConfig)

    # Internal list of items to include
    _items: list[T64Item] = field(default_factory=list, repr=False)

    # =========================================================================
    # Adding Items
    # =========================================================================

    def add_item(
        self,
        name: str,
        load_address: int,
        payload: bytes,
        file_type: int = FileType.PRG,
    ) -> "T64Builder":
        """
        Add an item to the archive.

        Args:
            name: Item name in display form (max 16 characters)
            load_address: 16-bit destination address (non-zero)
            payload: Item bytes
            file_type: 1541 file type byte (default: PRG)

        Returns:
            Self for method chaining

        Raises:
            ConversionError: If the item cannot be stored in a T64 directory
        """
        if load_address == 0:
            # A zero start address marks a free directory slot
            raise ConversionError(
                f"item '{name}' loads at $0000, which T64 cannot represent"
            )
        if not 0 < load_address < ADDRESS_SPACE:
            raise ConversionError(f"item '{name}': load address ${load_address:X} is not 16-bit")
        if load_address + len(payload) > ADDRESS_SPACE:
            raise ConversionError(
                f"item '{name}' ({len(payload)} bytes at ${load_address:04X}) "
                f"extends past $FFFF"
            )

        raw_name = display_to_petscii(name)[:T64_NAME_SIZE]
        item = T64Item(raw_name, load_address, bytes(payload), file_type)
        if item.reads_to_end and any(other.reads_to_end for other in self._items):
            # Readers extend such items to EOF, so only one can be stored last
            raise ConversionError(
                f"item '{name}' ends at ${CONVC64_END_SENTINEL:04X} and another "
                f"item already does"
            )
        self._items.append(item)
        logger.debug(f"Added item '{name}' (${load_address:04X}, {len(payload)} bytes)")
        return self

    def add_archive_item(self, source: AnyArchive, n: int) -> "T64Builder":
        """
        Add item n of any archive, drained through its cursor.

        Returns:
            Self for method chaining
        """
        return self.add_item(
            source.name_of_item(n),
            source.destination_address_of_item(n),
            drain_item(source, n),
        )

    def clear(self) -> "T64Builder":
        """Remove all queued items."""
        self._items.clear()
        return self

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_item_count(self) -> int:
        """Get the number of items added."""
        return len(self._items)

    def get_slot_count(self) -> int:
        """Number of directory slots the built archive will reserve."""
        return max(len(self._items), self.config.t64_min_slots)

    def get_size(self) -> int:
        """Total size of the built archive in bytes."""
        return (
            T64_HEADER_SIZE
            + self.get_slot_count() * T64_SLOT_SIZE
            + sum(len(item.payload) for item in self._items)
        )

    # =========================================================================
    # Building
    # =========================================================================

    def build(self) -> bytes:
        """
        Serialize the tape header, directory and data region.

        Returns:
            Complete T64 file as bytes
        """
        slot_count = self.get_slot_count()
        header = T64Header(
            description=self.config.t64_description,
            version=self.config.t64_version,
            max_entries=slot_count,
            used_entries=len(self._items),
            tape_name=display_to_petscii(self.tape_name)[:T64_TAPE_NAME_SIZE],
        )

        # An item ending at the CONVC64 sentinel is read up to EOF, so its
        # payload goes last in the data region
        layout = sorted(self._items, key=lambda item: item.reads_to_end)
        offsets = {}
        position = T64_HEADER_SIZE + slot_count * T64_SLOT_SIZE
        for item in layout:
            offsets[id(item)] = position
            position += len(item.payload)

        directory = bytearray()
        for index, item in enumerate(self._items):
            slot = T64Slot(
                index=index,
                entry_type=EntryType.NORMAL,
                file_type=item.file_type,
                start_address=item.load_address,
                end_address=item.end_address,
                data_offset=offsets[id(item)],
                raw_name=item.raw_name,
            )
            directory.extend(slot.to_bytes())

        # Reserved slots stay zeroed
        directory.extend(bytes((slot_count - len(self._items)) * T64_SLOT_SIZE))

        data = b"".join(item.payload for item in layout)
        result = header.to_bytes() + bytes(directory) + data
        if len(result) != self.get_size():
            raise ConversionError(
                f"built {len(result)} bytes, expected {self.get_size()}", "T64"
            )

        logger.info(
            f"Built T64 archive '{self.tape_name}': {len(self._items)} items, "
            f"{len(result)} bytes"
        )
        return result

    def build_to_file(self, filepath: Union[str, Path]) -> int:
        """
        Build and write the T64 file to disk.

        Returns:
            Number of bytes written
        """
        data = self.build()
        Path(filepath).write_bytes(data)
        return len(data)


def export_t64(source: AnyArchive, config: Optional[ArchiveConfig] = None) -> bytes:
    """
    Build T64 bytes holding every item of any archive.

    Raises:
        EmptySourceError: If the source has no items
        ConversionError: If an item cannot be stored in a T64 directory
    """
    if source.number_of_items() == 0:
        raise EmptySourceError(
            "cannot create a T64 archive from an archive without items",
            source.type_as_string(),
        )

    logger.debug(f"Creating T64 archive from {source.type_as_string()} archive...")

    builder = T64Builder(tape_name=source.get_name(), config=config or ArchiveConfig())
    for n in range(source.number_of_items()):
        builder.add_archive_item(source, n)
    return builder.build()


def make_t64_archive(
    source: AnyArchive,
    config: Optional[ArchiveConfig] = None,
) -> T64Archive:
    """Convert every item of any archive to a T64Archive."""
    return T64Archive.from_bytes(export_t64(source, config), config=config)


# =============================================================================
# Dispatch
# =============================================================================

def convert(
    source: AnyArchive,
    target: ArchiveType,
    config: Optional[ArchiveConfig] = None,
) -> AnyArchive:
    """
    Convert any archive to the container format `target`.

    Args:
        source: Archive to read from (its cursor is moved)
        target: Format tag of the new container
        config: Writer settings (default: ArchiveConfig())

    Returns:
        A new PRGArchive or T64Archive

    Raises:
        EmptySourceError: If the source has no items
        ConversionError: If the target cannot represent the source
    """
    if target == ArchiveType.PRG:
        return make_prg_archive(source)
    if target == ArchiveType.T64:
        return make_t64_archive(source, config)
    raise ConversionError(f"unsupported target format: {target!r}")

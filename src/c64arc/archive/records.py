"""
Archive Record Definitions
==========================

This module defines the data structures shared by the T64 and PRG
container readers and writers.

T64 Structure Overview
----------------------
A T64 tape archive contains:
1. Tape Header (64 bytes): description, version, slot counts, tape name
2. Directory (32 bytes per slot): one record per potential item
3. Data Region: concatenated payloads referenced by directory offsets

Tape Header
-----------
    Offset  Size    Description
    ------  ----    -----------
    0x00    32      Tape description ("C64S tape image file", padded)
    0x20    2       Version (0x0100 or 0x0101)
    0x22    2       Maximum directory entries
    0x24    2       Used directory entries (may be 0, see repair.py)
    0x26    2       Unused
    0x28    24      Tape name, padded with spaces

Directory Record
----------------
    Offset  Size    Description
    ------  ----    -----------
    +0      1       C64S entry type (0 = free, 1 = file, 3 = snapshot)
    +1      1       1541 file type (0x82 = PRG)
    +2      2       Start (load) address
    +4      2       End address
    +6      2       Unused
    +8      4       Offset of the item's data in the file
    +12     4       Unused
    +16     16      File name, padded with 0x20

PRG Structure
-------------
    Offset  Size    Description
    ------  ----    -----------
    0       2       Load address
    2       n       Payload

All multi-byte fields are little-endian.

Reference
---------
- T64 format: https://vice-emu.sourceforge.io/vice_17.html#SEC332
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
import struct

from c64arc.petscii import pad_name, petscii_to_display, trim_name


# =============================================================================
# Layout Constants
# =============================================================================

T64_MAGIC = b"C64"
T64_HEADER_SIZE = 0x40
T64_DESCRIPTION_SIZE = 32
T64_TAPE_NAME_SIZE = 24
T64_SLOT_SIZE = 0x20
T64_NAME_SIZE = 16

# Field offsets within the tape header
T64_VERSION_OFFSET = 0x20
T64_MAX_ENTRIES_OFFSET = 0x22
T64_USED_ENTRIES_OFFSET = 0x24

# Field offsets within a directory record
SLOT_ENTRY_TYPE = 0
SLOT_FILE_TYPE = 1
SLOT_START_ADDRESS = 2
SLOT_END_ADDRESS = 4
SLOT_DATA_OFFSET = 8
SLOT_NAME = 16

# End address written by CONVC64 regardless of the real item size
CONVC64_END_SENTINEL = 0xC3C6

PRG_HEADER_SIZE = 2

ADDRESS_SPACE = 0x10000

_HEADER_FORMAT = "<32sHHHH24s"
_SLOT_FORMAT = "<BBHHHII16s"


def lo_hi(lo: int, hi: int) -> int:
    """Combine two bytes into a 16-bit little-endian value."""
    return (hi << 8) | lo


def slot_offset(slot: int) -> int:
    """Absolute offset of directory slot `slot` in a T64 buffer."""
    return T64_HEADER_SIZE + slot * T64_SLOT_SIZE


def read_u16(data: bytes, offset: int) -> int:
    """Read a little-endian 16-bit word."""
    return lo_hi(data[offset], data[offset + 1])


def write_u16(data: bytearray, offset: int, value: int) -> None:
    """Write a little-endian 16-bit word in place."""
    struct.pack_into("<H", data, offset, value & 0xFFFF)


# =============================================================================
# Enumeration Types
# =============================================================================

class ArchiveType(IntEnum):
    """
    Container format tag.

    Each concrete archive class carries exactly one tag; dispatching on the
    tag replaces any inspection of the archive's Python type.
    """
    T64 = 1
    PRG = 2

    @property
    def label(self) -> str:
        """Short name used by type_as_string() ("T64", "PRG")."""
        return self.name

    @property
    def suffix(self) -> str:
        """Canonical file suffix for this format."""
        return f".{self.name.lower()}"

    def get_description(self) -> str:
        """Get a human-readable description of the format."""
        descriptions = {
            ArchiveType.T64: "T64 tape archive",
            ArchiveType.PRG: "PRG program dump",
        }
        return descriptions[self]

    @classmethod
    def from_name(cls, name: str) -> "ArchiveType":
        """Look up a format by its label, case-insensitively."""
        try:
            return cls[name.strip().lstrip(".").upper()]
        except KeyError:
            raise ValueError(f"Unknown archive type: {name!r}") from None


class EntryType(IntEnum):
    """C64S entry type byte (offset +0 of a T64 directory record)."""
    FREE = 0x00
    NORMAL = 0x01
    SNAPSHOT = 0x03


class FileType(IntEnum):
    """1541 file type byte (offset +1 of a T64 directory record)."""
    DEL = 0x80
    SEQ = 0x81
    PRG = 0x82
    USR = 0x83
    REL = 0x84


class ItemKind(str, Enum):
    """Display kind of a directory item, as returned by type_of_item()."""
    PRG = "PRG"
    FRZ = "FRZ"
    UNKNOWN = "???"

    @classmethod
    def from_type_bytes(cls, entry_type: int, file_type: int) -> "ItemKind":
        """
        Classify a T64 directory record.

        A non-zero 1541 type marks a regular program file; a zero 1541 type
        with a non-zero C64S type marks a frozen memory snapshot.
        """
        if file_type != 0:
            return cls.PRG
        if entry_type > 0:
            return cls.FRZ
        return cls.UNKNOWN


# =============================================================================
# T64 Tape Header
# =============================================================================

@dataclass
class T64Header:
    """
    T64 tape header information (first 64 bytes of the container).

    Attributes:
        description: Raw 32-byte tape description (starts with "C64")
        version: Version word, not otherwise interpreted
        max_entries: Number of directory slots reserved
        used_entries: Number of items stored (may read 0 in damaged files)
        tape_name: Raw tape name with padding trimmed
    """
    description: bytes = b"C64S tape image file"
    version: int = 0x0100
    max_entries: int = 0
    used_entries: int = 0
    tape_name: bytes = b""

    def to_bytes(self) -> bytes:
        """Serialize the header to 64 bytes."""
        return struct.pack(
            _HEADER_FORMAT,
            self.description[:T64_DESCRIPTION_SIZE].ljust(T64_DESCRIPTION_SIZE, b"\x00"),
            self.version,
            self.max_entries,
            self.used_entries,
            0,
            pad_name(self.tape_name, T64_TAPE_NAME_SIZE),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "T64Header":
        """Deserialize a tape header from the first 64 bytes of `data`."""
        if len(data) < T64_HEADER_SIZE:
            raise ValueError(
                f"Header too short: need {T64_HEADER_SIZE} bytes, got {len(data)}"
            )

        description, version, max_entries, used_entries, _, tape_name = struct.unpack(
            _HEADER_FORMAT, bytes(data[:T64_HEADER_SIZE])
        )
        return cls(
            description=description,
            version=version,
            max_entries=max_entries,
            used_entries=used_entries,
            tape_name=trim_name(tape_name),
        )

    def get_display_name(self) -> str:
        """Tape name in display form."""
        return petscii_to_display(self.tape_name)

    def get_display_description(self) -> str:
        """Tape description (plain ASCII), without NUL padding."""
        return self.description.rstrip(b"\x00").decode("ascii", errors="replace")


# =============================================================================
# Directory Entry
# =============================================================================

@dataclass(frozen=True)
class DirectoryEntry:
    """
    One item of an archive.

    Attributes:
        raw_name: PETSCII name with padding trimmed
        kind: Display kind (PRG, FRZ, ???)
        load_address: 16-bit destination address of the payload
        data_start: Absolute offset of the first payload byte
        data_end: Absolute offset one past the last payload byte (exclusive)
        slot: Directory slot the entry was read from (0 for PRG)
        entry_type: C64S entry type byte
        file_type: 1541 file type byte
    """
    raw_name: bytes
    kind: ItemKind
    load_address: int
    data_start: int
    data_end: int
    slot: int = 0
    entry_type: int = EntryType.NORMAL
    file_type: int = FileType.PRG

    @property
    def size(self) -> int:
        """Number of payload bytes."""
        return self.data_end - self.data_start

    @property
    def end_address(self) -> int:
        """Address one past the last loaded byte."""
        return self.load_address + self.size

    def get_display_name(self) -> str:
        """Name in display form."""
        return petscii_to_display(self.raw_name)

    def fits_in(self, length: int) -> bool:
        """Check the data_start <= data_end <= length invariant."""
        return 0 <= self.data_start <= self.data_end <= length


@dataclass(frozen=True)
class T64Slot:
    """
    A raw T64 directory record, decoded field by field.

    Used by the repair and parsing passes before the record is turned into
    a DirectoryEntry.
    """
    index: int
    entry_type: int
    file_type: int
    start_address: int
    end_address: int
    data_offset: int
    raw_name: bytes

    @property
    def is_present(self) -> bool:
        """A slot holds an item iff its start address is non-zero."""
        return self.start_address != 0

    @property
    def size(self) -> int:
        """Payload size, with the end address taken modulo 64K."""
        return (self.end_address - self.start_address) % ADDRESS_SPACE

    def to_bytes(self) -> bytes:
        """Serialize the record to 32 bytes."""
        return struct.pack(
            _SLOT_FORMAT,
            self.entry_type,
            self.file_type,
            self.start_address,
            self.end_address % ADDRESS_SPACE,
            0,
            self.data_offset,
            0,
            pad_name(self.raw_name, T64_NAME_SIZE),
        )

    @classmethod
    def from_bytes(cls, data: bytes, index: int) -> "T64Slot":
        """Decode slot `index` from a T64 buffer."""
        offset = slot_offset(index)
        (
            entry_type,
            file_type,
            start_address,
            end_address,
            _,
            data_offset,
            _,
            raw_name,
        ) = struct.unpack_from(_SLOT_FORMAT, data, offset)
        return cls(
            index=index,
            entry_type=entry_type,
            file_type=file_type,
            start_address=start_address,
            end_address=end_address,
            data_offset=data_offset,
            raw_name=trim_name(raw_name),
        )

    def to_entry(self) -> DirectoryEntry:
        """Convert the decoded record to a DirectoryEntry."""
        return DirectoryEntry(
            raw_name=self.raw_name,
            kind=ItemKind.from_type_bytes(self.entry_type, self.file_type),
            load_address=self.start_address,
            data_start=self.data_offset,
            data_end=self.data_offset + self.size,
            slot=self.index,
            entry_type=self.entry_type,
            file_type=self.file_type,
        )

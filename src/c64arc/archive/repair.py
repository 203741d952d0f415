"""
T64 Consistency Repair
======================

Many T64 archives found in the wild carry one of two known header
defects. This module detects and fixes them before the directory is
parsed:

1. Zero item count: some tools leave the "used entries" word at 0 even
   though the directory holds items. The count is recomputed from the
   directory slots whose start address is non-zero.
2. CONVC64 end address: archives written by CONVC64 often store 0xC3C6
   as the end address of every item (e.g. paradrd.t64). The end address
   is rewritten so the item extends to the physical end of the file.

Repair never touches the caller's buffer. It works on a copy and returns
the repaired bytes together with a RepairReport listing every change.
Applying repair to its own output changes nothing.

Usage Examples
--------------
    >>> repaired, report = repair_t64(data)
    >>> if report.changed:
    ...     print(report.describe())
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional
import logging

from c64arc.errors import CorruptHeaderError
from c64arc.archive.records import (
    ADDRESS_SPACE,
    CONVC64_END_SENTINEL,
    SLOT_END_ADDRESS,
    SLOT_START_ADDRESS,
    T64_HEADER_SIZE,
    T64_MAX_ENTRIES_OFFSET,
    T64_SLOT_SIZE,
    T64_USED_ENTRIES_OFFSET,
    T64Slot,
    read_u16,
    slot_offset,
    write_u16,
)

logger = logging.getLogger(__name__)


@dataclass
class EndAddressFix:
    """One rewritten end address."""
    slot: int
    old_end: int
    new_end: int


@dataclass
class RepairReport:
    """
    Result of running the consistency repair over a T64 buffer.

    Attributes:
        item_count_fix: (old, new) item count if rule 1 fired, else None
        end_address_fixes: One EndAddressFix per entry rewritten by rule 2
    """
    item_count_fix: Optional[tuple[int, int]] = None
    end_address_fixes: list[EndAddressFix] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """True if the repaired buffer differs from the input."""
        return self.item_count_fix is not None or bool(self.end_address_fixes)

    def describe(self) -> list[str]:
        """Human-readable list of the applied repairs."""
        lines = []
        if self.item_count_fix is not None:
            old, new = self.item_count_fix
            lines.append(f"Number of items changed from {old} to {new}")
        for fix in self.end_address_fixes:
            lines.append(
                f"End address of slot {fix.slot} changed from "
                f"${fix.old_end:04X} to ${fix.new_end:04X}"
            )
        return lines


# =============================================================================
# Directory Scanning
# =============================================================================

def slots_in_buffer(data: bytes) -> int:
    """Number of complete 32-byte directory slots that fit in `data`."""
    return max(0, (len(data) - T64_HEADER_SIZE) // T64_SLOT_SIZE)


def directory_item_is_present(data: bytes, slot: int) -> bool:
    """
    Check whether directory slot `slot` holds an item.

    A slot is present iff it lies inside the buffer and its start address
    field is non-zero.
    """
    if slot >= slots_in_buffer(data):
        return False
    return read_u16(data, slot_offset(slot) + SLOT_START_ADDRESS) != 0


def directory_capacity(data: bytes) -> int:
    """
    Number of directory slots to scan.

    The capacity is the larger of the "max entries" and "used entries"
    header words, bounded by the buffer. When "max entries" is zero the
    directory extends over the run of present slots starting at slot 0.
    """
    available = slots_in_buffer(data)
    max_entries = read_u16(data, T64_MAX_ENTRIES_OFFSET)
    used_entries = read_u16(data, T64_USED_ENTRIES_OFFSET)

    if max_entries == 0:
        count = 0
        while directory_item_is_present(data, count):
            count += 1
        return max(count, min(used_entries, available))

    return min(max(max_entries, used_entries), available)


def iter_present_slots(data: bytes, limit: Optional[int] = None) -> Iterator[T64Slot]:
    """
    Yield the present directory slots in order.

    Args:
        data: T64 buffer
        limit: Stop after this many present slots (default: no limit)
    """
    found = 0
    for index in range(directory_capacity(data)):
        if limit is not None and found >= limit:
            return
        if directory_item_is_present(data, index):
            found += 1
            yield T64Slot.from_bytes(data, index)


def count_present_slots(data: bytes) -> int:
    """Count the directory slots with a non-zero start address."""
    return sum(1 for _ in iter_present_slots(data))


# =============================================================================
# Repair
# =============================================================================

def repair_t64(data: bytes, source: Optional[str] = None) -> tuple[bytes, RepairReport]:
    """
    Check a T64 buffer for known inconsistencies and repair them.

    The buffer must already carry the T64 magic and a complete header.

    Args:
        data: Raw T64 bytes (not modified)
        source: Name used in log and error messages (optional)

    Returns:
        Tuple of (repaired bytes, RepairReport)

    Raises:
        CorruptHeaderError: If an entry cannot be repaired
    """
    label = source or "T64 archive"
    buffer = bytearray(data)
    report = RepairReport()

    # Rule 1: zero item count
    item_count = read_u16(buffer, T64_USED_ENTRIES_OFFSET)
    if item_count == 0:
        item_count = count_present_slots(buffer)
        if item_count > 0:
            write_u16(buffer, T64_USED_ENTRIES_OFFSET, item_count)
            report.item_count_fix = (0, item_count)
            logger.warning(
                f"Repairing corrupted {label}: "
                f"changing number of items from 0 to {item_count}"
            )

    # Rule 2: CONVC64 end address
    for slot in iter_present_slots(buffer, limit=item_count):
        if slot.data_offset > len(buffer):
            raise CorruptHeaderError(
                f"item in slot {slot.index} starts at offset {slot.data_offset}, "
                f"beyond the end of the file ({len(buffer)} bytes)",
                source,
            )

        if slot.end_address != CONVC64_END_SENTINEL:
            continue

        remaining = len(buffer) - slot.data_offset
        fixed_end = slot.start_address + remaining
        if fixed_end > ADDRESS_SPACE:
            raise CorruptHeaderError(
                f"item in slot {slot.index} would extend past $FFFF "
                f"when read to the end of the file",
                source,
            )
        if fixed_end == CONVC64_END_SENTINEL:
            # The item already ends exactly at EOF
            continue

        write_u16(buffer, slot_offset(slot.index) + SLOT_END_ADDRESS, fixed_end)
        report.end_address_fixes.append(
            EndAddressFix(slot.index, slot.end_address, fixed_end % ADDRESS_SPACE)
        )
        logger.warning(
            f"Repairing corrupted {label}: changing end address of item "
            f"{slot.index} from ${slot.end_address:04X} to ${fixed_end % ADDRESS_SPACE:04X}"
        )

    return bytes(buffer), report

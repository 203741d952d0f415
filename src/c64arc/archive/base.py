"""
Archive Capability Interface
============================

AnyArchive is the interface every container format implements and the
format converter consumes:

    type(), type_as_string(), number_of_items(), name_of_item(i),
    type_of_item(i), destination_address_of_item(i), size_of_item(i),
    select_item(i), read_next_byte(), size_of_selected_item()

An archive owns an immutable byte buffer and an immutable tuple of
DirectoryEntry objects. The only mutable state is the read cursor:

- select_item(i) positions the cursor on the first payload byte of item
  i. An out-of-range index leaves the archive with no item selected.
- read_next_byte() returns the byte under the cursor and advances it.
  It returns None once the end of the selected item is reached, and
  whenever no item is selected. The cursor never moves backwards.

The cursor is not thread-safe. Use one archive instance per reader, or
call copy() to get an independent cursor over the same buffer.
"""

import copy as _copy
from typing import ClassVar, Iterator, Optional, Sequence

from c64arc.errors import NoItemSelectedError
from c64arc.archive.records import ArchiveType, DirectoryEntry, ItemKind


class AnyArchive:
    """
    Base class for all container formats.

    Subclasses set ARCHIVE_TYPE and provide factory methods that validate
    the buffer before calling this constructor. The constructor itself
    performs no validation.

    Attributes:
        name: Archive name (tape name for T64, file stem for PRG)
    """

    ARCHIVE_TYPE: ClassVar[ArchiveType]

    def __init__(self, data: bytes, items: Sequence[DirectoryEntry], name: str = ""):
        self._data = bytes(data)
        self._items = tuple(items)
        self.name = name
        self._selected: Optional[int] = None
        self._position = 0

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, "
            f"items={len(self._items)}, size={len(self._data)})"
        )

    # =========================================================================
    # Buffer and Directory
    # =========================================================================

    @property
    def data(self) -> bytes:
        """The raw container bytes (after repair, for T64)."""
        return self._data

    @property
    def items(self) -> tuple[DirectoryEntry, ...]:
        """The directory entries in order."""
        return self._items

    def __len__(self) -> int:
        return len(self._data)

    def _entry(self, n: int) -> DirectoryEntry:
        if not 0 <= n < len(self._items):
            raise IndexError(
                f"Item {n} out of range (archive has {len(self._items)} items)"
            )
        return self._items[n]

    # =========================================================================
    # Capability Interface
    # =========================================================================

    def type(self) -> ArchiveType:
        """Format tag of this archive."""
        return self.ARCHIVE_TYPE

    def type_as_string(self) -> str:
        """Format label ("T64", "PRG")."""
        return self.ARCHIVE_TYPE.label

    def get_name(self) -> str:
        """Archive name in display form."""
        return self.name

    def number_of_items(self) -> int:
        return len(self._items)

    def name_of_item(self, n: int) -> str:
        """Display name of item n."""
        return self._entry(n).get_display_name()

    def type_of_item(self, n: int) -> str:
        """Kind of item n ("PRG", "FRZ" or "???")."""
        return ItemKind(self._entry(n).kind).value

    def destination_address_of_item(self, n: int) -> int:
        """Load address of item n."""
        return self._entry(n).load_address

    def size_of_item(self, n: int) -> int:
        """Payload size of item n in bytes."""
        return self._entry(n).size

    # =========================================================================
    # Cursor
    # =========================================================================

    @property
    def selected_item(self) -> Optional[int]:
        """Index of the selected item, or None if no item is selected."""
        return self._selected

    @property
    def position(self) -> Optional[int]:
        """Absolute buffer offset of the cursor, or None if no item is selected."""
        return self._position if self._selected is not None else None

    def select_item(self, n: int) -> None:
        """
        Select item n and rewind the cursor to its first payload byte.

        An out-of-range index clears the selection instead of raising; check
        selected_item afterwards if the index is not known to be valid.
        """
        if 0 <= n < len(self._items):
            self._selected = n
            self._position = self._items[n].data_start
        else:
            self._selected = None
            self._position = 0

    def read_next_byte(self) -> Optional[int]:
        """
        Read the byte under the cursor and advance.

        Returns:
            The byte value (0-255), or None at the end of the selected item
            or when no item is selected
        """
        if self._selected is None:
            return None
        if self._position >= self._items[self._selected].data_end:
            return None
        byte = self._data[self._position]
        self._position += 1
        return byte

    def size_of_selected_item(self) -> int:
        """
        Payload size of the selected item.

        Raises:
            NoItemSelectedError: If no item is selected
        """
        if self._selected is None:
            raise NoItemSelectedError(
                "no item selected", self.type_as_string()
            )
        return self._items[self._selected].size

    def destination_address(self) -> int:
        """
        Load address of the selected item.

        Raises:
            NoItemSelectedError: If no item is selected
        """
        if self._selected is None:
            raise NoItemSelectedError(
                "no item selected", self.type_as_string()
            )
        return self._items[self._selected].load_address

    # =========================================================================
    # Convenience
    # =========================================================================

    def iter_bytes(self) -> Iterator[int]:
        """Drain the selected item from the current cursor position."""
        while (byte := self.read_next_byte()) is not None:
            yield byte

    def read_item(self, n: int) -> bytes:
        """
        Select item n and return its whole payload.

        Leaves the cursor at the end of the item.
        """
        self._entry(n)
        self.select_item(n)
        return bytes(self.iter_bytes())

    def copy(self) -> "AnyArchive":
        """Return an archive sharing this buffer with an independent cursor."""
        return _copy.copy(self)

"""
Format Converter Unit Tests
===========================

Tests for building PRG and T64 containers from any archive.

Test Categories
---------------
1. PRG export: first item only, empty sources, size checks
2. T64Builder: directory layout, validation, reserved slots
3. T64 export: every item, read back through the reader
4. Dispatch: convert() by format tag
"""

import pytest

from c64arc.archive import (
    AnyArchive,
    ArchiveType,
    DirectoryEntry,
    ItemKind,
    PRGArchive,
    T64Archive,
    T64Builder,
    build_prg,
    convert,
    drain_item,
    export_prg,
    export_t64,
    make_prg_archive,
    make_t64_archive,
)
from c64arc.config import ArchiveConfig
from c64arc.errors import ConversionError, EmptySourceError

from tape_builders import TapeItem, build_t64


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def tape() -> T64Archive:
    """A T64 archive with three items."""
    return T64Archive.from_bytes(build_t64([
        TapeItem(b"LOADER", 0x0801, bytes([0x0B, 0x08, 0x0A, 0x00, 0x9E, 0x32, 0x30, 0x36, 0x31, 0x00, 0x00, 0x00])),
        TapeItem(b"MUSIC", 0x1000, bytes(range(200))),
        TapeItem(b"CHARSET", 0x3800, b"\xFF" * 2048),
    ], tape_name=b"DEMO DISK"))


@pytest.fixture
def prg() -> PRGArchive:
    """A PRG archive loading at $C000."""
    return PRGArchive.from_bytes(bytes([0x00, 0xC0, 0xA9, 0x00, 0x8D, 0x20, 0xD0, 0x60]), name="BORDER")


class ShortReadArchive(AnyArchive):
    """An archive whose cursor yields fewer bytes than it reports."""

    ARCHIVE_TYPE = ArchiveType.PRG

    def __init__(self):
        data = bytes([0x01, 0x08, 0x01, 0x02, 0x03])
        entry = DirectoryEntry(
            raw_name=b"BROKEN",
            kind=ItemKind.PRG,
            load_address=0x0801,
            data_start=2,
            data_end=5,
        )
        super().__init__(data, [entry], name="BROKEN")

    def read_next_byte(self):
        byte = super().read_next_byte()
        if self.position is not None and self.position >= 4:
            return None
        return byte


# =============================================================================
# PRG Export Tests
# =============================================================================

class TestExportPRG:
    """Tests for PRG conversion."""

    def test_first_item_only(self, tape: T64Archive):
        """Test that a multi-item archive is reduced to its first entry."""
        data = export_prg(tape)
        first = tape.read_item(0)

        assert data[:2] == bytes([0x01, 0x08])
        assert data[2:] == first
        assert len(data) == 2 + tape.size_of_item(0)

    def test_prg_roundtrip(self, prg: PRGArchive):
        """Test that exporting a PRG reproduces the original bytes."""
        assert export_prg(prg) == prg.data

    def test_make_prg_archive(self, tape: T64Archive):
        archive = make_prg_archive(tape)

        assert isinstance(archive, PRGArchive)
        assert archive.number_of_items() == 1
        assert archive.name_of_item(0) == "LOADER"
        assert archive.destination_address_of_item(0) == 0x0801
        assert archive.read_item(0) == tape.read_item(0)

    def test_header_only_prg(self):
        """Test exporting an item with no payload bytes."""
        archive = PRGArchive.from_bytes(bytes([0x01, 0x08]))
        assert export_prg(archive) == bytes([0x01, 0x08])

    def test_empty_source(self):
        empty = T64Archive.from_bytes(build_t64([None]))
        with pytest.raises(EmptySourceError):
            export_prg(empty)

    def test_short_read_detected(self):
        """Test that a cursor disagreeing with the reported size is an error."""
        with pytest.raises(ConversionError):
            export_prg(ShortReadArchive())

    def test_build_prg(self):
        assert build_prg(0x0801, b"\x60") == b"\x01\x08\x60"

    def test_build_prg_bad_address(self):
        with pytest.raises(ConversionError):
            build_prg(0x10000, b"")


class TestDrainItem:
    """Tests for reading an item through the cursor."""

    def test_drain(self, tape: T64Archive):
        assert drain_item(tape, 1) == bytes(range(200))

    def test_drain_leaves_cursor_at_end(self, tape: T64Archive):
        drain_item(tape, 1)
        assert tape.selected_item == 1
        assert tape.read_next_byte() is None


# =============================================================================
# T64 Builder Tests
# =============================================================================

class TestT64Builder:
    """Tests for T64Builder."""

    def test_empty_builder(self):
        builder = T64Builder(tape_name="EMPTY")
        data = builder.build()

        assert len(data) == 0x40
        archive = T64Archive.from_bytes(data)
        assert archive.number_of_items() == 0
        assert archive.get_name() == "EMPTY"

    def test_layout(self):
        """Test header counts, directory offsets and data placement."""
        data = (
            T64Builder(tape_name="GAMES")
            .add_item("ONE", 0x0801, b"\x01\x02\x03")
            .add_item("TWO", 0xC000, b"\x04\x05")
            .build()
        )

        assert data[:3] == b"C64"
        assert data[0x22:0x26] == bytes([2, 0, 2, 0])
        # First slot: type bytes, start, end, offset
        assert data[0x40:0x42] == bytes([0x01, 0x82])
        assert data[0x42:0x46] == bytes([0x01, 0x08, 0x04, 0x08])
        assert data[0x48:0x4C] == (0x80).to_bytes(4, "little")
        assert data[0x50:0x60] == b"ONE".ljust(16, b" ")
        # Data region follows the directory
        assert data[0x80:] == b"\x01\x02\x03\x04\x05"

    def test_query_methods(self):
        builder = T64Builder().add_item("A", 0x0801, bytes(10))
        assert builder.get_item_count() == 1
        assert builder.get_slot_count() == 1
        assert builder.get_size() == 0x40 + 0x20 + 10
        assert len(builder.build()) == builder.get_size()

    def test_reserved_slots(self):
        """Test that extra directory slots are written zeroed."""
        builder = T64Builder(config=ArchiveConfig(t64_min_slots=4))
        builder.add_item("A", 0x0801, b"\x00")
        data = builder.build()

        assert builder.get_slot_count() == 4
        assert data[0x60:0xC0] == bytes(0x60)
        archive = T64Archive.from_bytes(data)
        assert archive.header.max_entries == 4
        assert archive.number_of_items() == 1

    def test_item_to_top_of_memory(self):
        """Test that an item ending at $FFFF stores end address $0000."""
        data = T64Builder().add_item("TOP", 0xFF00, bytes(0x100)).build()
        assert data[0x44:0x46] == bytes([0x00, 0x00])
        assert T64Archive.from_bytes(data).size_of_item(0) == 0x100

    def test_sentinel_end_item_stored_last(self):
        """Test that an item ending at $C3C6 reads back without absorbing later items."""
        big = bytes(i & 0xFF for i in range(0xC3C6 - 0x0801))
        data = (
            T64Builder()
            .add_item("BIG", 0x0801, big)
            .add_item("SMALL", 0xC000, b"\x01\x02\x03")
            .build()
        )

        assert data[0x44:0x46] == bytes([0xC6, 0xC3])
        assert data.endswith(big)

        archive = T64Archive.from_bytes(data)
        assert archive.name_of_item(0) == "BIG"
        assert archive.size_of_item(0) == len(big)
        assert archive.read_item(0) == big
        assert archive.read_item(1) == b"\x01\x02\x03"
        assert not archive.repair_report.changed

    def test_second_sentinel_end_item(self):
        builder = T64Builder().add_item("ONE", 0x0801, bytes(0xC3C6 - 0x0801))
        with pytest.raises(ConversionError, match=r"\$C3C6"):
            builder.add_item("TWO", 0xC000, bytes(0xC3C6 - 0xC000))

    def test_sentinel_end_item_through_convert(self):
        """Test exporting a tape whose first item ends at $C3C6."""
        source = T64Archive.from_bytes(
            T64Builder()
            .add_item("BIG", 0x0801, bytes(0xC3C6 - 0x0801))
            .add_item("SMALL", 0xC000, b"\x60")
            .build()
        )
        result = convert(source, ArchiveType.T64)
        assert result.size_of_item(0) == 0xC3C6 - 0x0801
        assert result.read_item(1) == b"\x60"

    def test_zero_load_address(self):
        with pytest.raises(ConversionError, match=r"\$0000"):
            T64Builder().add_item("ZERO", 0x0000, b"\x00")

    def test_item_past_address_space(self):
        with pytest.raises(ConversionError):
            T64Builder().add_item("BIG", 0xFF00, bytes(0x101))

    def test_name_truncated(self):
        data = T64Builder().add_item("A VERY LONG PROGRAM NAME", 0x0801, b"").build()
        assert T64Archive.from_bytes(data).name_of_item(0) == "A VERY LONG PROG"

    def test_lowercase_names_folded(self):
        data = T64Builder(tape_name="games").add_item("pacman", 0x0801, b"\x00").build()
        archive = T64Archive.from_bytes(data)
        assert archive.get_name() == "GAMES"
        assert archive.name_of_item(0) == "PACMAN"

    def test_clear(self):
        builder = T64Builder().add_item("A", 0x0801, b"")
        builder.clear()
        assert builder.get_item_count() == 0

    def test_build_to_file(self, tmp_path):
        path = tmp_path / "out.t64"
        written = T64Builder().add_item("A", 0x0801, b"\x60").build_to_file(path)
        assert written == path.stat().st_size
        assert T64Archive.from_file(path).read_item(0) == b"\x60"


# =============================================================================
# T64 Export Tests
# =============================================================================

class TestExportT64:
    """Tests for T64 conversion."""

    def test_every_item_exported(self, tape: T64Archive):
        result = T64Archive.from_bytes(export_t64(tape))

        assert result.get_name() == "DEMO DISK"
        assert result.number_of_items() == tape.number_of_items()
        for n in range(tape.number_of_items()):
            assert result.name_of_item(n) == tape.name_of_item(n)
            assert result.destination_address_of_item(n) == tape.destination_address_of_item(n)
            assert result.read_item(n) == tape.read_item(n)

    def test_from_prg(self, prg: PRGArchive):
        archive = make_t64_archive(prg)

        assert isinstance(archive, T64Archive)
        assert archive.get_name() == "BORDER"
        assert archive.name_of_item(0) == "BORDER"
        assert archive.type_of_item(0) == "PRG"
        assert archive.destination_address_of_item(0) == 0xC000
        assert archive.read_item(0) == prg.read_item(0)
        assert not archive.repair_report.changed

    def test_prg_zero_load_address(self):
        """Test that a PRG loading at $0000 cannot be put on tape."""
        with pytest.raises(ConversionError):
            export_t64(PRGArchive.from_bytes(bytes([0x00, 0x00, 0x01])))

    def test_repaired_source(self):
        """Test that repaired items are exported with their real size."""
        source = T64Archive.from_bytes(
            build_t64([TapeItem(b"GAME", 0x0801, bytes(50), end=0xC3C6)])
        )
        result = T64Archive.from_bytes(export_t64(source))
        assert result.size_of_item(0) == 50
        assert not result.repair_report.changed

    def test_empty_source(self):
        with pytest.raises(EmptySourceError):
            export_t64(T64Archive.from_bytes(build_t64([])))


# =============================================================================
# Dispatch Tests
# =============================================================================

class TestConvert:
    """Tests for convert()."""

    def test_to_prg(self, tape: T64Archive):
        result = convert(tape, ArchiveType.PRG)
        assert result.type() == ArchiveType.PRG
        assert result.number_of_items() == 1

    def test_to_t64(self, prg: PRGArchive):
        result = convert(prg, ArchiveType.T64)
        assert result.type() == ArchiveType.T64
        assert result.type_as_string() == "T64"

    def test_same_format(self, tape: T64Archive):
        result = convert(tape, ArchiveType.T64)
        assert result.number_of_items() == 3

    def test_writer_settings(self, prg: PRGArchive):
        config = ArchiveConfig(t64_min_slots=8, t64_version=0x0101)
        result = convert(prg, ArchiveType.T64, config)
        assert result.header.max_entries == 8
        assert result.header.version == 0x0101

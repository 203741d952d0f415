"""
c64arc - T64/PRG Container Command-Line Interface
=================================================

This module implements the command-line interface for the c64arc
toolkit. It provides tools for inspecting, extracting, validating and
converting Commodore 64 program containers.

Commands
--------
- **list**: List the items of an archive
- **info**: Show detailed archive information
- **extract**: Extract items as PRG files
- **convert**: Convert an archive to T64 or PRG
- **validate**: Validate an archive and report repairs

Usage Examples
--------------
List a tape archive:
    $ c64arc list games.t64

Extract every item:
    $ c64arc extract -o ./out/ games.t64

Extract the third item only:
    $ c64arc extract -i 2 games.t64

Convert the first item to a PRG file:
    $ c64arc convert games.t64 -o game.prg

Wrap a PRG file in a tape archive:
    $ c64arc convert game.prg -o game.t64

Validate without repairing:
    $ c64arc validate --strict games.t64
"""

import logging
import re
import sys
from pathlib import Path
from typing import Optional

import click

from c64arc import __version__
from c64arc.config import ArchiveConfig
from c64arc.errors import ArchiveError
from c64arc.archive import (
    AnyArchive,
    ArchiveType,
    build_prg,
    convert,
    open_archive_file,
)
from c64arc.cli.errors import ExitCode, handle_cli_exception

logger = logging.getLogger(__name__)


# =============================================================================
# Utilities
# =============================================================================

def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def item_filename(archive: AnyArchive, n: int, taken: Optional[set[str]] = None) -> str:
    """
    Derive a safe ".prg" file name for item n.

    Tapes often hold several items with the same name. When `taken` is
    given, names already in it get the item index appended
    ("game.prg", "game_1.prg") and the chosen name is added to it.
    """
    stem = re.sub(r"[^a-z0-9_-]+", "_", archive.name_of_item(n).strip().lower()).strip("_")
    stem = stem or f"item{n}"
    filename = f"{stem}.prg"
    if taken is None:
        return filename

    suffix = n
    while filename in taken:
        filename = f"{stem}_{suffix}.prg"
        suffix += 1
    taken.add(filename)
    return filename


class ArchiveTypeChoice(click.ParamType):
    """
    Click parameter type for container format selection.

    Accepts: t64, prg (case-insensitive)
    """
    name = "archive_type"

    def convert(self, value, param: Optional[click.Parameter],
                ctx: Optional[click.Context]) -> ArchiveType:
        """Convert string to ArchiveType."""
        if isinstance(value, ArchiveType):
            return value
        try:
            return ArchiveType.from_name(value)
        except ValueError:
            self.fail(
                f"Invalid archive type '{value}'. "
                f"Choose from: {', '.join(t.name.lower() for t in ArchiveType)}",
                param, ctx
            )


ARCHIVE_TYPE = ArchiveTypeChoice()


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.version_option(__version__, "--version", "-V", prog_name="c64arc")
def main() -> None:
    """
    Commodore 64 T64/PRG container tool.

    Inspect, extract, validate and convert tape archives (.t64) and
    program files (.prg).

    \b
    Commands:
      list      List archive items
      info      Show detailed archive information
      extract   Extract items as PRG files
      convert   Convert to T64 or PRG
      validate  Validate an archive

    \b
    Examples:
      c64arc list games.t64
      c64arc extract -o ./out/ games.t64
      c64arc convert games.t64 -o game.prg
    """
    pass


# =============================================================================
# List Command
# =============================================================================

@main.command("list")
@click.argument(
    "archive_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("-v", "--verbose", is_flag=True, help="Show more details")
def cmd_list(archive_file: Path, verbose: bool) -> None:
    """
    List the items of an archive.

    \b
    Output format:
      #   Name              Type  Load    Size
      0   GIANA SISTERS     PRG   $0801   38912
    """
    setup_logging(verbose)
    try:
        archive = open_archive_file(archive_file, config=ArchiveConfig.from_env())

        if verbose:
            click.echo(f"Contents of {archive_file} ({archive.type_as_string()}):")

        click.echo(f"{'#':<3} {'Name':<17} {'Type':<5} {'Load':<7} {'Size':>6}")
        click.echo("-" * 42)
        for n in range(archive.number_of_items()):
            click.echo(
                f"{n:<3} {archive.name_of_item(n):<17} {archive.type_of_item(n):<5} "
                f"${archive.destination_address_of_item(n):04X}   "
                f"{archive.size_of_item(n):>6}"
            )

        if verbose:
            click.echo("-" * 42)
            click.echo(f"Total: {archive.number_of_items()} items")

    except Exception as e:
        handle_cli_exception(e, verbose)


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument(
    "archive_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def cmd_info(archive_file: Path) -> None:
    """
    Show detailed information about an archive.

    \b
    Output includes:
      - Format and name
      - Item count and total payload size
      - T64 header fields and applied repairs
    """
    setup_logging(False)
    try:
        archive = open_archive_file(archive_file, config=ArchiveConfig.from_env())

        click.echo(f"Archive Information: {archive_file}")
        click.echo("=" * 40)
        click.echo(f"Format:      {archive.type().get_description()}")
        click.echo(f"Name:        {archive.get_name()}")
        click.echo(f"Items:       {archive.number_of_items()}")
        total = sum(archive.size_of_item(n) for n in range(archive.number_of_items()))
        click.echo(f"Payload:     {total} bytes")
        click.echo(f"File size:   {len(archive)} bytes")

        if archive.type() == ArchiveType.T64:
            header = archive.header
            click.echo()
            click.echo("Tape Header:")
            click.echo(f"  Description: {archive.get_display_description()}")
            click.echo(f"  Version:     ${header.version:04X}")
            click.echo(f"  Slots:       {header.max_entries}")
            click.echo(f"  Used:        {header.used_entries}")

            click.echo()
            if archive.repair_report.changed:
                click.echo("Repairs:")
                for line in archive.repair_report.describe():
                    click.echo(f"  {line}")
            else:
                click.echo("Repairs:     none")

    except Exception as e:
        handle_cli_exception(e)


# =============================================================================
# Extract Command
# =============================================================================

@main.command("extract")
@click.argument(
    "archive_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Output directory (default: current directory)",
)
@click.option(
    "-i", "--index",
    type=int,
    help="Extract only this item (by index)",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cmd_extract(
    archive_file: Path,
    output: Path,
    index: Optional[int],
    verbose: bool,
) -> None:
    """
    Extract items from an archive as PRG files.

    By default, extracts every item. Use --index to extract one item.

    \b
    Examples:
      c64arc extract -o ./out/ games.t64
      c64arc extract -i 0 games.t64
    """
    setup_logging(verbose)
    try:
        archive = open_archive_file(archive_file, config=ArchiveConfig.from_env())
        count = archive.number_of_items()

        if index is not None and not 0 <= index < count:
            click.echo(f"Error: Item {index} not found (archive has {count} items)", err=True)
            sys.exit(ExitCode.INVALID_ARGS)

        output.mkdir(parents=True, exist_ok=True)
        indices = [index] if index is not None else range(count)

        taken: set[str] = set()
        written = 0
        for n in indices:
            out_path = output / item_filename(archive, n, taken)
            out_path.write_bytes(
                build_prg(archive.destination_address_of_item(n), archive.read_item(n))
            )
            if verbose or index is not None:
                click.echo(f"  {archive.name_of_item(n)} -> {out_path}")
            written += 1

        if written == 0:
            click.echo("No items found in archive")
        else:
            click.echo(f"Extracted {written} items to {output}")

    except Exception as e:
        handle_cli_exception(e, verbose)


# =============================================================================
# Convert Command
# =============================================================================

@main.command("convert")
@click.argument(
    "archive_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Output file path (required)",
)
@click.option(
    "-t", "--type",
    "target",
    type=ARCHIVE_TYPE,
    default=None,
    help="Target format: t64, prg (default: from output suffix)",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cmd_convert(
    archive_file: Path,
    output: Path,
    target: Optional[ArchiveType],
    verbose: bool,
) -> None:
    """
    Convert an archive to another container format.

    PRG output holds the first item of the source only. T64 output holds
    every item.

    \b
    Examples:
      c64arc convert games.t64 -o game.prg
      c64arc convert game.prg -o game.t64
      c64arc convert game.prg -t t64 -o game.tap64
    """
    setup_logging(verbose)
    try:
        if target is None:
            try:
                target = ArchiveType.from_name(output.suffix)
            except ValueError:
                raise click.BadParameter(
                    f"cannot infer the target format from '{output.name}', use --type"
                )

        config = ArchiveConfig.from_env()
        source = open_archive_file(archive_file, config=config)
        result = convert(source, target, config)
        output.write_bytes(result.data)

        click.echo(
            f"Created {output} ({result.type_as_string()}, "
            f"{result.number_of_items()} items, {len(result)} bytes)"
        )

    except Exception as e:
        handle_cli_exception(e, verbose, "Conversion")


# =============================================================================
# Validate Command
# =============================================================================

@main.command("validate")
@click.argument(
    "archive_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--strict",
    is_flag=True,
    help="Do not repair known header defects",
)
@click.option("-v", "--verbose", is_flag=True, help="Show validation details")
def cmd_validate(archive_file: Path, strict: bool, verbose: bool) -> None:
    """
    Validate an archive.

    Checks:
    - Suffix, size and magic bytes
    - T64 header consistency (repairs are reported as warnings)
    - Directory entries lie within the file

    \b
    Example:
      c64arc validate games.t64
    """
    setup_logging(verbose)
    config = ArchiveConfig.from_env()
    if strict:
        config.repair = False

    try:
        archive = open_archive_file(archive_file, config=config)
    except ArchiveError as e:
        click.echo("Validation FAILED:")
        click.echo(f"  ERROR: {e}")
        sys.exit(ExitCode.ARCHIVE_ERROR)
    except Exception as e:
        handle_cli_exception(e, verbose)

    if verbose:
        click.echo("Validation Details:")
        click.echo(f"  Format: {archive.type_as_string()}")
        click.echo(f"  Items parsed: {archive.number_of_items()}")

    warnings = []
    if archive.type() == ArchiveType.T64:
        warnings = archive.repair_report.describe()

    if warnings:
        click.echo("Validation passed with repairs:")
        for warning in warnings:
            click.echo(f"  WARNING: {warning}")
    else:
        click.echo(f"Validation PASSED: {archive_file}")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()

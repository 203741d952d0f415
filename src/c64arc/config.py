"""
c64arc - Configuration
======================

Reader and writer settings for T64/PRG containers. Configuration can
come from:
- Default values (defined here)
- Environment variables (ArchiveConfig.from_env)
- Explicit construction by the caller

The defaults reproduce the behaviour expected by every consumer: the
T64 consistency repair is enabled and containers are written with the
same header fields common tape tools use.
"""

from dataclasses import dataclass
import logging
import os

logger = logging.getLogger(__name__)


_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class ArchiveConfig:
    """
    Settings shared by the archive readers and the format converter.

    Attributes:
        repair: Run the T64 consistency repair before directory parsing
            (default: True). Disabling it gives a strict reader that
            reports corrupt headers as they are stored.
        t64_min_slots: Minimum number of directory slots written by the
            T64 builder (default: 0, one slot per item)
        t64_description: Tape description written at offset 0 of new
            T64 containers, padded to 32 bytes
        t64_version: Version word written into new T64 headers
    """

    repair: bool = True
    t64_min_slots: int = 0
    t64_description: bytes = b"C64S tape image file"
    t64_version: int = 0x0100

    @classmethod
    def from_env(cls) -> "ArchiveConfig":
        """
        Create ArchiveConfig from environment variables.

        Environment variables (all optional):
            C64ARC_REPAIR: "0", "false", "no" or "off" disables repair
            C64ARC_T64_MIN_SLOTS: Minimum T64 directory slots (integer)

        Returns:
            ArchiveConfig with values from environment variables
        """
        config = cls()

        if repair := os.environ.get("C64ARC_REPAIR"):
            config.repair = repair.strip().lower() not in _FALSE_VALUES

        if slots := os.environ.get("C64ARC_T64_MIN_SLOTS"):
            try:
                config.t64_min_slots = max(0, int(slots))
            except ValueError:
                logger.warning(f"Ignoring invalid C64ARC_T64_MIN_SLOTS value {slots!r}")

        return config

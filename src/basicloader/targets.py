"""
Target Machine Definitions
==========================

This module provides the machine-specific information used when generating
a BASIC loader: where machine code is loaded by default, how long a BASIC
line may be, how much RAM the machine can address, and which keyword
transfers control to machine code.

Supported Machines
------------------
- **COCO**: Tandy TRS-80 Color Computer (Color BASIC / Extended Color BASIC)
- **DRAGON**: Dragon 32/64 (Microsoft-derived Dragon BASIC)
- **C64**: Commodore 64 (Commodore BASIC V2)

The Color Computer and the Dragon share the Motorola 6809 and almost the
same BASIC dialect: both use ``EXEC`` and allow 249-character lines. The
Commodore 64 uses ``SYS`` and its screen editor limits a logical line to
80 columns (79 usable characters).

Reference
---------
- Color Computer memory map: https://www.cocopedia.com/wiki/index.php/Memory_Map
- Commodore 64 memory map: https://sta.c64.org/cbm64mem.html
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


# =============================================================================
# Memory Constants
# =============================================================================

HIGHEST_64K_ADDRESS = 0xFFFF
HIGHEST_32K_ADDRESS = 0x7FFF
HIGHEST_16K_ADDRESS = 0x3FFF
HIGHEST_8K_ADDRESS = 0x1FFF
HIGHEST_4K_ADDRESS = 0x0FFF

# Highest line number accepted by the Microsoft-derived BASICs we target
MAX_BASIC_LINE_NUMBER = 63999


# =============================================================================
# Architecture Enumeration
# =============================================================================

class TargetArchitecture(IntEnum):
    """
    Target machine identifiers.

    Usage:
        >>> TargetArchitecture.from_name("c64")
        <TargetArchitecture.C64: 3>
        >>> TargetArchitecture.COCO.get_info().exec_keyword
        'EXEC'
    """
    COCO = 1
    DRAGON = 2
    C64 = 3

    @classmethod
    def from_name(cls, name: str) -> Optional["TargetArchitecture"]:
        """
        Look up an architecture by its command-line name.

        Args:
            name: One of "coco", "dragon", "c64" (case-insensitive)

        Returns:
            The matching TargetArchitecture, or None if the name is unknown
        """
        for arch, info in ARCHITECTURES.items():
            if info.cli_name == name.lower():
                return arch
        return None

    @property
    def cli_name(self) -> str:
        """Name used on the command line and in messages."""
        return self.get_info().cli_name

    def get_info(self) -> "ArchitectureInfo":
        """
        Get detailed information about this architecture.

        Returns:
            ArchitectureInfo dataclass with the machine's constants
        """
        return ARCHITECTURES[self]


# =============================================================================
# Architecture Capabilities
# =============================================================================

@dataclass(frozen=True)
class ArchitectureInfo:
    """
    Constants describing one target machine.

    Attributes:
        name: Full marketing name (e.g., "Commodore 64")
        cli_name: Short name used on the command line
        default_start: Load address used when neither file nor user gives one
        max_line_length: Longest BASIC line the machine accepts (characters)
        max_line_number: Highest BASIC line number
        highest_ram_address: Last address the blob may occupy
        exec_keyword: Statement that calls machine code ("EXEC" or "SYS")
        lowercase_allowed: Whether lowercase keywords are understood
        ram_tiers: (threshold, message) pairs, highest threshold first; the
            first threshold the blob's end address exceeds gives the warning
    """
    name: str
    cli_name: str
    default_start: int
    max_line_length: int
    max_line_number: int
    highest_ram_address: int
    exec_keyword: str
    lowercase_allowed: bool
    ram_tiers: tuple[tuple[int, str], ...] = ()

    def ram_requirement(self, end: int) -> Optional[str]:
        """
        Describe how much RAM a blob ending at ``end`` needs.

        Args:
            end: Last address occupied by the blob

        Returns:
            Warning text, or None if any configuration of the machine will do
        """
        for threshold, message in self.ram_tiers:
            if end > threshold:
                return message
        return None


ARCHITECTURES: dict[TargetArchitecture, ArchitectureInfo] = {
    TargetArchitecture.COCO: ArchitectureInfo(
        name="Tandy Color Computer",
        cli_name="coco",
        default_start=0x3E00,
        max_line_length=249,
        max_line_number=MAX_BASIC_LINE_NUMBER,
        highest_ram_address=HIGHEST_64K_ADDRESS,
        exec_keyword="EXEC",
        lowercase_allowed=False,
        ram_tiers=(
            (HIGHEST_32K_ADDRESS, "Program requires 64K of RAM"),
            (HIGHEST_16K_ADDRESS, "Program requires at least 32K of RAM"),
            (HIGHEST_8K_ADDRESS, "Program requires at least 16K of RAM"),
            (HIGHEST_4K_ADDRESS, "Program requires at least 8K of RAM"),
        ),
    ),
    TargetArchitecture.DRAGON: ArchitectureInfo(
        name="Dragon 32/64",
        cli_name="dragon",
        default_start=0x3E00,
        max_line_length=249,
        max_line_number=MAX_BASIC_LINE_NUMBER,
        highest_ram_address=HIGHEST_64K_ADDRESS,
        exec_keyword="EXEC",
        lowercase_allowed=False,
        ram_tiers=(
            (HIGHEST_32K_ADDRESS, "Program requires 64K of RAM"),
        ),
    ),
    TargetArchitecture.C64: ArchitectureInfo(
        name="Commodore 64",
        cli_name="c64",
        default_start=0x8000,
        max_line_length=79,
        max_line_number=MAX_BASIC_LINE_NUMBER,
        highest_ram_address=HIGHEST_64K_ADDRESS,
        exec_keyword="SYS",
        lowercase_allowed=True,
    ),
}

DEFAULT_TARGET = TargetArchitecture.COCO


def get_supported_targets() -> list[str]:
    """Return the command-line names of all supported machines."""
    return [info.cli_name for info in ARCHITECTURES.values()]

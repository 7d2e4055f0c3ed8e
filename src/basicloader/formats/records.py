"""
Container Format Definitions
============================

This module defines the data structures shared by the container decoders
and builders: the container format enumeration, the FileInfo record a
decoder produces, and checked 16-bit value helpers.

Container Structure Overview
----------------------------
**BINARY**: no header, the whole file is the machine language blob.

**PRG** (Commodore):
    Byte 0-1: Load address (little-endian)
    Byte 2+:  Blob

**RS-DOS** (Color Computer, single segment "LOADM" file):
    Preamble (5 bytes):
        Byte 0:   $00 (data segment marker)
        Byte 1-2: Segment length (big-endian)
        Byte 3-4: Load address (big-endian)
    Blob
    Postamble (5 bytes):
        Byte 0:   $FF (end marker; $00 here means another segment follows)
        Byte 1-2: $00 $00
        Byte 3-4: Exec address (big-endian)

**Dragon DOS** (binary file):
    Header (9 bytes):
        Byte 0:   $55
        Byte 1:   File type ($01 BASIC, $02 binary, $03 DosPlus)
        Byte 2-3: Load address (big-endian)
        Byte 4-5: Length (big-endian)
        Byte 6-7: Exec address (big-endian)
        Byte 8:   $AA
    Blob

Reference
---------
- RS-DOS binary format: https://www.cocopedia.com/wiki/index.php/RSDOS_binary_format
- Dragon DOS header: https://archive.worldofdragon.org/index.php?title=Dragon_DOS
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from basicloader.addresses import check_uint16


# =============================================================================
# Size Constants
# =============================================================================

RS_DOS_PREAMBLE_SIZE = 5
RS_DOS_POSTAMBLE_SIZE = 5
DRAGON_DOS_HEADER_SIZE = 9
PRG_HEADER_SIZE = 2

RS_DOS_SEGMENT_MARKER = 0x00
RS_DOS_END_MARKER = 0xFF

DRAGON_DOS_HEADER_START = 0x55
DRAGON_DOS_HEADER_END = 0xAA

# Load address of a tokenised Commodore 64 BASIC program
PRG_BASIC_LOAD_ADDRESS = 0x0801


# =============================================================================
# Enumeration Types
# =============================================================================

class ContainerFormat(IntEnum):
    """
    Container file format identifiers.

    The container wraps the machine language blob in format-specific
    headers and footers. It is independent of the target machine, though
    each non-binary format is only meaningful for one machine.
    """
    BINARY = 1
    RS_DOS = 2
    DRAGON_DOS = 3
    PRG = 4

    @classmethod
    def from_name(cls, name: str) -> Optional["ContainerFormat"]:
        """Look up a format by its command-line name."""
        for fmt, cli_name in _FORMAT_NAMES.items():
            if cli_name == name.lower():
                return fmt
        return None

    @property
    def cli_name(self) -> str:
        """Name used on the command line and in messages."""
        return _FORMAT_NAMES[self]

    @property
    def overhead(self) -> int:
        """Number of bytes the container adds around the blob."""
        return _FORMAT_OVERHEAD[self]

    @property
    def minimum_file_size(self) -> int:
        """Smallest file that can hold a non-empty blob in this format."""
        return self.overhead + 1

    @property
    def trailer_size(self) -> int:
        """Bytes that follow the blob in the file."""
        return RS_DOS_POSTAMBLE_SIZE if self is ContainerFormat.RS_DOS else 0


class DragonDosFileType(IntEnum):
    """Dragon DOS file type byte (offset 1 of the header)."""
    BASIC = 0x01
    BINARY = 0x02
    DOSPLUS = 0x03


_FORMAT_NAMES: dict[ContainerFormat, str] = {
    ContainerFormat.BINARY: "binary",
    ContainerFormat.RS_DOS: "rsdos",
    ContainerFormat.DRAGON_DOS: "dragon",
    ContainerFormat.PRG: "prg",
}

_FORMAT_OVERHEAD: dict[ContainerFormat, int] = {
    ContainerFormat.BINARY: 0,
    ContainerFormat.RS_DOS: RS_DOS_PREAMBLE_SIZE + RS_DOS_POSTAMBLE_SIZE,
    ContainerFormat.DRAGON_DOS: DRAGON_DOS_HEADER_SIZE,
    ContainerFormat.PRG: PRG_HEADER_SIZE,
}


# =============================================================================
# Decoded File Information
# =============================================================================

@dataclass(frozen=True)
class FileInfo:
    """
    What a container header says about its blob.

    Each field is None when the container does not carry it. FileInfo
    never holds the blob itself.

    Attributes:
        start: Load address, if the container declares one
        exec: Exec address, if the container declares one
        length: Blob length, if the container declares one
    """
    start: Optional[int] = None
    exec: Optional[int] = None
    length: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("start", "exec", "length"):
            value = getattr(self, name)
            if value is not None:
                check_uint16(value, name)

    @property
    def start_given(self) -> bool:
        return self.start is not None

    @property
    def exec_given(self) -> bool:
        return self.exec is not None

    @property
    def length_given(self) -> bool:
        return self.length is not None

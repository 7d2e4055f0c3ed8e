"""
Container Formats
=================

Reading and writing the executable file envelopes that carry a machine
language blob for the supported 8-bit machines.

Overview
--------
A container wraps the blob with a header (and for RS-DOS a footer) that
may declare the load address, the exec address and the blob length. The
format is chosen by the user; it is never sniffed from the content.

This module provides:
- **ContainerFormat**: BINARY, RS_DOS, DRAGON_DOS and PRG
- **FileInfo**: what a header declared, each field optional
- **read_container** and friends: decode a stream, bytes or file
- **wrap_*** builders: produce well-formed containers

Quick Start
-----------
    >>> from basicloader.formats import ContainerFormat, read_container_file
    >>> container = read_container_file("game.bin", ContainerFormat.DRAGON_DOS)
    >>> container.info.exec
    16384
"""

# =============================================================================
# Public API Exports
# =============================================================================

from basicloader.formats.records import (
    ContainerFormat,
    DragonDosFileType,
    FileInfo,
)

from basicloader.formats.decoder import (
    Container,
    check_input_size,
    decode_header,
    measure_stream,
    read_container,
    read_container_bytes,
    read_container_file,
    read_exact,
)

from basicloader.formats.builder import (
    wrap,
    wrap_dragondos,
    wrap_prg,
    wrap_rsdos,
)

__all__ = [
    # Records
    "ContainerFormat",
    "DragonDosFileType",
    "FileInfo",
    # Decoding
    "Container",
    "check_input_size",
    "decode_header",
    "measure_stream",
    "read_container",
    "read_container_bytes",
    "read_container_file",
    "read_exact",
    # Building
    "wrap",
    "wrap_dragondos",
    "wrap_prg",
    "wrap_rsdos",
]

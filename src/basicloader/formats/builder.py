"""
Container Builders
==================

Wrap a machine language blob in one of the container formats the decoder
understands. Useful for preparing test inputs and for converting a raw
binary into something an emulator will ``LOADM`` or ``LOAD`` directly.

Usage
-----
    >>> from basicloader.formats import wrap_rsdos, read_container_bytes, ContainerFormat
    >>> data = wrap_rsdos(bytes([0x39]), start=0x3E00, exec_address=0x3E00)
    >>> read_container_bytes(data, ContainerFormat.RS_DOS).info.start
    15872
"""

from typing import Optional
import struct

from basicloader.addresses import check_uint16
from basicloader.errors import InputSizeError
from basicloader.formats.records import (
    ContainerFormat,
    DragonDosFileType,
    DRAGON_DOS_HEADER_END,
    DRAGON_DOS_HEADER_START,
    RS_DOS_END_MARKER,
    RS_DOS_SEGMENT_MARKER,
)


def _check_blob(blob: bytes) -> None:
    if not blob:
        raise InputSizeError("Cannot wrap an empty blob")
    check_uint16(len(blob), "blob length")


def wrap_rsdos(blob: bytes, start: int, exec_address: Optional[int] = None) -> bytes:
    """
    Build a single-segment RS-DOS binary.

    Args:
        blob: Machine language bytes
        start: Load address
        exec_address: Exec address (defaults to start)

    Returns:
        Preamble, blob and postamble as one byte string
    """
    _check_blob(blob)
    exec_address = start if exec_address is None else exec_address
    check_uint16(start, "start")
    check_uint16(exec_address, "exec")

    preamble = struct.pack(">BHH", RS_DOS_SEGMENT_MARKER, len(blob), start)
    postamble = struct.pack(">BHH", RS_DOS_END_MARKER, 0x0000, exec_address)
    return preamble + bytes(blob) + postamble


def wrap_dragondos(blob: bytes, start: int, exec_address: Optional[int] = None) -> bytes:
    """
    Build a Dragon DOS binary file (type $02).

    Args:
        blob: Machine language bytes
        start: Load address
        exec_address: Exec address (defaults to start)

    Returns:
        9-byte header followed by the blob
    """
    _check_blob(blob)
    exec_address = start if exec_address is None else exec_address
    check_uint16(start, "start")
    check_uint16(exec_address, "exec")

    header = struct.pack(
        ">BBHHHB",
        DRAGON_DOS_HEADER_START,
        DragonDosFileType.BINARY,
        start,
        len(blob),
        exec_address,
        DRAGON_DOS_HEADER_END,
    )
    return header + bytes(blob)


def wrap_prg(blob: bytes, start: int) -> bytes:
    """Build a Commodore PRG file: little-endian load address, then the blob."""
    _check_blob(blob)
    check_uint16(start, "start")
    return struct.pack("<H", start) + bytes(blob)


def wrap(
    fmt: ContainerFormat,
    blob: bytes,
    start: int,
    exec_address: Optional[int] = None,
) -> bytes:
    """
    Wrap a blob in the given container format.

    BINARY returns the blob unchanged; PRG ignores exec_address.
    """
    if fmt is ContainerFormat.BINARY:
        _check_blob(blob)
        return bytes(blob)
    if fmt is ContainerFormat.RS_DOS:
        return wrap_rsdos(blob, start, exec_address)
    if fmt is ContainerFormat.DRAGON_DOS:
        return wrap_dragondos(blob, start, exec_address)
    return wrap_prg(blob, start)

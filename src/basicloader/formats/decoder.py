"""
Container Decoders
==================

This module reads an input file in one of the supported container formats
and separates the machine language blob from what the container says
about it (load address, exec address, declared length).

Decoding Flow
-------------
1. Measure the stream (seek to the end and back) and check its size
   against the format's minimum and the configured maximum.
2. Decode the header with the format's decoder, which leaves the stream
   positioned at the first blob byte. RS-DOS and Dragon DOS decoders
   validate their declared lengths against the measured size, and RS-DOS
   seeks to the postamble and back.
3. Read exactly the blob, then check that only the expected trailer
   remains.

Any short read is fatal: nothing is ever silently truncated.

Usage Examples
--------------
Reading a file:
    >>> from basicloader.formats import ContainerFormat, read_container_file
    >>> container = read_container_file("game.bin", ContainerFormat.RS_DOS)
    >>> print(f"Start: ${container.info.start:04X}")

Reading bytes already in memory:
    >>> container = read_container_bytes(b"\\x01\\x02\\x03", ContainerFormat.BINARY)
    >>> container.payload
    b'\\x01\\x02\\x03'
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union
import io
import logging
import os

from basicloader.addresses import check_exec_range, word_be, word_le
from basicloader.config import LoaderConfig, get_default_config
from basicloader.errors import FormatError, InputSizeError, TruncatedFileError
from basicloader.formats.records import (
    ContainerFormat,
    DragonDosFileType,
    FileInfo,
    DRAGON_DOS_HEADER_END,
    DRAGON_DOS_HEADER_SIZE,
    DRAGON_DOS_HEADER_START,
    PRG_BASIC_LOAD_ADDRESS,
    PRG_HEADER_SIZE,
    RS_DOS_END_MARKER,
    RS_DOS_POSTAMBLE_SIZE,
    RS_DOS_PREAMBLE_SIZE,
    RS_DOS_SEGMENT_MARKER,
)

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Stream Helpers
# =============================================================================

def measure_stream(stream: BinaryIO, filename: str) -> int:
    """
    Find the size of a seekable stream and rewind it.

    Args:
        stream: A seekable binary stream
        filename: Name used in error messages

    Returns:
        The stream size in bytes

    Raises:
        FormatError: If the stream cannot be measured
    """
    try:
        size = stream.seek(0, os.SEEK_END)
        stream.seek(0, os.SEEK_SET)
    except (OSError, io.UnsupportedOperation) as e:
        raise FormatError(f'Could not get size of file "{filename}": {e}', filename) from e
    return size


def read_exact(stream: BinaryIO, count: int, filename: str) -> bytes:
    """
    Read exactly ``count`` bytes.

    Raises:
        TruncatedFileError: If the stream ends first
    """
    data = stream.read(count)
    if len(data) != count:
        raise TruncatedFileError(filename, count, len(data))
    return data


def _seek(stream: BinaryIO, offset: int, whence: int, filename: str) -> None:
    try:
        stream.seek(offset, whence)
    except (OSError, ValueError) as e:
        raise FormatError(f'Couldn\'t operate on file "{filename}": {e}', filename) from e


# =============================================================================
# Size Checks
# =============================================================================

def check_input_size(
    file_size: int,
    fmt: ContainerFormat,
    filename: str,
    config: LoaderConfig,
) -> int:
    """
    Check the input file size and derive the blob size from it.

    Args:
        file_size: Measured size of the input file
        fmt: Container format of the input
        filename: Name used in error messages
        config: Supplies the size limits

    Returns:
        Size of the machine language blob in bytes

    Raises:
        InputSizeError: If the file or the blob has an unusable size
    """
    if file_size == 0:
        raise InputSizeError(f'File "{filename}" is empty')

    if file_size < fmt.minimum_file_size:
        raise InputSizeError(
            f'Minimum input file size for file format "{fmt.cli_name}" is '
            f"{fmt.minimum_file_size}\n"
            f'Input file "{filename}" is {file_size} bytes long'
        )

    if file_size > config.max_input_file_size:
        raise InputSizeError(f'Input file "{filename}" is too large')

    blob_size = file_size - fmt.overhead

    if blob_size > config.max_blob_size:
        raise InputSizeError(
            f'The machine language content of input file "{filename}" is too large'
        )

    return blob_size


# =============================================================================
# Per-Format Header Decoders
# =============================================================================
#
# Each decoder takes (stream, filename, file_size), expects the stream at
# offset 0, and returns with the stream positioned at the first blob byte.

def decode_binary(stream: BinaryIO, filename: str, file_size: int) -> FileInfo:
    """A raw binary has no header: nothing is known about the blob."""
    return FileInfo()


def decode_prg(stream: BinaryIO, filename: str, file_size: int) -> FileInfo:
    """
    Decode a Commodore PRG header (2-byte little-endian load address).

    Raises:
        FormatError: If the load address is that of a BASIC program
    """
    header = read_exact(stream, PRG_HEADER_SIZE, filename)
    start = word_le(header[0], header[1])

    if start == PRG_BASIC_LOAD_ADDRESS:
        raise FormatError(
            f'Input PRG file "{filename}" is unsuitable for use with BASICloader\n'
            f"It is likely a BASIC program, or a hybrid BASIC/machine language program",
            filename,
        )

    logger.debug(f"PRG header: load address ${start:04X}")
    return FileInfo(start=start)


def decode_rsdos(stream: BinaryIO, filename: str, file_size: int) -> FileInfo:
    """
    Decode a single-segment RS-DOS binary (preamble and postamble).

    Raises:
        FormatError: If the preamble or postamble is malformed, the file is
            segmented, or the declared length is wrong
        AddressError: If the exec address lies outside the blob
    """
    preamble = read_exact(stream, RS_DOS_PREAMBLE_SIZE, filename)

    if preamble[0] != RS_DOS_SEGMENT_MARKER:
        raise FormatError(
            f'Input file "{filename}" is not properly formed as an RS-DOS file '
            f"(bad header)",
            filename,
        )

    length = word_be(preamble[1], preamble[2])
    measured = file_size - RS_DOS_PREAMBLE_SIZE - RS_DOS_POSTAMBLE_SIZE
    if length != measured:
        raise FormatError(
            f'Input file "{filename}" length ({length}) given in the header\n'
            f"does not match measured length ({measured})",
            filename,
        )

    start = word_be(preamble[3], preamble[4])

    _seek(stream, -RS_DOS_POSTAMBLE_SIZE, os.SEEK_END, filename)
    postamble = read_exact(stream, RS_DOS_POSTAMBLE_SIZE, filename)

    if postamble[0] == RS_DOS_SEGMENT_MARKER:
        raise FormatError(
            f'Input RS-DOS file "{filename}" is segmented, and cannot be used',
            filename,
        )

    if postamble[0] != RS_DOS_END_MARKER or postamble[1] != 0x00 or postamble[2] != 0x00:
        raise FormatError(
            f'Input file "{filename}" is not properly formed as an RS-DOS file '
            f"(bad tail)",
            filename,
        )

    exec_address = word_be(postamble[3], postamble[4])
    check_exec_range(start, exec_address, start + length - 1, filename)

    _seek(stream, RS_DOS_PREAMBLE_SIZE, os.SEEK_SET, filename)

    logger.debug(
        f"RS-DOS header: start ${start:04X}, length {length}, exec ${exec_address:04X}"
    )
    return FileInfo(start=start, exec=exec_address, length=length)


def decode_dragondos(stream: BinaryIO, filename: str, file_size: int) -> FileInfo:
    """
    Decode a Dragon DOS binary file header.

    Raises:
        FormatError: If the markers are missing, the file type is not a
            binary, or the declared length is wrong
        AddressError: If the exec address lies outside the blob
    """
    header = read_exact(stream, DRAGON_DOS_HEADER_SIZE, filename)

    if header[0] != DRAGON_DOS_HEADER_START or header[8] != DRAGON_DOS_HEADER_END:
        raise FormatError(
            f'Input file "{filename}" doesn\'t appear to be a Dragon DOS file',
            filename,
        )

    file_type = header[1]
    if file_type == DragonDosFileType.BASIC:
        raise FormatError(
            f'Input Dragon DOS file "{filename}" appears to be a BASIC program',
            filename,
        )
    if file_type == DragonDosFileType.DOSPLUS:
        raise FormatError(
            f'Input Dragon DOS file "{filename}" is an unsupported file '
            f"(possibly DosPlus)",
            filename,
        )
    if file_type != DragonDosFileType.BINARY:
        raise FormatError(
            f'Input Dragon DOS file "{filename}" has an unknown file type '
            f"(0x{file_type:02X})",
            filename,
        )

    start = word_be(header[2], header[3])
    length = word_be(header[4], header[5])
    exec_address = word_be(header[6], header[7])

    measured = file_size - DRAGON_DOS_HEADER_SIZE
    if length != measured:
        raise FormatError(
            f'The header of input Dragon DOS file "{filename}" gives incorrect '
            f"length ({length}, measured {measured})",
            filename,
        )

    check_exec_range(start, exec_address, start + length - 1, filename)

    logger.debug(
        f"Dragon DOS header: start ${start:04X}, length {length}, "
        f"exec ${exec_address:04X}"
    )
    return FileInfo(start=start, exec=exec_address, length=length)


HeaderDecoder = Callable[[BinaryIO, str, int], FileInfo]

_DECODERS: dict[ContainerFormat, HeaderDecoder] = {
    ContainerFormat.BINARY: decode_binary,
    ContainerFormat.RS_DOS: decode_rsdos,
    ContainerFormat.DRAGON_DOS: decode_dragondos,
    ContainerFormat.PRG: decode_prg,
}

# Every format must have a decoder
assert set(_DECODERS) == set(ContainerFormat)


def decode_header(
    stream: BinaryIO,
    fmt: ContainerFormat,
    filename: str,
    file_size: int,
) -> FileInfo:
    """
    Decode the container header of ``stream``.

    Args:
        stream: Seekable binary stream positioned at offset 0
        fmt: Declared container format
        filename: Name used in error messages
        file_size: Measured size of the stream

    Returns:
        FileInfo with whatever the container declares; the stream is left
        at the first byte of the blob
    """
    return _DECODERS[fmt](stream, filename, file_size)


# =============================================================================
# Whole-Container Reading
# =============================================================================

@dataclass(frozen=True)
class Container:
    """
    A decoded input file.

    Attributes:
        format: The container format it was decoded as
        info: What the container header declared
        payload: The machine language blob
        filename: Name of the input file
        file_size: Size of the whole input file
    """
    format: ContainerFormat
    info: FileInfo
    payload: bytes = field(repr=False)
    filename: str
    file_size: int

    @property
    def blob_size(self) -> int:
        return len(self.payload)


def read_container(
    stream: BinaryIO,
    fmt: ContainerFormat,
    filename: str = "<stdin>",
    config: Optional[LoaderConfig] = None,
) -> Container:
    """
    Decode a container from a seekable binary stream.

    Args:
        stream: Seekable binary stream holding the whole input file
        fmt: Declared container format
        filename: Name used in error messages
        config: Size limits (defaults to get_default_config())

    Returns:
        The decoded Container

    Raises:
        InputSizeError: If the file or blob size is unusable
        FormatError: If the container is malformed or has trailing bytes
        AddressError: If the container's exec address lies outside the blob
    """
    config = config or get_default_config()

    file_size = measure_stream(stream, filename)
    blob_size = check_input_size(file_size, fmt, filename, config)

    info = decode_header(stream, fmt, filename, file_size)
    payload = read_exact(stream, blob_size, filename)

    remainder = file_size - stream.tell()
    if remainder != fmt.trailer_size:
        raise FormatError(f'Unexpected remaining bytes in input file "{filename}"', filename)

    logger.debug(f"Read {blob_size} byte blob from {fmt.cli_name} file \"{filename}\"")
    return Container(
        format=fmt,
        info=info,
        payload=payload,
        filename=filename,
        file_size=file_size,
    )


def read_container_bytes(
    data: bytes,
    fmt: ContainerFormat,
    filename: str = "<input>",
    config: Optional[LoaderConfig] = None,
) -> Container:
    """Decode a container held in memory."""
    return read_container(io.BytesIO(data), fmt, filename, config)


def read_container_file(
    filepath: Union[str, Path],
    fmt: ContainerFormat,
    config: Optional[LoaderConfig] = None,
) -> Container:
    """
    Read and decode a container file from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        LoaderError: If the file cannot be decoded
    """
    filepath = Path(filepath)
    with filepath.open("rb") as stream:
        return read_container(stream, fmt, str(filepath), config)

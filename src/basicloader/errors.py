"""
BASICloader Error Hierarchy
===========================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from LoaderError, allowing callers to catch every
conversion failure with a single except clause if desired.

Exception Hierarchy
-------------------
LoaderError (base)
├── FormatError - container header/footer is malformed
│   └── TruncatedFileError - end of file before the expected bytes were read
├── InputSizeError - input file or machine language blob has a bad size
├── AddressError - start/exec/end addresses cannot be reconciled
│   └── AddressConflictError - file metadata disagrees with the user
├── EmissionError - generated BASIC program would be invalid
│   ├── ProgramSizeError - too many bytes or too many lines
│   └── LineNumberError - line numbers ran past the BASIC maximum
├── ConfigurationError - invalid option or option combination
└── InternalError - a violated internal invariant (a bug, not bad input)

Design Philosophy
-----------------
User errors describe what is wrong with the input or the options, and name
the file and the values involved. InternalError is reserved for states the
code itself should have prevented; the command-line front end frames those
messages differently and exits with a distinct code.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class LoaderError(Exception):
    """
    Base exception for all BASICloader errors.

    All exceptions in the package inherit from this class, allowing callers
    to catch every conversion failure with a single except clause:

        try:
            result = convert_bytes(data, options)
        except LoaderError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Input File Exceptions
# =============================================================================

class FormatError(LoaderError):
    """
    Invalid container file format.

    Raised when reading an input file whose header or footer does not
    match the declared container format:
    - RS-DOS preamble does not start with $00, or the tail is malformed
    - Dragon DOS header lacks the $55/$AA markers or has the wrong type
    - PRG load address marks the file as a BASIC program
    - Declared lengths disagree with the measured file size

    Attributes:
        filename: Name of the input file (or "<stdin>")
    """

    def __init__(self, message: str, filename: Optional[str] = None):
        self.filename = filename
        super().__init__(message)


class TruncatedFileError(FormatError):
    """
    End of file reached before a header, payload or footer was complete.

    The decoders never silently truncate: a short read is always fatal.
    """

    def __init__(self, filename: str, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f'Unexpected end of file while reading file "{filename}" '
            f"(wanted {expected} bytes, got {actual})",
            filename=filename,
        )


class InputSizeError(LoaderError):
    """
    Input file or machine language blob has an unusable size.

    Raised when:
    - The input file is empty
    - The input file is shorter than its container format allows
    - The input file or its machine language content is too large
    """
    pass


# =============================================================================
# Address Exceptions
# =============================================================================

class AddressError(LoaderError):
    """
    Addresses cannot be resolved into a valid memory layout.

    Raised when:
    - The blob would run past the highest RAM address of the target
    - The exec location lies below the start or beyond the end of the blob
    - The length declared by the container disagrees with the payload
    """
    pass


class AddressConflictError(AddressError):
    """
    An address given by the container file disagrees with the user.

    File metadata and command-line values are never ranked against each
    other; when both are present they must be equal.

    Attributes:
        what: Which address is in conflict ("start" or "exec")
        file_value: The value found in the container
        user_value: The value given by the user
    """

    def __init__(self, what: str, file_value: int, user_value: int,
                 filename: Optional[str] = None):
        self.what = what
        self.file_value = file_value
        self.user_value = user_value
        source = f'Input file "{filename}"' if filename else "The input file"
        super().__init__(
            f"{source} gives a different {what} address (${file_value:04X})\n"
            f"to the one given at the command line (${user_value:04X})"
        )


# =============================================================================
# Emission Exceptions
# =============================================================================

class EmissionError(LoaderError):
    """Base exception for errors raised while generating the BASIC program."""
    pass


class ProgramSizeError(EmissionError):
    """
    Generated BASIC program is too large.

    Raised when the program exceeds the byte ceiling or the maximum
    number of lines. A smaller blob, compact output or a larger limit
    in the configuration are the only remedies.
    """
    pass


class LineNumberError(EmissionError):
    """
    BASIC line numbers have become too large.

    Raised when advancing the line number would pass the highest line
    number the target BASIC accepts (or the 16-bit range). Try a lower
    starting line or a smaller step.
    """
    pass


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(LoaderError):
    """
    Invalid option value or option combination.

    Examples:
        - PRG input for a target other than the Commodore 64
        - Lowercase output for the Color Computer
        - A line number step of zero
    """
    pass


# =============================================================================
# Internal Errors
# =============================================================================

class InternalError(LoaderError):
    """
    An internal invariant was violated.

    This indicates a bug in the package, not a problem with the input:
    a line emitted mid-line, a column past the line length limit, a
    pipeline stage skipped. It is reported differently from user errors.
    """
    pass

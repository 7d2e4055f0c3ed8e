"""
BASIC Line Emitter
==================

This module writes line-numbered BASIC text while keeping track of where
the virtual cursor is: the current column, the current line number, how
many lines have been written and how many bytes. Every fragment of the
generated program goes through ``LineEmitter.emit``, so case folding,
width accounting and size limits live in one place.

Line Numbering
--------------
The first ``start_line`` uses the configured first line number as is;
every later one adds ``step``. Compact output starts at 0 with step 1,
typable output at 10 with step 10. A line number beyond the machine's
BASIC maximum (63999) is an error.

Limits
------
- A line longer than ``min(config.max_line_length, machine maximum)`` is
  an InternalError: the composer is expected to wrap before that happens.
- More than ``config.max_line_count`` lines, or more than
  ``config.program_size_ceiling()`` bytes, is a ProgramSizeError.

Fragments
---------
Text is assembled with ``Fragment``, a small builder that only accepts
literals, integers and DATA separators:

    >>> Fragment().literal("FORP=").number(15872).literal("TO").number(15874).render()
    'FORP=15872TO15874'
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, TextIO, Union
import logging

from basicloader.addresses import UINT16_MAX
from basicloader.config import LoaderConfig, get_default_config
from basicloader.errors import InternalError, LineNumberError, ProgramSizeError
from basicloader.targets import TargetArchitecture

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Output Case
# =============================================================================

class OutputCase(IntEnum):
    """
    Case applied to every character of the generated program.

    UPPER suits the Color Computer and Dragon, whose BASICs only understand
    uppercase keywords. LOWER suits the Commodore 64 in its default
    character set. MIXED leaves the text as written.
    """
    UPPER = 1
    LOWER = 2
    MIXED = 3

    @classmethod
    def from_name(cls, name: str) -> Optional["OutputCase"]:
        """Look up a case by name ("upper", "lower" or "mixed")."""
        try:
            return cls[name.upper()]
        except KeyError:
            return None

    def apply(self, text: str) -> str:
        """Fold ``text`` to this case. Digits are unaffected."""
        if self is OutputCase.UPPER:
            return text.upper()
        if self is OutputCase.LOWER:
            return text.lower()
        return text


# =============================================================================
# Text Fragments
# =============================================================================

class Fragment:
    """
    Typed builder for one piece of BASIC text.

    Each method appends to the fragment and returns it, so fragments read
    like the BASIC they produce:

        >>> Fragment().literal("POKE ").number(55).literal(",").number(0).render()
        'POKE 55,0'
    """

    def __init__(self, text: str = ""):
        self._parts: list[str] = []
        if text:
            self.literal(text)

    def literal(self, text: str) -> "Fragment":
        """Append fixed text."""
        if "\n" in text:
            raise InternalError("Fragment literals must not contain newlines")
        self._parts.append(text)
        return self

    def number(self, value: int) -> "Fragment":
        """Append a non-negative integer in decimal."""
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InternalError(f"Cannot emit {value!r} as a BASIC number")
        self._parts.append(str(value))
        return self

    def separator(self, typable: bool) -> "Fragment":
        """Append a DATA item separator (``", "`` when typable, else ``","``)."""
        self._parts.append(", " if typable else ",")
        return self

    def render(self) -> str:
        return "".join(self._parts)

    def __len__(self) -> int:
        return sum(len(part) for part in self._parts)

    def __str__(self) -> str:
        return self.render()


Text = Union[str, Fragment]


# =============================================================================
# Emission State
# =============================================================================

@dataclass
class EmissionState:
    """
    Cursor and counters for one program being emitted.

    Attributes:
        line_number: Last line number used (or the first one, before any
            line has been started)
        step: Line number increment
        started: Whether any line number has been used yet
        column: Characters written on the current line
        line_count: Newlines written so far
        bytes_written: Characters written so far
    """
    line_number: int = 0
    step: int = 1
    started: bool = False
    column: int = 0
    line_count: int = 0
    bytes_written: int = 0


# =============================================================================
# Line Emitter
# =============================================================================

class LineEmitter:
    """
    Writes BASIC text to a sink, enforcing the program shape limits.

    Args:
        sink: Text stream receiving the program
        target: Machine the program is for (line length and number limits)
        case: Case folding applied to all output
        config: Program limits (defaults to get_default_config())
        first_line: Number of the first line
        step: Line number increment

    Example:
        >>> out = io.StringIO()
        >>> emitter = LineEmitter(out, TargetArchitecture.COCO, first_line=10, step=10)
        >>> emitter.emit_line("END")
        10
        >>> out.getvalue()
        '10 END\\n'
    """

    def __init__(
        self,
        sink: TextIO,
        target: TargetArchitecture,
        case: OutputCase = OutputCase.UPPER,
        config: Optional[LoaderConfig] = None,
        first_line: int = 0,
        step: int = 1,
    ):
        self.sink = sink
        self.target = target
        self.case = case
        self.config = config or get_default_config()

        arch = target.get_info()
        self.max_line_number = min(arch.max_line_number, UINT16_MAX)
        self.line_limit = min(self.config.max_line_length, arch.max_line_length)
        self.size_limit = self.config.program_size_ceiling()

        if step < 1:
            raise LineNumberError(f"Line number step must be at least 1 (got {step})")
        if not 0 <= first_line <= self.max_line_number:
            raise LineNumberError(
                f"Starting line number {first_line} is beyond the maximum "
                f"of {self.max_line_number}"
            )

        self.state = EmissionState(line_number=first_line, step=step)

    # -------------------------------------------------------------------------
    # Cursor queries
    # -------------------------------------------------------------------------

    @property
    def column(self) -> int:
        return self.state.column

    @property
    def line_count(self) -> int:
        return self.state.line_count

    @property
    def bytes_written(self) -> int:
        return self.state.bytes_written

    @property
    def current_line_number(self) -> int:
        """Number of the line most recently started."""
        if not self.state.started:
            raise InternalError("No line has been started yet")
        return self.state.line_number

    def upcoming(self, count: int) -> int:
        """
        Number the line ``count`` lines after the most recent one will get.

        Used for forward GOTO targets, which must be known before the lines
        in between are emitted.
        """
        return self.current_line_number + count * self.state.step

    # -------------------------------------------------------------------------
    # Emission
    # -------------------------------------------------------------------------

    def emit(self, text: Text) -> None:
        """
        Write text, updating the cursor and checking every limit.

        Raises:
            ProgramSizeError: If the line count or byte ceiling is exceeded
            InternalError: If a line grows past the line length limit
        """
        output = self.case.apply(str(text))
        state = self.state

        for char in output:
            if char == "\n":
                state.line_count += 1
                if state.line_count > self.config.max_line_count:
                    raise ProgramSizeError(
                        f"Generated BASIC program has too many lines "
                        f"(more than {self.config.max_line_count})"
                    )
                state.column = 0
            else:
                state.column += 1
                if state.column > self.line_limit:
                    raise InternalError(
                        f"Line {state.line_number} is longer than "
                        f"{self.line_limit} characters"
                    )

        self.sink.write(output)
        state.bytes_written += len(output)

        if state.bytes_written > self.size_limit:
            raise ProgramSizeError("Generated BASIC program is too large")

    def advance_line_number(self) -> int:
        """
        Move to the next line number and return it.

        The first call returns the configured first line number unchanged.

        Raises:
            LineNumberError: If the next number is beyond the BASIC maximum
        """
        state = self.state
        if not state.started:
            state.started = True
            return state.line_number

        next_number = state.line_number + state.step
        if next_number > self.max_line_number:
            raise LineNumberError(
                f"Line number {next_number} is beyond the maximum "
                f"of {self.max_line_number}"
            )
        state.line_number = next_number
        return next_number

    def start_line(self) -> int:
        """
        Begin a new line by writing its number and a space.

        Returns:
            The new line's number

        Raises:
            InternalError: If the previous line has not been finished
        """
        if self.state.column != 0:
            raise InternalError("Line emission did not start at position zero")
        number = self.advance_line_number()
        self.emit(Fragment().number(number).literal(" "))
        return number

    def emit_line(self, body: Text) -> int:
        """
        Write one complete numbered line.

        Returns:
            The line's number
        """
        number = self.start_line()
        self.emit(body)
        self.emit("\n")
        return number

    def newline_if_needed(self) -> None:
        """Finish the current line, if anything has been written on it."""
        if self.state.column > 0:
            self.emit("\n")

    def finish(self) -> EmissionState:
        """Terminate the last line and return the final state."""
        self.newline_if_needed()
        logger.debug(
            f"Emitted {self.state.line_count} lines, "
            f"{self.state.bytes_written} bytes"
        )
        return self.state

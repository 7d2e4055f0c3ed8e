"""
BASIC Program Composer
======================

This module lays out the generated loader program: an optional memory
reservation preamble, optional remarks, a bootstrap that READs and POKEs
the blob into memory, and the DATA statements that carry the blob.

Program Structure
-----------------
::

    [preamble]   CLEAR 200,<start-1>             (Dragon, CoCo with --extbas)
                 POKE 55,<lo>:POKE 56,<hi>       (Commodore 64)
    [remarks]    five REM lines, one of them dated
    bootstrap    one of the templates below
    DATA ...     the blob, one decimal value per byte

Bootstrap Templates
-------------------
Compact output packs the bootstrap into as few lines as possible; typable
output puts one statement on each line so that a listing can be typed in
by hand. ``verify`` adds a PEEK after each POKE. ``checksum`` (typable
only) splits the DATA into groups of N bytes, each preceded by the
number of the line it starts on and the sum of its bytes::

    10 P = 15872
    20 Q = 15896
    30 READ L, CS            <- loop head
    40 C = 0
    50 J = Q - P
    60 IF J > 9 THEN J = 9
    70 FOR I = 0 TO J
    80 READ A
    90 POKE P,A
    100 C = C + A
    110 P = P + 1
    120 NEXT I
    130 IF C <> CS THEN GOTO 170
    140 IF P <= Q THEN GOTO 30
    150 EXEC 15872
    160 END
    170 PRINT "There is an error"
    ...

Forward GOTO targets are computed as ``current line + k * step`` before
the lines in between are emitted. The offsets are fixed per template.
"""

from datetime import date
from typing import Optional
import logging

from basicloader.basic.emitter import Fragment, LineEmitter
from basicloader.errors import InternalError
from basicloader.layout import ResolvedLayout
from basicloader.targets import TargetArchitecture

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Remarks
# =============================================================================

REMARK_DATE_FORMAT = "%d %B %Y"

REMARK_HEADER = (
    "REM   This program was",
    "REM generated by BASICloader",
)

REMARK_FOOTER = (
    "REM See github.com/",
    "REM      richardcavell",
)

# Memory kept free for strings by CLEAR
CLEAR_STRING_SPACE = 200

# Commodore 64 zero page pointer to the top of BASIC memory
C64_MEMTOP_LO = 55
C64_MEMTOP_HI = 56


def format_remark_date(when: date) -> Optional[str]:
    """
    Format the date shown in the remarks.

    Returns:
        The date text, or None (with a warning) if it cannot be formatted
    """
    try:
        return when.strftime(REMARK_DATE_FORMAT)
    except (ValueError, OverflowError) as e:
        logger.warning(f"Couldn't format date: {e}")
        return None


# =============================================================================
# Program Composer
# =============================================================================

class ProgramComposer:
    """
    Emits the parts of a loader program through a LineEmitter.

    Args:
        emitter: Emitter for the program text (owns the emission state)
        target: Machine the program is for
        typable: One statement per line, with spaces
        verify: Check each POKE with PEEK
        checksum: Group the DATA with per-group checksums; implies typable
        extended_basic: The CoCo has Extended Color BASIC (enables CLEAR)
        group_size: Data bytes per checksummed group
    """

    def __init__(
        self,
        emitter: LineEmitter,
        target: TargetArchitecture,
        typable: bool = False,
        verify: bool = False,
        checksum: bool = False,
        extended_basic: bool = False,
        group_size: int = 10,
    ):
        if group_size < 1:
            raise InternalError(f"Checksum group size must be at least 1 (got {group_size})")

        self.emitter = emitter
        self.target = target
        self.typable = typable or checksum
        self.verify = verify
        self.checksum = checksum
        self.extended_basic = extended_basic
        self.group_size = group_size
        self.exec_keyword = target.get_info().exec_keyword

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _line(self, text: str) -> int:
        return self.emitter.emit_line(text)

    def _exec_statement(self, exec_address: int) -> Fragment:
        gap = " " if self.typable else ""
        return Fragment(self.exec_keyword + gap).number(exec_address)

    # -------------------------------------------------------------------------
    # Preamble and remarks
    # -------------------------------------------------------------------------

    def needs_preamble(self) -> bool:
        """Whether this machine and option set produce a preamble line."""
        if self.target is TargetArchitecture.C64:
            return True
        if self.target is TargetArchitecture.DRAGON:
            return True
        return self.extended_basic

    def emit_preamble(self, layout: ResolvedLayout) -> None:
        """
        Reserve the memory the blob will occupy.

        On the Dragon and on Extended Color BASIC, CLEAR lowers the top of
        BASIC memory to just below the blob. On the Commodore 64 the top of
        memory pointer at 55/56 is set to the blob's start.
        """
        if not self.needs_preamble():
            return

        if self.target is TargetArchitecture.C64:
            lo, hi = layout.start % 256, layout.start // 256
            if self.typable:
                text = (Fragment("POKE ").number(C64_MEMTOP_LO).literal(",").number(lo)
                        .literal(":POKE ").number(C64_MEMTOP_HI).literal(",").number(hi))
            else:
                text = (Fragment("POKE").number(C64_MEMTOP_LO).literal(",").number(lo)
                        .literal(":POKE").number(C64_MEMTOP_HI).literal(",").number(hi))
        else:
            # A blob at address 0 leaves nothing to reserve below it
            top = max(layout.start - 1, 0)
            if self.typable:
                text = Fragment("CLEAR ").number(CLEAR_STRING_SPACE).literal(", ").number(top)
            else:
                text = Fragment("CLEAR").number(CLEAR_STRING_SPACE).literal(",").number(top)

        self.emitter.emit_line(text)

    def emit_remarks(self, when: Optional[date] = None) -> None:
        """
        Emit the remark block.

        Args:
            when: Date shown in the remarks (defaults to today)
        """
        date_text = format_remark_date(when or date.today())

        for remark in REMARK_HEADER:
            self._line(remark)
        if date_text is not None:
            self._line(f"REM   on {date_text:<15}")
        for remark in REMARK_FOOTER:
            self._line(remark)

    # -------------------------------------------------------------------------
    # Bootstrap
    # -------------------------------------------------------------------------

    def emit_bootstrap(self, layout: ResolvedLayout) -> None:
        """Emit the template that pokes the DATA into memory and runs it."""
        if self.checksum:
            self._emit_checksum_bootstrap(layout)
        elif self.typable:
            self._emit_typable_bootstrap(layout)
        else:
            self._emit_compact_bootstrap(layout)

    def _emit_compact_bootstrap(self, layout: ResolvedLayout) -> None:
        emitter = self.emitter
        loop = Fragment("FORP=").number(layout.start).literal("TO").number(layout.end)

        if not self.verify:
            emitter.emit_line(
                loop.literal(":READA:POKEP,A:NEXT:")
                .literal(self.exec_keyword).number(layout.exec).literal(":END")
            )
            return

        emitter.emit_line(loop.literal(":READA:POKEP,A"))
        # FOR line + 3: the PRINT"Error!" line
        emitter.emit_line(Fragment("IFA<>PEEK(P)THENGOTO").number(emitter.upcoming(3)))
        emitter.emit_line(
            Fragment("NEXT:").literal(self.exec_keyword).number(layout.exec).literal(":END")
        )
        emitter.emit_line('PRINT"Error!":END')

    def _emit_typable_bootstrap(self, layout: ResolvedLayout) -> None:
        emitter = self.emitter
        emitter.emit_line(
            Fragment("FOR P = ").number(layout.start).literal(" TO ").number(layout.end)
        )
        self._line("READ A")
        self._line("POKE P,A")
        if self.verify:
            # POKE line + 5: the PRINT "Error!" line
            emitter.emit_line(
                Fragment("IF A<>PEEK(P) THEN GOTO ").number(emitter.upcoming(5))
            )
        self._line("NEXT P")
        emitter.emit_line(self._exec_statement(layout.exec))
        self._line("END")
        if self.verify:
            self._line('PRINT "Error!"')
            self._line("END")

    def _emit_checksum_bootstrap(self, layout: ResolvedLayout) -> None:
        emitter = self.emitter
        last_index = self.group_size - 1

        emitter.emit_line(Fragment("P = ").number(layout.start))
        emitter.emit_line(Fragment("Q = ").number(layout.end))
        loop_head = self._line("READ L, CS")
        self._line("C = 0")
        self._line("J = Q - P")
        emitter.emit_line(
            Fragment("IF J > ").number(last_index).literal(" THEN J = ").number(last_index)
        )
        self._line("FOR I = 0 TO J")
        self._line("READ A")
        self._line("POKE P,A")
        if self.verify:
            # POKE line + 12: the PRINT "Error while poking memory!" line
            emitter.emit_line(
                Fragment("IF A<>PEEK(P) THEN GOTO ").number(emitter.upcoming(12))
            )
        self._line("C = C + A")
        self._line("P = P + 1")
        self._line("NEXT I")
        # NEXT I line + 5: the PRINT "There is an error" line
        emitter.emit_line(Fragment("IF C <> CS THEN GOTO ").number(emitter.upcoming(5)))
        emitter.emit_line(Fragment("IF P <= Q THEN GOTO ").number(loop_head))
        emitter.emit_line(self._exec_statement(layout.exec))
        self._line("END")
        self._line('PRINT "There is an error"')
        self._line('PRINT "on line";L;"!"')
        self._line("END")
        if self.verify:
            self._line('PRINT "Error while poking memory!"')
            self._line("END")

    # -------------------------------------------------------------------------
    # DATA
    # -------------------------------------------------------------------------

    def emit_datum(self, value: int) -> None:
        """
        Append one value to the DATA stream.

        Values are packed onto the current DATA line while they fit; a value
        that would overflow the line starts a new ``DATA`` line.
        """
        emitter = self.emitter
        item = Fragment().separator(self.typable).number(value)

        if emitter.column > 0 and emitter.column + len(item) > emitter.line_limit:
            emitter.emit("\n")

        if emitter.column == 0:
            emitter.start_line()
            emitter.emit(Fragment("DATA " if self.typable else "DATA").number(value))
        else:
            emitter.emit(item)

    def emit_data(self, payload: bytes) -> None:
        """
        Emit the blob as DATA statements.

        Without checksums the values are packed greedily. With checksums
        each group of up to ``group_size`` bytes starts a new line with its
        line number and byte sum, and ends the line.
        """
        if not self.checksum:
            for value in payload:
                self.emit_datum(value)
            return

        emitter = self.emitter
        groups = 0
        for offset in range(0, len(payload), self.group_size):
            group = payload[offset:offset + self.group_size]
            emitter.newline_if_needed()
            self.emit_datum(emitter.upcoming(1))
            self.emit_datum(sum(group))
            for value in group:
                self.emit_datum(value)
            emitter.newline_if_needed()
            groups += 1

        logger.debug(f"Emitted {groups} checksummed groups of up to {self.group_size} bytes")

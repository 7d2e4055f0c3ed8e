"""
BASIC Program Composer Unit Tests
=================================

Tests for the preamble, remarks, bootstrap templates and DATA layout.

Test Categories
---------------
1. Preamble: CLEAR and zero page POKEs per machine
2. Remarks: the REM block and its date
3. Templates: every typable/verify/checksum combination, GOTO targets
4. DATA: greedy packing, checksum groups, line length property
"""

import io
import logging
import re
from datetime import date

import pytest

from basicloader.basic import LineEmitter, OutputCase, ProgramComposer, format_remark_date
from basicloader.config import LoaderConfig
from basicloader.layout import ResolvedLayout
from basicloader.targets import TargetArchitecture


LINE_PATTERN = re.compile(r"^(\d+) (.*)$")

COCO_LAYOUT = ResolvedLayout(start=15872, end=15874, exec=15872)


def compose(
    payload: bytes,
    layout: ResolvedLayout = COCO_LAYOUT,
    target: TargetArchitecture = TargetArchitecture.COCO,
    typable: bool = False,
    verify: bool = False,
    checksum: bool = False,
    extended_basic: bool = False,
    remarks_date: date | None = None,
    case: OutputCase = OutputCase.UPPER,
    first_line: int | None = None,
    step: int | None = None,
    config: LoaderConfig | None = None,
) -> str:
    """Render a whole program the way the converter does."""
    config = config or LoaderConfig()
    typable = typable or checksum
    sink = io.StringIO()
    emitter = LineEmitter(
        sink,
        target,
        case=case,
        config=config,
        first_line=config.first_line(typable) if first_line is None else first_line,
        step=config.step(typable) if step is None else step,
    )
    composer = ProgramComposer(
        emitter,
        target,
        typable=typable,
        verify=verify,
        checksum=checksum,
        extended_basic=extended_basic,
        group_size=config.checksum_group_size,
    )
    composer.emit_preamble(layout)
    if remarks_date is not None:
        composer.emit_remarks(remarks_date)
    composer.emit_bootstrap(layout)
    composer.emit_data(payload)
    emitter.finish()
    return sink.getvalue()


def numbered_lines(text: str) -> list[tuple[int, str]]:
    """Split a program into (line number, body) pairs."""
    assert text.endswith("\n")
    result = []
    for line in text.splitlines():
        match = LINE_PATTERN.match(line)
        assert match, f"not a numbered line: {line!r}"
        result.append((int(match.group(1)), match.group(2)))
    return result


def data_lines(text: str) -> list[tuple[int, list[int]]]:
    """Extract (line number, values) for every DATA line."""
    result = []
    for number, body in numbered_lines(text):
        if body.upper().startswith("DATA"):
            values = [int(item) for item in body[4:].split(",")]
            result.append((number, values))
    return result


def run_checksum_loader(text: str, start: int, end: int, group_size: int) -> dict[int, int]:
    """
    Follow the checksummed bootstrap's logic over the emitted DATA.

    Mirrors the BASIC: READ L, CS, then J+1 bytes with J = min(Q-P, N-1),
    compare sums, loop while P <= Q. Returns the poked memory.
    """
    stream = [value for _, values in data_lines(text) for value in values]
    memory: dict[int, int] = {}
    p, q = start, end
    position = 0

    def read() -> int:
        nonlocal position
        assert position < len(stream), "out of DATA"
        value = stream[position]
        position += 1
        return value

    while True:
        _line, cs = read(), read()
        c = 0
        j = min(q - p, group_size - 1)
        for _ in range(j + 1):
            a = read()
            memory[p] = a
            c += a
            p += 1
        assert c == cs, "checksum mismatch"
        if not p <= q:
            break

    assert position == len(stream), "DATA left unread"
    return memory


# =============================================================================
# Preamble Tests
# =============================================================================

class TestPreamble:
    """Tests for the memory reservation line."""

    def test_coco_without_extended_basic(self):
        text = compose(b"\x01")
        assert "CLEAR" not in text

    def test_coco_extended_basic_compact(self):
        text = compose(b"\x01", extended_basic=True)
        assert text.startswith("0 CLEAR200,15871\n1 FORP=")

    def test_dragon_typable(self):
        text = compose(b"\x01", target=TargetArchitecture.DRAGON, typable=True)
        assert text.startswith("10 CLEAR 200, 15871\n20 FOR P = ")

    def test_c64_compact(self):
        layout = ResolvedLayout(start=0xC000, end=0xC000, exec=0xC000)
        text = compose(b"\x01", layout=layout, target=TargetArchitecture.C64)
        assert text.startswith("0 POKE55,0:POKE56,192\n")
        assert ":SYS49152:END" in text

    def test_c64_typable(self):
        layout = ResolvedLayout(start=0x8001, end=0x8001, exec=0x8001)
        text = compose(b"\x01", layout=layout, target=TargetArchitecture.C64, typable=True)
        assert text.startswith("10 POKE 55,1:POKE 56,128\n")
        assert "\n60 SYS 32769\n" in text


# =============================================================================
# Remarks Tests
# =============================================================================

class TestRemarks:
    """Tests for the REM block."""

    def test_remark_lines(self, fixed_date):
        text = compose(b"\x01", typable=True, remarks_date=fixed_date)
        bodies = [body for _, body in numbered_lines(text)][:5]
        assert bodies == [
            "REM   THIS PROGRAM WAS",
            "REM GENERATED BY BASICLOADER",
            "REM   ON 05 MARCH 2024  ",
            "REM SEE GITHUB.COM/",
            "REM      RICHARDCAVELL",
        ]

    def test_remarks_follow_preamble(self, fixed_date):
        text = compose(b"\x01", target=TargetArchitecture.DRAGON, remarks_date=fixed_date)
        lines = numbered_lines(text)
        assert lines[0][1].startswith("CLEAR")
        assert lines[1][1].startswith("REM")

    def test_mixed_case_keeps_text(self, fixed_date):
        text = compose(b"\x01", remarks_date=fixed_date, case=OutputCase.MIXED)
        assert "REM   This program was" in text

    def test_unformattable_date(self, caplog):
        class BadDate(date):
            def strftime(self, fmt):
                raise ValueError("no locale")

        with caplog.at_level(logging.WARNING):
            assert format_remark_date(BadDate(2024, 1, 1)) is None
        assert "Couldn't format date" in caplog.text

        text = compose(b"\x01", typable=True, remarks_date=BadDate(2024, 1, 1))
        assert "REM   ON" not in text
        assert text.count("REM") == 4


# =============================================================================
# Bootstrap Template Tests
# =============================================================================

class TestTemplates:
    """Tests for each bootstrap template."""

    def test_compact_plain(self):
        """A 3-byte blob at the CoCo default address."""
        assert compose(b"\x01\x02\x03") == (
            "0 FORP=15872TO15874:READA:POKEP,A:NEXT:EXEC15872:END\n"
            "1 DATA1,2,3\n"
        )

    def test_compact_verify(self):
        assert compose(b"\x01\x02\x03", verify=True) == (
            "0 FORP=15872TO15874:READA:POKEP,A\n"
            "1 IFA<>PEEK(P)THENGOTO3\n"
            "2 NEXT:EXEC15872:END\n"
            '3 PRINT"ERROR!":END\n'
            "4 DATA1,2,3\n"
        )

    def test_typable_plain(self):
        assert compose(b"\x01\x02\x03", typable=True) == (
            "10 FOR P = 15872 TO 15874\n"
            "20 READ A\n"
            "30 POKE P,A\n"
            "40 NEXT P\n"
            "50 EXEC 15872\n"
            "60 END\n"
            "70 DATA 1, 2, 3\n"
        )

    def test_typable_verify(self):
        assert compose(b"\x01\x02\x03", typable=True, verify=True) == (
            "10 FOR P = 15872 TO 15874\n"
            "20 READ A\n"
            "30 POKE P,A\n"
            "40 IF A<>PEEK(P) THEN GOTO 80\n"
            "50 NEXT P\n"
            "60 EXEC 15872\n"
            "70 END\n"
            '80 PRINT "ERROR!"\n'
            "90 END\n"
            "100 DATA 1, 2, 3\n"
        )

    def test_checksum(self):
        layout = ResolvedLayout(start=15872, end=15896, exec=15872)
        lines = numbered_lines(compose(bytes(25), layout=layout, checksum=True))
        assert lines[:19] == [
            (10, "P = 15872"),
            (20, "Q = 15896"),
            (30, "READ L, CS"),
            (40, "C = 0"),
            (50, "J = Q - P"),
            (60, "IF J > 9 THEN J = 9"),
            (70, "FOR I = 0 TO J"),
            (80, "READ A"),
            (90, "POKE P,A"),
            (100, "C = C + A"),
            (110, "P = P + 1"),
            (120, "NEXT I"),
            (130, "IF C <> CS THEN GOTO 170"),
            (140, "IF P <= Q THEN GOTO 30"),
            (150, "EXEC 15872"),
            (160, "END"),
            (170, 'PRINT "THERE IS AN ERROR"'),
            (180, 'PRINT "ON LINE";L;"!"'),
            (190, "END"),
        ]

    def test_checksum_verify(self):
        layout = ResolvedLayout(start=15872, end=15896, exec=15872)
        lines = dict(numbered_lines(compose(bytes(25), layout=layout, checksum=True, verify=True)))
        assert lines[100] == "IF A<>PEEK(P) THEN GOTO 210"
        assert lines[140] == "IF C <> CS THEN GOTO 180"
        assert lines[150] == "IF P <= Q THEN GOTO 30"
        assert lines[180] == 'PRINT "THERE IS AN ERROR"'
        assert lines[210] == 'PRINT "ERROR WHILE POKING MEMORY!"'
        assert lines[220] == "END"
        assert lines[230].startswith("DATA 230, ")

    @pytest.mark.parametrize("typable,verify,checksum", [
        (False, True, False),
        (True, True, False),
        (True, False, True),
        (True, True, True),
    ])
    def test_goto_targets_exist(self, typable, verify, checksum):
        """Every GOTO names a line the program actually has."""
        text = compose(bytes(range(30)), typable=typable, verify=verify, checksum=checksum,
                       layout=ResolvedLayout(start=0x3E00, end=0x3E1D, exec=0x3E00),
                       first_line=100, step=7)
        lines = dict(numbered_lines(text))
        targets = [int(t) for t in re.findall(r"GOTO ?(\d+)", text)]
        assert targets
        for target in targets:
            assert target in lines

    def test_checksum_implies_typable(self):
        text = compose(b"\x01", checksum=True)
        assert text.startswith("10 P = ")

    def test_lowercase(self):
        layout = ResolvedLayout(start=0xC000, end=0xC002, exec=0xC000)
        text = compose(b"\x01\x02\x03", layout=layout, target=TargetArchitecture.C64,
                       case=OutputCase.LOWER)
        assert text == (
            "0 poke55,0:poke56,192\n"
            "1 forp=49152to49154:reada:pokep,a:next:sys49152:end\n"
            "2 data1,2,3\n"
        )


# =============================================================================
# DATA Tests
# =============================================================================

class TestData:
    """Tests for DATA statement layout."""

    def test_greedy_packing(self):
        payload = bytes([255] * 100)
        text = compose(payload)
        rows = [body for _, body in numbered_lines(text)][1:]
        full_line = f"1 {rows[0]}"
        # A further ",255" would not fit
        assert len(full_line) <= 75
        assert len(full_line) + len(",255") > 75
        assert [v for _, values in data_lines(text) for v in values] == list(payload)

    def test_values_in_order(self):
        payload = bytes(range(256))
        text = compose(payload, typable=True)
        assert [v for _, values in data_lines(text) for v in values] == list(payload)

    @pytest.mark.parametrize("target,case", [
        (TargetArchitecture.COCO, OutputCase.UPPER),
        (TargetArchitecture.DRAGON, OutputCase.UPPER),
        (TargetArchitecture.C64, OutputCase.LOWER),
        (TargetArchitecture.C64, OutputCase.UPPER),
    ])
    @pytest.mark.parametrize("typable", [False, True])
    def test_line_length_limit(self, target, case, typable):
        config = LoaderConfig(max_line_length=249)
        limit = min(249, target.get_info().max_line_length)
        layout = ResolvedLayout(start=0x4000, end=0x41FF, exec=0x4000)
        text = compose(bytes([200] * 512), layout=layout, target=target, case=case,
                       typable=typable, config=config, first_line=60000, step=1)
        for line in text.splitlines():
            assert len(line) <= limit

    @pytest.mark.parametrize("first_line,step", [(0, 1), (10, 10), (1000, 3)])
    def test_line_numbers_increase_by_step(self, first_line, step):
        layout = ResolvedLayout(start=0x3000, end=0x30FF, exec=0x3000)
        text = compose(bytes(range(256)), layout=layout, typable=True, verify=True,
                       first_line=first_line, step=step)
        numbers = [number for number, _ in numbered_lines(text)]
        assert numbers[0] == first_line
        assert all(b - a == step for a, b in zip(numbers, numbers[1:]))

    def test_checksum_groups(self):
        """25 bytes in groups of 10: three groups of 10, 10 and 5 bytes."""
        payload = bytes(range(1, 26))
        layout = ResolvedLayout(start=15872, end=15896, exec=15872)
        text = compose(payload, layout=layout, checksum=True)
        groups = data_lines(text)
        assert len(groups) == 3
        assert [len(values) - 2 for _, values in groups] == [10, 10, 5]
        for number, values in groups:
            line_token, checksum, data = values[0], values[1], values[2:]
            assert line_token == number
            assert checksum == sum(data)

    def test_checksum_group_size_from_config(self):
        layout = ResolvedLayout(start=0x3000, end=0x3006, exec=0x3000)
        text = compose(bytes(7), layout=layout, checksum=True,
                       config=LoaderConfig(checksum_group_size=3))
        assert "IF J > 2 THEN J = 2" in text
        assert [len(values) - 2 for _, values in data_lines(text)] == [3, 3, 1]

    @pytest.mark.parametrize("size", [1, 9, 10, 11, 20, 21, 25, 100])
    def test_checksum_loader_consumes_exactly_the_data(self, size):
        payload = bytes((i * 37 + 11) % 256 for i in range(size))
        layout = ResolvedLayout(start=0x2000, end=0x2000 + size - 1, exec=0x2000)
        text = compose(payload, layout=layout, checksum=True)
        memory = run_checksum_loader(text, layout.start, layout.end, 10)
        assert bytes(memory[0x2000 + i] for i in range(size)) == payload

    def test_idempotent(self, fixed_date):
        kwargs = dict(typable=True, verify=True, checksum=True, remarks_date=fixed_date)
        payload = bytes(range(64))
        layout = ResolvedLayout(start=0x3E00, end=0x3E3F, exec=0x3E10)
        assert compose(payload, layout=layout, **kwargs) == compose(payload, layout=layout, **kwargs)

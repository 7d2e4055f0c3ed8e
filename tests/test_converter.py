"""
Conversion Pipeline Unit Tests
==============================

Tests for ConversionOptions validation, the staged Conversion pipeline
and the end-to-end behaviour of convert_bytes/convert_file.
"""

import io
import logging

import pytest

from basicloader import (
    AddressError,
    ConfigurationError,
    Conversion,
    ConversionOptions,
    ContainerFormat,
    FormatError,
    InternalError,
    LoaderConfig,
    OutputCase,
    ProgramSizeError,
    Stage,
    TargetArchitecture,
    convert_bytes,
    convert_file,
)
from basicloader.formats import wrap_dragondos, wrap_prg, wrap_rsdos


# =============================================================================
# Options Validation
# =============================================================================

class TestOptionsValidation:
    """Tests for option compatibility rules."""

    @pytest.mark.parametrize("fmt,target", [
        (ContainerFormat.PRG, TargetArchitecture.COCO),
        (ContainerFormat.DRAGON_DOS, TargetArchitecture.COCO),
        (ContainerFormat.RS_DOS, TargetArchitecture.DRAGON),
        (ContainerFormat.RS_DOS, TargetArchitecture.C64),
    ])
    def test_format_tied_to_machine(self, fmt, target):
        options = ConversionOptions(target=target, input_format=fmt)
        with pytest.raises(ConfigurationError, match="should only be used with"):
            options.validate()

    def test_binary_with_any_machine(self):
        for target in TargetArchitecture:
            ConversionOptions(target=target).validate()

    @pytest.mark.parametrize("target", [TargetArchitecture.COCO, TargetArchitecture.DRAGON])
    def test_lowercase_rejected(self, target):
        options = ConversionOptions(target=target, case=OutputCase.LOWER)
        with pytest.raises(ConfigurationError, match="Lowercase output is not useful"):
            options.validate()

    def test_lowercase_for_c64(self):
        ConversionOptions(target=TargetArchitecture.C64, case=OutputCase.LOWER).validate()

    def test_mixed_case_rejected(self):
        with pytest.raises(ConfigurationError, match="mixed case"):
            ConversionOptions(case=OutputCase.MIXED).validate()

    def test_extended_basic_only_for_coco(self):
        options = ConversionOptions(target=TargetArchitecture.DRAGON, extended_basic=True)
        with pytest.raises(ConfigurationError, match="Extended Color BASIC"):
            options.validate()

    def test_checksum_implies_typable(self):
        options = ConversionOptions(checksum=True)
        validated = options.validate()
        assert validated.typable
        assert not options.typable

    @pytest.mark.parametrize("line_number", [-1, 63001])
    def test_line_number_range(self, line_number):
        with pytest.raises(ConfigurationError, match="Line number"):
            ConversionOptions(line_number=line_number).validate()

    @pytest.mark.parametrize("step", [0, 60001])
    def test_step_range(self, step):
        with pytest.raises(ConfigurationError, match="Step"):
            ConversionOptions(step=step).validate()

    def test_address_range(self):
        with pytest.raises(ConfigurationError, match="Start address"):
            ConversionOptions(start=0x10000).validate()
        with pytest.raises(ConfigurationError, match="Exec address"):
            ConversionOptions(exec_address=-1).validate()

    def test_line_defaults(self, default_config):
        compact = ConversionOptions().validate()
        typable = ConversionOptions(typable=True).validate()
        assert (compact.first_line(default_config), compact.line_step(default_config)) == (0, 1)
        assert (typable.first_line(default_config), typable.line_step(default_config)) == (10, 10)
        custom = ConversionOptions(line_number=500, step=2).validate()
        assert (custom.first_line(default_config), custom.line_step(default_config)) == (500, 2)


# =============================================================================
# Scenarios
# =============================================================================

class TestScenarios:
    """End-to-end conversions."""

    def test_binary_for_coco(self):
        """Three raw bytes at the CoCo default address, compact."""
        result = convert_bytes(bytes([0x01, 0x02, 0x03]), ConversionOptions())
        assert result.text == (
            "0 FORP=15872TO15874:READA:POKEP,A:NEXT:EXEC15872:END\n"
            "1 DATA1,2,3\n"
        )
        assert (result.layout.start, result.layout.end, result.layout.exec) == (
            0x3E00, 0x3E02, 0x3E00
        )
        assert result.blob_size == 3
        assert result.line_count == 2
        assert result.byte_count == len(result.text)

    def test_prg_basic_program(self):
        options = ConversionOptions(
            target=TargetArchitecture.C64, input_format=ContainerFormat.PRG
        )
        conversion = Conversion(options, filename="basic.prg")
        with pytest.raises(FormatError, match="likely a BASIC program"):
            conversion.run(io.BytesIO(b"\x01\x08\x0b\x08"))
        assert conversion.stage is Stage.INIT
        assert conversion.emitter.bytes_written == 0

    def test_rsdos_length_mismatch(self, tmp_path, blob):
        data = bytearray(wrap_rsdos(blob, 0x3E00))
        data[2] += 1
        path = tmp_path / "game.bin"
        path.write_bytes(bytes(data))
        with pytest.raises(FormatError, match="length"):
            convert_file(path, ConversionOptions(input_format=ContainerFormat.RS_DOS))

    def test_dragondos_exec_below_start(self, blob):
        options = ConversionOptions(
            target=TargetArchitecture.DRAGON, input_format=ContainerFormat.DRAGON_DOS
        )
        with pytest.raises(AddressError, match="Exec location below start location"):
            convert_bytes(wrap_dragondos(blob, 0x4000, 0x3000), options)

    def test_checksum_groups(self):
        payload = bytes(range(100, 125))
        result = convert_bytes(payload, ConversionOptions(checksum=True))
        data = [line for line in result.text.splitlines() if " DATA " in line]
        assert len(data) == 3
        sizes = [len(line.split(",")) - 2 for line in data]
        assert sizes == [10, 10, 5]

    def test_dragondos_file_values(self, blob):
        options = ConversionOptions(
            target=TargetArchitecture.DRAGON,
            input_format=ContainerFormat.DRAGON_DOS,
            typable=True,
        )
        result = convert_bytes(wrap_dragondos(blob, 0x6000, 0x6001), options)
        assert result.text.startswith("10 CLEAR 200, 24575\n20 FOR P = 24576 TO 24578\n")
        assert "EXEC 24577" in result.text

    def test_prg_lowercase(self, blob):
        options = ConversionOptions(
            target=TargetArchitecture.C64,
            input_format=ContainerFormat.PRG,
            case=OutputCase.LOWER,
        )
        result = convert_bytes(wrap_prg(blob, 0xC000), options)
        assert result.text == (
            "0 poke55,0:poke56,192\n"
            "1 forp=49152to49154:reada:pokep,a:next:sys49152:end\n"
            "2 data134,65,57\n"
        )

    def test_user_start_conflicts_with_file(self, blob):
        options = ConversionOptions(input_format=ContainerFormat.RS_DOS, start=0x4000)
        with pytest.raises(AddressError, match="different start address"):
            convert_bytes(wrap_rsdos(blob, 0x3E00), options, filename="game.bin")

    def test_remarks(self, blob, fixed_date):
        options = ConversionOptions(remarks=True, remarks_date=fixed_date)
        result = convert_bytes(blob, options)
        assert "1 REM GENERATED BY BASICLOADER\n" in result.text
        assert "2 REM   ON 05 MARCH 2024  \n" in result.text

    def test_idempotent(self, fixed_date):
        payload = bytes(range(200))
        options = ConversionOptions(typable=True, verify=True, remarks=True,
                                    remarks_date=fixed_date, start=0x2000)
        assert convert_bytes(payload, options).text == convert_bytes(payload, options).text

    def test_program_too_large(self):
        config = LoaderConfig(max_program_size=200)
        with pytest.raises(ProgramSizeError, match="too large"):
            convert_bytes(bytes(200), ConversionOptions(), config=config)

    def test_too_many_lines(self):
        config = LoaderConfig(max_line_count=5)
        with pytest.raises(ProgramSizeError, match="too many lines"):
            convert_bytes(bytes(200), ConversionOptions(typable=True), config=config)

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigurationError):
            Conversion(ConversionOptions(), LoaderConfig(checksum_group_size=0))


# =============================================================================
# RAM Warnings
# =============================================================================

class TestRamWarnings:
    """Tests for the memory requirement warnings."""

    @pytest.mark.parametrize("start,message", [
        (0x0F00, None),
        (0x0FF0, "at least 8K"),
        (0x1FF0, "at least 16K"),
        (0x3FF0, "at least 32K"),
        (0x7FF0, "requires 64K"),
    ])
    def test_coco(self, caplog, start, message):
        with caplog.at_level(logging.WARNING):
            convert_bytes(bytes(32), ConversionOptions(start=start))
        if message is None:
            assert "RAM" not in caplog.text
        else:
            assert message in caplog.text

    def test_dragon(self, caplog):
        with caplog.at_level(logging.WARNING):
            convert_bytes(bytes(32), ConversionOptions(
                target=TargetArchitecture.DRAGON, start=0x7FF0))
        assert "Program requires 64K of RAM" in caplog.text

    def test_dragon_32k_is_silent(self, caplog):
        with caplog.at_level(logging.WARNING):
            convert_bytes(bytes(32), ConversionOptions(
                target=TargetArchitecture.DRAGON, start=0x4000))
        assert caplog.text == ""

    def test_c64_never_warns(self, caplog):
        with caplog.at_level(logging.WARNING):
            convert_bytes(bytes(32), ConversionOptions(
                target=TargetArchitecture.C64, start=0xF000))
        assert caplog.text == ""


# =============================================================================
# Stage Machine
# =============================================================================

class TestStages:
    """Tests for the ordering of pipeline stages."""

    def test_stages_in_order(self, blob):
        conversion = Conversion(ConversionOptions())
        assert conversion.stage is Stage.INIT
        conversion.decode(io.BytesIO(blob))
        assert conversion.stage is Stage.HEADER_DECODED
        layout = conversion.resolve()
        assert conversion.stage is Stage.LAYOUT_RESOLVED
        assert layout.start == 0x3E00
        conversion.emit_preamble()
        conversion.emit_bootstrap()
        conversion.emit_data()
        assert conversion.stage is Stage.DATA_EMITTED
        result = conversion.finalize()
        assert conversion.stage is Stage.FINALIZED
        assert result.text.endswith("DATA134,65,57\n")

    def test_skipping_a_stage(self, blob):
        conversion = Conversion(ConversionOptions())
        conversion.decode(io.BytesIO(blob))
        with pytest.raises(InternalError, match="requires LAYOUT_RESOLVED"):
            conversion.emit_preamble()

    def test_repeating_a_stage(self, blob):
        conversion = Conversion(ConversionOptions())
        conversion.decode(io.BytesIO(blob))
        with pytest.raises(InternalError):
            conversion.decode(io.BytesIO(blob))

    def test_finalize_without_data(self, blob):
        conversion = Conversion(ConversionOptions())
        conversion.decode(io.BytesIO(blob))
        conversion.resolve()
        conversion.emit_preamble()
        conversion.emit_bootstrap()
        with pytest.raises(InternalError):
            conversion.finalize()


# =============================================================================
# Diagnostics
# =============================================================================

class TestDescribe:
    """Tests for the diagnostic summary."""

    def test_summary(self, blob):
        result = convert_bytes(blob, ConversionOptions(extended_basic=True, start=0x4000))
        lines = result.describe()
        assert lines[0] == "Output is for the coco target architecture (with Extended BASIC)"
        assert lines[1] == (
            "The program is uppercase, compact form and without program comments"
        )
        assert lines[2] == "  Start location : $4000 (16384)"
        assert lines[4] == "  End location   : $4002 (16386)"
        assert lines[5] == "  Blob size      : 3 bytes"
        assert lines[6] == f"  BASIC program  : 3 lines ({result.byte_count} characters)"

    def test_large_blob_size_in_hex(self):
        result = convert_bytes(bytes(32), ConversionOptions(checksum=True))
        lines = result.describe()
        assert "typable form with checksumming" in lines[1]
        assert lines[5] == "  Blob size      : $20 (32) bytes"

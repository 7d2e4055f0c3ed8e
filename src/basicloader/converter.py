"""
Conversion Pipeline
===================

This module ties the decoder, the layout reconciler and the BASIC
composer together into one conversion: container bytes in, BASIC program
text out.

Pipeline Stages
---------------
A Conversion moves through these stages strictly in order; asking for a
stage out of order is an InternalError.

    ┌──────┐   ┌───────────────┐   ┌─────────────────┐   ┌──────────────────┐
    │ INIT │──▶│ HEADER_DECODED│──▶│ LAYOUT_RESOLVED │──▶│ PREAMBLE_EMITTED │
    └──────┘   └───────────────┘   └─────────────────┘   └──────────────────┘
                                                                   │
          ┌───────────┐   ┌──────────────┐   ┌───────────────────┐ │
          │ FINALIZED │◀──│ DATA_EMITTED │◀──│ BOOTSTRAP_EMITTED │◀┘
          └───────────┘   └──────────────┘   └───────────────────┘

The program is rendered in memory. Nothing is written anywhere until the
whole conversion has succeeded, so a failure never leaves a partial
program behind.

Usage Examples
--------------
    >>> from basicloader import ConversionOptions, convert_bytes
    >>> result = convert_bytes(b"\\x01\\x02\\x03", ConversionOptions())
    >>> print(result.text, end="")
    0 FORP=15872TO15874:READA:POKEP,A:NEXT:EXEC15872:END
    1 DATA1,2,3
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import IntEnum
from pathlib import Path
from typing import BinaryIO, Optional, Union
import io
import logging

from basicloader.addresses import UINT16_MAX
from basicloader.basic.composer import ProgramComposer
from basicloader.basic.emitter import LineEmitter, OutputCase
from basicloader.config import LoaderConfig, get_default_config
from basicloader.errors import ConfigurationError, InternalError
from basicloader.formats.decoder import Container, read_container
from basicloader.formats.records import ContainerFormat
from basicloader.layout import ResolvedLayout, resolve_layout
from basicloader.targets import DEFAULT_TARGET, TargetArchitecture

# Logger for this module
logger = logging.getLogger(__name__)


# Container formats tied to a single machine
_FORMAT_TARGETS: dict[ContainerFormat, TargetArchitecture] = {
    ContainerFormat.PRG: TargetArchitecture.C64,
    ContainerFormat.DRAGON_DOS: TargetArchitecture.DRAGON,
    ContainerFormat.RS_DOS: TargetArchitecture.COCO,
}


# =============================================================================
# Options
# =============================================================================

@dataclass
class ConversionOptions:
    """
    Per-run choices for one conversion.

    Attributes:
        target: Machine the BASIC program is for
        input_format: Container format of the input
        case: Case of the generated text
        typable: One statement per line, human-typable spacing
        verify: Check every POKE with PEEK
        checksum: Checksummed DATA groups (implies typable)
        remarks: Add the REM block
        extended_basic: The CoCo has Extended Color BASIC
        start: Load address given by the user
        exec_address: Exec address given by the user
        line_number: First line number (default per typable/compact)
        step: Line number step (default per typable/compact)
        remarks_date: Date shown in the remarks (default today)
    """
    target: TargetArchitecture = DEFAULT_TARGET
    input_format: ContainerFormat = ContainerFormat.BINARY
    case: OutputCase = OutputCase.UPPER
    typable: bool = False
    verify: bool = False
    checksum: bool = False
    remarks: bool = False
    extended_basic: bool = False
    start: Optional[int] = None
    exec_address: Optional[int] = None
    line_number: Optional[int] = None
    step: Optional[int] = None
    remarks_date: Optional[date] = None

    def validate(self, config: Optional[LoaderConfig] = None) -> "ConversionOptions":
        """
        Check the option combination and apply implied options.

        Args:
            config: Limits for line numbering (defaults to get_default_config())

        Returns:
            A copy with implied options applied (checksum turns on typable)

        Raises:
            ConfigurationError: If the options cannot be used together
        """
        config = config or get_default_config()
        target_name = self.target.cli_name

        required = _FORMAT_TARGETS.get(self.input_format)
        if required is not None and required is not self.target:
            raise ConfigurationError(
                f'File format "{self.input_format.cli_name}" should only be used '
                f'with the "{required.cli_name}" target'
            )

        if self.case is OutputCase.LOWER and not self.target.get_info().lowercase_allowed:
            raise ConfigurationError(
                f'Lowercase output is not useful for the "{target_name}" target'
            )

        if self.case is OutputCase.MIXED:
            raise ConfigurationError("There is presently no target for mixed case output")

        if self.extended_basic and self.target is not TargetArchitecture.COCO:
            raise ConfigurationError(
                f"Extended Color BASIC option should only be used with the "
                f'"{TargetArchitecture.COCO.cli_name}" target'
            )

        if self.line_number is not None and not (
                0 <= self.line_number <= config.max_starting_line_number):
            raise ConfigurationError(
                f"Line number takes a number from 0 to {config.max_starting_line_number}"
            )

        if self.step is not None and not 1 <= self.step <= config.max_line_number_step:
            raise ConfigurationError(
                f"Step takes a number from 1 to {config.max_line_number_step}"
            )

        for what, value in (("Start", self.start), ("Exec", self.exec_address)):
            if value is not None and not 0 <= value <= UINT16_MAX:
                raise ConfigurationError(
                    f"{what} address takes a number up to 0x{UINT16_MAX:x}"
                )

        return replace(self, typable=self.typable or self.checksum)

    def first_line(self, config: LoaderConfig) -> int:
        if self.line_number is not None:
            return self.line_number
        return config.first_line(self.typable)

    def line_step(self, config: LoaderConfig) -> int:
        if self.step is not None:
            return self.step
        return config.step(self.typable)


# =============================================================================
# Result
# =============================================================================

@dataclass(frozen=True)
class ConversionResult:
    """
    Outcome of a successful conversion.

    Attributes:
        layout: Resolved start, end and exec addresses
        blob_size: Bytes of machine language loaded
        line_count: Lines in the BASIC program
        byte_count: Characters in the BASIC program
        text: The BASIC program
        options: The validated options used
    """
    layout: ResolvedLayout
    blob_size: int
    line_count: int
    byte_count: int
    text: str = field(repr=False)
    options: ConversionOptions = field(repr=False)

    def describe(self) -> list[str]:
        """
        Diagnostic summary, one line per entry.

        Example:
            >>> for line in result.describe():
            ...     print(line)
            Output is for the coco target architecture
            ...
        """
        options = self.options
        layout = self.layout
        extbas = " (with Extended BASIC)" if options.extended_basic else ""
        style = "typable" if options.typable else "compact"
        checksum = " with checksumming" if options.checksum else ""
        remarks = "" if options.remarks else "out"

        if self.blob_size > 15:
            blob = f"${self.blob_size:x} ({self.blob_size}) bytes"
        else:
            blob = f"{self.blob_size} bytes"

        return [
            f"Output is for the {options.target.cli_name} target architecture{extbas}",
            f"The program is {options.case.name.lower()}case, {style} form{checksum}"
            f" and with{remarks} program comments",
            f"  Start location : ${layout.start:x} ({layout.start})",
            f"  Exec location  : ${layout.exec:x} ({layout.exec})",
            f"  End location   : ${layout.end:x} ({layout.end})",
            f"  Blob size      : {blob}",
            f"  BASIC program  : {self.line_count} lines ({self.byte_count} characters)",
        ]


# =============================================================================
# Pipeline
# =============================================================================

class Stage(IntEnum):
    """Conversion pipeline stages, in the order they are reached."""
    INIT = 0
    HEADER_DECODED = 1
    LAYOUT_RESOLVED = 2
    PREAMBLE_EMITTED = 3
    BOOTSTRAP_EMITTED = 4
    DATA_EMITTED = 5
    FINALIZED = 6


class Conversion:
    """
    One run of the conversion pipeline.

    Each step method performs one stage transition. ``run`` performs them
    all; the individual steps are exposed for callers that want to stop
    early (e.g. to inspect the resolved layout).

    Args:
        options: Per-run options (validated on construction)
        config: Program limits (defaults to get_default_config())
        filename: Input name used in messages

    Example:
        >>> conversion = Conversion(ConversionOptions(), filename="blob.bin")
        >>> result = conversion.run(io.BytesIO(b"\\x39"))
        >>> conversion.stage
        <Stage.FINALIZED: 6>
    """

    def __init__(
        self,
        options: ConversionOptions,
        config: Optional[LoaderConfig] = None,
        filename: str = "<input>",
    ):
        self.config = (config or get_default_config()).validate()
        self.options = options.validate(self.config)
        self.filename = filename
        self.stage = Stage.INIT

        self.container: Optional[Container] = None
        self.layout: Optional[ResolvedLayout] = None

        self._output = io.StringIO()
        self.emitter = LineEmitter(
            self._output,
            self.options.target,
            case=self.options.case,
            config=self.config,
            first_line=self.options.first_line(self.config),
            step=self.options.line_step(self.config),
        )
        self.composer = ProgramComposer(
            self.emitter,
            self.options.target,
            typable=self.options.typable,
            verify=self.options.verify,
            checksum=self.options.checksum,
            extended_basic=self.options.extended_basic,
            group_size=self.config.checksum_group_size,
        )

    def _require(self, current: Stage, following: Stage) -> None:
        if self.stage is not current:
            raise InternalError(
                f"Conversion stage {following.name} requires {current.name}, "
                f"but the conversion is at {self.stage.name}"
            )

    def _advance(self, current: Stage, following: Stage) -> None:
        self._require(current, following)
        self.stage = following
        logger.debug(f"Conversion stage: {following.name}")

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def decode(self, stream: BinaryIO) -> Container:
        """INIT → HEADER_DECODED: read and decode the input container."""
        self._require(Stage.INIT, Stage.HEADER_DECODED)
        self.container = read_container(
            stream, self.options.input_format, self.filename, self.config
        )
        self._advance(Stage.INIT, Stage.HEADER_DECODED)
        return self.container

    def resolve(self) -> ResolvedLayout:
        """HEADER_DECODED → LAYOUT_RESOLVED: reconcile the addresses."""
        self._require(Stage.HEADER_DECODED, Stage.LAYOUT_RESOLVED)

        container = self.container
        self.layout = resolve_layout(
            container.info,
            self.options.target,
            container.blob_size,
            start=self.options.start,
            exec_address=self.options.exec_address,
            filename=self.filename,
        )

        if message := self.options.target.get_info().ram_requirement(self.layout.end):
            logger.warning(message)

        self._advance(Stage.HEADER_DECODED, Stage.LAYOUT_RESOLVED)
        return self.layout

    def emit_preamble(self) -> None:
        """LAYOUT_RESOLVED → PREAMBLE_EMITTED: memory reservation and remarks."""
        self._advance(Stage.LAYOUT_RESOLVED, Stage.PREAMBLE_EMITTED)
        self.composer.emit_preamble(self.layout)
        if self.options.remarks:
            self.composer.emit_remarks(self.options.remarks_date)

    def emit_bootstrap(self) -> None:
        """PREAMBLE_EMITTED → BOOTSTRAP_EMITTED: the READ/POKE template."""
        self._advance(Stage.PREAMBLE_EMITTED, Stage.BOOTSTRAP_EMITTED)
        self.composer.emit_bootstrap(self.layout)

    def emit_data(self) -> None:
        """BOOTSTRAP_EMITTED → DATA_EMITTED: the blob as DATA statements."""
        self._advance(Stage.BOOTSTRAP_EMITTED, Stage.DATA_EMITTED)
        self.composer.emit_data(self.container.payload)

    def finalize(self) -> ConversionResult:
        """DATA_EMITTED → FINALIZED: final newline, final size check."""
        self._advance(Stage.DATA_EMITTED, Stage.FINALIZED)
        state = self.emitter.finish()

        return ConversionResult(
            layout=self.layout,
            blob_size=self.container.blob_size,
            line_count=state.line_count,
            byte_count=state.bytes_written,
            text=self._output.getvalue(),
            options=self.options,
        )

    def run(self, stream: BinaryIO) -> ConversionResult:
        """Run every stage and return the result."""
        self.decode(stream)
        self.resolve()
        self.emit_preamble()
        self.emit_bootstrap()
        self.emit_data()
        return self.finalize()


# =============================================================================
# Convenience Functions
# =============================================================================

def convert_stream(
    stream: BinaryIO,
    options: ConversionOptions,
    filename: str = "<stdin>",
    config: Optional[LoaderConfig] = None,
) -> ConversionResult:
    """
    Convert a container read from a seekable binary stream.

    Raises:
        LoaderError: If the input or options cannot produce a program
    """
    return Conversion(options, config, filename).run(stream)


def convert_bytes(
    data: bytes,
    options: ConversionOptions,
    filename: str = "<input>",
    config: Optional[LoaderConfig] = None,
) -> ConversionResult:
    """Convert a container held in memory."""
    return convert_stream(io.BytesIO(data), options, filename, config)


def convert_file(
    filepath: Union[str, Path],
    options: ConversionOptions,
    config: Optional[LoaderConfig] = None,
) -> ConversionResult:
    """
    Convert a container file on disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        LoaderError: If the input or options cannot produce a program
    """
    filepath = Path(filepath)
    with filepath.open("rb") as stream:
        return convert_stream(stream, options, str(filepath), config)

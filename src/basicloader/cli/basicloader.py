"""
basicloader - Machine Language to BASIC Loader Command-Line Interface
=====================================================================

This module implements the ``basicloader`` command. It reads a machine
language program, optionally wrapped in the machine's executable file
format, and writes a BASIC program that loads and runs it.

Usage Examples
--------------
Raw binary for the Color Computer (writes LOADER.BAS):
    $ basicloader game.bin

RS-DOS file, typable listing with remarks, printed to the terminal:
    $ basicloader -f rsdos -t -r -p game.bin

Commodore 64 PRG, lowercase (writes "loader"):
    $ basicloader -m c64 -f prg -c lower game.prg

Dragon DOS file with checksummed DATA and a diagnostic summary:
    $ basicloader -m dragon -f dragon --checksum --diag game.bin

Reading from standard input:
    $ cat game.bin | basicloader --stdin -s '$4000'
"""

from pathlib import Path
from typing import Optional
import logging

import click

from basicloader import __version__
from basicloader.addresses import parse_address
from basicloader.basic.emitter import OutputCase
from basicloader.cli.errors import handle_cli_exception
from basicloader.converter import (
    ConversionOptions,
    ConversionResult,
    convert_bytes,
    convert_file,
)
from basicloader.errors import ConfigurationError
from basicloader.formats.records import ContainerFormat
from basicloader.targets import DEFAULT_TARGET, TargetArchitecture

# Logger for this module
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_FILENAME = "LOADER.BAS"
C64_LOWERCASE_OUTPUT_FILENAME = "loader"
STDOUT_FILENAME = "-"


# =============================================================================
# Parameter Types
# =============================================================================

class NamedChoice(click.ParamType):
    """
    Click parameter type mapping case-insensitive names to enum values.

    Subclasses set ``name`` and ``TYPE_MAP``.
    """
    name = "choice"
    TYPE_MAP: dict = {}

    def convert(self, value, param: Optional[click.Parameter],
                ctx: Optional[click.Context]):
        """Convert a name to its enum value."""
        if not isinstance(value, str):
            return value

        key = value.lower()
        if key not in self.TYPE_MAP:
            self.fail(
                f"Unknown {self.name} '{value}'. "
                f"Choose from: {', '.join(self.TYPE_MAP.keys())}",
                param, ctx
            )
        return self.TYPE_MAP[key]

    def get_metavar(self, param: click.Parameter, ctx: Optional[click.Context] = None) -> str:
        return "[" + "|".join(self.TYPE_MAP.keys()) + "]"


class MachineChoice(NamedChoice):
    """Accepts: coco, dragon, c64"""
    name = "machine"
    TYPE_MAP = {arch.cli_name: arch for arch in TargetArchitecture}


class FormatChoice(NamedChoice):
    """Accepts: binary, rsdos, dragon, prg"""
    name = "format"
    TYPE_MAP = {fmt.cli_name: fmt for fmt in ContainerFormat}


class CaseChoice(NamedChoice):
    """Accepts: upper, lower, mixed"""
    name = "case"
    TYPE_MAP = {case.name.lower(): case for case in OutputCase}


class AddressType(click.ParamType):
    """
    Click parameter type for 16-bit addresses.

    Accepts decimal (15872), C hex (0x3E00) or 6809 assembler hex ($3E00).
    """
    name = "address"

    def convert(self, value, param: Optional[click.Parameter],
                ctx: Optional[click.Context]) -> int:
        if isinstance(value, int):
            return value
        try:
            return parse_address(value)
        except ValueError:
            self.fail(f"'{value}' is not an address from 0 to $FFFF", param, ctx)


MACHINE = MachineChoice()
FORMAT = FormatChoice()
CASE = CaseChoice()
ADDRESS = AddressType()


# =============================================================================
# Helpers
# =============================================================================

def setup_logging(verbose: bool, nowarn: bool) -> None:
    """Configure logging based on verbosity."""
    if verbose:
        level = logging.DEBUG
    elif nowarn:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def default_output_filename(target: TargetArchitecture, case: OutputCase) -> str:
    """Output filename used when none is given."""
    if target is TargetArchitecture.C64 and case is OutputCase.LOWER:
        return C64_LOWERCASE_OUTPUT_FILENAME
    return DEFAULT_OUTPUT_FILENAME


def write_program(path: Path, text: str) -> None:
    """
    Write the finished program.

    Raises:
        OSError: If the file cannot be written or closed
    """
    with path.open("w", encoding="ascii", newline="\n") as output:
        output.write(text)


def print_diagnostics(result: ConversionResult) -> None:
    for line in result.describe():
        click.echo(line)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--stdin", "read_stdin",
    is_flag=True,
    help="Read the input file from standard input",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, allow_dash=True),
    help=f"Output file (default: {DEFAULT_OUTPUT_FILENAME}; '-' for standard output)",
)
@click.option(
    "-m", "--machine",
    type=MACHINE,
    default=DEFAULT_TARGET.cli_name,
    show_default=True,
    help="Target machine",
)
@click.option(
    "-f", "--format", "input_format",
    type=FORMAT,
    default=ContainerFormat.BINARY.cli_name,
    show_default=True,
    help="Input file format",
)
@click.option(
    "-c", "--case",
    type=CASE,
    default="upper",
    show_default=True,
    help="Case of the generated program",
)
@click.option(
    "-t", "--typable",
    is_flag=True,
    help="One statement per line, easy to type in by hand",
)
@click.option(
    "-r", "--remarks",
    is_flag=True,
    help="Add remarks and date",
)
@click.option(
    "--extbas",
    is_flag=True,
    help="Assume Extended Color BASIC (reserves memory with CLEAR)",
)
@click.option(
    "--verify",
    is_flag=True,
    help="Check every POKE with PEEK",
)
@click.option(
    "--checksum",
    is_flag=True,
    help="Checksummed DATA groups (implies --typable)",
)
@click.option(
    "-s", "--start",
    type=ADDRESS,
    help="Start (load) address",
)
@click.option(
    "-e", "--exec", "exec_address",
    type=ADDRESS,
    help="Exec address (default: start address)",
)
@click.option(
    "--line", "line_number",
    type=int,
    help="First line number",
)
@click.option(
    "--step",
    type=int,
    help="Line number step",
)
@click.option(
    "-p", "--print", "print_program",
    is_flag=True,
    help="Print the program to standard output instead of a file (implies --nowarn)",
)
@click.option(
    "--diag",
    is_flag=True,
    help="Print diagnostic information",
)
@click.option(
    "-n", "--nowarn",
    is_flag=True,
    help="Suppress warnings",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="basicloader")
def main(
    input_file: Optional[Path],
    read_stdin: bool,
    output: Optional[str],
    machine: TargetArchitecture,
    input_format: ContainerFormat,
    case: OutputCase,
    typable: bool,
    remarks: bool,
    extbas: bool,
    verify: bool,
    checksum: bool,
    start: Optional[int],
    exec_address: Optional[int],
    line_number: Optional[int],
    step: Optional[int],
    print_program: bool,
    diag: bool,
    nowarn: bool,
    verbose: bool,
) -> None:
    """
    Generate a BASIC program that loads and runs machine language.

    INPUT_FILE is the machine language program, either a raw binary or a
    file in the format given with -f.

    \b
    Examples:
        basicloader game.bin                     # Outputs LOADER.BAS
        basicloader -f rsdos -t -p game.bin      # Typable, to the terminal
        basicloader -m c64 -f prg game.prg       # Commodore 64
        basicloader -m dragon --checksum game.bin

    For more information: https://github.com/richardcavell/BASICloader
    """
    if output == STDOUT_FILENAME:
        print_program = True

    setup_logging(verbose, nowarn or print_program)

    try:
        if print_program and diag:
            raise ConfigurationError("--print and --diag options cannot be used together")

        if input_file is None and not read_stdin:
            raise ConfigurationError("You must specify an input file")

        if input_file is not None and read_stdin:
            raise ConfigurationError("You cannot give an input filename while using --stdin")

        if print_program and output not in (None, STDOUT_FILENAME):
            raise ConfigurationError("You cannot specify an output filename with option --print")

        options = ConversionOptions(
            target=machine,
            input_format=input_format,
            case=case,
            typable=typable,
            verify=verify,
            checksum=checksum,
            remarks=remarks,
            extended_basic=extbas,
            start=start,
            exec_address=exec_address,
            line_number=line_number,
            step=step,
        )

        if read_stdin:
            data = click.get_binary_stream("stdin").read()
            result = convert_bytes(data, options, filename="<stdin>")
        else:
            result = convert_file(input_file, options)

        if print_program:
            click.echo(result.text, nl=False)
        else:
            output_path = Path(output or default_output_filename(machine, case))
            try:
                write_program(output_path, result.text)
            except OSError as e:
                handle_cli_exception(e, verbose=verbose, error_type="Output")
            click.echo(f'BASIC program has been generated -> "{output_path}"')

        if diag:
            print_diagnostics(result)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()

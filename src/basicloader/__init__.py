"""
BASICloader - Machine Language to BASIC Loader Converter
========================================================

This package turns a machine language program for a vintage 8-bit home
computer into a BASIC program that, when typed in or loaded, POKEs the
machine code into memory and runs it.

Supported machines are the Tandy Color Computer, the Dragon 32/64 and
the Commodore 64. Input may be a raw binary or a file in the machine's
own executable format (RS-DOS, Dragon DOS or PRG).

Main Components
---------------
- **formats**: container decoding and building
    Extracts the blob and its declared start/exec/length from the input

- **layout**: address reconciliation
    Merges file metadata with user choices into start, end and exec

- **basic**: BASIC text generation
    Line-numbered, width-limited output with bootstrap templates and DATA

- **converter**: the whole pipeline
    ConversionOptions in, ConversionResult (with the program text) out

Quick Start
-----------
Convert a raw binary:
    >>> from basicloader import ConversionOptions, convert_file
    >>> result = convert_file("game.bin", ConversionOptions())
    >>> Path("LOADER.BAS").write_text(result.text)

Typable, checksummed output for the Dragon:
    >>> from basicloader import ContainerFormat, TargetArchitecture
    >>> options = ConversionOptions(
    ...     target=TargetArchitecture.DRAGON,
    ...     input_format=ContainerFormat.DRAGON_DOS,
    ...     checksum=True,
    ... )
    >>> result = convert_file("game.bin", options)

Or use the command-line tool:
    $ basicloader game.bin
    $ basicloader -m c64 -f prg -c lower game.prg
    $ basicloader -m dragon -f dragon --checksum -p game.bin

Version History
---------------
1.0.0 - Initial release with CoCo, Dragon and Commodore 64 support
"""

__version__ = "1.0.0"
__author__ = "BASICloader Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from basicloader.errors import (
    LoaderError,
    FormatError,
    TruncatedFileError,
    InputSizeError,
    AddressError,
    AddressConflictError,
    EmissionError,
    ProgramSizeError,
    LineNumberError,
    ConfigurationError,
    InternalError,
)

from basicloader.targets import (
    TargetArchitecture,
    ArchitectureInfo,
    get_supported_targets,
)

from basicloader.config import (
    LoaderConfig,
    get_default_config,
    set_default_config,
)

from basicloader.formats import (
    ContainerFormat,
    FileInfo,
    read_container,
    read_container_file,
)

from basicloader.layout import (
    ResolvedLayout,
    resolve_layout,
)

from basicloader.basic import (
    LineEmitter,
    OutputCase,
    ProgramComposer,
)

from basicloader.converter import (
    Conversion,
    ConversionOptions,
    ConversionResult,
    Stage,
    convert_bytes,
    convert_file,
    convert_stream,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "LoaderError",
    "FormatError",
    "TruncatedFileError",
    "InputSizeError",
    "AddressError",
    "AddressConflictError",
    "EmissionError",
    "ProgramSizeError",
    "LineNumberError",
    "ConfigurationError",
    "InternalError",
    # Targets and configuration
    "TargetArchitecture",
    "ArchitectureInfo",
    "get_supported_targets",
    "LoaderConfig",
    "get_default_config",
    "set_default_config",
    # Containers and layout
    "ContainerFormat",
    "FileInfo",
    "read_container",
    "read_container_file",
    "ResolvedLayout",
    "resolve_layout",
    # BASIC generation
    "LineEmitter",
    "OutputCase",
    "ProgramComposer",
    # Pipeline
    "Conversion",
    "ConversionOptions",
    "ConversionResult",
    "Stage",
    "convert_bytes",
    "convert_file",
    "convert_stream",
]

"""
BASIC Program Generation
========================

Renders a loader program as line-numbered BASIC text.

- **LineEmitter**: numbered, width-limited, case-folded text output
- **ProgramComposer**: preamble, remarks, bootstrap templates and DATA
"""

from basicloader.basic.emitter import (
    EmissionState,
    Fragment,
    LineEmitter,
    OutputCase,
)

from basicloader.basic.composer import (
    ProgramComposer,
    format_remark_date,
)

__all__ = [
    "EmissionState",
    "Fragment",
    "LineEmitter",
    "OutputCase",
    "ProgramComposer",
    "format_remark_date",
]

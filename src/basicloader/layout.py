"""
Memory Layout Resolution
========================

This module merges what the container file says about a blob with what
the user asked for, and produces the final memory layout: where the blob
is poked, where it ends, and where execution begins.

Resolution Rules
----------------
Applied in this order:

1. A start (or exec) address given both by the file and by the user must
   be equal; a mismatch is an AddressConflictError naming both values.
2. Otherwise whichever source gave a value wins. With neither, start is the
   target machine's default load address and exec defaults to start.
3. A length declared by the file must equal the measured blob length.
4. ``end = start + length - 1`` must stay within 16 bits and within the
   target machine's highest RAM address.
5. ``start <= exec <= end``.

File metadata and user intent are never ranked against each other: any
disagreement is an error, never a silent override.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from basicloader.addresses import UINT16_MAX, check_exec_range
from basicloader.errors import AddressConflictError, AddressError, InternalError
from basicloader.formats.records import FileInfo
from basicloader.targets import TargetArchitecture

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Resolved Layout
# =============================================================================

@dataclass(frozen=True)
class ResolvedLayout:
    """
    Final memory layout of the blob on the target machine.

    Attributes:
        start: First address the blob occupies
        end: Last address the blob occupies
        exec: Address the generated program jumps to
    """
    start: int
    end: int
    exec: int

    def __post_init__(self) -> None:
        if not 0 <= self.start <= self.exec <= self.end <= UINT16_MAX:
            raise InternalError(
                f"Inconsistent layout: start ${self.start:04X}, "
                f"exec ${self.exec:04X}, end ${self.end:04X}"
            )

    @property
    def size(self) -> int:
        """Number of bytes between start and end inclusive."""
        return self.end - self.start + 1


def _merge(
    what: str,
    file_value: Optional[int],
    user_value: Optional[int],
    filename: Optional[str],
) -> Optional[int]:
    """Combine a file value and a user value, failing unless they agree."""
    if file_value is not None and user_value is not None and file_value != user_value:
        raise AddressConflictError(what, file_value, user_value, filename)
    return file_value if file_value is not None else user_value


# =============================================================================
# Reconciler
# =============================================================================

def resolve_layout(
    info: FileInfo,
    target: TargetArchitecture,
    blob_size: int,
    start: Optional[int] = None,
    exec_address: Optional[int] = None,
    filename: Optional[str] = None,
) -> ResolvedLayout:
    """
    Resolve the blob's memory layout.

    Args:
        info: What the container header declared
        target: Target machine (supplies defaults and the RAM limit)
        blob_size: Measured length of the blob in bytes
        start: Start address given by the user, if any
        exec_address: Exec address given by the user, if any
        filename: Input file name, for messages

    Returns:
        The resolved layout

    Raises:
        AddressConflictError: If the file and the user disagree
        AddressError: If the layout does not fit or exec is out of range

    Example:
        >>> layout = resolve_layout(FileInfo(), TargetArchitecture.COCO, 3)
        >>> (layout.start, layout.end, layout.exec)
        (15872, 15874, 15872)
    """
    arch = target.get_info()

    resolved_start = _merge("start", info.start, start, filename)
    resolved_exec = _merge("exec", info.exec, exec_address, filename)

    if (info.start_given and not info.exec_given and exec_address is not None
            and exec_address != info.start):
        logger.warning(
            f"Exec address given at the command line (${exec_address:04X}) is not "
            f"the same as the start address (${info.start:04X}) of the input file"
        )

    if resolved_start is None:
        resolved_start = arch.default_start
        logger.debug(f"Using default start address ${resolved_start:04X} for {arch.name}")

    if resolved_exec is None:
        resolved_exec = resolved_start

    if info.length_given and info.length != blob_size:
        raise AddressError(
            f"Length given in the file header ({info.length}) "
            f"does not match the measured length ({blob_size})"
        )

    if blob_size < 1:
        raise InternalError("Cannot lay out an empty blob")

    end = resolved_start + blob_size - 1
    if end > UINT16_MAX or end > arch.highest_ram_address:
        raise AddressError(
            f"The machine language blob would overflow the RAM limit "
            f"(${resolved_start:04X} + {blob_size} bytes > "
            f"${arch.highest_ram_address:04X})"
        )

    check_exec_range(resolved_start, resolved_exec, end, filename)

    layout = ResolvedLayout(start=resolved_start, end=end, exec=resolved_exec)
    logger.debug(
        f"Resolved layout: start ${layout.start:04X}, end ${layout.end:04X}, "
        f"exec ${layout.exec:04X}"
    )
    return layout

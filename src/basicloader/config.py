"""
BASICloader Configuration
=========================

Limits and presets that shape every generated program. Configuration can
come from:
- Default values (defined here)
- Environment variables

The defaults keep generated programs comfortably inside what the target
machines will load and what a person will type in from a listing:
- 1,000 lines at most
- 60,000 bytes of program text at most
- 75 characters per line at most (further capped per machine)
- 10 bytes per checksummed DATA group
"""

from dataclasses import dataclass
from typing import Optional
import os

from basicloader.errors import ConfigurationError


# The BASIC program must fit in the 64K address space however it is stored
TARGET_PROGRAM_SIZE_CEILING = 0xFFFF


@dataclass
class LoaderConfig:
    """
    Configuration for BASIC program generation.

    Attributes:
        max_line_count: Most lines the generated program may have
        max_program_size: Most bytes (characters) the program may have
        max_line_length: Global cap on line length, applied on top of the
            target machine's own limit
        checksum_group_size: Data bytes per checksummed group
        max_input_file_size: Largest input file accepted, in bytes
        max_blob_size: Largest machine language payload accepted, in bytes
        compact_first_line: First line number for compact output
        compact_step: Line number step for compact output
        typable_first_line: First line number for typable output
        typable_step: Line number step for typable output
        max_starting_line_number: Highest first line number a user may ask for
        max_line_number_step: Largest line number step a user may ask for
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # PROGRAM LIMITS
    # ═══════════════════════════════════════════════════════════════════════════

    max_line_count: int = 1000
    max_program_size: int = 60000
    max_line_length: int = 75
    checksum_group_size: int = 10

    # ═══════════════════════════════════════════════════════════════════════════
    # INPUT LIMITS
    # ═══════════════════════════════════════════════════════════════════════════

    max_input_file_size: int = 65000
    max_blob_size: int = 65000

    # ═══════════════════════════════════════════════════════════════════════════
    # LINE NUMBERING PRESETS
    # ═══════════════════════════════════════════════════════════════════════════

    compact_first_line: int = 0
    compact_step: int = 1
    typable_first_line: int = 10
    typable_step: int = 10
    max_starting_line_number: int = 63000
    max_line_number_step: int = 60000

    # ═══════════════════════════════════════════════════════════════════════════
    # FACTORY METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    @classmethod
    def from_env(cls) -> "LoaderConfig":
        """
        Create LoaderConfig from environment variables.

        Environment variables (all optional, integers):
            BASICLOADER_MAX_LINE_COUNT
            BASICLOADER_MAX_PROGRAM_SIZE
            BASICLOADER_MAX_LINE_LENGTH
            BASICLOADER_CHECKSUM_GROUP_SIZE
            BASICLOADER_MAX_INPUT_FILE_SIZE
            BASICLOADER_MAX_BLOB_SIZE

        Returns:
            LoaderConfig with values from environment variables
        """
        config = cls()

        overrides = {
            "BASICLOADER_MAX_LINE_COUNT": "max_line_count",
            "BASICLOADER_MAX_PROGRAM_SIZE": "max_program_size",
            "BASICLOADER_MAX_LINE_LENGTH": "max_line_length",
            "BASICLOADER_CHECKSUM_GROUP_SIZE": "checksum_group_size",
            "BASICLOADER_MAX_INPUT_FILE_SIZE": "max_input_file_size",
            "BASICLOADER_MAX_BLOB_SIZE": "max_blob_size",
        }
        for variable, attribute in overrides.items():
            if value := os.environ.get(variable):
                try:
                    setattr(config, attribute, int(value, 0))
                except ValueError:
                    pass  # Ignore invalid values

        return config

    # ═══════════════════════════════════════════════════════════════════════════
    # HELPER METHODS
    # ═══════════════════════════════════════════════════════════════════════════

    def validate(self) -> "LoaderConfig":
        """
        Check that the limits describe a usable configuration.

        Returns:
            Self, for chaining

        Raises:
            ConfigurationError: If any limit is out of range
        """
        if self.max_line_count < 1:
            raise ConfigurationError("max_line_count must be at least 1")
        if self.max_program_size < 1:
            raise ConfigurationError("max_program_size must be at least 1")
        # Long enough for the longest fixed template line
        if self.max_line_length < 60:
            raise ConfigurationError("max_line_length must be at least 60")
        if self.checksum_group_size < 1:
            raise ConfigurationError("checksum_group_size must be at least 1")
        if self.compact_step < 1 or self.typable_step < 1:
            raise ConfigurationError("line number steps must be at least 1")
        if self.max_blob_size < 1 or self.max_input_file_size < 1:
            raise ConfigurationError("input size limits must be at least 1")
        return self

    def program_size_ceiling(self) -> int:
        """Largest program size allowed by both the config and the machines."""
        return min(self.max_program_size, TARGET_PROGRAM_SIZE_CEILING)

    def first_line(self, typable: bool) -> int:
        """Default first line number for the chosen output style."""
        return self.typable_first_line if typable else self.compact_first_line

    def step(self, typable: bool) -> int:
        """Default line number step for the chosen output style."""
        return self.typable_step if typable else self.compact_step


# ═══════════════════════════════════════════════════════════════════════════════
# DEFAULT CONFIGURATION INSTANCE
# ═══════════════════════════════════════════════════════════════════════════════

_default_config: Optional[LoaderConfig] = None


def get_default_config() -> LoaderConfig:
    """
    Get the default configuration.

    Creates from environment variables on first access.
    Can be overridden by calling set_default_config().

    Returns:
        Default LoaderConfig instance
    """
    global _default_config
    if _default_config is None:
        _default_config = LoaderConfig.from_env()
    return _default_config


def set_default_config(config: Optional[LoaderConfig]) -> None:
    """
    Set the default configuration.

    Passing None makes the next get_default_config() re-read the
    environment.

    Args:
        config: Configuration to use as default
    """
    global _default_config
    _default_config = config

"""
Shared pytest fixtures for the BASICloader tests.
"""

from datetime import date

import pytest

from basicloader.config import LoaderConfig, set_default_config


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """
    Give every test the built-in limits, whatever the environment says.
    """
    for name in (
        "BASICLOADER_MAX_LINE_COUNT",
        "BASICLOADER_MAX_PROGRAM_SIZE",
        "BASICLOADER_MAX_LINE_LENGTH",
        "BASICLOADER_CHECKSUM_GROUP_SIZE",
        "BASICLOADER_MAX_INPUT_FILE_SIZE",
        "BASICLOADER_MAX_BLOB_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    config = LoaderConfig()
    set_default_config(config)
    yield config
    set_default_config(None)


@pytest.fixture
def blob() -> bytes:
    """
    A tiny 6809 program:
        LDA #$41
        RTS
    """
    return bytes([0x86, 0x41, 0x39])


@pytest.fixture
def fixed_date() -> date:
    return date(2024, 3, 5)

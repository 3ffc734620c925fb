"""
Pytest configuration and fixtures for Accord tests.
"""

import tempfile
from pathlib import Path

import pytest

from accord.settings import AccordSettings, reload_settings


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Start every test from default settings, ignoring ACCORD_* variables."""
    import os

    for key in list(os.environ):
        if key.startswith("ACCORD_"):
            monkeypatch.delenv(key)
    reload_settings()
    yield
    monkeypatch.undo()
    reload_settings()


@pytest.fixture
def settings(temp_dir):
    """Settings writing generated deploy files into a temporary directory."""
    return AccordSettings(output_dir=str(temp_dir / "pyinfra"))


TEST_KEYS = (
    "ssh-rsa AABBCCDDEEFFGGHHIIJJKKLLMMNNOOPPQQRRSSTTUUVV== test1@test",
    "ssh-rsa 12345678910123456789012345678901234567890123== test2@test",
)


@pytest.fixture
def test_keys():
    return TEST_KEYS

"""Pytest configuration and shared fixtures for btmeta tests."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from btmeta.config.config import ENV_MAPPINGS, reset_config


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("unit", "marks tests as unit tests"),
        ("core", "marks tests as core functionality tests"),
        ("tracker", "marks tests as tracker tests"),
        ("cli", "marks tests as CLI tests"),
        ("config", "marks tests as configuration tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep every test away from real config files and BTMETA_* variables."""
    for env_name in ENV_MAPPINGS:
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    reset_config()
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


@pytest.fixture
def single_file_torrent() -> dict[bytes, Any]:
    """Metainfo dictionary for a single file torrent."""
    return {
        b"announce": b"http://tracker.example.com:6969/announce",
        b"info": {
            b"length": 12345,
            b"name": b"test_file.txt",
            b"piece length": 16384,
            b"pieces": b"a" * 20 + b"b" * 20,
        },
    }


@pytest.fixture
def multi_file_torrent() -> dict[bytes, Any]:
    """Metainfo dictionary for a multi file torrent."""
    return {
        b"announce": b"http://tracker.example.com:6969/announce",
        b"info": {
            b"files": [
                {b"length": 1000, b"path": [b"file1.txt"]},
                {b"length": 2000, b"path": [b"subdir", b"file2.txt"]},
            ],
            b"name": b"TestDirectory",
            b"piece length": 32768,
            b"pieces": b"x" * 60,
        },
    }

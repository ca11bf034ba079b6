"""Pytest configuration and shared fixtures for WhisperFTP tests."""

import pytest
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

from whisper_ftp.ftp.connection import FTPConnectionConfig


# Test constants
TEST_FTP_HOST = "127.0.0.1"
TEST_FTP_PORT = 2121
TEST_FTP_USER = "testuser"
TEST_FTP_PASS = "testpass"


@pytest.fixture
def ftp_config() -> FTPConnectionConfig:
    """Connection config with fast retries for unit tests."""
    return FTPConnectionConfig(
        address=TEST_FTP_HOST,
        port=TEST_FTP_PORT,
        username=TEST_FTP_USER,
        password=TEST_FTP_PASS,
        connect_timeout=5.0,
        retry_base_delay=0.0,
    )


@pytest.fixture
def mock_ftp() -> MagicMock:
    """A logged-in ftplib.FTP stand-in with a usable control socket."""
    ftp = MagicMock()
    ftp.retrlines.return_value = "226 Transfer complete"
    ftp.storbinary.return_value = "226 Transfer complete"
    ftp.retrbinary.return_value = "226 Transfer complete"
    return ftp


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Provide a temporary settings file path for testing."""
    settings_file = tmp_path / "settings.json"
    yield settings_file
    # Cleanup handled by tmp_path fixture


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    """A small local file to upload."""
    path = tmp_path / "report.txt"
    path.write_bytes(b"whisper" * 1000)
    return path


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """
    A local directory tree:

        project/
            a.txt
            b.txt
            docs/
                c.txt
    """
    root = tmp_path / "project"
    (root / "docs").mkdir(parents=True)
    (root / "a.txt").write_text("alpha")
    (root / "b.txt").write_text("bravo")
    (root / "docs" / "c.txt").write_text("charlie")
    return root

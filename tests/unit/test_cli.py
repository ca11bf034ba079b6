"""Unit tests for the command-line interface."""

import logging
from unittest.mock import MagicMock, Mock, patch

import pytest
from click.testing import CliRunner

from whisper_ftp import cli as cli_module
from whisper_ftp.cli import cli
from whisper_ftp.config.settings import SettingsManager
from whisper_ftp.ftp.client import FTPClient
from whisper_ftp.ftp.exceptions import FTPAuthenticationError, FTPConnectionError
from whisper_ftp.ftp.listing import FileSystemEntry
from whisper_ftp.utils.logging import APP_LOGGER_NAME


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_paths(tmp_path, monkeypatch):
    """Keep settings and logs inside the test's temp directory."""
    settings_path = tmp_path / "settings.json"
    monkeypatch.setattr(cli_module, "get_log_file_path", lambda: tmp_path / "cli.log")
    monkeypatch.setattr(cli_module, "SettingsManager", lambda: SettingsManager(settings_path))
    yield
    logging.getLogger(APP_LOGGER_NAME).handlers.clear()


@pytest.fixture
def client():
    """FTPClient stand-in returned by every FTPClient() call in the CLI."""
    client = Mock(spec=FTPClient)
    client.file_exists.return_value = False
    with patch.object(cli_module, "FTPClient", return_value=client):
        yield client


class TestCheck:
    """Tests for the check command."""

    def test_check_success(self, runner, client):
        """Test a successful connection check."""
        client.connect.return_value = True

        result = runner.invoke(cli, ["--host", "10.0.0.2", "--password", "pw", "check"])

        assert result.exit_code == 0
        assert "Connected" in result.output
        config = client.connect.call_args[0][0]
        assert config.host == "10.0.0.2"
        assert config.password == "pw"

    def test_check_rejected_login(self, runner, client):
        """Test bad credentials get a dedicated message."""
        client.connect.return_value = False
        client.last_error = FTPAuthenticationError("anonymous")

        result = runner.invoke(cli, ["--host", "10.0.0.2", "check"])

        assert result.exit_code == 1
        assert "Login rejected" in result.output

    def test_check_generic_failure(self, runner, client):
        """Test other failures report the error."""
        client.connect.return_value = False
        client.last_error = FTPConnectionError("10.0.0.2", 21)

        result = runner.invoke(cli, ["--host", "10.0.0.2", "check"])

        assert result.exit_code == 1
        assert "Connection failed" in result.output

    def test_timeout_option(self, runner, client):
        """Test --timeout overrides the connect timeout."""
        client.connect.return_value = True

        result = runner.invoke(cli, ["--host", "10.0.0.2", "--timeout", "4.5", "check"])

        assert result.exit_code == 0, result.output
        assert client.connect.call_args[0][0].connect_timeout == 4.5

    def test_timeout_out_of_range(self, runner, client):
        """Test an unreasonable --timeout is rejected before connecting."""
        result = runner.invoke(cli, ["--host", "10.0.0.2", "--timeout", "0.2", "check"])

        assert result.exit_code == 2
        client.connect.assert_not_called()

    def test_host_required(self, runner, client):
        """Test a usage error without --host or --saved."""
        result = runner.invoke(cli, ["check"])
        assert result.exit_code == 2


class TestCommands:
    """Tests for ls, upload, download and rm."""

    def test_ls(self, runner, client):
        """Test listing output."""
        client.refresh_listing.return_value = [
            FileSystemEntry(name="music", path="/music", is_directory=True),
            FileSystemEntry(name="a.txt", path="/a.txt", size=12),
        ]

        result = runner.invoke(cli, ["--host", "10.0.0.2", "ls", "/"])

        assert result.exit_code == 0
        assert "music" in result.output
        assert "a.txt" in result.output

    def test_ls_rejects_relative_path(self, runner, client):
        """Test remote paths must be absolute."""
        result = runner.invoke(cli, ["--host", "10.0.0.2", "ls", "pub"])

        assert result.exit_code == 2
        client.refresh_listing.assert_not_called()

    def test_rm_rejects_parent_reference(self, runner, client):
        """Test '..' segments are refused for remote paths."""
        result = runner.invoke(cli, ["--host", "10.0.0.2", "rm", "--yes", "/pub/../etc"])

        assert result.exit_code == 2
        client.delete_file.assert_not_called()

    def test_upload(self, runner, client, tmp_path):
        """Test an upload batch reports its outcome."""
        local = tmp_path / "up.txt"
        local.write_text("data")

        result = runner.invoke(cli, ["--host", "10.0.0.2", "upload", str(local), "--to", "/in"])

        assert result.exit_code == 0, result.output
        assert client.upload_file.call_args[0][2] == "/in/up.txt"
        assert "Upload complete: 1 succeeded, 0 failed, 0 skipped" in result.output
        assert "Progress: 100%" in result.output

    def test_upload_failure_exit_code(self, runner, client, tmp_path):
        """Test a failed item makes the command exit non-zero."""
        local = tmp_path / "up.txt"
        local.write_text("data")
        client.upload_file.side_effect = FTPConnectionError("10.0.0.2", 21)

        result = runner.invoke(cli, ["--host", "10.0.0.2", "upload", str(local)])

        assert result.exit_code == 1
        assert "Upload failed" in result.output

    def test_download(self, runner, client, tmp_path):
        """Test remote paths are classified and downloaded."""
        client.directory_exists.return_value = False

        result = runner.invoke(
            cli, ["--host", "10.0.0.2", "download", "/pub/a.bin", "--to", str(tmp_path / "dl")]
        )

        assert result.exit_code == 0, result.output
        assert client.download_file.call_args[0][1] == "/pub/a.bin"
        assert client.download_file.call_args[0][2] == tmp_path / "dl" / "a.bin"

    def test_rm(self, runner, client):
        """Test deleting a directory and a file."""
        client.directory_exists.side_effect = lambda config, path: path == "/old"

        result = runner.invoke(cli, ["--host", "10.0.0.2", "rm", "--yes", "/old", "/a.txt"])

        assert result.exit_code == 0, result.output
        client.delete_directory.assert_called_once()
        client.delete_file.assert_called_once()
        assert "Delete complete: 2 succeeded, 0 failed" in result.output


class TestSaved:
    """Tests for saved connection management."""

    @pytest.fixture(autouse=True)
    def encryption(self):
        encryption = MagicMock()
        encryption.encrypt.side_effect = lambda plain: f"enc:{plain}"
        encryption.decrypt.side_effect = lambda value: value[4:]
        with patch.object(cli_module, "CredentialEncryption", return_value=encryption):
            yield encryption

    def test_add_list_remove(self, runner):
        """Test the saved connection lifecycle."""
        added = runner.invoke(
            cli, ["saved", "add", "nas", "10.0.0.5", "--user", "me", "--password", "pw"]
        )
        listed = runner.invoke(cli, ["saved", "list"])
        removed = runner.invoke(cli, ["saved", "remove", "nas"])
        empty = runner.invoke(cli, ["saved", "list"])

        assert added.exit_code == 0, added.output
        assert "me@10.0.0.5:21" in listed.output
        assert removed.exit_code == 0
        assert "No saved connections" in empty.output

    def test_add_invalid(self, runner):
        """Test invalid connection details are rejected."""
        result = runner.invoke(cli, ["saved", "add", "bad", "not a host", "--password", "pw"])
        assert result.exit_code == 2

    def test_use_saved_connection(self, runner, client):
        """Test --saved builds the config from the stored record."""
        runner.invoke(cli, ["saved", "add", "nas", "10.0.0.5", "--user", "me", "--password", "pw"])
        client.connect.return_value = True

        result = runner.invoke(cli, ["--saved", "nas", "check"])

        assert result.exit_code == 0, result.output
        config = client.connect.call_args[0][0]
        assert config.username == "me"
        assert config.password == "pw"

    def test_unknown_saved_connection(self, runner, client):
        """Test an unknown saved name is a usage error."""
        result = runner.invoke(cli, ["--saved", "nope", "check"])
        assert result.exit_code == 2

    def test_remove_unknown(self, runner):
        """Test removing a name that does not exist."""
        result = runner.invoke(cli, ["saved", "remove", "nope"])
        assert result.exit_code == 1

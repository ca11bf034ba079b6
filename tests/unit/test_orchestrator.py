"""Unit tests for TransferOrchestrator.

The FTP client is a Mock(spec=FTPClient), so these tests pin down
batch semantics: ordering, skip rules, failure isolation and the
status messages users see.
"""

from datetime import datetime
from ftplib import error_perm
from pathlib import Path
from unittest.mock import Mock

import pytest

from whisper_ftp.ftp.client import FTPClient
from whisper_ftp.ftp.connection import FTPConnectionConfig
from whisper_ftp.ftp.exceptions import (
    FTPCancelledError,
    FTPCommandError,
    FTPConnectionError,
    FTPPermissionError,
)
from whisper_ftp.ftp.listing import FileSystemEntry
from whisper_ftp.transfer.models import DeleteRequest, TransferRequest
from whisper_ftp.transfer.orchestrator import TransferOrchestrator
from whisper_ftp.utils.threading import CancellationToken


@pytest.fixture
def config():
    return FTPConnectionConfig(address="10.0.0.2", username="bob", password="pw")


@pytest.fixture
def client():
    client = Mock(spec=FTPClient)
    client.file_exists.return_value = False
    return client


@pytest.fixture
def statuses():
    return []


@pytest.fixture
def progress():
    return []


@pytest.fixture
def orchestrator(client, config, statuses, progress):
    return TransferOrchestrator(
        client,
        config,
        on_progress=progress.append,
        on_status=statuses.append,
        skip_delay=0,
    )


def local_files(tmp_path: Path, *names: str):
    entries = []
    for name in names:
        path = tmp_path / name
        path.write_text(name)
        entries.append(FileSystemEntry.from_local_path(path))
    return entries


def remote_file(name: str, directory: str = "/srv") -> FileSystemEntry:
    return FileSystemEntry(name=name, path=f"{directory}/{name}", size=10)


def remote_dir(name: str, directory: str = "/srv") -> FileSystemEntry:
    return FileSystemEntry(name=name, path=f"{directory}/{name}", is_directory=True)


class TestUpload:
    """Tests for batch upload."""

    def test_uploads_in_order(self, orchestrator, client, tmp_path, statuses, progress):
        """Test every file is uploaded once, in request order."""
        items = local_files(tmp_path, "one.txt", "two.txt", "three.txt")

        result = orchestrator.upload(TransferRequest(items, "/incoming"))

        remote_paths = [c.args[2] for c in client.upload_file.call_args_list]
        assert remote_paths == ["/incoming/one.txt", "/incoming/two.txt", "/incoming/three.txt"]
        assert result.success_count == 3
        assert result.fail_count == 0
        assert statuses[0] == "Uploading 3 item(s)..."
        assert "Uploading two.txt (2/3)..." in statuses
        assert statuses[-1] == "Upload complete: 3 succeeded, 0 failed, 0 skipped"
        assert progress[-1] == pytest.approx(100.0)
        assert orchestrator.is_transferring is False

    def test_failure_is_isolated(self, orchestrator, client, tmp_path, statuses):
        """Test a failing item does not stop the rest of the batch."""
        items = local_files(tmp_path, "a.txt", "b.txt", "c.txt")
        client.upload_file.side_effect = [None, FTPConnectionError("10.0.0.2", 21), None]

        result = orchestrator.upload(TransferRequest(items, "/"))

        assert client.upload_file.call_count == 3
        assert result.success_count == 2
        assert result.fail_count == 1
        assert result.failed_items == ["b.txt"]
        assert statuses[-1] == "Upload complete: 2 succeeded, 1 failed, 0 skipped"

    def test_all_failed(self, orchestrator, client, tmp_path, statuses):
        """Test the final status when nothing succeeded."""
        items = local_files(tmp_path, "a.txt")
        client.upload_file.side_effect = FTPConnectionError("10.0.0.2", 21)

        result = orchestrator.upload(TransferRequest(items, "/"))

        assert result.fail_count == 1
        assert statuses[-1] == "Upload failed"

    def test_skips_existing_remote_file(self, orchestrator, client, tmp_path, statuses):
        """Test an existing remote file is skipped, not overwritten."""
        items = local_files(tmp_path, "exists.txt", "new.txt")
        client.file_exists.side_effect = lambda config, path, token=None: path.endswith("exists.txt")
        client.get_file_details.return_value = FileSystemEntry(
            name="exists.txt", path="/exists.txt", size=42, modified=datetime(2024, 1, 2, 3, 4)
        )

        result = orchestrator.upload(TransferRequest(items, "/"))

        uploaded = [c.args[2] for c in client.upload_file.call_args_list]
        assert uploaded == ["/new.txt"]
        assert result.skipped_count == 1
        assert result.success_count == 1
        assert (
            "File exists.txt already exists (Size: 42 bytes, Modified: 2024-01-02 03:04). Skipping..."
            in statuses
        )
        assert statuses[-1] == "Upload complete: 1 succeeded, 0 failed, 1 skipped"

    def test_skip_only_counts_as_complete(self, orchestrator, client, tmp_path, statuses):
        """Test a batch where every item was skipped is not a failure."""
        items = local_files(tmp_path, "a.txt")
        client.file_exists.return_value = True
        client.get_file_details.side_effect = FTPCommandError("SIZE", "/a.txt")

        orchestrator.upload(TransferRequest(items, "/"))

        assert "File a.txt already exists. Skipping..." in statuses
        assert statuses[-1] == "Upload complete: 0 succeeded, 0 failed, 1 skipped"

    def test_directory_is_not_checked_for_existence(self, orchestrator, client, sample_tree):
        """Test skip-if-exists applies to files only."""
        client.file_exists.return_value = True

        orchestrator.upload(
            TransferRequest([FileSystemEntry.from_local_path(sample_tree)], "/dest")
        )

        client.create_directory.assert_any_call(orchestrator._config, "/dest/project", None)
        assert client.upload_file.call_count == 3

    def test_recursive_upload_counts_directory_once(self, orchestrator, client, sample_tree):
        """Test a directory with files and a subdirectory is one success."""
        result = orchestrator.upload(
            TransferRequest([FileSystemEntry.from_local_path(sample_tree)], "/dest")
        )

        created = [c.args[1] for c in client.create_directory.call_args_list]
        uploaded = [c.args[2] for c in client.upload_file.call_args_list]

        assert created == ["/dest/project", "/dest/project/docs"]
        assert uploaded == [
            "/dest/project/a.txt",
            "/dest/project/b.txt",
            "/dest/project/docs/c.txt",
        ]
        assert result.success_count == 1
        assert result.total == 1

    def test_existing_remote_directory_is_tolerated(self, orchestrator, client, sample_tree):
        """Test a 550 from MKD does not stop the directory upload."""
        client.create_directory.side_effect = FTPPermissionError(
            "MKD", "/dest/project", error_perm("550 Directory exists")
        )

        result = orchestrator.upload(
            TransferRequest([FileSystemEntry.from_local_path(sample_tree)], "/dest")
        )

        assert client.upload_file.call_count == 3
        assert result.success_count == 1

    def test_file_failure_inside_directory_is_logged_only(self, orchestrator, client, sample_tree):
        """Test a file failing inside a directory keeps the directory a success."""
        client.upload_file.side_effect = [FTPConnectionError("10.0.0.2", 21), None, None]

        result = orchestrator.upload(
            TransferRequest([FileSystemEntry.from_local_path(sample_tree)], "/dest")
        )

        assert client.upload_file.call_count == 3
        assert result.success_count == 1
        assert result.fail_count == 0

    def test_cancel_stops_batch(self, orchestrator, client, tmp_path, statuses):
        """Test cancellation stops at the current item and reports it."""
        items = local_files(tmp_path, "a.txt", "b.txt", "c.txt")
        token = CancellationToken()

        def upload(config, local, remote, on_progress=None, cancel_token=None):
            if remote.endswith("b.txt"):
                token.cancel()
                raise FTPCancelledError("Upload")

        client.upload_file.side_effect = upload

        result = orchestrator.upload(TransferRequest(items, "/"), cancel_token=token)

        assert client.upload_file.call_count == 2
        assert result.success_count == 1
        assert result.fail_count == 0
        assert statuses[-1] == "Upload cancelled"
        assert orchestrator.is_transferring is False

    def test_skip_delay_waits_on_token(self, client, config, tmp_path):
        """Test the skip pause is interruptible through the token."""
        client.file_exists.return_value = True
        client.get_file_details.return_value = remote_file("a.txt")
        token = Mock(spec=CancellationToken)
        token.is_cancelled = False
        token.wait.return_value = False

        orchestrator = TransferOrchestrator(client, config, skip_delay=1.5)
        orchestrator.upload(TransferRequest(local_files(tmp_path, "a.txt"), "/"), cancel_token=token)

        token.wait.assert_called_once_with(1.5)


class TestDownload:
    """Tests for batch download."""

    def test_downloads_files(self, orchestrator, client, tmp_path, statuses):
        """Test files are fetched into the target directory."""
        items = [remote_file("a.bin"), remote_file("b.bin")]

        result = orchestrator.download(TransferRequest(items, str(tmp_path)))

        targets = [c.args[2] for c in client.download_file.call_args_list]
        assert targets == [tmp_path / "a.bin", tmp_path / "b.bin"]
        assert result.success_count == 2
        assert statuses[0] == "Downloading 2 item(s)..."
        assert statuses[-1] == "Download complete: 2 succeeded, 0 failed, 0 skipped"

    def test_skips_existing_local_file(self, orchestrator, client, tmp_path, statuses):
        """Test an existing local file is left alone."""
        (tmp_path / "have.bin").write_bytes(b"12345")
        items = [remote_file("have.bin"), remote_file("want.bin")]

        result = orchestrator.download(TransferRequest(items, str(tmp_path)))

        assert client.download_file.call_count == 1
        assert result.skipped_count == 1
        assert "File have.bin already exists locally (Size: 5 bytes). Skipping..." in statuses

    def test_recursive_download(self, orchestrator, client, tmp_path):
        """Test a remote directory is mirrored locally."""
        listings = {
            "/srv/photos": [remote_file("p1.jpg", "/srv/photos"), remote_dir("raw", "/srv/photos")],
            "/srv/photos/raw": [remote_file("p1.cr2", "/srv/photos/raw")],
        }
        client.list_directory.side_effect = lambda config, path, token=None: listings[path]

        result = orchestrator.download(TransferRequest([remote_dir("photos")], str(tmp_path)))

        targets = [c.args[2] for c in client.download_file.call_args_list]
        assert targets == [tmp_path / "photos" / "p1.jpg", tmp_path / "photos" / "raw" / "p1.cr2"]
        assert (tmp_path / "photos" / "raw").is_dir()
        assert result.success_count == 1

    def test_failed_listing_fails_directory(self, orchestrator, client, tmp_path):
        """Test a directory whose listing fails counts as one failure."""
        client.list_directory.side_effect = FTPCommandError("LIST", "/srv/gone")

        result = orchestrator.download(TransferRequest([remote_dir("gone")], str(tmp_path)))

        assert result.fail_count == 1
        assert result.failed_items == ["gone"]


class TestDelete:
    """Tests for batch delete."""

    def test_dispatches_on_entry_type(self, orchestrator, client, statuses):
        """Test files use DELE and directories the recursive delete."""
        result = orchestrator.delete(DeleteRequest([remote_file("a.txt"), remote_dir("old")]))

        client.delete_file.assert_called_once_with(orchestrator._config, "/srv/a.txt", None)
        client.delete_directory.assert_called_once_with(orchestrator._config, "/srv/old", None)
        assert result.success_count == 2
        assert statuses[-1] == "Delete complete: 2 succeeded, 0 failed"

    def test_access_denied_status(self, orchestrator, client, statuses):
        """Test access-denied failures get their own status line."""
        client.delete_file.side_effect = [
            FTPPermissionError("DELE", "/srv/locked.txt", error_perm("550 Permission denied")),
            None,
        ]

        result = orchestrator.delete(DeleteRequest([remote_file("locked.txt"), remote_file("ok.txt")]))

        assert "Cannot delete 'locked.txt': Access denied" in statuses
        assert result.fail_count == 1
        assert result.success_count == 1
        assert result.failed_items == ["locked.txt"]

    def test_generic_failure_status(self, orchestrator, client, statuses):
        """Test other failures are reported differently from access denied."""
        client.delete_file.side_effect = FTPConnectionError("10.0.0.2", 21)

        result = orchestrator.delete(DeleteRequest([remote_file("a.txt")]))

        assert not any("Access denied" in s for s in statuses)
        assert any(s.startswith("Failed to delete 'a.txt'") for s in statuses)
        assert statuses[-1] == "Delete failed"
        assert result.fail_count == 1


class TestRequests:
    """Tests for request validation."""

    def test_empty_transfer_request(self):
        """Test an empty item list is rejected."""
        with pytest.raises(ValueError):
            TransferRequest([], "/")

    def test_empty_delete_request(self):
        """Test an empty delete list is rejected."""
        with pytest.raises(ValueError):
            DeleteRequest([])

    def test_summary(self):
        """Test result summaries."""
        from whisper_ftp.transfer.models import TransferResult

        result = TransferResult()
        result.record_success()
        result.record_failure("x")
        result.record_skip()

        assert result.total == 3
        assert result.summary() == {
            "total": 3,
            "successful": 1,
            "failed": 1,
            "failures": ["x"],
            "skipped": 1,
        }

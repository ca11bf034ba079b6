"""Batch transfer orchestration for WhisperFTP.

TransferOrchestrator drives a TransferRequest or DeleteRequest through
FTPClient one item at a time, in request order. A failing item is
recorded in the result and the batch moves on to the next one.
"""

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from whisper_ftp.ftp.client import FTPClient, ProgressCallback
from whisper_ftp.ftp.connection import FTPConnectionConfig
from whisper_ftp.ftp.exceptions import FTPCancelledError, FTPCommandError, FTPError
from whisper_ftp.ftp.listing import FileSystemEntry, join_remote
from whisper_ftp.transfer.models import (
    BatchResult,
    DeleteRequest,
    DeleteResult,
    TransferRequest,
    TransferResult,
)
from whisper_ftp.utils.threading import CancellationToken

logger = logging.getLogger("whisper_ftp.transfer")

# Status callback receives one human-readable line
StatusCallback = Callable[[str], None]

# Pause after each skipped item so the status line stays readable
DEFAULT_SKIP_DELAY = 1.0

# MKD reply when the directory is already there
DIRECTORY_EXISTS_CODE = "550"

# Item handlers return True when the item was skipped
ItemHandler = Callable[[FileSystemEntry, int, int, Optional[CancellationToken]], bool]


class TransferOrchestrator:
    """Runs batch uploads, downloads and deletes against one server."""

    def __init__(
        self,
        client: FTPClient,
        config: FTPConnectionConfig,
        on_progress: Optional[ProgressCallback] = None,
        on_status: Optional[StatusCallback] = None,
        skip_delay: float = DEFAULT_SKIP_DELAY
    ):
        """
        Initialize the orchestrator.

        Args:
            client: FTP client used for every operation
            config: Connection configuration of the server
            on_progress: Optional callback receiving 0-100
            on_status: Optional callback receiving status lines
            skip_delay: Seconds to pause after a skipped item (0 disables)
        """
        self._client = client
        self._config = config
        self._on_progress = on_progress
        self._on_status = on_status
        self._skip_delay = skip_delay
        self._is_transferring = False

    @property
    def is_transferring(self) -> bool:
        """True while a batch is running."""
        return self._is_transferring

    def _status(self, message: str) -> None:
        if self._on_status:
            self._on_status(message)

    def _progress(self, percent: float) -> None:
        if self._on_progress:
            self._on_progress(percent)

    def _pace(self, cancel_token: Optional[CancellationToken]) -> None:
        if self._skip_delay <= 0:
            return
        if cancel_token is None:
            time.sleep(self._skip_delay)
        elif cancel_token.wait(self._skip_delay):
            raise FTPCancelledError("Transfer")

    # -- public batch operations ------------------------------------------

    def upload(
        self,
        request: TransferRequest,
        cancel_token: Optional[CancellationToken] = None
    ) -> TransferResult:
        """
        Upload local files and directories into a remote directory.

        Files that already exist remotely are skipped, not overwritten.

        Args:
            request: Local entries and the remote target directory
            cancel_token: Optional cancellation token

        Returns:
            TransferResult for the top-level items
        """
        logger.info("Starting upload operation")

        def handle(item, index, total, token):
            return self._upload_item(item, index, total, request.target_directory, token)

        return self._run_batch("Upload", "Uploading", request.items, TransferResult(), handle, cancel_token)

    def download(
        self,
        request: TransferRequest,
        cancel_token: Optional[CancellationToken] = None
    ) -> TransferResult:
        """
        Download remote files and directories into a local directory.

        Files that already exist locally are skipped, not overwritten.

        Args:
            request: Remote entries and the local target directory
            cancel_token: Optional cancellation token

        Returns:
            TransferResult for the top-level items
        """
        logger.info("Starting download operation")

        def handle(item, index, total, token):
            return self._download_item(item, index, total, Path(request.target_directory), token)

        return self._run_batch("Download", "Downloading", request.items, TransferResult(), handle, cancel_token)

    def delete(
        self,
        request: DeleteRequest,
        cancel_token: Optional[CancellationToken] = None
    ) -> DeleteResult:
        """
        Delete remote files and directories (directories recursively).

        Args:
            request: Remote entries to delete
            cancel_token: Optional cancellation token

        Returns:
            DeleteResult for the requested items
        """
        logger.info(f"Attempting to delete {len(request.items)} items")
        return self._run_batch("Delete", "Deleting", request.items, DeleteResult(), self._delete_item, cancel_token)

    # -- batch loop ---------------------------------------------------------

    def _run_batch(
        self,
        operation: str,
        verb: str,
        items: List[FileSystemEntry],
        result: BatchResult,
        handle: ItemHandler,
        cancel_token: Optional[CancellationToken]
    ) -> BatchResult:
        """
        Process items sequentially, isolating failures per item.

        Cancellation stops the loop; the item in progress is not counted.
        """
        self._is_transferring = True
        total = len(items)
        self._status(f"{verb} {total} item(s)...")

        try:
            for index, item in enumerate(items):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(operation)

                try:
                    skipped = handle(item, index, total, cancel_token)
                except FTPCancelledError:
                    raise
                except Exception as e:
                    self._record_failure(operation, item, e, result)
                    continue

                if skipped:
                    result.record_skip()
                    continue

                result.record_success()
                if isinstance(result, TransferResult):
                    self._progress((index + 1) / total * 100)

            self._status(self._completion_message(operation, result))

        except FTPCancelledError:
            logger.info(f"{operation} cancelled by user")
            self._status(f"{operation} cancelled")
        finally:
            self._is_transferring = False

        return result

    def _record_failure(
        self,
        operation: str,
        item: FileSystemEntry,
        error: Exception,
        result: BatchResult
    ) -> None:
        if operation == "Delete":
            if isinstance(error, FTPCommandError) and error.is_access_denied:
                logger.warning(f"Access denied for '{item.name}'")
                self._status(f"Cannot delete '{item.name}': Access denied")
            else:
                logger.error(f"Failed to delete {item.name}: {error}")
                self._status(f"Failed to delete '{item.name}': {error}")
        else:
            logger.error(f"Failed to {operation.lower()} {item.name}: {error}")

        result.record_failure(item.name)

    @staticmethod
    def _completion_message(operation: str, result: BatchResult) -> str:
        skipped = getattr(result, "skipped_count", 0)
        if result.success_count == 0 and skipped == 0:
            return f"{operation} failed"

        message = f"{operation} complete: {result.success_count} succeeded, {result.fail_count} failed"
        if isinstance(result, TransferResult):
            message += f", {skipped} skipped"
        return message

    # -- upload -------------------------------------------------------------

    def _upload_item(
        self,
        item: FileSystemEntry,
        index: int,
        total: int,
        target_directory: str,
        cancel_token: Optional[CancellationToken]
    ) -> bool:
        remote_path = join_remote(target_directory, item.name)

        if not item.is_directory and self._client.file_exists(self._config, remote_path, cancel_token):
            self._status(self._describe_existing_remote(item.name, remote_path, cancel_token))
            self._pace(cancel_token)
            return True

        if item.is_directory:
            self._upload_directory(Path(item.path), target_directory, cancel_token)
        else:
            self._status(f"Uploading {item.name} ({index + 1}/{total})...")
            self._client.upload_file(
                self._config, item.path, remote_path, self._on_progress, cancel_token
            )
        return False

    def _describe_existing_remote(
        self,
        name: str,
        remote_path: str,
        cancel_token: Optional[CancellationToken]
    ) -> str:
        try:
            details = self._client.get_file_details(self._config, remote_path, cancel_token)
        except FTPCancelledError:
            raise
        except FTPError as e:
            logger.debug(f"No details for existing file {remote_path}: {e}")
            return f"File {name} already exists. Skipping..."

        return (
            f"File {name} already exists (Size: {details.size} bytes, "
            f"Modified: {details.modified:%Y-%m-%d %H:%M}). Skipping..."
        )

    def _upload_directory(
        self,
        local_directory: Path,
        remote_parent: str,
        cancel_token: Optional[CancellationToken]
    ) -> None:
        """
        Mirror a local directory under remote_parent.

        Progress is reported over the directory's immediate files and
        subdirectories. File failures are logged, not raised.
        """
        target_path = join_remote(remote_parent, local_directory.name)

        try:
            self._client.create_directory(self._config, target_path, cancel_token)
        except FTPCancelledError:
            raise
        except FTPCommandError as e:
            if e.code != DIRECTORY_EXISTS_CODE:
                logger.warning(f"Directory creation issue for {target_path}: {e}")
        except FTPError as e:
            logger.warning(f"Directory creation issue for {target_path}: {e}")

        children = sorted(local_directory.iterdir(), key=lambda p: p.name)
        files = [p for p in children if p.is_file()]
        directories = [p for p in children if p.is_dir()]
        total_items = len(files) + len(directories)
        current_item = 0

        for file_path in files:
            try:
                self._status(f"Uploading {file_path.name}...")
                self._client.upload_file(
                    self._config,
                    file_path,
                    join_remote(target_path, file_path.name),
                    self._on_progress,
                    cancel_token,
                )
            except FTPCancelledError:
                raise
            except Exception as e:
                logger.error(f"Error uploading {file_path.name}: {e}")

            current_item += 1
            self._progress(current_item / total_items * 100)

        for directory in directories:
            self._upload_directory(directory, target_path, cancel_token)
            current_item += 1
            self._progress(current_item / total_items * 100)

    # -- download -----------------------------------------------------------

    def _download_item(
        self,
        item: FileSystemEntry,
        index: int,
        total: int,
        target_directory: Path,
        cancel_token: Optional[CancellationToken]
    ) -> bool:
        local_path = target_directory / item.name

        if not item.is_directory and local_path.exists():
            self._status(
                f"File {item.name} already exists locally "
                f"(Size: {local_path.stat().st_size} bytes). Skipping..."
            )
            self._pace(cancel_token)
            return True

        if item.is_directory:
            self._download_directory(item, target_directory, cancel_token)
        else:
            self._status(f"Downloading {item.name} ({index + 1}/{total})...")
            self._client.download_file(
                self._config, item.path, local_path, self._on_progress, cancel_token
            )
        return False

    def _download_directory(
        self,
        directory: FileSystemEntry,
        local_parent: Path,
        cancel_token: Optional[CancellationToken]
    ) -> None:
        """
        Mirror a remote directory under local_parent.

        Progress is reported over the directory listing's entry count.
        Entry failures are logged, not raised; a failed listing raises.
        """
        target_path = local_parent / directory.name
        target_path.mkdir(parents=True, exist_ok=True)

        entries = self._client.list_directory(self._config, directory.path, cancel_token)
        total_items = len(entries)
        current_item = 0

        for entry in entries:
            entry.parent = directory
            try:
                if entry.is_directory:
                    self._download_directory(entry, target_path, cancel_token)
                else:
                    self._status(f"Downloading {entry.name}...")
                    self._client.download_file(
                        self._config,
                        entry.path,
                        target_path / entry.name,
                        self._on_progress,
                        cancel_token,
                    )
            except FTPCancelledError:
                raise
            except Exception as e:
                logger.error(f"Error downloading {entry.name}: {e}")

            current_item += 1
            self._progress(current_item / total_items * 100)

    # -- delete -------------------------------------------------------------

    def _delete_item(
        self,
        item: FileSystemEntry,
        index: int,
        total: int,
        cancel_token: Optional[CancellationToken]
    ) -> bool:
        self._status(f"Deleting {item.name}...")

        if item.is_directory:
            self._client.delete_directory(self._config, item.path, cancel_token)
        else:
            self._client.delete_file(self._config, item.path, cancel_token)

        logger.info(f"Successfully deleted: {item.name}")
        return False

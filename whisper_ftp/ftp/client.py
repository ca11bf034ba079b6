"""FTP client core for WhisperFTP.

FTPClient performs single FTP operations: connection checks with retry
and backoff, directory listing, file upload/download with progress, and
the small one-round-trip commands (delete, mkdir, rename, size, ...).

Each operation opens its own control connection from the given
FTPConnectionConfig and closes it again; the only state kept between
calls is the in-flight session, so disconnect() can abort it.
"""

import logging
import posixpath
import socket
import threading
import time
from contextlib import ExitStack, contextmanager
from datetime import datetime, timezone
from ftplib import FTP, error_perm, error_reply, error_temp
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, List, Optional, Union

from whisper_ftp.ftp.connection import (
    ConnectionState,
    FTPConnectionConfig,
    abort_session,
    close_session,
    open_session,
)
from whisper_ftp.ftp.exceptions import (
    ACCESS_DENIED_CODES,
    FTPAuthenticationError,
    FTPCancelledError,
    FTPCommandError,
    FTPConnectionError,
    FTPError,
    FTPPathError,
    FTPPermissionError,
    FTPTimeoutError,
    FTPTransferError,
    reply_code,
)
from whisper_ftp.ftp.listing import FileSystemEntry, parse_listing
from whisper_ftp.utils.threading import CancellationToken

logger = logging.getLogger("whisper_ftp.client")

# Final replies to the LIST probe that count as a working connection:
# data connection already open / about to open, and transfer complete.
CONNECT_ACCEPTED_CODES = frozenset({"125", "150", "226", "250"})

# Hard cap for a listing refresh, independent of the caller's token.
LISTING_REFRESH_TIMEOUT = 30.0

# Replies meaning the server does not implement a command.
NOT_IMPLEMENTED_CODES = frozenset({"500", "502", "504"})

# Progress callback receives a percentage between 0 and 100
ProgressCallback = Callable[[float], None]

PathLike = Union[str, Path]


def translate_error(
    error: Exception,
    command: str,
    path: str,
    config: FTPConnectionConfig
) -> FTPError:
    """
    Map an ftplib or socket exception onto the FTPError hierarchy.

    Args:
        error: Exception raised while a session was active
        command: FTP command being executed (for the message)
        path: Remote path the command was about
        config: Connection configuration in use

    Returns:
        Matching FTPError instance
    """
    if isinstance(error, FTPError):
        return error
    if isinstance(error, error_perm):
        if reply_code(error) in ACCESS_DENIED_CODES:
            return FTPPermissionError(command, path, error)
        return FTPCommandError(command, path, error)
    if isinstance(error, (error_temp, error_reply)):
        return FTPCommandError(command, path, error)
    if isinstance(error, socket.timeout):
        return FTPTimeoutError(f"{command} {path}", config.read_write_timeout)
    if isinstance(error, (OSError, EOFError)):
        return FTPConnectionError(config.host, config.port, error)
    return FTPError(f"{command} failed for '{path}'", error)


def parse_mdtm(response: str) -> datetime:
    """
    Parse an MDTM reply ("213 YYYYMMDDHHMMSS[.sss]") as a UTC timestamp.

    Raises:
        ValueError: If the reply does not carry a timestamp
    """
    value = response[4:].strip() if reply_code(response) else response.strip()
    value = value.split(".", 1)[0]
    return datetime.strptime(value, "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)


class _ProgressReporter:
    """Turns transferred byte counts into non-decreasing percentages."""

    def __init__(
        self,
        total: int,
        on_progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
        operation: str,
        already_done: int = 0
    ):
        self.total = total
        self.done = already_done
        self._on_progress = on_progress
        self._cancel_token = cancel_token
        self._operation = operation
        self._last = -1.0

    def advance(self, count: int) -> None:
        """Record count more bytes; called once per chunk."""
        if self._cancel_token is not None:
            self._cancel_token.raise_if_cancelled(self._operation)

        self.done += count
        if self.total > 0:
            self._report(min(100.0, self.done / self.total * 100.0))

    def finish(self) -> None:
        """Report completion."""
        self._report(100.0)

    def _report(self, percent: float) -> None:
        if self._on_progress is None or percent <= self._last:
            return
        self._last = percent
        self._on_progress(percent)


class FTPClient:
    """Performs FTP operations against a server described by a config."""

    def __init__(self):
        """Initialize the client in the DISCONNECTED state."""
        self._state = ConnectionState.DISCONNECTED
        self._lock = threading.Lock()
        self._active: Optional[FTP] = None
        self._generation = 0
        self._last_error: Optional[FTPError] = None
        self._connected_at: Optional[datetime] = None
        self._last_activity: Optional[datetime] = None

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """True if the last connect() succeeded and disconnect() was not called."""
        return self._state == ConnectionState.CONNECTED

    @property
    def last_error(self) -> Optional[FTPError]:
        """
        Error of the final failed connect() attempt.

        FTPAuthenticationError means the server rejected the credentials;
        any other error is a generic connection failure.
        """
        return self._last_error

    @property
    def connected_at(self) -> Optional[datetime]:
        """Timestamp when connection was established."""
        return self._connected_at

    @property
    def last_activity(self) -> Optional[datetime]:
        """Timestamp of last successful operation."""
        return self._last_activity

    # -- session plumbing -------------------------------------------------

    @contextmanager
    def _session(
        self,
        config: FTPConnectionConfig,
        cancel_token: Optional[CancellationToken],
        command: str,
        path: str
    ) -> Iterator[FTP]:
        """
        Open a session for one operation and tear it down afterwards.

        The session is registered as the in-flight request so that
        disconnect() or the cancel token can abort it. Exceptions raised
        inside the block are translated to FTPError; if the abort came
        from cancellation the result is FTPCancelledError.
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled(command)

        generation = self._generation
        try:
            ftp = open_session(config)
        except FTPError:
            if self._was_aborted(cancel_token, generation):
                raise FTPCancelledError(command)
            raise

        with self._lock:
            stale = generation != self._generation
            if not stale:
                self._active = ftp
        if stale:
            abort_session(ftp)
            raise FTPCancelledError(command)

        unregister = None
        if cancel_token is not None:
            unregister = cancel_token.register(lambda: abort_session(ftp))

        failed = True
        try:
            yield ftp
            failed = False
        except FTPCancelledError:
            raise
        except Exception as e:
            if self._was_aborted(cancel_token, generation):
                raise FTPCancelledError(command) from e
            if isinstance(e, FTPError):
                raise
            raise translate_error(e, command, path, config) from e
        finally:
            if unregister is not None:
                unregister()
            with self._lock:
                if self._active is ftp:
                    self._active = None
            if failed:
                abort_session(ftp)
            else:
                close_session(ftp)
                self._last_activity = datetime.now()

    def _was_aborted(self, cancel_token: Optional[CancellationToken], generation: int) -> bool:
        cancelled = cancel_token is not None and cancel_token.is_cancelled
        return cancelled or generation != self._generation

    def _run_with_deadline(
        self,
        operation: str,
        timeout: float,
        cancel_token: Optional[CancellationToken],
        func: Callable[[CancellationToken], object]
    ):
        """
        Run func under a linked token that also fires after timeout.

        Raises:
            FTPTimeoutError: If the deadline (not the caller) cancelled func
        """
        parent = cancel_token or CancellationToken()
        with parent.linked(timeout=timeout) as token:
            try:
                return func(token)
            except FTPCancelledError:
                if token.timed_out and not parent.is_cancelled:
                    raise FTPTimeoutError(operation, timeout)
                raise

    def _wait(self, seconds: float, cancel_token: Optional[CancellationToken]) -> None:
        """Sleep between retries; cancellable through the token."""
        if cancel_token is None:
            time.sleep(seconds)
        elif cancel_token.wait(seconds):
            raise FTPCancelledError("Connect")

    # -- connection -------------------------------------------------------

    def connect(
        self,
        config: FTPConnectionConfig,
        cancel_token: Optional[CancellationToken] = None
    ) -> bool:
        """
        Verify the server is reachable and accepts the credentials.

        Issues a LIST probe, retrying up to config.max_retries times with
        exponential backoff (retry_base_delay * 2 ** (attempt - 1)). Each
        attempt is bounded by config.connect_timeout.

        Args:
            config: Connection configuration
            cancel_token: Optional cancellation token

        Returns:
            True if a probe succeeded, False otherwise. On False,
            last_error tells a credential rejection apart from other failures.

        Raises:
            FTPCancelledError: If cancelled or aborted by disconnect()
        """
        logger.info(f"Attempting to connect to {config.host}:{config.port}")

        self._state = ConnectionState.CONNECTING
        self._last_error = None
        generation = self._generation

        try:
            for attempt in range(1, config.max_retries + 1):
                if generation != self._generation:
                    raise FTPCancelledError("Connect")
                logger.info(f"Connection attempt {attempt} of {config.max_retries}")
                try:
                    if self._run_with_deadline(
                        "Connection",
                        config.connect_timeout,
                        cancel_token,
                        lambda token: self._probe(config, token),
                    ):
                        if generation != self._generation:
                            raise FTPCancelledError("Connect")
                        self._state = ConnectionState.CONNECTED
                        self._connected_at = datetime.now()
                        self._last_activity = self._connected_at
                        logger.info("Connection successful")
                        return True
                    self._last_error = FTPConnectionError(config.host, config.port)
                    logger.warning(f"Connection attempt {attempt} got an unexpected reply")
                except FTPCancelledError:
                    raise
                except FTPError as e:
                    self._last_error = e
                    logger.warning(f"Connection attempt {attempt} failed: {e}")

                if generation != self._generation:
                    raise FTPCancelledError("Connect")

                if attempt < config.max_retries:
                    delay = config.retry_base_delay * 2 ** (attempt - 1)
                    logger.info(f"Waiting {delay:g}s before retry")
                    self._wait(delay, cancel_token)

            if isinstance(self._last_error, FTPAuthenticationError):
                logger.error(f"Server rejected the credentials: {self._last_error}")
            else:
                logger.error("All connection attempts failed")
            self._state = ConnectionState.DISCONNECTED
            return False

        except FTPCancelledError:
            logger.info("Connection attempt cancelled")
            self._state = ConnectionState.DISCONNECTED
            raise

    def _probe(self, config: FTPConnectionConfig, cancel_token: CancellationToken) -> bool:
        """One connect attempt: log in and run a LIST of the start directory."""
        with self._session(config, cancel_token, "LIST", "/") as ftp:
            response = ftp.retrlines("LIST", lambda line: None)
        return reply_code(response) in CONNECT_ACCEPTED_CODES

    def disconnect(self) -> None:
        """Abort any in-flight request. Safe to call when already disconnected."""
        with self._lock:
            ftp = self._active
            self._active = None
            self._generation += 1

        if ftp is not None:
            logger.info("Aborting in-flight FTP request")
            abort_session(ftp)

        if self._state != ConnectionState.DISCONNECTED:
            logger.info("Disconnected from FTP server")
        self._state = ConnectionState.DISCONNECTED
        self._connected_at = None

    def test_secure_connection(
        self,
        config: FTPConnectionConfig,
        cancel_token: Optional[CancellationToken] = None
    ) -> bool:
        """
        Check whether the server accepts an explicit TLS (AUTH TLS) login.

        Returns:
            True if a TLS session could be opened and logged in
        """
        logger.info("Testing SSL/TLS connection")
        try:
            with self._session(config.with_tls(True), cancel_token, "AUTH TLS", "/"):
                pass
        except FTPCancelledError:
            raise
        except FTPError as e:
            logger.error(f"SSL connection failed: {e}")
            return False

        logger.info("SSL connection successful")
        return True

    # -- listing ----------------------------------------------------------

    def list_directory(
        self,
        config: FTPConnectionConfig,
        path: str = "/",
        cancel_token: Optional[CancellationToken] = None
    ) -> List[FileSystemEntry]:
        """
        List a remote directory.

        Args:
            config: Connection configuration
            path: Remote directory path
            cancel_token: Optional cancellation token

        Returns:
            Parsed entries (unparseable lines, "." and ".." left out)

        Raises:
            FTPError: If the listing fails; an empty directory returns []
        """
        logger.info(f"Listing directory: {path}")
        lines: List[str] = []

        def collect(line: str) -> None:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("LIST")
            lines.append(line)

        try:
            with self._session(config, cancel_token, "LIST", path) as ftp:
                ftp.retrlines(f"LIST {path}", collect)
        except FTPCancelledError:
            raise
        except FTPError as e:
            logger.error(f"Failed to list directory {path}: {e}")
            raise

        entries = parse_listing(lines, path)
        logger.info(f"Listed {len(entries)} items in directory {path}")
        return entries

    def refresh_listing(
        self,
        config: FTPConnectionConfig,
        path: str = "/",
        cancel_token: Optional[CancellationToken] = None
    ) -> List[FileSystemEntry]:
        """
        List a directory for a view refresh, capped at LISTING_REFRESH_TIMEOUT.

        Raises:
            FTPTimeoutError: If the listing does not finish within the cap
            FTPCancelledError: If the caller's token fires
        """
        return self._run_with_deadline(
            "Directory listing",
            LISTING_REFRESH_TIMEOUT,
            cancel_token,
            lambda token: self.list_directory(config, path, token),
        )

    # -- transfers --------------------------------------------------------

    def upload_file(
        self,
        config: FTPConnectionConfig,
        local_path: PathLike,
        remote_path: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        resume: bool = False
    ) -> int:
        """
        Upload a local file in chunks of config.buffer_size bytes.

        Progress is reported after every chunk as bytes sent over the
        local file size. A failed upload leaves whatever reached the
        server in place.

        Args:
            config: Connection configuration
            local_path: Local file to send
            remote_path: Destination path on the server
            on_progress: Optional callback receiving 0-100
            cancel_token: Optional cancellation token
            resume: Append to an existing partial remote file (APPE)

        Returns:
            Number of bytes sent

        Raises:
            FTPPathError: If local_path is not a readable file
            FTPTransferError: If reading the local file fails
            FTPError: If the server or connection fails
        """
        local_path = Path(local_path)
        if not local_path.is_file():
            raise FTPPathError(str(local_path), "read")

        file_size = local_path.stat().st_size
        logger.info(f"Starting upload: {local_path} -> {remote_path} (Size: {file_size} bytes)")

        try:
            with self._session(config, cancel_token, "STOR", remote_path) as ftp:
                offset = 0
                if resume:
                    offset = min(self._remote_size(ftp, remote_path) or 0, file_size)
                    if offset:
                        logger.info(f"Resuming upload of {remote_path} at byte {offset}")

                reporter = _ProgressReporter(
                    file_size, on_progress, cancel_token, "Upload", already_done=offset
                )
                if not (offset and offset >= file_size):
                    with self._open_local(local_path, "rb", remote_path, "upload") as f:
                        f.seek(offset)
                        command = f"APPE {remote_path}" if offset else f"STOR {remote_path}"
                        ftp.storbinary(
                            command,
                            f,
                            blocksize=config.buffer_size,
                            callback=lambda block: reporter.advance(len(block))
                        )
                reporter.finish()
        except FTPCancelledError:
            logger.info(f"Upload cancelled: {remote_path}")
            raise
        except FTPError as e:
            logger.error(f"Upload failed for {remote_path}: {e}")
            raise

        logger.info(f"Upload completed: {remote_path}")
        return reporter.done - offset

    def download_file(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        local_path: PathLike,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        resume: bool = False
    ) -> int:
        """
        Download a remote file in chunks of config.buffer_size bytes.

        Progress is reported after every chunk as bytes received over the
        size the server reports (SIZE). The local file is only created once
        data arrives, so a refused RETR leaves no file behind; a stream that
        fails midway leaves the partially written file in place.

        Args:
            config: Connection configuration
            remote_path: File on the server
            local_path: Destination file
            on_progress: Optional callback receiving 0-100
            cancel_token: Optional cancellation token
            resume: Continue a partial local file (REST)

        Returns:
            Number of bytes received

        Raises:
            FTPTransferError: If writing the local file fails
            FTPError: If the server or connection fails
        """
        local_path = Path(local_path)
        offset = local_path.stat().st_size if resume and local_path.is_file() else 0
        logger.info(f"Starting download: {remote_path} -> {local_path}")

        try:
            with self._session(config, cancel_token, "RETR", remote_path) as ftp:
                total = self._remote_size(ftp, remote_path) or 0
                reporter = _ProgressReporter(
                    total, on_progress, cancel_token, "Download", already_done=offset
                )

                if not (offset and total and offset >= total):
                    if offset:
                        logger.info(f"Resuming download of {remote_path} at byte {offset}")
                    mode = "ab" if offset else "wb"
                    # Local file appears on the first block, or after an empty transfer.
                    with ExitStack() as stack:
                        opened: List[BinaryIO] = []

                        def local_file() -> BinaryIO:
                            if not opened:
                                opened.append(stack.enter_context(
                                    self._open_local(local_path, mode, remote_path, "download")
                                ))
                            return opened[0]

                        def write(block: bytes) -> None:
                            f = local_file()
                            try:
                                f.write(block)
                            except OSError as e:
                                raise FTPTransferError(local_path.name, remote_path, "download", e)
                            reporter.advance(len(block))

                        ftp.retrbinary(
                            f"RETR {remote_path}",
                            write,
                            blocksize=config.buffer_size,
                            rest=offset or None
                        )
                        local_file()
                reporter.finish()
        except FTPCancelledError:
            logger.info(f"Download cancelled: {remote_path}")
            raise
        except FTPError as e:
            logger.error(f"Download failed for {remote_path}: {e}")
            raise

        logger.info(f"Download completed: {local_path}")
        return reporter.done - offset

    @staticmethod
    @contextmanager
    def _open_local(path: Path, mode: str, remote_path: str, direction: str) -> Iterator[BinaryIO]:
        try:
            f = open(path, mode)
        except OSError as e:
            raise FTPTransferError(path.name, remote_path, direction, e)
        with f:
            yield f

    @staticmethod
    def _binary_size(ftp: FTP, remote_path: str) -> Optional[int]:
        """SIZE under TYPE I; servers refuse SIZE in ASCII mode (550)."""
        ftp.voidcmd("TYPE I")
        return ftp.size(remote_path)

    @classmethod
    def _remote_size(cls, ftp: FTP, remote_path: str) -> Optional[int]:
        """SIZE of a remote file, or None if the server won't say."""
        try:
            return cls._binary_size(ftp, remote_path)
        except (error_perm, error_temp, error_reply, ValueError):
            return None

    # -- single round-trip commands ---------------------------------------

    def delete_file(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> None:
        """
        Delete a remote file.

        Raises:
            FTPPermissionError: If the server refuses (550/553)
            FTPError: On any other failure
        """
        logger.info(f"Deleting file: {remote_path}")
        try:
            with self._session(config, cancel_token, "DELE", remote_path) as ftp:
                ftp.delete(remote_path)
        except FTPError as e:
            logger.error(f"Delete file failed {remote_path}: {e}")
            raise
        logger.info(f"File deleted successfully: {remote_path}")

    def create_directory(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> None:
        """
        Create a remote directory.

        Raises:
            FTPCommandError: code 550 usually means it already exists
        """
        logger.info(f"Creating directory: {remote_path}")
        try:
            with self._session(config, cancel_token, "MKD", remote_path) as ftp:
                ftp.mkd(remote_path)
        except FTPCommandError as e:
            if e.code == "550":
                logger.info(f"Directory already exists or access denied: {remote_path}")
            else:
                logger.error(f"FTP error creating directory {remote_path}: {e}")
            raise
        logger.info(f"Directory created: {remote_path}")

    def delete_directory(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> None:
        """
        Delete a remote directory and everything below it.

        Raises:
            FTPPermissionError: If any part of the tree cannot be removed
            FTPError: On any other failure
        """
        logger.info(f"Starting recursive delete of directory: {remote_path}")
        try:
            with self._session(config, cancel_token, "RMD", remote_path) as ftp:
                self._remove_tree(ftp, remote_path, cancel_token)
        except FTPError as e:
            logger.error(f"Delete directory failed {remote_path}: {e}")
            raise
        logger.info(f"Directory deleted successfully: {remote_path}")

    def _remove_tree(
        self,
        ftp: FTP,
        remote_path: str,
        cancel_token: Optional[CancellationToken]
    ) -> None:
        lines: List[str] = []
        ftp.retrlines(f"LIST {remote_path}", lines.append)

        for entry in parse_listing(lines, remote_path):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled("RMD")
            if entry.is_directory:
                self._remove_tree(ftp, entry.path, cancel_token)
            else:
                ftp.delete(entry.path)

        ftp.rmd(remote_path)

    def rename(
        self,
        config: FTPConnectionConfig,
        current_path: str,
        new_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> None:
        """Rename or move a remote file or directory (RNFR/RNTO)."""
        logger.info(f"Renaming {current_path} to {new_path}")
        try:
            with self._session(config, cancel_token, "RNFR", current_path) as ftp:
                ftp.rename(current_path, new_path)
        except FTPError as e:
            logger.error(f"Rename failed ({current_path} -> {new_path}): {e}")
            raise
        logger.info("Renamed successfully")

    def file_exists(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> bool:
        """
        Check whether a remote file exists.

        Uses SIZE; servers without SIZE are asked for a listing of the
        parent directory instead.

        Raises:
            FTPError: On failures other than "file unavailable"
        """
        try:
            with self._session(config, cancel_token, "SIZE", remote_path) as ftp:
                try:
                    self._binary_size(ftp, remote_path)
                    return True
                except error_perm as e:
                    if reply_code(e) not in NOT_IMPLEMENTED_CODES:
                        raise
                    parent = posixpath.dirname(remote_path) or "/"
                    name = posixpath.basename(remote_path)
                    lines: List[str] = []
                    ftp.retrlines(f"LIST {parent}", lines.append)
                    return any(
                        entry.name == name and not entry.is_directory
                        for entry in parse_listing(lines, parent)
                    )
        except FTPCommandError as e:
            if e.code in ACCESS_DENIED_CODES:
                return False
            logger.warning(f"FTP error checking file existence {remote_path}: {e.code}")
            raise

    def directory_exists(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> bool:
        """Check whether a remote directory exists (CWD probe)."""
        try:
            with self._session(config, cancel_token, "CWD", remote_path) as ftp:
                ftp.cwd(remote_path)
                return True
        except FTPCommandError as e:
            if e.code in ACCESS_DENIED_CODES:
                return False
            logger.warning(f"FTP error checking directory {remote_path}: {e.code}")
            raise

    def get_file_size(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> Optional[int]:
        """SIZE of a remote file, None if the reply carries no size."""
        try:
            with self._session(config, cancel_token, "SIZE", remote_path) as ftp:
                return self._binary_size(ftp, remote_path)
        except FTPError as e:
            logger.error(f"Failed to get file size for {remote_path}: {e}")
            raise

    def get_modified_time(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> datetime:
        """Modification time of a remote file (MDTM), in UTC."""
        try:
            with self._session(config, cancel_token, "MDTM", remote_path) as ftp:
                return parse_mdtm(ftp.sendcmd(f"MDTM {remote_path}"))
        except FTPError as e:
            logger.error(f"Failed to get modified time for {remote_path}: {e}")
            raise

    def get_file_details(
        self,
        config: FTPConnectionConfig,
        remote_path: str,
        cancel_token: Optional[CancellationToken] = None
    ) -> FileSystemEntry:
        """
        Size and modification time of a remote file in one session.

        If MDTM is not available the entry's modified_is_exact is False.
        """
        with self._session(config, cancel_token, "SIZE", remote_path) as ftp:
            size = self._remote_size(ftp, remote_path)
            if size is None:
                raise FTPCommandError("SIZE", remote_path)
            try:
                modified = parse_mdtm(ftp.sendcmd(f"MDTM {remote_path}"))
                exact = True
            except (error_perm, error_temp, error_reply, ValueError):
                modified = datetime.now(timezone.utc)
                exact = False

        logger.info(f"File details for {remote_path}: {size} bytes, modified {modified:%Y-%m-%d %H:%M}")
        return FileSystemEntry(
            name=posixpath.basename(remote_path),
            path=remote_path,
            size=size,
            modified=modified,
            modified_is_exact=exact,
        )

    def get_working_directory(
        self,
        config: FTPConnectionConfig,
        cancel_token: Optional[CancellationToken] = None
    ) -> str:
        """Directory the server puts this user in after login (PWD)."""
        with self._session(config, cancel_token, "PWD", "") as ftp:
            directory = ftp.pwd()
        logger.info(f"Current working directory: {directory}")
        return directory

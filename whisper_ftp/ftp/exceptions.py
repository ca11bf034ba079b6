"""FTP-specific exceptions for WhisperFTP.

Custom exception hierarchy for FTP operations to provide
clear error handling and user-friendly messages. Raw ftplib and
socket errors are translated into these at the client boundary.
"""

from typing import Optional


# Reply codes the server uses for "action not taken": file unavailable
# (not found, no access) and filename not allowed.
ACCESS_DENIED_CODES = frozenset({"550", "553"})

# Reply code for "not logged in".
NOT_LOGGED_IN_CODE = "530"


def reply_code(reply) -> Optional[str]:
    """
    Extract the three-digit reply code from a server reply or ftplib error.

    Args:
        reply: Reply text or exception (e.g. error_perm("550 No such file"))

    Returns:
        Reply code string, or None if the reply has no leading code
    """
    text = str(reply).strip()
    code = text[:3]
    if len(code) == 3 and code.isdigit():
        return code
    return None


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FTPConnectionError(FTPError):
    """Failed to establish FTP connection."""

    def __init__(self, host: str, port: int, original_error: Exception = None):
        self.host = host
        self.port = port
        message = f"Failed to connect to {host}:{port}"
        super().__init__(message, original_error)


class FTPAuthenticationError(FTPError):
    """FTP authentication (login) failed."""

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        message = f"Authentication failed for user '{username}'"
        super().__init__(message, original_error)


class FTPTimeoutError(FTPError):
    """FTP operation timed out."""

    def __init__(self, operation: str = "Operation", timeout: float = 30):
        self.timeout = timeout
        message = f"{operation} timed out after {timeout:g} seconds"
        super().__init__(message)


class FTPCancelledError(FTPError):
    """Operation was cancelled through its cancellation token."""

    def __init__(self, operation: str = "Operation"):
        self.operation = operation
        super().__init__(f"{operation} cancelled")


class FTPCommandError(FTPError):
    """Server answered a command with an error reply."""

    def __init__(self, command: str, path: str, original_error: Exception = None):
        self.command = command
        self.path = path
        self.code = reply_code(original_error) if original_error else None
        message = f"{command} failed for '{path}'"
        super().__init__(message, original_error)

    @property
    def is_permanent(self) -> bool:
        """True for 5xx replies (retrying will not help)."""
        return self.code is not None and self.code.startswith("5")

    @property
    def is_access_denied(self) -> bool:
        """True for "file unavailable" / "filename not allowed" replies."""
        return self.code in ACCESS_DENIED_CODES


class FTPPermissionError(FTPCommandError):
    """FTP permission denied for operation."""

    def __init__(self, command: str, path: str, original_error: Exception = None):
        super().__init__(command, path, original_error)
        self.message = f"Permission denied: cannot {command} '{path}'"


class FTPPathError(FTPError):
    """FTP path operation failed (change directory, list, etc.)."""

    def __init__(self, path: str, operation: str, original_error: Exception = None):
        self.path = path
        self.operation = operation
        message = f"Failed to {operation} path '{path}'"
        super().__init__(message, original_error)


class FTPTransferError(FTPError):
    """Failed to move a file between the local disk and the server."""

    def __init__(
        self,
        file_name: str,
        remote_path: str,
        direction: str = "upload",
        original_error: Exception = None
    ):
        self.file_name = file_name
        self.remote_path = remote_path
        self.direction = direction
        preposition = "to" if direction == "upload" else "from"
        message = f"Failed to {direction} '{file_name}' {preposition} '{remote_path}'"
        super().__init__(message, original_error)

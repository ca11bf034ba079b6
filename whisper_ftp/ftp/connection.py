"""FTP connection management for WhisperFTP.

Provides ConnectionState enum, FTPConnectionConfig dataclass, and the
session helpers that open, close and abort one control connection.
Every client operation opens its own session from the same config.
"""

import logging
import socket
import ssl
from dataclasses import dataclass, field, replace
from enum import Enum
from ftplib import FTP, FTP_TLS, error_perm, error_reply, error_temp
from typing import Optional, Tuple

from whisper_ftp.ftp.exceptions import (
    NOT_LOGGED_IN_CODE,
    FTPAuthenticationError,
    FTPConnectionError,
    FTPTimeoutError,
    reply_code,
)
from whisper_ftp.utils.validators import (
    strip_address,
    validate_connection,
)

logger = logging.getLogger("whisper_ftp.connection")

MIN_BUFFER_SIZE = 1024
MAX_BUFFER_SIZE = 16 * 1024 * 1024


class ConnectionState(Enum):
    """FTP connection state."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class FTPConnectionConfig:
    """FTP connection configuration (timeouts and delays in seconds)."""
    address: str
    username: str = "anonymous"
    password: str = field(default="", repr=False)
    port: int = 21
    connect_timeout: float = 10.0
    read_write_timeout: float = 30.0
    use_tls: bool = False
    passive_mode: bool = True
    binary_mode: bool = True
    keep_alive: bool = True
    buffer_size: int = 131072
    max_retries: int = 3
    retry_base_delay: float = 2.0
    accept_invalid_certificates: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.address or not strip_address(self.address):
            raise ValueError("Host is required")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")
        if self.connect_timeout <= 0 or self.read_write_timeout <= 0:
            raise ValueError("Timeouts must be positive")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {self.max_retries}")
        if self.retry_base_delay < 0:
            raise ValueError("retry_base_delay cannot be negative")
        if not MIN_BUFFER_SIZE <= self.buffer_size <= MAX_BUFFER_SIZE:
            raise ValueError(
                f"Buffer size must be between {MIN_BUFFER_SIZE} and "
                f"{MAX_BUFFER_SIZE} bytes, got {self.buffer_size}"
            )

    @property
    def host(self) -> str:
        """Bare host name, without ftp:// scheme or trailing path."""
        return strip_address(self.address)

    def validate(self) -> Tuple[bool, Optional[str]]:
        """
        Check the fields a user must fill in before connecting.

        Returns:
            Tuple of (is_valid, error_message)
        """
        return validate_connection(self.address, self.username, self.password, self.port)

    def with_timeout(self, connect_timeout: float) -> "FTPConnectionConfig":
        """Copy of this config with a different connect timeout."""
        return replace(self, connect_timeout=connect_timeout)

    def with_tls(self, enable: bool) -> "FTPConnectionConfig":
        """Copy of this config with TLS switched on or off."""
        return replace(self, use_tls=enable)

    @classmethod
    def anonymous(cls, address: str, port: int = 21) -> "FTPConnectionConfig":
        """Config for an anonymous login."""
        return cls(
            address=address,
            username="anonymous",
            password="anonymous@example.com",
            port=port,
            keep_alive=False,
        )

    @classmethod
    def secure(
        cls,
        address: str,
        username: str,
        password: str,
        port: int = 21
    ) -> "FTPConnectionConfig":
        """Config for an explicit FTPS (AUTH TLS) login."""
        return cls(
            address=address,
            username=username,
            password=password,
            port=port,
            use_tls=True,
        )


def _tls_context(config: FTPConnectionConfig) -> ssl.SSLContext:
    """Build the TLS context used for FTPS sessions."""
    context = ssl.create_default_context()
    if config.accept_invalid_certificates:
        logger.warning(
            f"Certificate validation disabled for {config.host}; "
            "accepting any server certificate"
        )
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def open_session(config: FTPConnectionConfig) -> FTP:
    """
    Open and log in one control connection.

    Args:
        config: Connection configuration

    Returns:
        Logged-in ftplib FTP (or FTP_TLS) instance

    Raises:
        FTPConnectionError: If the server cannot be reached
        FTPAuthenticationError: If the server answers 530 to the login
        FTPTimeoutError: If connect or login exceed connect_timeout
    """
    if config.use_tls:
        ftp = FTP_TLS(context=_tls_context(config))
    else:
        ftp = FTP()
    ftp.set_debuglevel(0)

    try:
        try:
            ftp.connect(
                host=config.host,
                port=config.port,
                timeout=config.connect_timeout
            )
            ftp.login(user=config.username, passwd=config.password)
        except socket.timeout:
            raise FTPTimeoutError("Connection", config.connect_timeout)
        except error_perm as e:
            if reply_code(e) == NOT_LOGGED_IN_CODE:
                raise FTPAuthenticationError(config.username, e)
            raise FTPConnectionError(config.host, config.port, e)
        except (error_temp, error_reply, ssl.SSLError, EOFError, OSError) as e:
            raise FTPConnectionError(config.host, config.port, e)

        if config.use_tls:
            ftp.prot_p()
        ftp.set_pasv(config.passive_mode)
        ftp.voidcmd("TYPE I" if config.binary_mode else "TYPE A")

        sock = ftp.sock
        if sock is not None:
            if config.keep_alive:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            sock.settimeout(config.read_write_timeout)
        # ftplib uses this for data connections
        ftp.timeout = config.read_write_timeout

    except (FTPConnectionError, FTPAuthenticationError, FTPTimeoutError):
        abort_session(ftp)
        raise
    except socket.timeout:
        abort_session(ftp)
        raise FTPTimeoutError("Connection setup", config.read_write_timeout)
    except Exception as e:
        abort_session(ftp)
        raise FTPConnectionError(config.host, config.port, e)

    return ftp


def close_session(ftp: FTP) -> None:
    """Close a control connection gracefully (QUIT, then close)."""
    try:
        ftp.quit()
    except Exception:
        # Best effort close
        abort_session(ftp)


def abort_session(ftp: FTP) -> None:
    """
    Tear down a control connection without talking to the server.

    Safe to call from another thread while the session is blocked in a
    socket read; shutting the socket down wakes the reader.
    """
    sock = getattr(ftp, "sock", None)
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
    try:
        ftp.close()
    except Exception:
        pass

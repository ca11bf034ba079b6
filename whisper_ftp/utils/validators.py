"""Input validators for WhisperFTP.

Provides validation functions for user inputs like server addresses,
ports, timeouts, credentials and remote paths.
"""

import re
from typing import Optional, Tuple


# IPv4 address pattern
IPV4_PATTERN = re.compile(
    r'^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
    r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$'
)

# Hostname pattern (simplified)
HOSTNAME_PATTERN = re.compile(
    r'^(?=.{1,253}$)(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63})*$'
)

# Scheme prefix accepted in server addresses ("ftp://host", "ftps://host/")
SCHEME_PATTERN = re.compile(r'^ftps?://', re.IGNORECASE)


def strip_address(address: str) -> str:
    """
    Reduce a server address to its bare host.

    "ftp://192.168.1.10/pub/" -> "192.168.1.10"

    Args:
        address: Host, or ftp:// / ftps:// URL

    Returns:
        Host part of the address
    """
    host = SCHEME_PATTERN.sub("", address.strip())
    return host.split("/", 1)[0]


def validate_ip_address(ip: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an IPv4 address.

    Args:
        ip: IP address string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not ip or not ip.strip():
        return False, "IP address is required"

    ip = ip.strip()

    if IPV4_PATTERN.match(ip):
        return True, None

    return False, f"Invalid IP address format: {ip}"


def validate_hostname(hostname: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a hostname.

    Args:
        hostname: Hostname string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not hostname or not hostname.strip():
        return False, "Hostname is required"

    hostname = hostname.strip()

    if HOSTNAME_PATTERN.match(hostname):
        return True, None

    return False, f"Invalid hostname format: {hostname}"


def validate_host(address: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a server address (IP, hostname or ftp:// URL).

    Args:
        address: Address string to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not address or not address.strip():
        return False, "FTP address is required"

    host = strip_address(address)

    is_valid_ip, _ = validate_ip_address(host)
    if is_valid_ip:
        return True, None

    is_valid_hostname, _ = validate_hostname(host)
    if is_valid_hostname:
        return True, None

    return False, f"Invalid host: {host}. Must be a valid IP address or hostname."


def validate_port(port: int) -> Tuple[bool, Optional[str]]:
    """
    Validate a port number.

    Args:
        port: Port number to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(port, int):
        try:
            port = int(port)
        except (ValueError, TypeError):
            return False, "Port must be a number"

    if port < 1 or port > 65535:
        return False, f"Port must be between 1 and 65535, got {port}"

    return True, None


def validate_timeout(timeout: float) -> Tuple[bool, Optional[str]]:
    """
    Validate a timeout value in seconds.

    Args:
        timeout: Timeout in seconds

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        timeout = float(timeout)
    except (ValueError, TypeError):
        return False, "Timeout must be a number"

    if timeout < 1 or timeout > 300:
        return False, f"Timeout must be between 1 and 300 seconds, got {timeout:g}"

    return True, None


def validate_credentials(username: str, password: str) -> Tuple[bool, Optional[str]]:
    """
    Validate that both username and password are present.

    Args:
        username: FTP username
        password: FTP password

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not username or not username.strip():
        return False, "Username is required"

    if not password or not password.strip():
        return False, "Password is required"

    return True, None


def validate_connection(
    address: str,
    username: str,
    password: str,
    port: int
) -> Tuple[bool, Optional[str]]:
    """
    Validate everything needed to attempt a connection.

    Checks run in the order a connection form is filled in, and the
    first failure is reported.

    Returns:
        Tuple of (is_valid, error_message)
    """
    for is_valid, error in (
        validate_host(address),
        validate_credentials(username, password),
        validate_port(port),
    ):
        if not is_valid:
            return False, error

    return True, None


def validate_ftp_path(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an FTP path format.

    Args:
        path: FTP path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path or not path.strip():
        return False, "FTP path is required"

    path = path.strip()

    if not path.startswith("/"):
        return False, "FTP path must be absolute (start with /)"

    # Check for path traversal attempts
    if ".." in path.split("/"):
        return False, "FTP path cannot contain '..'"

    return True, None

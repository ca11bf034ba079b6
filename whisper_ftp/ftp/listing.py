"""Directory listing support for WhisperFTP.

Defines FileSystemEntry (one file or directory, local or remote) and
the parser that turns Unix-style LIST output into entries.
"""

import logging
import os
import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

logger = logging.getLogger("whisper_ftp.listing")

DIRECTORY_TYPE = "Directory"

# Full timestamp formats, tried in order. Formats without a year are
# parsed with the current year appended (see _parse_with_year).
DATE_FORMATS = [
    "%b %d %Y",        # Jan 05 2024
    "%b %d %H:%M",     # Jan 05 12:30
    "%b %d %I:%M",     # Jan 05 01:30 (12-hour)
    "%Y-%m-%d %H:%M",  # 2024-01-05 12:30
    "%d %b %Y",        # 05 Jan 2024
    "%d %b %H:%M",     # 05 Jan 12:30
]

# Month/day only; the current year is substituted.
SHORT_DATE_FORMATS = [
    "%b %d",
    "%d %b",
]

SPECIAL_NAMES = {".", ".."}


@dataclass
class FileSystemEntry:
    """A file or directory on the local disk or the remote server."""
    name: str
    path: str
    is_directory: bool = False
    size: int = 0
    modified: datetime = field(default_factory=datetime.now)
    type: str = ""
    # False when the listing date could not be parsed and "now" was used
    modified_is_exact: bool = True
    parent: Optional["FileSystemEntry"] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if not self.type:
            self.type = type_label(self.name, self.is_directory)
        if self.is_directory:
            self.size = 0

    @classmethod
    def from_local_path(cls, path) -> "FileSystemEntry":
        """
        Create an entry describing a local file or directory.

        Args:
            path: Local filesystem path (str or Path)

        Returns:
            FileSystemEntry instance

        Raises:
            OSError: If the path cannot be stat'ed
        """
        path = Path(path)
        stat = path.stat()
        is_directory = path.is_dir()
        return cls(
            name=path.name,
            path=str(path),
            is_directory=is_directory,
            size=0 if is_directory else stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime),
        )

    @property
    def parent_path(self) -> str:
        """Path of the containing directory."""
        if self.parent is not None:
            return self.parent.path
        if "/" in self.path and "\\" not in self.path:
            return posixpath.dirname(self.path.rstrip("/")) or "/"
        return os.path.dirname(self.path)

    def relative_to(self, base_path: str) -> str:
        """Path of this entry relative to base_path, without leading separators."""
        if self.path.startswith(base_path):
            return self.path[len(base_path):].lstrip("/\\")
        return self.path.lstrip("/\\")


def type_label(name: str, is_directory: bool) -> str:
    """Display type of an entry: "Directory" or the file extension."""
    if is_directory:
        return DIRECTORY_TYPE
    return os.path.splitext(name)[1]


def join_remote(directory: str, name: str) -> str:
    """Join a remote directory and a child name with exactly one '/'."""
    return f"{directory.rstrip('/')}/{name}"


def _parse_with_year(text: str, fmt: str, year: int) -> datetime:
    # Parse with the year included so Feb 29 survives strptime.
    return datetime.strptime(f"{text} {year}", f"{fmt} %Y")


def parse_timestamp(tokens: List[str], now: Optional[datetime] = None) -> Tuple[datetime, bool]:
    """
    Derive the modified time from the tokens of a listing line.

    The three tokens ending 4, 3 and 2 positions from the end are tried
    against DATE_FORMATS, then month+day alone with the current year.
    If nothing matches the current time is used.

    Args:
        tokens: Whitespace-split listing line
        now: Reference time (defaults to datetime.now())

    Returns:
        Tuple of (timestamp, is_exact)
    """
    now = now or datetime.now()
    date_text = " ".join(tokens[-4:-1])

    for fmt in DATE_FORMATS:
        try:
            if "%Y" in fmt:
                return datetime.strptime(date_text, fmt), True
            return _parse_with_year(date_text, fmt, now.year), True
        except ValueError:
            continue

    short_text = " ".join(tokens[-4:-2])
    for fmt in SHORT_DATE_FORMATS:
        try:
            return _parse_with_year(short_text, fmt, now.year), True
        except ValueError:
            continue

    logger.debug(f"Unparseable listing date '{date_text}', using current time")
    return now, False


def parse_list_line(line: str, current_directory: str) -> Optional[FileSystemEntry]:
    """
    Parse one line of Unix-style (ls -l) LIST output.

    Args:
        line: Raw listing line
        current_directory: Remote directory the listing belongs to

    Returns:
        FileSystemEntry, or None if the line cannot be parsed
    """
    try:
        tokens = line.split()
        if len(tokens) < 4:
            return None

        name = tokens[-1]
        is_directory = line.startswith("d")

        try:
            size = max(0, int(tokens[-5]))
        except (IndexError, ValueError):
            size = 0

        modified, is_exact = parse_timestamp(tokens)

        return FileSystemEntry(
            name=name,
            path=join_remote(current_directory, name),
            is_directory=is_directory,
            size=size,
            modified=modified,
            modified_is_exact=is_exact,
        )
    except Exception as e:
        logger.debug(f"Skipping unparseable listing line '{line}': {e}")
        return None


def parse_listing(lines: Iterable[str], current_directory: str) -> List[FileSystemEntry]:
    """
    Parse a whole LIST response.

    Unparseable lines and the "." / ".." entries are left out.

    Args:
        lines: Raw listing lines
        current_directory: Remote directory the listing belongs to

    Returns:
        List of parsed entries in server order
    """
    entries = []
    for line in lines:
        entry = parse_list_line(line, current_directory)
        if entry is None or entry.name in SPECIAL_NAMES:
            continue
        entries.append(entry)
    return entries

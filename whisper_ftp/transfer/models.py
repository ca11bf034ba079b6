"""Batch request and result types for WhisperFTP transfers.

A request is consumed once by the TransferOrchestrator and produces
exactly one result. Results are accumulators: created empty, updated
as each top-level item finishes, and handed back when the batch ends.
"""

from dataclasses import dataclass, field
from typing import List

from whisper_ftp.ftp.listing import FileSystemEntry


@dataclass
class TransferRequest:
    """Entries to upload or download, and the directory they go to."""
    items: List[FileSystemEntry]
    target_directory: str

    def __post_init__(self):
        self.items = list(self.items)
        if not self.items:
            raise ValueError("A transfer request needs at least one item")
        if self.target_directory is None:
            raise ValueError("Target directory is required")


@dataclass
class DeleteRequest:
    """Remote entries to delete."""
    items: List[FileSystemEntry]

    def __post_init__(self):
        self.items = list(self.items)
        if not self.items:
            raise ValueError("A delete request needs at least one item")


@dataclass
class BatchResult:
    """Success/failure counts shared by every batch result."""
    success_count: int = 0
    fail_count: int = 0
    failed_items: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Number of top-level items that reached an outcome."""
        return self.success_count + self.fail_count

    def record_success(self) -> None:
        self.success_count += 1

    def record_failure(self, name: str) -> None:
        self.fail_count += 1
        self.failed_items.append(name)

    def summary(self) -> dict:
        """Summary statistics for display or logging."""
        return {
            "total": self.total,
            "successful": self.success_count,
            "failed": self.fail_count,
            "failures": list(self.failed_items),
        }


@dataclass
class DeleteResult(BatchResult):
    """Outcome counts of a batch delete."""


@dataclass
class TransferResult(BatchResult):
    """
    Outcome counts of a batch upload or download.

    A directory item counts once, as a success or a failure; the outcome
    of files inside it is logged but not counted here.
    """
    skipped_count: int = 0

    @property
    def total(self) -> int:
        """Number of top-level items that reached an outcome."""
        return self.success_count + self.fail_count + self.skipped_count

    def record_skip(self) -> None:
        self.skipped_count += 1

    def summary(self) -> dict:
        summary = super().summary()
        summary["skipped"] = self.skipped_count
        return summary

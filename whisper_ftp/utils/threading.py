"""Background task helpers for WhisperFTP.

Provides cooperative cancellation tokens and a thread wrapper for running
blocking FTP batches off the caller's thread.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, List, Optional, TypeVar

from whisper_ftp.ftp.exceptions import FTPCancelledError

logger = logging.getLogger("whisper_ftp.threading")

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation signal shared between a caller and a worker.

    A token fires once. Callbacks registered with register() run when it
    fires, which lets the FTP client abort a blocked socket instead of
    waiting for the next chunk boundary.

    Usage:
        token = CancellationToken()
        worker = threading.Thread(target=client.list_directory,
                                  args=(config, "/"), kwargs={"cancel_token": token})
        worker.start()
        token.cancel()  # unblocks the listing promptly

        # Derived token with its own deadline, independent of the parent:
        with token.linked(timeout=30) as child:
            client.list_directory(config, "/", cancel_token=child)
    """

    def __init__(self):
        """Initialize an unfired token."""
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self._timer: Optional[threading.Timer] = None
        self._detach: Optional[Callable[[], None]] = None
        self._timed_out = False

    @property
    def is_cancelled(self) -> bool:
        """True once the token has fired."""
        return self._event.is_set()

    @property
    def timed_out(self) -> bool:
        """True if the token fired because its own deadline elapsed."""
        return self._timed_out

    def cancel(self) -> None:
        """Fire the token and run registered callbacks (once)."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = self._callbacks
            self._callbacks = []

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancellation callback failed: {e}")

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run callback when the token fires.

        If the token has already fired the callback runs immediately.

        Args:
            callback: Zero-argument callable

        Returns:
            Callable that removes the registration
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._unregister(callback)

        callback()
        return lambda: None

    def _unregister(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Sleep until the token fires or timeout elapses.

        Returns:
            True if the token fired
        """
        return self._event.wait(timeout)

    def raise_if_cancelled(self, operation: str = "Operation") -> None:
        """
        Raises:
            FTPCancelledError: If the token has fired
        """
        if self._event.is_set():
            raise FTPCancelledError(operation)

    def linked(self, timeout: Optional[float] = None) -> "CancellationToken":
        """
        Derive a child token.

        The child fires when this token fires, or when its own timeout
        elapses, whichever comes first. Firing the child never fires the
        parent. Call close() (or use it as a context manager) to stop the
        timer and detach from the parent.

        Args:
            timeout: Optional deadline in seconds

        Returns:
            New linked CancellationToken
        """
        child = CancellationToken()
        child._detach = self.register(child.cancel)

        if timeout is not None:
            def expire() -> None:
                child._timed_out = True
                child.cancel()

            child._timer = threading.Timer(timeout, expire)
            child._timer.daemon = True
            child._timer.start()

        return child

    def close(self) -> None:
        """Stop the deadline timer and detach from the parent token."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._detach is not None:
            self._detach()
            self._detach = None

    def __enter__(self) -> "CancellationToken":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class TaskStatus(Enum):
    """Status of a background task."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class TaskResult(Generic[T]):
    """Result of a background task."""
    status: TaskStatus
    result: Optional[T] = None
    error: Optional[Exception] = None


class ThreadedTask(Generic[T]):
    """
    Runs a callable in a background thread with progress reporting.

    The task owns a CancellationToken which is passed to the target as the
    ``cancel_token`` keyword argument.

    Usage:
        task = ThreadedTask(orchestrator.upload, args=(request,))
        task.start()

        while task.is_running:
            for percent in task.get_all_progress():
                draw(percent)

        result = task.get_result()
    """

    def __init__(
        self,
        target: Callable[..., T],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        on_complete: Optional[Callable[[TaskResult[T]], None]] = None
    ):
        """
        Initialize a threaded task.

        Args:
            target: Callable to run in background
            args: Positional arguments for target
            kwargs: Keyword arguments for target
            on_complete: Callback when task finishes (called from worker thread)
        """
        self._target = target
        self._args = args
        self._kwargs = kwargs or {}
        self._on_complete = on_complete

        self._thread: Optional[threading.Thread] = None
        self._progress_queue: queue.Queue[float] = queue.Queue()
        self._result: Optional[TaskResult[T]] = None
        self._token = CancellationToken()
        self._status = TaskStatus.PENDING

    @property
    def status(self) -> TaskStatus:
        """Current task status."""
        return self._status

    @property
    def is_running(self) -> bool:
        """True if task is currently running."""
        return self._status == TaskStatus.RUNNING

    @property
    def is_cancelled(self) -> bool:
        """True if task was cancelled."""
        return self._token.is_cancelled

    @property
    def cancel_token(self) -> CancellationToken:
        """Token handed to the target."""
        return self._token

    def start(self) -> None:
        """Start the background task."""
        if self._status != TaskStatus.PENDING:
            raise RuntimeError("Task already started")

        self._status = TaskStatus.RUNNING
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Request cancellation of the task."""
        self._token.cancel()

    def _run(self) -> None:
        """Internal method that runs in the background thread."""
        try:
            result = self._target(*self._args, cancel_token=self._token, **self._kwargs)

            if self._token.is_cancelled:
                self._result = TaskResult(status=TaskStatus.CANCELLED, result=result)
                self._status = TaskStatus.CANCELLED
            else:
                self._result = TaskResult(status=TaskStatus.COMPLETED, result=result)
                self._status = TaskStatus.COMPLETED

        except FTPCancelledError as e:
            self._result = TaskResult(status=TaskStatus.CANCELLED, error=e)
            self._status = TaskStatus.CANCELLED
        except Exception as e:
            self._result = TaskResult(status=TaskStatus.FAILED, error=e)
            self._status = TaskStatus.FAILED

        if self._on_complete:
            self._on_complete(self._result)

    def report_progress(self, percent: float) -> None:
        """
        Report progress from within the task.

        Args:
            percent: Progress value between 0 and 100
        """
        self._progress_queue.put(min(100.0, max(0.0, percent)))

    def get_progress(self) -> Optional[float]:
        """
        Get the oldest pending progress update.

        Returns:
            Progress value (0-100) or None if no update available
        """
        try:
            return self._progress_queue.get_nowait()
        except queue.Empty:
            return None

    def get_all_progress(self) -> List[float]:
        """Get all pending progress updates."""
        updates = []
        while True:
            try:
                updates.append(self._progress_queue.get_nowait())
            except queue.Empty:
                break
        return updates

    def get_result(self, timeout: Optional[float] = None) -> TaskResult[T]:
        """
        Wait for task completion and return result.

        Args:
            timeout: Maximum time to wait (None = forever)

        Returns:
            TaskResult with status and result/error

        Raises:
            TimeoutError: If timeout expires before task completes
        """
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                raise TimeoutError("Task did not complete within timeout")

        return self._result or TaskResult(status=TaskStatus.PENDING)

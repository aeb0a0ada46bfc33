from __future__ import annotations

import contextlib
import enum
import logging
import signal
import threading
from typing import Iterator, Optional

from ..console import InstallerConsole
from .task_runner import TaskHandle

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


class WaitResult(enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@contextlib.contextmanager
def interrupt_sets(token: threading.Event) -> Iterator[None]:
    """While active, SIGINT sets `token` instead of raising KeyboardInterrupt.

    Signal handlers can only be installed from the main thread; elsewhere the
    default behaviour stays in place.
    """

    try:
        previous = signal.signal(signal.SIGINT, lambda signum, frame: token.set())
    except ValueError:
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


class ProgressMonitor:
    def __init__(
        self,
        console: InstallerConsole,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cancel_token: Optional[threading.Event] = None,
    ) -> None:
        self.console = console
        self.poll_interval = poll_interval
        self.cancel_token = cancel_token or threading.Event()

    def wait(self, handle: TaskHandle, label: str) -> WaitResult:
        """Block until the task ends or the operator cancels.

        On cancellation the task and its whole subtree are killed before
        returning.
        """

        cancelled = False
        try:
            with interrupt_sets(self.cancel_token), self.console.status(f"{label}..."):
                while handle.is_alive():
                    if self.cancel_token.wait(self.poll_interval):
                        cancelled = True
                        break
        except KeyboardInterrupt:
            cancelled = True

        if not cancelled:
            return WaitResult.COMPLETED

        logger.debug("Cancellation requested while waiting for %s (pid %s)", label, handle.pid)
        handle.kill_tree()
        return WaitResult.CANCELLED

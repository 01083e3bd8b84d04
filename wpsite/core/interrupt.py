"""
Interrupt handling for in-flight provisioning.

While armed, SIGINT/SIGTERM raise OperationInterrupted inside whatever step
is running, so an interrupted run goes through the same compensation path as
a failed one. Inside shielded() the signals are logged and ignored, which
keeps a second Ctrl-C from cutting a rollback short.
"""

import signal
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from wpsite.core.errors import OperationInterrupted
from wpsite.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SIGNALS: Tuple[int, ...] = (signal.SIGINT, signal.SIGTERM)


class InterruptGuard:
    """
    Context manager that arms signal handlers for one transaction.

    Example:
        with InterruptGuard() as guard:
            ...  # run steps
            guard.disarm()
            txn.close()
    """

    def __init__(self, signals: Tuple[int, ...] = DEFAULT_SIGNALS, enabled: bool = True):
        self.signals = signals
        self.enabled = enabled
        self._previous: Dict[int, object] = {}
        self._armed = False
        self._shielded = False

    @property
    def armed(self) -> bool:
        return self._armed

    def __enter__(self) -> "InterruptGuard":
        self.arm()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disarm()

    def arm(self) -> None:
        """Install handlers. No-op outside the main thread."""
        if not self.enabled or self._armed:
            return

        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread; interrupt handlers not installed")
            return

        for signum in self.signals:
            self._previous[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handle)
        self._armed = True

    def disarm(self) -> None:
        """Restore the handlers that were active before arm()."""
        if not self._armed:
            return

        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()
        self._armed = False

    @contextmanager
    def shielded(self) -> Iterator[None]:
        """Ignore signals for the duration of the block."""
        previous = self._shielded
        self._shielded = True
        try:
            yield
        finally:
            self._shielded = previous

    def _handle(self, signum, frame) -> None:
        if self._shielded:
            logger.warning("Cleanup in progress, ignoring signal %s", signum)
            return
        raise OperationInterrupted(signum)

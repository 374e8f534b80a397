"""Process-wide guard allowing at most one scan at a time."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from ..exceptions import ScanInProgressError


class ScanCoordinator:
    """A non-blocking in-flight flag.

    A second scan fails immediately rather than queuing behind the first.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scanning = False

    def try_acquire(self) -> bool:
        """Set the flag; False if a scan is already in flight."""
        with self._lock:
            if self._scanning:
                return False
            self._scanning = True
            return True

    def release(self) -> None:
        with self._lock:
            self._scanning = False

    @contextmanager
    def claim(self) -> Iterator[None]:
        """Hold the flag for the body; raises ScanInProgressError if taken."""
        if not self.try_acquire():
            raise ScanInProgressError()
        try:
            yield
        finally:
            self.release()


_default_coordinator = ScanCoordinator()


def default_coordinator() -> ScanCoordinator:
    """The coordinator shared by every service in this process."""
    return _default_coordinator

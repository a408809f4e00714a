import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PhaseLatch:
    """One-shot completion latch for a round phase.

    A phase can be completed by its own completion check or by its
    deadline; both go through ``fire`` and only the first call runs
    ``on_fire``. ``wait`` blocks the round loop (without holding the event
    lock) until the latch fires or the deadline passes, and fires it on
    timeout.
    """

    def __init__(self, name: str, lock, on_fire: Callable[[str], None]):
        self.name = name
        self.lock = lock
        self.reason: Optional[str] = None
        self._on_fire = on_fire
        self._done = threading.Event()

    @property
    def fired(self) -> bool:
        return self.reason is not None

    def fire(self, reason: str) -> bool:
        with self.lock:
            if self.reason is not None:
                logger.debug(f"[timer-skip] phase={self.name} reason={reason} already={self.reason}")
                return False
            self.reason = reason
            try:
                self._on_fire(reason)
            finally:
                self._done.set()
            return True

    def wait(self, timeout: Optional[float] = None) -> str:
        if timeout is not None:
            logger.info(f"[timer-set] phase={self.name} duration={timeout}s")
        if not self._done.wait(timeout):
            logger.info(f"[timer-fire] phase={self.name} duration={timeout}s")
            self.fire('timeout')
        return self.reason

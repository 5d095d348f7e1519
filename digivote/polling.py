import logging
import threading
from typing import Any, Callable, Optional

from .api import ApiError

logger = logging.getLogger(__name__)


class Poller:
    """Runs ``fetch`` every ``interval`` seconds on a daemon thread.

    ``on_result`` receives each fetched value. After ``cancel()`` no further
    fetch starts, and a fetch already in flight finishes but its result is
    dropped.
    """

    def __init__(self, fetch: Callable[[], Any], on_result: Callable[[Any], None], interval: float = 30,
                 on_error: Optional[Callable[[ApiError], None]] = None):
        self.fetch = fetch
        self.on_result = on_result
        self.on_error = on_error
        self.interval = interval
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._generation = 0
        self._thread: Optional[threading.Thread] = None

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def start(self, immediate: bool = True) -> "Poller":
        if self._thread is not None:
            raise RuntimeError("poller already started")
        self._thread = threading.Thread(target=self._run, args=(immediate,), daemon=True)
        self._thread.start()
        return self

    def cancel(self):
        with self._lock:
            self._generation += 1
            self._stop.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def tick(self) -> bool:
        """One fetch; returns whether its result was delivered."""
        with self._lock:
            if self._stop.is_set():
                return False
            generation = self._generation
        try:
            result = self.fetch()
        except ApiError as e:
            logger.warning("Poll failed: %s", e)
            if self.on_error is not None:
                self.on_error(e)
            return False
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding poll result that finished after cancel")
                return False
            self.on_result(result)
        return True

    def _run(self, immediate: bool):
        if immediate:
            self.tick()
        while not self._stop.wait(self.interval):
            self.tick()

from __future__ import annotations
from typing import Callable, Optional
import threading

import structlog

logger = structlog.get_logger(__name__)


class Heartbeat:
    """
    Calls `tick` every `every_seconds` on a daemon thread until stopped.
    """

    def __init__(self, tick: Callable[[], None], every_seconds: float = 1.0):
        """
        tick: callable() -> None (typically Observer.tick)
        """
        if every_seconds <= 0:
            raise ValueError("heartbeat interval must be positive")
        self._tick = tick
        self._every = float(every_seconds)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._every + 1)

    def _loop(self) -> None:
        while not self._stop.wait(self._every):
            try:
                self._tick()
            except Exception:
                logger.exception("heartbeat tick failed")

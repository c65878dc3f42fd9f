from __future__ import annotations
from collections import deque
from typing import Deque, Dict, List, NamedTuple, Optional
import threading

import structlog

from ..transport import (
    Listeners,
    Notification,
    Origin,
    ReceiveHandler,
    Subscription,
    Transport,
)

logger = structlog.get_logger(__name__)


class Frame(NamedTuple):
    source: Origin
    dest: Origin
    data: str


class InMemoryHub:
    """In-process carrier connecting any number of origin-bound endpoints.

    Frames are queued on `send` and delivered later, either synchronously via
    `flush()`/`step()` or by the pump thread started with `start()`. Tests may
    edit `pending` directly to drop, duplicate or reorder frames.

    `sent` keeps every frame ever posted, in posting order.
    """

    def __init__(self):
        self.pending: Deque[Frame] = deque()
        self.sent: List[Frame] = []
        self._endpoints: Dict[Origin, "InMemoryTransport"] = {}
        self._cond = threading.Condition()
        self._running = False
        self._pump: Optional[threading.Thread] = None

    def endpoint(self, origin: Origin) -> "InMemoryTransport":
        with self._cond:
            if origin not in self._endpoints:
                self._endpoints[origin] = InMemoryTransport(self, origin)
            return self._endpoints[origin]

    def post(self, source: Origin, dest: Origin, data: str) -> None:
        frame = Frame(source, dest, data)
        with self._cond:
            self.sent.append(frame)
            self.pending.append(frame)
            self._cond.notify()

    def sent_from(self, origin: Origin) -> List[Frame]:
        return [f for f in self.sent if f.source == origin]

    def step(self) -> bool:
        """Deliver the oldest queued frame. False when nothing was queued."""
        with self._cond:
            if not self.pending:
                return False
            frame = self.pending.popleft()
            target = self._endpoints.get(frame.dest)
        if target is None or not target.live:
            logger.debug("frame dropped, no live endpoint", source=frame.source, dest=frame.dest)
            return True
        target._deliver(frame.source, frame.data)
        return True

    def flush(self, limit: Optional[int] = None) -> int:
        """Deliver queued frames, including any posted while delivering."""
        delivered = 0
        while limit is None or delivered < limit:
            if not self.step():
                break
            delivered += 1
        return delivered

    # ---- pump thread ----
    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._pump = threading.Thread(target=self._rx_loop, daemon=True)
        self._pump.start()

    def stop(self) -> None:
        with self._cond:
            self._running = False
            self._cond.notify_all()
        if self._pump:
            self._pump.join(timeout=1)
            self._pump = None

    def _rx_loop(self) -> None:
        while self._running:
            with self._cond:
                if not self.pending:
                    self._cond.wait(timeout=0.1)
                    continue
            self.step()


class InMemoryTransport(Transport):

    def __init__(self, hub: InMemoryHub, origin: Origin):
        self._hub = hub
        self._origin = origin
        self._receivers: Listeners[ReceiveHandler] = Listeners(f"{origin}:message")
        self._ready: Listeners[Notification] = Listeners(f"{origin}:ready")
        self._terminate: Listeners[Notification] = Listeners(f"{origin}:terminate")
        self._started = False
        self._stopped = False

    @property
    def origin(self) -> Origin:
        return self._origin

    @property
    def live(self) -> bool:
        return self._started and not self._stopped

    def start(self) -> None:
        if self._started and not self._stopped:
            return
        self._started = True
        self._stopped = False
        self._ready.emit()

    def stop(self) -> None:
        if not self.live:
            return
        self._terminate.emit()
        self._stopped = True

    def send(self, dest: Origin, frame: str) -> None:
        self._hub.post(self._origin, dest, frame)

    def subscribe(self, handler: ReceiveHandler) -> Subscription:
        return self._receivers.add(handler)

    def on_ready(self, cb: Notification) -> Subscription:
        sub = self._ready.add(cb)
        if self.live:
            cb()
        return sub

    def on_terminate(self, cb: Notification) -> Subscription:
        return self._terminate.add(cb)

    def _deliver(self, source: Origin, data: str) -> None:
        self._receivers.emit(source, data)

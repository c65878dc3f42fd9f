from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Generic, List, TypeVar
import threading

import structlog

logger = structlog.get_logger(__name__)

Origin = str
ReceiveHandler = Callable[[Origin, str], None]   # (sender origin, frame)
Notification = Callable[[], None]

H = TypeVar("H", bound=Callable[..., None])


class Subscription:
    """Handle returned by every registration; `close()` detaches exactly that handler."""

    def __init__(self, release: Callable[[], None]):
        self._release = release
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class Listeners(Generic[H]):
    """
    Ordered handler list. Handlers are invoked from a snapshot so a handler may
    unsubscribe itself; a raising handler is logged and does not starve the rest.
    """

    def __init__(self, name: str):
        self.name = name
        self._handlers: List[H] = []
        self._lock = threading.Lock()

    def add(self, handler: H) -> Subscription:
        with self._lock:
            self._handlers.append(handler)
        return Subscription(lambda: self._remove(handler))

    def _remove(self, handler: H) -> None:
        with self._lock:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass

    def __len__(self) -> int:
        return len(self._handlers)

    def emit(self, *args) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception("listener failed", listeners=self.name)


class Transport(ABC):
    """
    One asynchronous, origin-tagged, fire-and-forget message primitive.
    No ordering, delivery or backpressure guarantees; filtering inbound
    origins is the caller's job.
    """

    @property
    @abstractmethod
    def origin(self) -> Origin:
        """The local security principal."""
        raise NotImplementedError

    @abstractmethod
    def start(self) -> None:
        """Establish the channel; fires `ready` once sends become valid."""
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        """Fires `terminate` (once) and tears the channel down."""
        raise NotImplementedError

    @abstractmethod
    def send(self, dest: Origin, frame: str) -> None:
        """Send one frame to a destination origin."""
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, handler: ReceiveHandler) -> Subscription:
        """Receive every inbound frame, whatever its origin."""
        raise NotImplementedError

    @abstractmethod
    def on_ready(self, cb: Notification) -> Subscription:
        raise NotImplementedError

    @abstractmethod
    def on_terminate(self, cb: Notification) -> Subscription:
        raise NotImplementedError

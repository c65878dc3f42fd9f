from __future__ import annotations
from collections.abc import Mapping
from concurrent.futures import Future, wait as wait_futures
from typing import Any, Callable, List, Optional, Sequence as SequenceT
import threading
import time
import uuid

import structlog

from .codecs import Codec, Codecs
from .config import ObserverConfig
from .connection import Connection, ConnectionState
from .errors import InvalidArgument, MalformedPayload
from .heartbeat import Heartbeat
from .message import MessageType, Request
from .registry import Completion, Outcome, RequestRegistry
from .transport import Subscription, Transport
from .wire import pack_request, unpack_response

logger = structlog.get_logger(__name__)

Lifecycle = Callable[[str], None]   # receives the Observer's uuid


def _noop(_uuid: str) -> None:
    pass


def must_be_sequence(value: Any, name: str) -> SequenceT:
    if not isinstance(value, (list, tuple)):
        raise InvalidArgument(f"{name} must be an array, got {type(value).__name__}")
    return value


def must_be_pairs(value: Any) -> List[dict]:
    pairs = must_be_sequence(value, "pairs")
    for pair in pairs:
        if not isinstance(pair, Mapping) or "key" not in pair:
            raise InvalidArgument("pairs must be {key, value} objects")
    return [dict(pair) for pair in pairs]


class Sequence:
    """
    Chainable handle over a connected Observer:

        observer.connect().set([{"key": "a", "value": "1"}]).get(["a"], cb)

    Every call is gated and validated by the Observer; `futures` collects the
    completion handle of each request issued through this chain.
    """

    def __init__(self, observer: "Observer"):
        self._observer = observer
        self.futures: List[Future] = []

    def get(self, keys, callback: Optional[Completion] = None) -> "Sequence":
        self.futures.append(self._observer._request(MessageType.GET, must_be_sequence(keys, "keys"), callback))
        return self

    def set(self, pairs, callback: Optional[Completion] = None) -> "Sequence":
        self.futures.append(self._observer._request(MessageType.SET, must_be_pairs(pairs), callback))
        return self

    def delete(self, keys, callback: Optional[Completion] = None) -> "Sequence":
        self.futures.append(self._observer._request(MessageType.DELETE, must_be_sequence(keys, "keys"), callback))
        return self

    def wait(self, timeout: Optional[float] = None) -> List[Any]:
        """Block until every issued request settles; returns (result, error) tuples in issue order."""
        done, not_done = wait_futures(self.futures, timeout=timeout)
        if not_done:
            raise TimeoutError(f"{len(not_done)} request(s) still pending")
        return [f.result() for f in self.futures]


class Observer:
    """
    Client endpoint bound to a single Observable origin.

    Lifecycle: `init()` subscribes to the transport; once the transport is
    ready a MOUNT goes out; every heartbeat tick then sends SYN while
    connected, or re-sends MOUNT while not. Operations are refused with
    NotConnected until an ACK from the Observable has been seen.
    """

    def __init__(self, transport: Transport, config: ObserverConfig, *,
                 created: Optional[Lifecycle] = None,
                 destroyed: Optional[Lifecycle] = None,
                 codec: Optional[Codec] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.t = transport
        self.config = config
        self.uuid = uuid.uuid4().hex
        self.codec = codec or Codecs.get(config.codec)
        self.on_created = created or _noop
        self.on_destroyed = destroyed or _noop
        self.connection = Connection(config.server_origin)
        self.registry = RequestRegistry(
            self._send,
            self.uuid,
            max_control=config.max_outstanding_pings,
            clock=clock,
        )
        self.heartbeat = Heartbeat(self.tick, config.heartbeat_interval)
        self._lock = threading.RLock()
        self._subs: List[Subscription] = []
        self._closed = False
        self._ready = False   # set once the transport fires `ready`

    @property
    def server_origin(self) -> str:
        return self.config.server_origin

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    def init(self, *, heartbeat: bool = True) -> "Observer":
        """Subscribe to the transport; mounts as soon as the transport is ready. Idempotent."""
        if self._subs or self._closed:
            return self
        self._subs = [
            self.t.subscribe(self.recv),
            self.t.on_terminate(self.close),
            self.t.on_ready(self.mount),
        ]
        if heartbeat:
            self.heartbeat.start()
        return self

    # ---- lifecycle ----
    def mount(self) -> None:
        """Ask the Observable to incorporate us."""
        with self._lock:
            if self._closed:
                return
            self._ready = True
            self.connection.begin_handshake()
            self.registry.issue_control(MessageType.MOUNT, self.uuid)

    def tick(self) -> None:
        """One heartbeat: SYN when connected, otherwise retry the handshake."""
        with self._lock:
            if self._closed or not self._ready:
                return
            if self.config.request_timeout is not None:
                for expired in self.registry.expire(self.config.request_timeout):
                    logger.warning("request timed out", id=expired.id, type=str(expired.type))
            if self.connection.connected:
                self.registry.issue_control(MessageType.SYN, self.uuid)
            else:
                self.connection.begin_handshake()
                self.registry.issue_control(MessageType.MOUNT, self.uuid)

    def close(self) -> None:
        """Send UNMOUNT, stop heartbeating and release every subscription."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._ready and self.connection.state is not ConnectionState.DISCONNECTED:
                try:
                    self.registry.notify(MessageType.UNMOUNT, self.uuid)
                except Exception:
                    logger.exception("unmount failed", server_origin=self.server_origin)
            self.connection.close()
            for sub in self._subs:
                sub.close()
            self._subs = []
        self.heartbeat.stop()
        self.on_destroyed(self.uuid)

    # ---- inbound ----
    def recv(self, origin: str, frame: str) -> None:
        """Receive callback; only frames from the configured Observable count."""
        if origin != self.server_origin or not isinstance(frame, str):
            return
        try:
            resp = unpack_response(frame, self.codec)
        except MalformedPayload as ex:
            logger.debug("malformed response ignored", reason=str(ex))
            return

        with self._lock:
            if self._closed:
                return
            outcome = self.registry.resolve(resp)
            if outcome is Outcome.CLOSED:
                self.connection.close()
            elif outcome is Outcome.ACKNOWLEDGED:
                if self.connection.acknowledge():
                    self.on_created(self.uuid)
            elif outcome is Outcome.DISCARDED:
                logger.debug("response discarded", id=resp.id)

    # ---- public interface ----
    def connect(self) -> Sequence:
        """A chainable Sequence when connected; NotConnected otherwise."""
        self.connection.require_connected()
        return Sequence(self)

    def get(self, keys, callback: Optional[Completion] = None) -> Sequence:
        return Sequence(self).get(keys, callback)

    def set(self, pairs, callback: Optional[Completion] = None) -> Sequence:
        return Sequence(self).set(pairs, callback)

    def delete(self, keys, callback: Optional[Completion] = None) -> Sequence:
        return Sequence(self).delete(keys, callback)

    def _request(self, type_: MessageType, payload: Any, callback: Optional[Completion]) -> Future:
        with self._lock:
            self.connection.require_connected()
            return self.registry.issue(type_, list(payload), callback).future

    def _send(self, req: Request) -> None:
        self.t.send(self.server_origin, pack_request(req, self.codec))

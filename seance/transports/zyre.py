from __future__ import annotations
import threading
from typing import Dict, Optional

import structlog

from ..transport import (
    Listeners,
    Notification,
    Origin,
    ReceiveHandler,
    Subscription,
    Transport,
)

try:
    from zyre import Zyre, ZyreEvent
except Exception as e:
    raise RuntimeError("Zyre Python bindings are required. Error: %r" % (e,))

logger = structlog.get_logger(__name__)


class ZyreTransport(Transport):
    """Transport over Zyre.

    Mapping:
    - origin -> Zyre peer *name*. Zyre maintains name<->uuid mapping from ENTER events.
    - send -> WHISPER of a single UTF-8 frame to the named peer.
    - ready -> fires once `expect` (if given) has entered, else right after start.
    - terminate -> fires once on stop().
    """

    def __init__(self, origin: Origin, *, expect: Optional[Origin] = None, **kwargs):
        self._origin = origin
        self._expect = expect
        self.node = Zyre(origin)
        self._receivers: Listeners[ReceiveHandler] = Listeners(f"{origin}:message")
        self._ready: Listeners[Notification] = Listeners(f"{origin}:ready")
        self._terminate: Listeners[Notification] = Listeners(f"{origin}:terminate")
        self._is_ready = False
        self._running = False
        self._rx_thread: Optional[threading.Thread] = None

        self._peers_by_uuid: Dict[str, str] = {}
        self._uuid_by_name: Dict[str, str] = {}

    @property
    def origin(self) -> Origin:
        return self._origin

    def start(self) -> None:
        if self._running:
            return
        self.node.start()
        self._running = True
        self._rx_thread = threading.Thread(target=self._rx_loop, daemon=True)
        self._rx_thread.start()
        if self._expect is None:
            self._mark_ready()

    def stop(self) -> None:
        if not self._running:
            return
        self._terminate.emit()
        self._running = False
        try:
            self.node.stop()
        except Exception:
            logger.exception("zyre stop failed", origin=self._origin)

    def send(self, dest: Origin, frame: str) -> None:
        uuid = self._uuid_by_name.get(dest)
        if uuid is None:
            logger.debug("zyre peer unknown, frame dropped", dest=dest)
            return
        self.node.whisper(uuid, [frame.encode("utf-8")])

    def subscribe(self, handler: ReceiveHandler) -> Subscription:
        return self._receivers.add(handler)

    def on_ready(self, cb: Notification) -> Subscription:
        sub = self._ready.add(cb)
        if self._is_ready:
            cb()
        return sub

    def on_terminate(self, cb: Notification) -> Subscription:
        return self._terminate.add(cb)

    def _mark_ready(self) -> None:
        if self._is_ready:
            return
        self._is_ready = True
        self._ready.emit()

    def _rx_loop(self):
        while self._running:
            try:
                event = ZyreEvent(self.node)
            except Exception:
                continue
            if not event:
                continue
            etype = event.type()
            if isinstance(etype, bytes):
                etype = etype.decode()

            if etype == "ENTER":
                uuid = _text(event.peer_uuid())
                name = _text(event.peer_name())
                self._peers_by_uuid[uuid] = name
                self._uuid_by_name[name] = uuid
                if name == self._expect:
                    self._mark_ready()
                continue

            if etype in ("EXIT", "LEAVE"):
                uuid = _text(event.peer_uuid())
                name = self._peers_by_uuid.pop(uuid, None)
                if name:
                    self._uuid_by_name.pop(name, None)
                continue

            if etype == "WHISPER":
                uuid = _text(event.peer_uuid())
                src_name = self._peers_by_uuid.get(uuid, uuid)
                data = self._read_frame(event.msg())
                if data is None:
                    logger.debug("zyre frame undecodable", source=src_name)
                    continue
                self._receivers.emit(src_name, data)

    def _read_frame(self, zmsg) -> Optional[str]:
        try:
            data = zmsg.popstr()
        except AttributeError:
            data = zmsg.popmem()
        if data is None:
            return None
        try:
            return _text(data)
        except UnicodeDecodeError:
            return None


def _text(value) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)

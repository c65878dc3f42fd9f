from __future__ import annotations
from collections.abc import Mapping, Sequence
from typing import Any, Callable, Dict, Iterable, List, Optional
import threading
import time

import structlog

from .codecs import Codec, JSONCodec
from .errors import AdapterFailure, MalformedPayload, UntrustedOrigin
from .message import Action, MessageType, Request, Response
from .observatory import Observatory
from .storage import MemoryStorage, StorageAdapter
from .transport import Subscription, Transport
from .wire import pack_response, unpack_request

logger = structlog.get_logger(__name__)

ActionHandler = Callable[[Any], List[Dict[str, Any]]]


class Observable:
    """
    Server endpoint: owns the storage adapter and admits Observers from a
    fixed candidate pool.

    Notes:
    - MOUNT is accepted from pool origins; everything else only from
      incorporated origins. Anything else is dropped without a reply.
    - Actions run behind a failure boundary: an exception becomes the
      response's `error`, never a dispatcher crash.
    - get/set/delete isolate failures per key (or pair).
    """

    def __init__(self, transport: Transport, *,
                 origins: Iterable[str] = (),
                 storage: Optional[StorageAdapter] = None,
                 codec: Optional[Codec] = None,
                 clock: Callable[[], float] = time.time):
        self.t = transport
        self.storage = storage if storage is not None else MemoryStorage()
        self.codec = codec or JSONCodec()
        self.observatory = Observatory.of(origins, clock=clock)
        self._lock = threading.RLock()
        self._subs: List[Subscription] = []

        # Fixed routing table; nothing outside it is ever dispatched
        self._actions: Dict[Action, ActionHandler] = {
            Action.GET: self.get,
            Action.SET: self.set,
            Action.DELETE: self.delete,
        }

    @property
    def listening(self) -> bool:
        return any(not s.closed for s in self._subs)

    def init(self) -> "Observable":
        """Bind message and terminate listeners. Idempotent."""
        if self.listening:
            return self
        self._subs = [
            self.t.subscribe(self.on_message),
            self.t.on_terminate(self.close),
        ]
        logger.info("observable listening", origin=self.t.origin, pool=sorted(self.observatory.pool))
        return self

    def members(self) -> List[str]:
        return self.observatory.origins()

    # ---- membership ----
    def incorporate(self, origin: str, id, sender: Optional[str] = None) -> bool:
        """Admit a pool origin and ACK; re-mounting a member only re-sends the ACK."""
        if not self.observatory.eligible(origin):
            return False
        added = self.observatory.incorporate(origin, sender)
        if added:
            logger.info("observer incorporated", origin=origin, sender=sender)
        else:
            logger.debug("observer already incorporated", origin=origin)
        self.emit(Response.ack(id), origin)
        return added

    def detach(self, origin: str) -> bool:
        removed = self.observatory.detach(origin)
        if removed:
            logger.info("observer detached", origin=origin)
        return removed

    # ---- inbound ----
    def on_message(self, origin: str, frame: str) -> None:
        """Primary receive callback; filters, then dispatches."""
        if not origin or not frame:
            return
        try:
            req = unpack_request(frame, self.codec)
        except MalformedPayload as ex:
            logger.debug("malformed request ignored", origin=origin, reason=str(ex))
            return

        with self._lock:
            try:
                self._check_trust(origin, req)
            except UntrustedOrigin as ex:
                logger.debug("untrusted origin ignored", origin=ex.origin, type=ex.type)
                return
            self.dispatch(req, origin)

    def _check_trust(self, origin: str, req: Request) -> None:
        if not self.observatory.admits(origin, mounting=req.type is MessageType.MOUNT):
            raise UntrustedOrigin(origin, str(req.type))

    def dispatch(self, req: Request, origin: str) -> None:
        if req.type is MessageType.MOUNT:
            self.incorporate(origin, req.id, req.sender)
            return
        if req.type is MessageType.UNMOUNT:
            self.detach(origin)
            return

        self.observatory.touch(origin)
        if req.type is MessageType.SYN:
            self.emit(Response.ack(req.id), origin)
            return

        action = Action.from_type(req.type)
        if action is not None:
            self.process_action(req, action, origin)

    def process_action(self, req: Request, action: Action, origin: str) -> None:
        result = error = None
        try:
            result = self._actions[action](req.payload)
        except Exception as ex:
            error = str(ex) or type(ex).__name__
            logger.warning("action failed", origin=origin, action=str(action), error=error)
        self.emit(Response(id=req.id, result=result, error=error), origin)

    # ---- outbound ----
    def emit(self, resp: Response, origin: str) -> None:
        """Send a response to the given Observer."""
        self.t.send(origin, pack_response(resp, self.codec))

    def close(self) -> None:
        """Broadcast a close notice to every member, then stop listening."""
        with self._lock:
            if not self.listening:
                return
            notice = Response.close()
            for origin in self.observatory.origins():
                try:
                    self.emit(notice, origin)
                except Exception:
                    logger.exception("close notice failed", origin=origin)
            for sub in self._subs:
                sub.close()
            self._subs = []
            self.observatory.clear()
            logger.info("observable closed", origin=self.t.origin)

    # ---- storage actions ----
    def get(self, payload: Any) -> List[Dict[str, Any]]:
        """Retrieve each key; a failing key yields None without aborting the rest."""
        result = []
        for key in _sequence(payload, "get"):
            try:
                result.append({_entry_key(key): self.storage.get(key)})
            except Exception as ex:
                _log_adapter_failure(key, ex)
                result.append({_entry_key(key): None})
        return result

    def set(self, payload: Any) -> List[Dict[str, bool]]:
        """Store each {key, value} pair; one entry per pair, True on success."""
        pairs = _sequence(payload, "set")
        for pair in pairs:
            if not isinstance(pair, Mapping) or "key" not in pair:
                raise TypeError("set expects a sequence of {key, value} objects")

        result = []
        for pair in pairs:
            key = pair["key"]
            try:
                self.storage.set(key, pair.get("value"))
                result.append({_entry_key(key): True})
            except Exception as ex:
                _log_adapter_failure(key, ex)
                result.append({_entry_key(key): False})
        return result

    def delete(self, payload: Any) -> List[Dict[str, bool]]:
        """Delete each key; one entry per key, True on success."""
        result = []
        for key in _sequence(payload, "delete"):
            try:
                self.storage.delete(key)
                result.append({_entry_key(key): True})
            except Exception as ex:
                _log_adapter_failure(key, ex)
                result.append({_entry_key(key): False})
        return result


def _sequence(payload: Any, action: str) -> Sequence:
    if isinstance(payload, (str, bytes, Mapping)) or not isinstance(payload, Sequence):
        raise TypeError(f"{action} expects an array payload, got {type(payload).__name__}")
    return payload


def _entry_key(key: Any) -> str:
    return key if isinstance(key, str) else str(key)


def _log_adapter_failure(key: Any, ex: Exception) -> None:
    failure = AdapterFailure(_entry_key(key), ex)
    logger.debug("storage adapter failed", key=failure.key, error=str(failure.cause))

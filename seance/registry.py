from __future__ import annotations
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import itertools
import time

import structlog

from .errors import RequestTimeout
from .message import CorrelationId, MessageType, Request, Response

logger = structlog.get_logger(__name__)

Completion = Callable[[Any, Optional[str]], None]   # (result, error)


class Outcome(Enum):
    DISCARDED = "discarded"        # unknown id: stale, duplicate or foreign
    ACKNOWLEDGED = "acknowledged"  # bare ACK; proves connectivity only
    RESOLVED = "resolved"          # data response delivered to its future
    CLOSED = "closed"              # Observable teardown notice


@dataclass
class PendingRequest:
    id: CorrelationId
    type: MessageType
    future: "Future[Tuple[Any, Optional[str]]]" = field(default_factory=Future)
    issued_at: float = 0.0


def message_ids() -> Iterator[int]:
    """Monotonic, process-local correlation ids; never yields DESTROY_ID."""
    return itertools.count(1)


class RequestRegistry:
    """
    Correlates responses with the requests that caused them.

    Data requests (GET/SET/DELETE) get a single-shot future that resolves to
    `(result, error)`. Control requests (MOUNT/SYN) only exist to turn an
    ACK into a connection-state change, so they are kept in a bounded table
    without futures; if their ACKs go missing, the oldest ids fall off.
    """

    def __init__(self, send: Callable[[Request], None], sender: str, *,
                 ids: Optional[Iterator[int]] = None,
                 max_control: int = 64,
                 clock: Callable[[], float] = time.monotonic):
        self._send = send
        self._sender = sender
        self._ids = ids or message_ids()
        self._pending: Dict[CorrelationId, PendingRequest] = {}
        self._control: "OrderedDict[CorrelationId, MessageType]" = OrderedDict()
        self._max_control = max(1, int(max_control))
        self._clock = clock

    def _next_id(self) -> int:
        return next(self._ids)

    def issue(self, type_: MessageType, payload: Any,
              callback: Optional[Completion] = None) -> PendingRequest:
        """Send a data request and record its completion handle. Never blocks."""
        pending = PendingRequest(id=self._next_id(), type=type_, issued_at=self._clock())
        if callback is not None:
            pending.future.add_done_callback(_invoke(callback))
        self._pending[pending.id] = pending
        try:
            self._send(Request(sender=self._sender, id=pending.id, type=type_, payload=payload))
        except Exception:
            self._pending.pop(pending.id, None)
            raise
        return pending

    def issue_control(self, type_: MessageType, payload: Any) -> CorrelationId:
        ident = self._next_id()
        self._control[ident] = type_
        while len(self._control) > self._max_control:
            self._control.popitem(last=False)
        self._send(Request(sender=self._sender, id=ident, type=type_, payload=payload))
        return ident

    def notify(self, type_: MessageType, payload: Any) -> CorrelationId:
        """Fire-and-forget: nothing is recorded, no reply is expected."""
        ident = self._next_id()
        self._send(Request(sender=self._sender, id=ident, type=type_, payload=payload))
        return ident

    def resolve(self, resp: Response) -> Outcome:
        if resp.is_close:
            return Outcome.CLOSED

        if resp.id in self._control:
            if resp.is_ack:
                self._control.pop(resp.id)
                return Outcome.ACKNOWLEDGED
            logger.debug("non-ack reply to control request", id=resp.id)
            return Outcome.DISCARDED

        pending = self._pending.pop(resp.id, None)
        if pending is None:
            return Outcome.DISCARDED

        # a bare ACK only drives the connection state; the callback never fires
        if resp.is_ack:
            return Outcome.ACKNOWLEDGED

        if not pending.future.done():
            pending.future.set_result((resp.result, resp.error))
        return Outcome.RESOLVED

    def expire(self, timeout: float, now: Optional[float] = None) -> List[PendingRequest]:
        """Fail every data request older than `timeout` seconds with RequestTimeout."""
        now = self._clock() if now is None else now
        stale = [p for p in self._pending.values() if now - p.issued_at >= timeout]
        for p in stale:
            del self._pending[p.id]
            if not p.future.done():
                p.future.set_exception(
                    RequestTimeout(f"{p.type} request {p.id} unanswered after {timeout:g}s")
                )
        return stale

    def pending_ids(self) -> List[CorrelationId]:
        return list(self._pending)

    def get(self, ident: CorrelationId) -> Optional[PendingRequest]:
        return self._pending.get(ident)

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, ident: object) -> bool:
        return ident in self._pending


def _invoke(callback: Completion):
    def _done(fut: "Future[Tuple[Any, Optional[str]]]") -> None:
        exc = fut.exception()
        if exc is not None:
            callback(None, str(exc))
            return
        result, error = fut.result()
        callback(result, error)
    return _done

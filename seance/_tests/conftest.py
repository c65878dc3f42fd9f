from __future__ import annotations

from typing import Any, List

import pytest

from seance.client import Observer
from seance.config import ObserverConfig
from seance.message import MessageType, Request, Response
from seance.server import Observable
from seance.storage import MemoryStorage
from seance.transports.memory import InMemoryHub
from seance.wire import pack_request, unpack_request, unpack_response

STORE = "https://store.example"
APP = "https://app.example"
OTHER = "https://other.example"
STRANGER = "https://evil.example"


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def advance(self, delta: float) -> None:
        self._now += float(delta)

    def __call__(self) -> float:
        return self._now


def send_request(hub: InMemoryHub, origin: str, type_: Any, payload: Any = None,
                 id: int = 1, sender: str = "observer-uuid") -> None:
    """Post a raw request frame from `origin` to the store and deliver it."""
    req = Request(sender=sender, id=id, type=type_, payload=payload)
    hub.endpoint(origin).send(STORE, pack_request(req))
    hub.flush()


def responses_to(hub: InMemoryHub, origin: str) -> List[Response]:
    return [unpack_response(f.data) for f in hub.sent if f.source == STORE and f.dest == origin]


def requests_from(hub: InMemoryHub, origin: str) -> List[Request]:
    return [unpack_request(f.data) for f in hub.sent if f.source == origin]


def types_from(hub: InMemoryHub, origin: str) -> List[MessageType]:
    return [r.type for r in requests_from(hub, origin)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hub() -> InMemoryHub:
    return InMemoryHub()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def server(hub: InMemoryHub, storage: MemoryStorage) -> Observable:
    transport = hub.endpoint(STORE)
    observable = Observable(transport, origins=[APP, OTHER], storage=storage).init()
    transport.start()
    return observable


@pytest.fixture
def lifecycle() -> dict:
    return {"created": [], "destroyed": []}


@pytest.fixture
def observer(hub: InMemoryHub, server: Observable, lifecycle: dict, clock: FakeClock) -> Observer:
    """An Observer whose transport has not been started yet."""
    return Observer(
        hub.endpoint(APP),
        ObserverConfig(server_origin=STORE, request_timeout=5.0),
        created=lifecycle["created"].append,
        destroyed=lifecycle["destroyed"].append,
        clock=clock,
    ).init(heartbeat=False)


@pytest.fixture
def connected(hub: InMemoryHub, observer: Observer) -> Observer:
    observer.t.start()
    hub.flush()
    assert observer.connection.connected
    return observer

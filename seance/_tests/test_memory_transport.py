from __future__ import annotations

import threading

from seance.transports.memory import InMemoryHub

A = "https://a.example"
B = "https://b.example"


def test_ready_fires_on_start_and_for_late_subscribers() -> None:
    hub = InMemoryHub()
    t = hub.endpoint(A)
    fired = []
    t.on_ready(lambda: fired.append("early"))
    t.start()
    t.on_ready(lambda: fired.append("late"))
    t.start()  # already live: no second ready
    assert fired == ["early", "late"]


def test_terminate_fires_once() -> None:
    hub = InMemoryHub()
    t = hub.endpoint(A)
    fired = []
    t.on_terminate(lambda: fired.append(1))
    t.stop()  # never started
    t.start()
    t.stop()
    t.stop()
    assert fired == [1]
    assert not t.live


def test_frames_carry_the_sender_origin() -> None:
    hub = InMemoryHub()
    a, b = hub.endpoint(A), hub.endpoint(B)
    a.start()
    b.start()
    got = []
    b.subscribe(lambda origin, frame: got.append((origin, frame)))

    a.send(B, "hello")
    assert got == []  # queued until delivery
    assert hub.flush() == 1
    assert got == [(A, "hello")]
    assert hub.sent_from(A)[0].data == "hello"


def test_closed_subscription_detaches_that_handler_only() -> None:
    hub = InMemoryHub()
    a, b = hub.endpoint(A), hub.endpoint(B)
    b.start()
    first, second = [], []
    sub = b.subscribe(lambda o, f: first.append(f))
    b.subscribe(lambda o, f: second.append(f))

    with sub:
        a.send(B, "one")
        hub.flush()
    a.send(B, "two")
    hub.flush()

    assert first == ["one"]
    assert second == ["one", "two"]
    assert sub.closed


def test_raising_handler_does_not_starve_others() -> None:
    hub = InMemoryHub()
    b = hub.endpoint(B)
    b.start()
    got = []

    def broken(origin, frame):
        raise RuntimeError("boom")

    b.subscribe(broken)
    b.subscribe(lambda o, f: got.append(f))
    hub.endpoint(A).send(B, "x")
    hub.flush()
    assert got == ["x"]


def test_frames_to_dead_endpoints_are_dropped() -> None:
    hub = InMemoryHub()
    got = []
    b = hub.endpoint(B)
    b.subscribe(lambda o, f: got.append(f))
    hub.endpoint(A).send(B, "before start")
    hub.endpoint(A).send("https://nowhere.example", "lost")
    assert hub.flush() == 2
    assert got == []


def test_pump_thread_delivers() -> None:
    hub = InMemoryHub()
    b = hub.endpoint(B)
    b.start()
    arrived = threading.Event()
    b.subscribe(lambda o, f: arrived.set())

    hub.start()
    try:
        hub.endpoint(A).send(B, "ping")
        assert arrived.wait(timeout=2)
    finally:
        hub.stop()

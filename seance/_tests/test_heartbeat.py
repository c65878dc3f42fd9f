from __future__ import annotations

import threading

import pytest

from seance.heartbeat import Heartbeat


def test_ticks_until_stopped() -> None:
    ticks = []
    three = threading.Event()

    def tick():
        ticks.append(1)
        if len(ticks) >= 3:
            three.set()

    beat = Heartbeat(tick, every_seconds=0.01)
    beat.start()
    assert three.wait(timeout=2)
    beat.stop()
    assert not beat.running

    count = len(ticks)
    threading.Event().wait(0.05)
    assert len(ticks) == count


def test_failing_tick_keeps_beating() -> None:
    calls = []
    twice = threading.Event()

    def tick():
        calls.append(1)
        if len(calls) >= 2:
            twice.set()
        raise RuntimeError("transport hiccup")

    beat = Heartbeat(tick, every_seconds=0.01)
    beat.start()
    try:
        assert twice.wait(timeout=2)
    finally:
        beat.stop()


@pytest.mark.parametrize("interval", [0, -1])
def test_interval_must_be_positive(interval) -> None:
    with pytest.raises(ValueError):
        Heartbeat(lambda: None, every_seconds=interval)

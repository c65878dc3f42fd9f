from __future__ import annotations

from typing import List

import pytest

from seance.errors import RequestTimeout
from seance.message import ACK, MessageType, Request, Response
from seance.registry import Outcome, RequestRegistry

from conftest import FakeClock


class _Recorder:
    def __init__(self) -> None:
        self.sent: List[Request] = []
        self.calls: List[tuple] = []

    def send(self, req: Request) -> None:
        self.sent.append(req)

    def callback(self, result, error) -> None:
        self.calls.append((result, error))


@pytest.fixture
def rec() -> _Recorder:
    return _Recorder()


def test_issue_sends_and_records(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me")

    first = registry.issue(MessageType.GET, ["a"])
    second = registry.issue(MessageType.SET, [{"key": "a", "value": "1"}])

    assert [r.id for r in rec.sent] == [first.id, second.id]
    assert second.id > first.id > 0
    assert rec.sent[0] == Request(sender="me", id=first.id, type=MessageType.GET, payload=["a"])
    assert registry.pending_ids() == [first.id, second.id]
    assert not first.future.done()


def test_response_resolves_exactly_once(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me")
    pending = registry.issue(MessageType.GET, ["a"], rec.callback)

    resp = Response(id=pending.id, result=[{"a": "1"}], error=None)
    assert registry.resolve(resp) is Outcome.RESOLVED
    assert pending.future.result() == ([{"a": "1"}], None)
    assert rec.calls == [([{"a": "1"}], None)]
    assert pending.id not in registry

    # duplicate delivery
    assert registry.resolve(resp) is Outcome.DISCARDED
    assert rec.calls == [([{"a": "1"}], None)]


def test_unknown_ids_are_discarded_silently(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me")
    pending = registry.issue(MessageType.GET, ["a"], rec.callback)

    assert registry.resolve(Response(id=999, result=[{"x": 1}])) is Outcome.DISCARDED
    assert registry.resolve(Response(id="foreign", result=ACK)) is Outcome.DISCARDED
    assert registry.pending_ids() == [pending.id]
    assert rec.calls == []


def test_control_acks_do_not_touch_data_requests(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me")
    pending = registry.issue(MessageType.GET, ["a"], rec.callback)
    ping = registry.issue_control(MessageType.SYN, "me")

    assert registry.resolve(Response.ack(ping)) is Outcome.ACKNOWLEDGED
    assert registry.resolve(Response.ack(ping)) is Outcome.DISCARDED
    assert registry.pending_ids() == [pending.id]
    assert rec.calls == []
    assert len(registry) == 1


def test_close_notice_leaves_pending_callbacks_alone(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me")
    pending = registry.issue(MessageType.GET, ["a"], rec.callback)

    assert registry.resolve(Response.close()) is Outcome.CLOSED
    assert pending.id in registry
    assert rec.calls == []


def test_control_table_is_bounded(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me", max_control=2)
    oldest = registry.issue_control(MessageType.SYN, "me")
    registry.issue_control(MessageType.SYN, "me")
    newest = registry.issue_control(MessageType.SYN, "me")

    assert registry.resolve(Response.ack(oldest)) is Outcome.DISCARDED
    assert registry.resolve(Response.ack(newest)) is Outcome.ACKNOWLEDGED


def test_notify_is_not_tracked(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me")
    ident = registry.notify(MessageType.UNMOUNT, "me")

    assert rec.sent[-1].type is MessageType.UNMOUNT
    assert registry.resolve(Response.ack(ident)) is Outcome.DISCARDED
    assert len(registry) == 0


def test_expire_reports_unresolved_requests(rec: _Recorder) -> None:
    clock = FakeClock()
    registry = RequestRegistry(rec.send, "me", clock=clock)
    old = registry.issue(MessageType.GET, ["a"], rec.callback)
    clock.advance(3.0)
    fresh = registry.issue(MessageType.GET, ["b"])
    clock.advance(2.5)

    expired = registry.expire(5.0)

    assert [p.id for p in expired] == [old.id]
    assert registry.pending_ids() == [fresh.id]
    with pytest.raises(RequestTimeout):
        old.future.result()
    assert len(rec.calls) == 1
    result, error = rec.calls[0]
    assert result is None and "unanswered" in error

    # a late response for the expired request is just stale now
    assert registry.resolve(Response(id=old.id, result=[{"a": "1"}])) is Outcome.DISCARDED


def test_failed_send_does_not_leave_an_entry() -> None:
    def broken(req: Request) -> None:
        raise OSError("carrier gone")

    registry = RequestRegistry(broken, "me")
    with pytest.raises(OSError):
        registry.issue(MessageType.GET, ["a"])
    assert len(registry) == 0


def test_bare_ack_for_a_data_request_skips_the_callback(rec: _Recorder) -> None:
    registry = RequestRegistry(rec.send, "me")
    pending = registry.issue(MessageType.GET, ["a"], rec.callback)

    assert registry.resolve(Response.ack(pending.id)) is Outcome.ACKNOWLEDGED
    assert pending.id not in registry
    assert not pending.future.done()
    assert rec.calls == []

    # the real answer arriving afterwards is stale
    assert registry.resolve(Response(id=pending.id, result=[{"a": "1"}])) is Outcome.DISCARDED
    assert rec.calls == []

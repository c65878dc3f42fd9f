from __future__ import annotations

import pytest

from seance.connection import Connection, ConnectionState
from seance.errors import NotConnected


def test_handshake_then_ack() -> None:
    conn = Connection("https://store.example")
    assert conn.state is ConnectionState.DISCONNECTED

    conn.begin_handshake()
    assert conn.state is ConnectionState.AWAITING_ACK

    assert conn.acknowledge() is True
    assert conn.connected
    # further ACKs (heartbeats) keep us connected without a new transition
    assert conn.acknowledge() is False
    conn.begin_handshake()
    assert conn.state is ConnectionState.CONNECTED


def test_ack_without_handshake_still_connects() -> None:
    conn = Connection("https://store.example")
    assert conn.acknowledge() is True
    assert conn.connected


def test_only_close_disconnects() -> None:
    conn = Connection("https://store.example")
    conn.acknowledge()
    conn.close()
    assert conn.state is ConnectionState.DISCONNECTED


@pytest.mark.parametrize("prepare", [lambda c: None, lambda c: c.begin_handshake()])
def test_gate_refuses_until_connected(prepare) -> None:
    conn = Connection("https://store.example")
    prepare(conn)
    with pytest.raises(NotConnected, match="https://store.example cannot be reached"):
        conn.require_connected()


def test_not_connected_is_a_connection_error() -> None:
    with pytest.raises(ConnectionError):
        Connection("x").require_connected()

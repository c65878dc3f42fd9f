from __future__ import annotations
from enum import StrEnum

import structlog

from .errors import NotConnected

logger = structlog.get_logger(__name__)


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    AWAITING_ACK = "awaiting_ack"
    CONNECTED    = "connected"


class Connection:
    """
    Client-side view of the handshake. Handshake and heartbeat ACKs share this
    one state; only an explicit close notice moves it back to DISCONNECTED.
    """

    def __init__(self, server_origin: str):
        self.server_origin = server_origin
        self.state = ConnectionState.DISCONNECTED

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def begin_handshake(self) -> None:
        if self.state is ConnectionState.DISCONNECTED:
            self.state = ConnectionState.AWAITING_ACK

    def acknowledge(self) -> bool:
        """Record an ACK; True when this flipped us to CONNECTED."""
        if self.connected:
            return False
        self.state = ConnectionState.CONNECTED
        logger.info("observable connected", server_origin=self.server_origin)
        return True

    def close(self) -> None:
        if self.state is not ConnectionState.DISCONNECTED:
            logger.info("observable closed connection", server_origin=self.server_origin)
        self.state = ConnectionState.DISCONNECTED

    def require_connected(self) -> None:
        if not self.connected:
            raise NotConnected(
                f"Observable storage instance at {self.server_origin} cannot be reached"
            )

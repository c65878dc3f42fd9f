from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Union
from enum import StrEnum

CorrelationId = Union[int, str]

# Reserved for the Observable's teardown broadcast; the id generator only
# yields positive integers.
DESTROY_ID: int = -1

# Markers carried in a response's `result`
ACK = "ACK"
CLOSE = "CLOSE"


class MessageType(StrEnum):
    MOUNT   = "MOUNT"
    UNMOUNT = "UNMOUNT"
    SYN     = "SYN"
    GET     = "GET"
    SET     = "SET"
    DELETE  = "DELETE"

    @classmethod
    def parse(cls, value: Any) -> Optional["MessageType"]:
        """Case-insensitive lookup; None for anything unrecognized."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.upper())
        except ValueError:
            return None


class Action(StrEnum):
    """Storage actions an incorporated Observer may request."""
    GET    = "GET"
    SET    = "SET"
    DELETE = "DELETE"

    @classmethod
    def from_type(cls, type_: MessageType) -> Optional["Action"]:
        try:
            return cls(str(type_))
        except ValueError:
            return None


@dataclass(frozen=True)
class Request:
    """
    Observer -> Observable. `sender` is the Observer's uuid; the trusted
    origin always comes from the transport.
    """
    sender: str                 # Observer uuid
    id: CorrelationId           # correlation id, echoed back in the Response
    type: MessageType           # MOUNT | UNMOUNT | SYN | GET | SET | DELETE
    payload: Any = None         # keys, pairs, or the uuid for control messages


@dataclass(frozen=True)
class Response:
    """Observable -> Observer."""
    id: CorrelationId
    result: Any = None          # action result, ACK or CLOSE
    error: Optional[str] = field(default=None)

    @property
    def is_ack(self) -> bool:
        return self.result == ACK and self.error is None

    @property
    def is_close(self) -> bool:
        return self.id == DESTROY_ID and self.result == CLOSE

    @staticmethod
    def ack(id: CorrelationId) -> "Response":
        return Response(id=id, result=ACK, error=None)

    @staticmethod
    def close() -> "Response":
        return Response(id=DESTROY_ID, result=CLOSE, error=None)

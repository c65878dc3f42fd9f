from __future__ import annotations
from typing import Any, Mapping

from .codecs import Codec, JSONCodec
from .errors import MalformedPayload
from .message import CorrelationId, MessageType, Request, Response

_DEFAULT = JSONCodec()


def _valid_id(value: Any) -> bool:
    # bool is an int subclass; 0 and "" are never issued
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value != 0
    return isinstance(value, str) and value != ""


def pack_request(req: Request, codec: Codec = _DEFAULT) -> str:
    return codec.dumps({
        "sender":  req.sender,
        "id":      req.id,
        "type":    str(req.type),
        "payload": req.payload,
    })


def unpack_request(frame: str, codec: Codec = _DEFAULT) -> Request:
    """
    Decode a request frame. `type` is parsed case-insensitively; an unknown
    type is malformed as far as the dispatcher is concerned.
    """
    env = codec.loads(frame)
    if not isinstance(env, Mapping):
        raise MalformedPayload("request envelope must be an object")

    ident = env.get("id")
    if not _valid_id(ident):
        raise MalformedPayload(f"invalid correlation id: {ident!r}")

    type_ = MessageType.parse(env.get("type"))
    if type_ is None:
        raise MalformedPayload(f"unknown message type: {env.get('type')!r}")

    sender = env.get("sender")
    if not isinstance(sender, str):
        raise MalformedPayload("request sender must be a string")

    return Request(sender=sender, id=ident, type=type_, payload=env.get("payload"))


def pack_response(resp: Response, codec: Codec = _DEFAULT) -> str:
    return codec.dumps({
        "id":     resp.id,
        "result": resp.result,
        "error":  resp.error,
    })


def unpack_response(frame: str, codec: Codec = _DEFAULT) -> Response:
    env = codec.loads(frame)
    if not isinstance(env, Mapping):
        raise MalformedPayload("response envelope must be an object")

    ident: CorrelationId = env.get("id")
    if not _valid_id(ident):
        raise MalformedPayload(f"invalid correlation id: {ident!r}")

    result = env.get("result")
    error = env.get("error")
    if result is None and error is None:
        raise MalformedPayload("response carries neither result nor error")
    if error is not None and not isinstance(error, str):
        error = str(error)

    return Response(id=ident, result=result, error=error)

from __future__ import annotations
from typing import Any, Dict, Protocol as TypingProtocol

import base64
import binascii
import json

import msgpack

from .errors import MalformedPayload

class Codec(TypingProtocol):
    """Maps a plain object to the transport's single-string frame and back."""
    name: str
    def dumps(self, obj: Any) -> str: ...
    def loads(self, data: str) -> Any: ...

class JSONCodec:
    name = "json"
    def dumps(self, obj: Any) -> str:
        return json.dumps(obj, separators=(",", ":"))
    def loads(self, data: str) -> Any:
        if not isinstance(data, str):
            raise MalformedPayload(f"expected str frame, got {type(data).__name__}")
        try:
            return json.loads(data)
        except ValueError as ex:
            raise MalformedPayload(str(ex)) from ex

class MsgPackCodec:
    # base64 keeps the frame a string for string-only transports
    name = "msgpack"
    def dumps(self, obj: Any) -> str:
        packed = msgpack.packb(obj, use_bin_type=True)
        return base64.b64encode(packed).decode("ascii")
    def loads(self, data: str) -> Any:
        if not isinstance(data, str):
            raise MalformedPayload(f"expected str frame, got {type(data).__name__}")
        try:
            raw = base64.b64decode(data.encode("ascii"), validate=True)
            return msgpack.unpackb(raw, raw=False, strict_map_key=False)
        except (binascii.Error, UnicodeEncodeError, ValueError, msgpack.UnpackException) as ex:
            raise MalformedPayload(str(ex)) from ex

class Codecs:
    _registry: Dict[str, Codec] = {
        "json": JSONCodec(),
        "msgpack": MsgPackCodec(),
    }

    @classmethod
    def get(cls, name: str) -> 'Codec':
        if name not in cls._registry:
            raise ValueError(f"Unknown codec: {name}")
        return cls._registry[name]

    @classmethod
    def names(cls) -> list[str]:
        return sorted(cls._registry)

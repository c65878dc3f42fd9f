from __future__ import annotations
from typing import Optional


class SeanceError(Exception):
    """Base class for every error raised by seance."""


class MalformedPayload(SeanceError, ValueError):
    """A frame could not be decoded into a well-formed envelope."""


class UntrustedOrigin(SeanceError):
    """Sender is neither incorporated nor eligible for incorporation."""

    def __init__(self, origin: str, type_: Optional[str] = None):
        self.origin = origin
        self.type = type_
        super().__init__(f"Untrusted origin {origin!r} for {type_ or 'message'}")


class AdapterFailure(SeanceError):
    """Storage adapter raised while handling a single key or pair."""

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"{key}: {cause}")


class NotConnected(SeanceError, ConnectionError):
    """Operation attempted before the Observable acknowledged us."""


class RequestTimeout(SeanceError, TimeoutError):
    """A pending request outlived the configured request timeout."""


class InvalidArgument(SeanceError, TypeError):
    """Caller broke an operation's argument contract."""

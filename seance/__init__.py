"""
Public API:
- Observable: server endpoint owning the storage adapter
- Observer, Sequence: client endpoint and its chainable interface
- init_observable, init_observer: one-liner factories
- Request, Response, MessageType, Action: wire-level types
- Transport, Subscription: contract transports must implement
- InMemoryHub: in-process transport
- StorageAdapter, MemoryStorage, MappingStorage: backing stores
- ObservableConfig, ObserverConfig: validated settings
- setup_logging: structlog configuration
"""

# Endpoints
from .server import Observable
from .client import Observer, Sequence
from .factory import init_observable, init_observer

# Wire types
from .message import (
    ACK,
    CLOSE,
    DESTROY_ID,
    Action,
    MessageType,
    Request,
    Response,
)
from .codecs import Codecs
from .wire import pack_request, pack_response, unpack_request, unpack_response

# Collaborators
from .transport import Subscription, Transport
from .transports.memory import InMemoryHub, InMemoryTransport
from .storage import MappingStorage, MemoryStorage, StorageAdapter

from .config import ObservableConfig, ObserverConfig
from .connection import ConnectionState
from .errors import (
    AdapterFailure,
    InvalidArgument,
    MalformedPayload,
    NotConnected,
    RequestTimeout,
    SeanceError,
    UntrustedOrigin,
)
from .log import setup_logging

__all__ = [
    "Observable",
    "Observer",
    "Sequence",
    "init_observable",
    "init_observer",
    "ACK",
    "CLOSE",
    "DESTROY_ID",
    "Action",
    "MessageType",
    "Request",
    "Response",
    "Codecs",
    "pack_request",
    "pack_response",
    "unpack_request",
    "unpack_response",
    "Subscription",
    "Transport",
    "InMemoryHub",
    "InMemoryTransport",
    "StorageAdapter",
    "MemoryStorage",
    "MappingStorage",
    "ObservableConfig",
    "ObserverConfig",
    "ConnectionState",
    "SeanceError",
    "MalformedPayload",
    "UntrustedOrigin",
    "AdapterFailure",
    "NotConnected",
    "RequestTimeout",
    "InvalidArgument",
    "setup_logging",
]

__version__ = "0.1.0"

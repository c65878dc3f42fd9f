"""
Concrete transports. `zyre` is imported lazily (see `seance.factory`) since it
needs the optional Zyre bindings.
"""

from .memory import InMemoryHub, InMemoryTransport

__all__ = ["InMemoryHub", "InMemoryTransport"]

"""
Storage adapters behind the Observable.

Adapters operate on one key at a time and raise on failure; batching and
per-key error isolation belong to the dispatcher.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, MutableMapping, Optional
import threading


class StorageAdapter(ABC):

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Value stored under `key`, or None when absent."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove `key`; removing an absent key is not an error."""
        raise NotImplementedError


class MappingStorage(StorageAdapter):
    """Adapter over any MutableMapping (a dict, a `shelve` or `dbm` handle...)."""

    def __init__(self, mapping: MutableMapping[str, Any]):
        self.mapping = mapping
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        _check_key(key)
        with self._lock:
            return self.mapping.get(key)

    def set(self, key: str, value: Any) -> None:
        _check_key(key)
        with self._lock:
            self.mapping[key] = value

    def delete(self, key: str) -> None:
        _check_key(key)
        with self._lock:
            self.mapping.pop(key, None)


class MemoryStorage(MappingStorage):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        super().__init__(dict(initial or {}))


def _check_key(key: Any) -> None:
    if not isinstance(key, str):
        raise TypeError(f"storage keys must be strings, got {type(key).__name__}")

from __future__ import annotations
from typing import List, Optional
import os

from pydantic import BaseModel, Field, field_validator

from .codecs import Codecs


def _check_codec(value: str) -> str:
    if value not in Codecs.names():
        raise ValueError(f"unknown codec {value!r}; expected one of {Codecs.names()}")
    return value


def _check_origin(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("origin must be a non-empty string")
    return value


class ObservableConfig(BaseModel):
    """Server-side settings"""
    origins: List[str] = Field(default_factory=list, description="Candidate origins allowed to incorporate")
    codec: str = "json"

    @field_validator("origins")
    @classmethod
    def _origins(cls, value: List[str]) -> List[str]:
        return [_check_origin(o) for o in value]

    @field_validator("codec")
    @classmethod
    def _codec(cls, value: str) -> str:
        return _check_codec(value)

    @classmethod
    def from_env(cls, prefix: str = "SEANCE_") -> "ObservableConfig":
        raw = os.getenv(f"{prefix}ORIGINS", "")
        return cls(
            origins=[o for o in raw.split(",") if o.strip()],
            codec=os.getenv(f"{prefix}CODEC", "json"),
        )


class ObserverConfig(BaseModel):
    """Client-side settings"""
    server_origin: str = Field(..., description="The single Observable origin this client trusts")
    heartbeat_interval: float = Field(1.0, gt=0, description="Seconds between heartbeat ticks")
    request_timeout: Optional[float] = Field(None, gt=0, description="Fail unanswered requests after this many seconds")
    max_outstanding_pings: int = Field(64, ge=1)
    codec: str = "json"

    @field_validator("server_origin")
    @classmethod
    def _server_origin(cls, value: str) -> str:
        return _check_origin(value)

    @field_validator("codec")
    @classmethod
    def _codec(cls, value: str) -> str:
        return _check_codec(value)

    @classmethod
    def from_env(cls, prefix: str = "SEANCE_", **overrides) -> "ObserverConfig":
        values = {
            "server_origin": os.getenv(f"{prefix}SERVER_ORIGIN", ""),
            "codec": os.getenv(f"{prefix}CODEC", "json"),
        }
        interval = os.getenv(f"{prefix}HEARTBEAT_INTERVAL")
        if interval:
            values["heartbeat_interval"] = float(interval)
        timeout = os.getenv(f"{prefix}REQUEST_TIMEOUT")
        if timeout:
            values["request_timeout"] = float(timeout)
        values.update(overrides)
        return cls(**values)

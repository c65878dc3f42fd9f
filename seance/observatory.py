from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set
import time


@dataclass
class Member:
    origin: str
    sender: Optional[str] = None      # uuid the Observer mounted with
    incorporated_at: float = 0.0
    last_seen: float = 0.0


@dataclass
class Observatory:
    # origins expected to connect
    pool: Set[str] = field(default_factory=set)
    # incorporated origin -> membership
    members: Dict[str, Member] = field(default_factory=dict)
    clock: Callable[[], float] = time.time

    @classmethod
    def of(cls, origins: Iterable[str], clock: Callable[[], float] = time.time) -> "Observatory":
        return cls(pool=set(origins), clock=clock)

    def eligible(self, origin: str) -> bool:
        return origin in self.pool

    def admits(self, origin: str, mounting: bool = False) -> bool:
        """Trust boundary: MOUNT needs pool membership, everything else incorporation."""
        if mounting:
            return self.eligible(origin)
        return origin in self.members

    def incorporate(self, origin: str, sender: Optional[str] = None) -> bool:
        """Admit `origin`; True only when membership actually changed."""
        if not self.eligible(origin):
            return False
        now = self.clock()
        member = self.members.get(origin)
        if member is not None:
            member.last_seen = now
            return False
        self.members[origin] = Member(origin=origin, sender=sender, incorporated_at=now, last_seen=now)
        return True

    def detach(self, origin: str) -> bool:
        return self.members.pop(origin, None) is not None

    def touch(self, origin: str) -> None:
        member = self.members.get(origin)
        if member is not None:
            member.last_seen = self.clock()

    def origins(self) -> List[str]:
        return list(self.members)

    def clear(self) -> None:
        self.members.clear()

    def __contains__(self, origin: object) -> bool:
        return origin in self.members

    def __len__(self) -> int:
        return len(self.members)

"""Audit events emitted by hooks."""

from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class HookEvent:
    event_type: str
    pool_id: str
    sender: Optional[str] = None
    amount: Optional[int] = None
    meta: dict = field(default_factory=dict)


class EventLog:
    def __init__(self, maxlen: Optional[int] = None) -> None:
        self.events = deque(maxlen=maxlen)

    def add(self, e: HookEvent) -> None:
        self.events.append(e)

    def of_type(self, event_type: str) -> List[HookEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def __len__(self) -> int:
        return len(self.events)

    # Pool manager transition participation
    def snapshot(self):
        return list(self.events)

    def restore(self, snapshot) -> None:
        self.events = deque(snapshot, maxlen=self.events.maxlen)

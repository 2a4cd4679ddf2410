from __future__ import annotations

from collections import Counter
from typing import Callable

from arena.contracts import EventRecord, SourceType

EventHandler = Callable[[EventRecord], None]


class EventBus:
    """Fan-out for committed match events; handlers may listen to one source or to all of them."""

    def __init__(self) -> None:
        self._handlers: list[tuple[SourceType | None, EventHandler]] = []
        self._counter: Counter[SourceType] = Counter()

    def subscribe(self, handler: EventHandler, source_type: SourceType | None = None) -> None:
        self._handlers.append((source_type, handler))

    def publish(self, event: EventRecord) -> None:
        self._counter[event.source_type] += 1
        for wanted, handler in self._handlers:
            if wanted is None or wanted == event.source_type:
                handler(event)

    def emitted_count(self, source_type: SourceType | None = None) -> int:
        if source_type is None:
            return sum(self._counter.values())
        return self._counter[source_type]

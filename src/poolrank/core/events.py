from __future__ import annotations

from collections import defaultdict
from typing import Callable, DefaultDict

from poolrank.contracts import LeaderboardEvent

LeaderboardHandler = Callable[[LeaderboardEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: list[LeaderboardHandler] = []
        self._counter: DefaultDict[str, int] = defaultdict(int)

    def subscribe(self, handler: LeaderboardHandler) -> None:
        self._handlers.append(handler)

    def publish(self, event: LeaderboardEvent) -> None:
        self._counter[event.scope] += 1
        for handler in self._handlers:
            handler(event)

    def emitted_count(self, scope: str | None = None) -> int:
        if scope is None:
            return sum(self._counter.values())
        return self._counter[scope]

"""
Snapshot Publisher

Holds the latest immutable EngineState and invokes subscriber callbacks
synchronously on every publish. Callbacks run on the caller's thread or
task and must not block.

Every subscriber receives the same snapshot instance rather than its own
copy. EngineState is a frozen dataclass whose rows are frozen and held in a
tuple, so a shared instance is as isolated as a deep copy: no subscriber
can change what another one sees, and to_dict() hands out fresh containers
for callers that want a mutable view.
"""

import logging
from typing import Callable, List

from .data_types import EngineState

logger = logging.getLogger(__name__)

Subscriber = Callable[[EngineState], None]


class SnapshotPublisher:
    """Subscriber list plus the last published snapshot."""

    def __init__(self, initial: EngineState):
        self._latest = initial
        self._subscribers: List[Subscriber] = []
        self.error_count = 0

    @property
    def latest(self) -> EngineState:
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> None:
        """Register callback. Registering the same callback twice is a no-op."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, snapshot: EngineState) -> None:
        """Store snapshot as latest and notify every subscriber."""
        self._latest = snapshot
        # Copy so a callback may unsubscribe itself
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                self.error_count += 1
                logger.error(f"Subscriber callback error: {e}")

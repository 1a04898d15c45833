"""In-process publish/subscribe channels for execution logs and the active node."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")

Subscriber = Callable[[T], None]


class Channel(Generic[T]):
    """
    Fan-out channel with FIFO delivery per producer.

    Late subscribers see only values published after they subscribed.
    """

    def __init__(self, name: str):
        self.name = name
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, value: T) -> None:
        # Snapshot so callbacks may unsubscribe while being notified
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logging.exception("Channel subscriber failed", extra={"channel": self.name})

    @asynccontextmanager
    async def stream(self) -> AsyncIterator["asyncio.Queue[T]"]:
        """Queue-backed subscription for async observers"""
        queue: asyncio.Queue = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            yield queue
        finally:
            unsubscribe()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


class ActiveNodeSignal(Channel[Optional[str]]):
    """Holds the currently executing node id and publishes changes"""

    def __init__(self):
        super().__init__("active_node")
        self._value: Optional[str] = None

    @property
    def value(self) -> Optional[str]:
        return self._value

    def set(self, node_id: Optional[str]) -> None:
        if node_id == self._value:
            return
        self._value = node_id
        self.publish(node_id)

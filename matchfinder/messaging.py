from __future__ import annotations

import asyncio
from typing import List

from loguru import logger

from .pipeline_types import ContextMessage


class Subscription:
    """
    One listener's view of the bus. Messages published after subscribe() are
    queued until read; nothing is queued once the subscription is closed.
    """

    def __init__(self, bus: "MessageBus") -> None:
        self._bus = bus
        self._queue: "asyncio.Queue[ContextMessage]" = asyncio.Queue()
        self.closed = False

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def deliver(self, message: ContextMessage) -> None:
        if not self.closed:
            self._queue.put_nowait(message)

    async def get(self) -> ContextMessage:
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._bus.unsubscribe(self)


class MessageBus:
    """In-process fan-out of context messages to every open subscription."""

    def __init__(self) -> None:
        self._subscribers: List[Subscription] = []

    def subscribe(self) -> Subscription:
        sub = Subscription(self)
        self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, message: ContextMessage) -> int:
        subs = list(self._subscribers)
        for sub in subs:
            sub.deliver(message)
        logger.debug(
            "Published {} from context {} to {} subscriber(s)",
            message.kind.value,
            message.context_id,
            len(subs),
        )
        return len(subs)

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from . import config
from .handoff import HandoffStore
from .messaging import MessageBus
from .page_fetch import fetch_page
from .pipeline_types import ContextMessage
from .search_context import PageLoader, run_search_context


class ContextError(RuntimeError):
    """A context could not be opened, reached, or closed."""


@dataclass
class ContextHandle:
    context_id: str
    url: str


class ContextHost(ABC):
    """Opens isolated execution contexts pointed at a URL."""

    @abstractmethod
    async def open(self, url: str) -> ContextHandle:
        ...

    @abstractmethod
    async def send(self, handle: ContextHandle, message: ContextMessage) -> None:
        ...

    @abstractmethod
    async def close(self, handle: ContextHandle) -> None:
        ...


@dataclass
class _LocalContext:
    handle: ContextHandle
    inbox: "asyncio.Queue[ContextMessage]"
    task: Optional["asyncio.Task[None]"] = field(default=None)


class LocalContextHost(ContextHost):
    """
    Runs each context as its own asyncio task with a private inbox. The only
    ways in are the inbox and the handoff store; the only way out is the bus.
    """

    def __init__(
        self,
        bus: MessageBus,
        handoff: HandoffStore,
        page_loader: PageLoader = fetch_page,
        settle_delay_ms: int = config.CONTEXT_SETTLE_DELAY_MS,
    ) -> None:
        self.bus = bus
        self.handoff = handoff
        self.page_loader = page_loader
        self.settle_delay_ms = settle_delay_ms
        self._contexts: Dict[str, _LocalContext] = {}

    @property
    def open_contexts(self) -> List[str]:
        return list(self._contexts)

    async def open(self, url: str) -> ContextHandle:
        handle = ContextHandle(context_id=uuid.uuid4().hex, url=url)
        ctx = _LocalContext(handle=handle, inbox=asyncio.Queue())
        ctx.task = asyncio.create_task(
            run_search_context(
                handle.context_id,
                url,
                ctx.inbox,
                self.bus,
                self.handoff,
                self.page_loader,
                self.settle_delay_ms,
            )
        )
        self._contexts[handle.context_id] = ctx
        logger.info("Opened context {} at {}", handle.context_id, url)
        return handle

    async def send(self, handle: ContextHandle, message: ContextMessage) -> None:
        ctx = self._contexts.get(handle.context_id)
        if ctx is None:
            raise ContextError(f"Unknown context {handle.context_id}")
        ctx.inbox.put_nowait(message)

    async def close(self, handle: ContextHandle) -> None:
        ctx = self._contexts.pop(handle.context_id, None)
        if ctx is None:
            logger.debug("Context {} already closed", handle.context_id)
            return
        if ctx.task is not None and not ctx.task.done():
            ctx.task.cancel()
            try:
                await ctx.task
            except asyncio.CancelledError:
                pass
        logger.info("Closed context {}", handle.context_id)

"""
Shared handoff state between the coordinator and a search context.

One entry per request id:

    {"sourceProductForMatch": {...}, "matchInProgress": true}

The coordinator writes the entry before the context is opened and clears it on
every exit path; the context only reads it.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from . import config
from .config import SourceProduct

HandoffState = Dict[str, Dict[str, Any]]


class HandoffStore(ABC):
    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    @abstractmethod
    def _read_state(self) -> HandoffState:
        ...

    @abstractmethod
    def _write_state(self, state: HandoffState) -> None:
        ...

    async def _aread_state(self) -> HandoffState:
        return self._read_state()

    async def _awrite_state(self, state: HandoffState) -> None:
        self._write_state(state)

    async def put(self, request_id: str, source_product: SourceProduct) -> None:
        async with self._lock:
            state = await self._aread_state()
            if state:
                # keyed entries make this safe, but it is worth knowing about
                logger.debug("Handoff already holds {} live request(s)", len(state))
            state[request_id] = {
                config.HANDOFF_SOURCE_KEY: source_product.model_dump(mode="json"),
                config.HANDOFF_IN_PROGRESS_KEY: True,
            }
            await self._awrite_state(state)
        logger.debug("Handoff written for request {}", request_id)

    async def get_source_product(self, request_id: str) -> Optional[SourceProduct]:
        async with self._lock:
            entry = (await self._aread_state()).get(request_id)
        if not entry or not entry.get(config.HANDOFF_SOURCE_KEY):
            return None
        return SourceProduct.model_validate(entry[config.HANDOFF_SOURCE_KEY])

    async def is_in_progress(self, request_id: str) -> bool:
        async with self._lock:
            entry = (await self._aread_state()).get(request_id)
        return bool(entry and entry.get(config.HANDOFF_IN_PROGRESS_KEY))

    async def clear(self, request_id: str) -> None:
        """Drop the entry. Clearing twice is a no-op."""
        async with self._lock:
            state = await self._aread_state()
            if state.pop(request_id, None) is not None:
                await self._awrite_state(state)
                logger.debug("Handoff cleared for request {}", request_id)

    async def active_requests(self) -> List[str]:
        async with self._lock:
            state = await self._aread_state()
        return [rid for rid, entry in state.items() if entry.get(config.HANDOFF_IN_PROGRESS_KEY)]


class MemoryHandoffStore(HandoffStore):
    def __init__(self) -> None:
        super().__init__()
        self._state: HandoffState = {}

    def _read_state(self) -> HandoffState:
        return dict(self._state)

    def _write_state(self, state: HandoffState) -> None:
        self._state = dict(state)


class JsonFileHandoffStore(HandoffStore):
    """Persists the handoff map to a JSON file so another process can read it."""

    def __init__(self, path: Path = config.HANDOFF_STATE_PATH) -> None:
        super().__init__()
        self.path = Path(path)

    def _read_state(self) -> HandoffState:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as e:
            logger.warning("Handoff file {} is corrupt, starting empty: {}", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_state(self, state: HandoffState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(state, indent=2), encoding="utf-8")
        tmp.replace(self.path)

    # file access runs off the event loop
    async def _aread_state(self) -> HandoffState:
        return await asyncio.to_thread(self._read_state)

    async def _awrite_state(self, state: HandoffState) -> None:
        await asyncio.to_thread(self._write_state, state)


def make_handoff_store(backend: str = config.HANDOFF_BACKEND) -> HandoffStore:
    backend = (backend or "memory").strip().lower()
    if backend == "json":
        return JsonFileHandoffStore()
    if backend != "memory":
        logger.warning("Unknown handoff backend {!r}; using memory", backend)
    return MemoryHandoffStore()

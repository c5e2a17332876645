"""
MatchCoordinator: one find_match call from dispatch to cleanup.

    IDLE -> DISPATCHING -> AWAITING_RESULT -> RESOLVED -> CLEANED_UP

Every exit path (success, failure, timeout, cancel, or an unexpected error)
goes through the same cleanup: close the context, clear the handoff entry,
drop the bus subscription. find_match never raises.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import List, Optional, Sequence, Tuple, Union

from loguru import logger
from pydantic import ValidationError

from . import config
from .config import MatchResult, ScoredCandidate, SearchOptions, SearchRequest, SourceProduct
from .contexts import ContextHandle, ContextHost
from .handoff import HandoffStore
from .messaging import MessageBus, Subscription
from .pipeline_types import (
    ConcurrencyPolicy,
    ContextMessage,
    CoordinatorState,
    ErrorKind,
    Marketplace,
    MessageKind,
    Resolution,
)
from .query import UnsupportedMarketplaceError, build_search_url, resolve_marketplace
from .selector import NO_MATCH_MESSAGE

TIMEOUT_MESSAGE = "Timeout waiting for match result"
CANCELLED_MESSAGE = "Match search cancelled"
BUSY_MESSAGE = "Another match search is already running"

Outcome = Tuple[MatchResult, Resolution]


class CancellationToken:
    """Lets a caller resolve a running find_match early."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class MatchCoordinator:
    def __init__(
        self,
        host: ContextHost,
        bus: MessageBus,
        handoff: HandoffStore,
        concurrency_policy: Union[str, ConcurrencyPolicy] = config.CONCURRENCY_POLICY,
    ) -> None:
        self.host = host
        self.bus = bus
        self.handoff = handoff
        self.concurrency_policy = ConcurrencyPolicy(concurrency_policy)
        self.state = CoordinatorState.IDLE
        self.last_resolution: Optional[Resolution] = None
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def _set_state(self, state: CoordinatorState) -> None:
        logger.debug("Coordinator {} -> {}", self.state.value, state.value)
        self.state = state

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    async def find_match(
        self,
        source: SourceProduct,
        target: Union[str, Marketplace],
        options: Optional[SearchOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MatchResult:
        options = options or SearchOptions()
        request_id = uuid.uuid4().hex

        # validated before any state is written
        try:
            marketplace = resolve_marketplace(target)
            search_url = build_search_url(
                source,
                marketplace,
                include_brand=options.include_brand,
                max_title_words=options.max_title_words,
            )
        except UnsupportedMarketplaceError as e:
            logger.warning("find_match rejected: {}", e)
            return MatchResult(success=False, error=str(e), error_kind=e.kind, request_id=request_id)

        if self.concurrency_policy is ConcurrencyPolicy.REJECT and self.busy:
            logger.warning("find_match rejected: coordinator busy")
            return MatchResult(
                success=False,
                error=BUSY_MESSAGE,
                error_kind=ErrorKind.BUSY,
                search_url=search_url,
                request_id=request_id,
            )

        request = SearchRequest(
            request_id=request_id,
            source_product=source,
            target_marketplace=marketplace,
            options=options,
            search_url=search_url,
        )
        async with self._lock:
            result, resolution = await self._run(request, cancel_token)

        self.last_resolution = resolution
        logger.info(
            "Request {} resolved {} (success={}, error_kind={})",
            request_id,
            resolution.value,
            result.success,
            result.error_kind.value if result.error_kind else None,
        )
        return result.model_copy(update={"search_url": search_url, "request_id": request_id})

    async def find_matches(
        self,
        sources: Sequence[SourceProduct],
        target: Union[str, Marketplace],
        options: Optional[SearchOptions] = None,
        batch_size: int = config.BATCH_SIZE,
        batch_delay_ms: int = config.BATCH_DELAY_MS,
        item_delay_ms: int = config.BATCH_ITEM_DELAY_MS,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[MatchResult]:
        """
        Match a list of products one after another, in batches of
        ``batch_size`` with a pause between products and a longer one between
        batches. Returns one MatchResult per source, in input order.
        """
        sources = list(sources or [])
        batch_size = max(int(batch_size), 1)
        results: List[MatchResult] = []
        logger.info("Batch matching {} products on {}", len(sources), target)

        for start in range(0, len(sources), batch_size):
            batch = sources[start : start + batch_size]
            logger.info("Processing batch {}-{} of {}", start + 1, start + len(batch), len(sources))
            for i, source in enumerate(batch):
                try:
                    result = await self.find_match(source, target, options, cancel_token=cancel_token)
                except Exception as e:
                    logger.error("Batch item {!r} failed: {}", source.title[:50], e)
                    result = MatchResult(success=False, error=str(e), error_kind=ErrorKind.CONTEXT_ERROR)
                results.append(result)
                if item_delay_ms > 0 and i < len(batch) - 1:
                    await asyncio.sleep(item_delay_ms / 1000.0)
            if batch_delay_ms > 0 and start + batch_size < len(sources):
                await asyncio.sleep(batch_delay_ms / 1000.0)

        matched = sum(1 for r in results if r.success)
        logger.info("Batch matching done: {}/{} matched", matched, len(results))
        return results

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    async def _run(self, request: SearchRequest, cancel_token: Optional[CancellationToken]) -> Outcome:
        self._set_state(CoordinatorState.DISPATCHING)
        handle: Optional[ContextHandle] = None
        sub = self.bus.subscribe()
        try:
            try:
                await self.handoff.put(request.request_id, request.source_product)
                handle = await self.host.open(request.search_url)
                await self.host.send(
                    handle,
                    ContextMessage(
                        kind=MessageKind.START_MATCH,
                        context_id=handle.context_id,
                        request_id=request.request_id,
                        payload={"options": request.options.model_dump(mode="json")},
                    ),
                )
            except Exception as e:
                logger.error("Dispatch failed for request {}: {}", request.request_id, e)
                outcome = (
                    MatchResult(
                        success=False,
                        error=f"Failed to open search context: {e}",
                        error_kind=ErrorKind.CONTEXT_ERROR,
                    ),
                    Resolution.FAILURE,
                )
            else:
                self._set_state(CoordinatorState.AWAITING_RESULT)
                outcome = await self._await_result(sub, handle, request.options.timeout_ms, cancel_token)
            self._set_state(CoordinatorState.RESOLVED)
            return outcome
        finally:
            await self._cleanup(request.request_id, handle, sub)
            self._set_state(CoordinatorState.CLEANED_UP)

    async def _await_result(
        self,
        sub: Subscription,
        handle: ContextHandle,
        timeout_ms: int,
        cancel_token: Optional[CancellationToken],
    ) -> Outcome:
        if cancel_token is not None and cancel_token.cancelled:
            return _cancelled()

        result_task = asyncio.ensure_future(_next_own_result(sub, handle.context_id))
        waiters = {result_task}
        cancel_task = None
        if cancel_token is not None:
            cancel_task = asyncio.ensure_future(cancel_token.wait())
            waiters.add(cancel_task)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout_ms / 1000.0, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in waiters:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

        if result_task in done:
            return _outcome_from_message(result_task.result())
        if cancel_task is not None and cancel_task in done:
            logger.info("Context {} cancelled by caller", handle.context_id)
            return _cancelled()
        logger.warning("Context {} timed out after {} ms", handle.context_id, timeout_ms)
        return (
            MatchResult(success=False, error=TIMEOUT_MESSAGE, error_kind=ErrorKind.TIMEOUT),
            Resolution.TIMEOUT,
        )

    async def _cleanup(self, request_id: str, handle: Optional[ContextHandle], sub: Subscription) -> None:
        if handle is not None:
            try:
                await asyncio.wait_for(self.host.close(handle), timeout=config.CONTEXT_CLOSE_TIMEOUT_S)
            except asyncio.TimeoutError:
                logger.warning(
                    "Context {} did not close within {}s", handle.context_id, config.CONTEXT_CLOSE_TIMEOUT_S
                )
            except Exception as e:
                logger.warning("Failed to close context {}: {}", handle.context_id, e)
        try:
            await self.handoff.clear(request_id)
        except Exception as e:
            logger.error("Failed to clear handoff state for {}: {}", request_id, e)
        sub.close()


async def _next_own_result(sub: Subscription, context_id: str) -> ContextMessage:
    """First result message from ``context_id``; everything else is dropped."""
    while True:
        msg = await sub.get()
        if msg.context_id != context_id:
            logger.debug("Ignoring {} from foreign context {}", msg.kind.value, msg.context_id)
            continue
        if not msg.is_result:
            continue
        return msg


def _cancelled() -> Outcome:
    return (
        MatchResult(success=False, error=CANCELLED_MESSAGE, error_kind=ErrorKind.CANCELLED),
        Resolution.CANCELLED,
    )


def _outcome_from_message(msg: ContextMessage) -> Outcome:
    payload = msg.payload or {}
    if msg.kind is MessageKind.MATCH_FOUND:
        try:
            match = ScoredCandidate.model_validate(payload.get("candidate") or {})
        except ValidationError as e:
            logger.error("Malformed MATCH_FOUND payload: {}", e)
            return (
                MatchResult(success=False, error="Malformed match payload", error_kind=ErrorKind.EXTRACTION_ERROR),
                Resolution.FAILURE,
            )
        return (
            MatchResult(success=True, match=match, low_confidence=bool(payload.get("low_confidence"))),
            Resolution.SUCCESS,
        )

    if msg.kind is MessageKind.MATCH_NOT_FOUND:
        try:
            kind = ErrorKind(payload.get("error_kind") or ErrorKind.NO_CANDIDATES.value)
        except ValueError:
            kind = ErrorKind.NO_CANDIDATES
        return (
            MatchResult(success=False, error=payload.get("reason") or NO_MATCH_MESSAGE, error_kind=kind),
            Resolution.FAILURE,
        )

    return (
        MatchResult(
            success=False,
            error=payload.get("message") or "Extraction failed",
            error_kind=ErrorKind.EXTRACTION_ERROR,
        ),
        Resolution.FAILURE,
    )

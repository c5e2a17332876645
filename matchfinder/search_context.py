"""
The extraction side of a search: what runs inside one execution context.

Waits for the dispatch message, loads the search page, lets it settle, reads
the source product from the handoff store, extracts and selects, then
publishes exactly one result message tagged with its own context id.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger

from . import config
from .config import SearchOptions
from .extractors.registry import get_extractor
from .handoff import HandoffStore
from .messaging import MessageBus
from .pipeline_types import ContextMessage, ErrorKind, ExtractionOutcome, MessageKind
from .query import parse_search_url
from .selector import NO_MATCH_MESSAGE, select_best_match

PageLoader = Callable[[str], Awaitable[Optional[str]]]


async def run_search_context(
    context_id: str,
    url: str,
    inbox: "asyncio.Queue[ContextMessage]",
    bus: MessageBus,
    handoff: HandoffStore,
    page_loader: PageLoader,
    settle_delay_ms: int = config.CONTEXT_SETTLE_DELAY_MS,
) -> None:
    while True:
        msg = await inbox.get()
        if msg.kind is MessageKind.START_MATCH:
            break
        logger.debug("Context {} ignoring {} before dispatch", context_id, msg.kind.value)

    request_id = msg.request_id
    logger.info("Context {} starting request {}", context_id, request_id)
    try:
        result = await search_page(
            context_id, url, request_id, msg.payload, handoff, page_loader, settle_delay_ms
        )
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.exception("Context {} failed: {}", context_id, e)
        result = _error(context_id, request_id, str(e) or e.__class__.__name__)
    await bus.publish(result)


async def search_page(
    context_id: str,
    url: str,
    request_id: Optional[str],
    payload: dict,
    handoff: HandoffStore,
    page_loader: PageLoader,
    settle_delay_ms: int,
) -> ContextMessage:
    page = await page_loader(url)
    if not page:
        return _error(context_id, request_id, "Failed to load search page")

    # dynamic result tiles keep rendering after load
    if settle_delay_ms > 0:
        await asyncio.sleep(settle_delay_ms / 1000.0)

    if not await handoff.is_in_progress(request_id):
        return _error(context_id, request_id, "No match in progress for this request")
    source = await handoff.get_source_product(request_id)
    if source is None:
        return _error(context_id, request_id, "Source product missing from handoff state")

    options = SearchOptions.model_validate(payload.get("options") or {})
    marketplace, _ = parse_search_url(url)
    report = get_extractor(marketplace).extract_with_report(page)
    if report.outcome is not ExtractionOutcome.OK:
        return ContextMessage(
            kind=MessageKind.MATCH_NOT_FOUND,
            context_id=context_id,
            request_id=request_id,
            payload={
                "reason": NO_MATCH_MESSAGE,
                "error_kind": ErrorKind.NO_CANDIDATES.value,
                "outcome": report.outcome.value,
            },
        )

    result = select_best_match(
        source,
        report.candidates,
        min_similarity=options.min_similarity,
        on_below_threshold=options.on_below_threshold,
    )
    if not result.success:
        return ContextMessage(
            kind=MessageKind.MATCH_NOT_FOUND,
            context_id=context_id,
            request_id=request_id,
            payload={
                "reason": result.error or NO_MATCH_MESSAGE,
                "error_kind": (result.error_kind or ErrorKind.NO_CANDIDATES).value,
            },
        )
    return ContextMessage(
        kind=MessageKind.MATCH_FOUND,
        context_id=context_id,
        request_id=request_id,
        payload={
            "candidate": result.match.model_dump(mode="json"),
            "low_confidence": result.low_confidence,
        },
    )


def _error(context_id: str, request_id: Optional[str], message: str) -> ContextMessage:
    return ContextMessage(
        kind=MessageKind.MATCH_ERROR,
        context_id=context_id,
        request_id=request_id,
        payload={"message": message},
    )

import asyncio

from matchfinder.config import SearchOptions, SourceProduct
from matchfinder.handoff import MemoryHandoffStore
from matchfinder.messaging import MessageBus
from matchfinder.pipeline_types import ContextMessage, ErrorKind, MessageKind
from matchfinder.search_context import run_search_context

SEARCH_URL = "https://www.amazon.com/s?k=Acme%20Blue%20Widget%2010oz"


def _run(page, source=SourceProduct(title="Acme Blue Widget 10oz", brand="Acme"), put=True, options=None):
    bus = MessageBus()
    store = MemoryHandoffStore()

    async def loader(url):
        assert url == SEARCH_URL
        if isinstance(page, Exception):
            raise page
        return page

    async def scenario():
        sub = bus.subscribe()
        if put:
            await store.put("req-1", source)
        inbox = asyncio.Queue()
        # anything before the dispatch message is ignored
        inbox.put_nowait(ContextMessage(kind=MessageKind.MATCH_ERROR, context_id="ctx-1"))
        inbox.put_nowait(
            ContextMessage(
                kind=MessageKind.START_MATCH,
                context_id="ctx-1",
                request_id="req-1",
                payload={"options": (options or SearchOptions()).model_dump(mode="json")},
            )
        )
        await run_search_context("ctx-1", SEARCH_URL, inbox, bus, store, loader, settle_delay_ms=0)
        assert sub.pending() == 1
        return await sub.get()

    return asyncio.run(scenario())


def test_publishes_match_found_with_own_context_id(amazon_page):
    msg = _run(amazon_page)
    assert msg.kind is MessageKind.MATCH_FOUND
    assert msg.context_id == "ctx-1"
    assert msg.request_id == "req-1"
    assert msg.payload["candidate"]["title"] == "Acme Blue Widget 10oz"
    assert msg.payload["low_confidence"] is False


def test_publishes_not_found_for_empty_results():
    msg = _run("<html><body><p>No results</p></body></html>")
    assert msg.kind is MessageKind.MATCH_NOT_FOUND
    assert msg.payload["error_kind"] == ErrorKind.NO_CANDIDATES.value
    assert msg.payload["reason"] == "No suitable match found"


def test_below_threshold_fail_policy_reports_not_found(amazon_page):
    msg = _run(
        amazon_page,
        source=SourceProduct(title="Ceramic Table Lamp"),
        options=SearchOptions(min_similarity=0.9, on_below_threshold="fail"),
    )
    assert msg.kind is MessageKind.MATCH_NOT_FOUND
    assert msg.payload["error_kind"] == ErrorKind.BELOW_THRESHOLD.value


def test_failed_page_load_is_an_error():
    msg = _run(None)
    assert msg.kind is MessageKind.MATCH_ERROR
    assert "load" in msg.payload["message"]


def test_missing_handoff_state_is_an_error(amazon_page):
    msg = _run(amazon_page, put=False)
    assert msg.kind is MessageKind.MATCH_ERROR


def test_exceptions_become_error_messages():
    msg = _run(RuntimeError("renderer crashed"))
    assert msg.kind is MessageKind.MATCH_ERROR
    assert msg.payload["message"] == "renderer crashed"

import asyncio

from matchfinder.messaging import MessageBus
from matchfinder.pipeline_types import ContextMessage, MessageKind


def _msg(ctx="ctx-1", kind=MessageKind.MATCH_FOUND):
    return ContextMessage(kind=kind, context_id=ctx, request_id="req-1")


def test_publish_fans_out_to_all_subscribers():
    bus = MessageBus()

    async def scenario():
        a = bus.subscribe()
        b = bus.subscribe()
        delivered = await bus.publish(_msg())
        assert delivered == 2
        assert (await a.get()).context_id == "ctx-1"
        assert (await b.get()).context_id == "ctx-1"

    asyncio.run(scenario())


def test_subscription_context_manager_unsubscribes():
    bus = MessageBus()

    async def scenario():
        async with bus.subscribe() as sub:
            assert bus.subscriber_count == 1
            await bus.publish(_msg())
            assert sub.pending() == 1
        assert bus.subscriber_count == 0
        assert await bus.publish(_msg()) == 0
        assert sub.pending() == 1

    asyncio.run(scenario())


def test_message_is_result():
    assert _msg(kind=MessageKind.MATCH_ERROR).is_result
    assert not _msg(kind=MessageKind.START_MATCH).is_result

import asyncio

import pytest

from burrow.bus import BusClosed, InboundMessage, Lagged, MessageBus, OutboundMessage, SystemLog
from tests.conftest import make_message


class TestMessageBus:
    @pytest.mark.asyncio
    async def test_broadcast_to_all_subscribers(self):
        bus = MessageBus()
        first, second = bus.subscribe(), bus.subscribe()
        event = InboundMessage(make_message("hi"))
        assert bus.publish(event) == 2
        assert await first.recv() is event
        assert await second.recv() is event

    @pytest.mark.asyncio
    async def test_no_subscribers(self):
        assert MessageBus().publish(SystemLog("info", "nobody")) == 0

    @pytest.mark.asyncio
    async def test_recv_waits_for_publish(self):
        bus = MessageBus()
        sub = bus.subscribe()
        task = asyncio.create_task(sub.recv())
        await asyncio.sleep(0)
        assert not task.done()
        event = OutboundMessage(make_message("later"))
        bus.publish(event)
        assert await asyncio.wait_for(task, timeout=1) is event

    @pytest.mark.asyncio
    async def test_lagged_then_resumes_with_oldest_retained(self):
        bus = MessageBus(capacity=2)
        sub = bus.subscribe()
        events = [SystemLog("info", str(i)) for i in range(5)]
        for e in events:
            bus.publish(e)

        with pytest.raises(Lagged) as exc_info:
            await sub.recv()
        assert exc_info.value.count == 3
        assert await sub.recv() is events[3]
        assert await sub.recv() is events[4]

    @pytest.mark.asyncio
    async def test_close_drains_then_raises(self):
        bus = MessageBus()
        sub = bus.subscribe()
        event = SystemLog("info", "last")
        bus.publish(event)
        bus.close()
        assert await sub.recv() is event
        with pytest.raises(BusClosed):
            await sub.recv()

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_receiver(self):
        bus = MessageBus()
        sub = bus.subscribe()
        task = asyncio.create_task(sub.recv())
        await asyncio.sleep(0)
        bus.close()
        with pytest.raises(BusClosed):
            await asyncio.wait_for(task, timeout=1)

    def test_publish_after_close_raises(self):
        bus = MessageBus()
        bus.close()
        with pytest.raises(BusClosed):
            bus.publish(SystemLog("info", "x"))

    @pytest.mark.asyncio
    async def test_async_iteration_stops_on_close(self):
        bus = MessageBus()
        sub = bus.subscribe()
        bus.publish(SystemLog("info", "a"))
        bus.publish(SystemLog("info", "b"))
        bus.close()
        assert [e.message async for e in sub] == ["a", "b"]

    def test_unsubscribe(self):
        bus = MessageBus()
        sub = bus.subscribe()
        sub.unsubscribe()
        assert bus.publish(SystemLog("info", "x")) == 0

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            MessageBus(capacity=0)

import asyncio
from collections import deque
from dataclasses import dataclass

from burrow.constants import BUS_CAPACITY
from burrow.types import Message


@dataclass(frozen=True)
class InboundMessage:
    message: Message


@dataclass(frozen=True)
class OutboundMessage:
    message: Message


@dataclass(frozen=True)
class SystemLog:
    level: str
    message: str


type BusEvent = InboundMessage | OutboundMessage | SystemLog


class BusClosed(Exception):
    pass


class Lagged(Exception):
    def __init__(self, count: int):
        self.count = count
        super().__init__(f"Subscriber lagged, {count} events dropped")


class Subscription:
    """One receiver's view of the bus.

    Holds at most ``capacity`` undelivered events. When full, the oldest
    event is dropped and the next ``recv`` raises ``Lagged`` once before
    delivery resumes with the oldest retained event.
    """

    def __init__(self, bus: "MessageBus", capacity: int):
        self._bus = bus
        self._buffer: deque[BusEvent] = deque()
        self._capacity = capacity
        self._ready = asyncio.Event()
        self._dropped = 0
        self._closed = False

    def _push(self, event: BusEvent) -> None:
        if len(self._buffer) >= self._capacity:
            self._buffer.popleft()
            self._dropped += 1
        self._buffer.append(event)
        self._ready.set()

    def _close(self) -> None:
        self._closed = True
        self._ready.set()

    async def recv(self) -> BusEvent:
        while True:
            if self._dropped:
                count, self._dropped = self._dropped, 0
                raise Lagged(count)
            if self._buffer:
                return self._buffer.popleft()
            if self._closed:
                raise BusClosed()
            self._ready.clear()
            await self._ready.wait()

    def unsubscribe(self) -> None:
        self._bus._detach(self)
        self._close()

    def __aiter__(self):
        return self

    async def __anext__(self) -> BusEvent:
        try:
            return await self.recv()
        except BusClosed:
            raise StopAsyncIteration from None

    @property
    def pending(self) -> int:
        return len(self._buffer)


class MessageBus:
    def __init__(self, capacity: int = BUS_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._subscribers: list[Subscription] = []
        self._closed = False

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self.capacity)
        if self._closed:
            sub._close()
        else:
            self._subscribers.append(sub)
        return sub

    def publish(self, event: BusEvent) -> int:
        """Deliver ``event`` to every current subscriber and return how many received it."""
        if self._closed:
            raise BusClosed()
        for sub in self._subscribers:
            sub._push(event)
        return len(self._subscribers)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for sub in self._subscribers:
            sub._close()
        self._subscribers.clear()

    def _detach(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def receiver_count(self) -> int:
        return len(self._subscribers)

from dataclasses import dataclass
from typing import AsyncIterator, Protocol, runtime_checkable


@dataclass(frozen=True)
class Delivery:
    """One message handed to the consumer by the broker."""

    queue: str
    delivery_tag: str
    body: bytes
    content_type: str = ""


@runtime_checkable
class QueueClient(Protocol):
    """Broker capability used by the worker.

    Deliveries are acknowledged manually; anything consumed but not acked
    is handed out again by `consume` after a restart.
    """

    async def connect(self) -> None: ...

    async def close(self) -> None: ...

    async def declare_queue(self, name: str, consume: bool = True) -> None: ...

    def consume(self, name: str) -> AsyncIterator[Delivery]: ...

    async def ack(self, delivery: Delivery) -> None: ...

    async def publish(self, name: str, body: bytes, content_type: str) -> None: ...

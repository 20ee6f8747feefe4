"""Test doubles shared across the suite."""

from __future__ import annotations

from typing import Any

import bson

from app.errors import AckError, PublishError
from infra.queue_infra.client import Delivery


def request_doc(**overrides: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "chat_id": 42,
        "file": b"hello world",
        "file_id": "doc1",
        "from_filetype": "docx",
        "to_filetype": "plain",
    }
    doc.update(overrides)
    return doc


def request_bytes(**overrides: Any) -> bytes:
    return bson.encode(request_doc(**overrides))


def make_delivery(body: bytes, tag: str = "1-0", queue: str = "pandoc-bot-jobs") -> Delivery:
    return Delivery(queue=queue, delivery_tag=tag, body=body, content_type="application/bson")


class FakeQueueClient:
    """In-memory QueueClient that records every broker interaction."""

    def __init__(
        self,
        deliveries: list[Delivery] | None = None,
        fail_publish: bool = False,
        fail_ack: bool = False,
    ) -> None:
        self.deliveries = list(deliveries or [])
        self.fail_publish = fail_publish
        self.fail_ack = fail_ack
        self.events: list[tuple[str, str]] = []
        self.acked: list[str] = []
        self.published: list[tuple[str, bytes, str]] = []
        self.declared: list[tuple[str, bool]] = []
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True

    async def declare_queue(self, name: str, consume: bool = True) -> None:
        self.declared.append((name, consume))

    async def consume(self, name: str):
        for delivery in self.deliveries:
            yield delivery

    async def ack(self, delivery: Delivery) -> None:
        self.events.append(("ack", delivery.delivery_tag))
        if self.fail_ack:
            raise AckError("broker went away")
        self.acked.append(delivery.delivery_tag)

    async def publish(self, name: str, body: bytes, content_type: str) -> None:
        self.events.append(("publish", name))
        if self.fail_publish:
            raise PublishError("connection reset")
        self.published.append((name, body, content_type))

from typing import AsyncIterator, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError, ResponseError

import config
from app.errors import AckError, PublishError
from infra.queue_infra.client import Delivery
from utils import get_logger

logger = get_logger(__name__)


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class RedisStreamClient:
    """QueueClient backed by Redis Streams and a consumer group.

    Each queue is a stream. A message is an entry with `content_type` and
    `body` fields; its entry id is the delivery tag, and XACK acknowledges it.
    """

    def __init__(
        self,
        url: str = "",
        password: Optional[str] = None,
        group: str = "",
        consumer: str = "",
        block_ms: int = 5000,
        claim_idle_ms: Optional[int] = None,
    ):
        self.url = url or config.REDIS_URL
        self.password = password if password is not None else config.REDIS_PASSWORD
        self.group = group or config.CONSUMER_GROUP
        self.consumer = consumer or config.CONSUMER_NAME
        self.block_ms = block_ms
        self.claim_idle_ms = claim_idle_ms if claim_idle_ms is not None else config.CLAIM_IDLE_MS
        self._redis: Optional[redis.Redis] = None

    @property
    def redis(self) -> redis.Redis:
        if self._redis is None:
            raise RuntimeError("RedisStreamClient is not connected")
        return self._redis

    async def connect(self) -> None:
        logger.info(f"Connecting to Redis as consumer {self.consumer} of group {self.group}")
        self._redis = redis.from_url(self.url, password=self.password)
        await self._redis.ping()

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis connection closed.")

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def declare_queue(self, name: str, consume: bool = True) -> None:
        """Create the stream, and this worker's group on it when it is consumed."""
        try:
            await self.redis.xgroup_create(name, self.group, id="0", mkstream=True)
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise
            logger.debug(f"Queue {name} already declared")
            return
        if not consume:
            # MKSTREAM needs a group; a publish-only stream keeps none
            await self.redis.xgroup_destroy(name, self.group)
        logger.info(f"Declared queue {name}")

    async def claim_stale(self, name: str) -> int:
        """Take over entries other consumers left unacknowledged for too long.

        Claimed entries join this consumer's pending list, so the backlog
        pass of `consume` hands them out.
        """
        claimed = 0
        start = "0-0"
        while True:
            try:
                res = await self.redis.xautoclaim(
                    name, self.group, self.consumer, self.claim_idle_ms, start_id=start, count=100
                )
            except ResponseError as e:
                logger.warning(f"Could not claim stale deliveries on {name}: {e}")
                return claimed
            start = _text(res[0])
            claimed += len(res[1])
            if start == "0-0":
                break
        if claimed:
            logger.info(f"Claimed {claimed} stale deliveries on {name}")
        return claimed

    async def consume(self, name: str) -> AsyncIterator[Delivery]:
        """Yield deliveries from `name`, starting with this consumer's unacked backlog."""
        await self.claim_stale(name)
        last_id = "0"
        while True:
            backlog = last_id != ">"
            res = await self.redis.xreadgroup(
                self.group,
                self.consumer,
                {name: last_id},
                count=1,
                block=None if backlog else self.block_ms,
            )
            entries = res[0][1] if res else []
            if not entries:
                if backlog:
                    logger.info(f"No pending deliveries left on {name}, waiting for new ones")
                    last_id = ">"
                continue

            for entry_id, fields in entries:
                tag = _text(entry_id)
                if backlog:
                    last_id = tag
                    logger.info(f"Redelivering unacknowledged message {tag} from {name}")
                if not fields:
                    # trimmed from the stream while pending
                    logger.warning(f"Message {tag} on {name} has no payload, acking it away")
                    await self.redis.xack(name, self.group, tag)
                    continue
                yield Delivery(
                    queue=name,
                    delivery_tag=tag,
                    body=fields.get(b"body", b""),
                    content_type=_text(fields.get(b"content_type", b"")),
                )

    async def ack(self, delivery: Delivery) -> None:
        try:
            await self.redis.xack(delivery.queue, self.group, delivery.delivery_tag)
        except RedisError as e:
            raise AckError(f"Failed to ack {delivery.delivery_tag} on {delivery.queue}: {e}") from e

    async def publish(self, name: str, body: bytes, content_type: str) -> None:
        try:
            await self.redis.xadd(name, {"content_type": content_type, "body": body})
        except RedisError as e:
            raise PublishError(f"Failed to publish to {name}: {e}") from e

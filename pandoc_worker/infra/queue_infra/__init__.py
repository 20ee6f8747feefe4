from infra.queue_infra.client import Delivery, QueueClient
from infra.queue_infra.redis_client import RedisStreamClient

__all__ = ["Delivery", "QueueClient", "RedisStreamClient"]

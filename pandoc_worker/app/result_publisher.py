import traceback
from dataclasses import dataclass
from typing import Optional

import config
from app.errors import PublishError
from app.models import ConversionOutcome, Success
from infra.document_infra.codec import RequestCodec
from infra.queue_infra.client import QueueClient
from utils import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PublishResult:
    success: bool
    error: Optional[str] = None


class ResultPublisher:
    """Sends conversion outcomes to the output queue.

    Transport failures are reported in the returned PublishResult, never
    raised; acknowledging the inbound delivery is left to the caller.
    """

    def __init__(self, client: QueueClient, queue_name: str = ""):
        self.client = client
        self.queue_name = queue_name or config.OUTPUT_QUEUE_NAME

    async def publish(self, outcome: ConversionOutcome) -> PublishResult:
        kind = "success" if isinstance(outcome, Success) else "failure"
        body = RequestCodec.encode(outcome)
        try:
            await self.client.publish(self.queue_name, body, RequestCodec.content_type)
        except PublishError as e:
            logger.error(f"Could not publish {kind} for chat {outcome.chat_id}: {e}")
            return PublishResult(success=False, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error publishing {kind} for chat {outcome.chat_id}: {e}")
            logger.error(f"Traceback:\n{traceback.format_exc()}")
            return PublishResult(success=False, error=str(e))

        logger.info(f"Replied to {self.queue_name} with {kind} for chat {outcome.chat_id} ({len(body)} bytes)")
        return PublishResult(success=True)

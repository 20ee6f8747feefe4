import asyncio
import traceback
from typing import Optional

import config
from app.pipeline import JobPipeline
from infra.document_infra.stager import FileStager
from infra.queue_infra.client import Delivery, QueueClient
from infra.queue_infra.redis_client import RedisStreamClient
from utils import get_logger

logger = get_logger(__name__)

RECONNECT_DELAY = 5


async def run_job(pipeline: JobPipeline, delivery: Delivery) -> None:
    """Run one delivery through the pipeline without letting it take the loop down."""
    try:
        state = await pipeline.handle(delivery)
        logger.info(f"Delivery {delivery.delivery_tag} finished as {state.value}")
    except Exception as e:
        logger.error(f"Unexpected error handling delivery {delivery.delivery_tag}: {e}")
        logger.error(f"Traceback:\n{traceback.format_exc()}")


async def consume_deliveries(
    client: QueueClient,
    pipeline: JobPipeline,
    queue_name: str,
    max_concurrent_jobs: int = 1,
) -> None:
    """Dispatch deliveries from `queue_name` in broker order.

    With max_concurrent_jobs == 1 each job finishes before the next delivery
    is read. Higher values keep up to that many jobs running at once. Jobs
    already started are awaited even if the loop is cancelled.
    """
    slots = asyncio.Semaphore(max_concurrent_jobs)
    in_flight: set = set()

    async def _guarded(delivery: Delivery) -> None:
        try:
            await run_job(pipeline, delivery)
        finally:
            slots.release()

    try:
        async for delivery in client.consume(queue_name):
            await slots.acquire()
            task = asyncio.create_task(_guarded(delivery))
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
            if max_concurrent_jobs == 1:
                await asyncio.shield(task)
    finally:
        if in_flight:
            logger.info(f"Waiting for {len(in_flight)} in-flight job(s) to finish")
            await asyncio.gather(*in_flight, return_exceptions=True)


async def redis_main_loop(
    client: Optional[QueueClient] = None,
    pipeline: Optional[JobPipeline] = None,
):
    """Main loop for processing conversion jobs.
    Declares the input and output queues, then consumes jobs until cancelled.
    Broker errors are logged and consumption resumes after a short delay.
    """
    client = client or RedisStreamClient()
    await client.connect()
    try:
        await client.declare_queue(config.INPUT_QUEUE_NAME)
        await client.declare_queue(config.OUTPUT_QUEUE_NAME, consume=False)
        logger.info("declared queues")

        if pipeline is None:
            stager = FileStager(config.WORK_DIR, unique=config.MAX_CONCURRENT_JOBS > 1)
            pipeline = JobPipeline(client, stager=stager)

        logger.info(f" start consuming {config.INPUT_QUEUE_NAME}")
        while True:
            try:
                await consume_deliveries(
                    client, pipeline, config.INPUT_QUEUE_NAME, config.MAX_CONCURRENT_JOBS
                )
                logger.info("Delivery stream ended")
                return
            except Exception as e:
                logger.error(f" Unexpected error in main loop: {e}")
                logger.error(f"Traceback:\n{traceback.format_exc()}")
                await asyncio.sleep(RECONNECT_DELAY)
    finally:
        await client.close()


if __name__ == '__main__':
    asyncio.run(redis_main_loop())

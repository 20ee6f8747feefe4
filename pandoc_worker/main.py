"""
Main entry point for the pandoc worker.
Validates configuration, then consumes conversion jobs until SIGINT/SIGTERM.
"""
import asyncio
import signal
import sys

import config
from app.errors import StartupError
from app.redis_worker import redis_main_loop
from utils import get_logger

logger = get_logger(__name__)


async def serve():
    """Run the worker loop; a shutdown signal lets in-flight jobs finish first."""
    logger.info("=" * 60)
    logger.info("Starting pandoc worker")
    logger.info(f"  - input queue: {config.INPUT_QUEUE_NAME}")
    logger.info(f"  - output queue: {config.OUTPUT_QUEUE_NAME}")
    logger.info(f"  - ack mode: {config.ACK_MODE}, concurrency: {config.MAX_CONCURRENT_JOBS}")
    logger.info("=" * 60)

    worker = asyncio.create_task(redis_main_loop())

    def shutdown_handler():
        logger.info("Shutting down worker...")
        worker.cancel()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_handler)

    try:
        await worker
    except asyncio.CancelledError:
        logger.info("✓ Worker stopped")


def run() -> int:
    try:
        config.validate()
    except StartupError as e:
        logger.error(f"{e}")
        return 1

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("✓ Shutdown complete")
    except Exception as e:
        logger.error(f"Worker terminated: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())

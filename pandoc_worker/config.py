import os
import socket
from dotenv import load_dotenv

from app.errors import StartupError

load_dotenv()

REDIS_URL = os.getenv("REDIS_URL")
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
INPUT_QUEUE_NAME = os.getenv("INPUT_QUEUE_NAME", "pandoc-bot-jobs")
OUTPUT_QUEUE_NAME = os.getenv("OUTPUT_QUEUE_NAME", "pandoc-outputs")
CONSUMER_GROUP = os.getenv("CONSUMER_GROUP", "pandoc-worker")
CONSUMER_NAME = os.getenv("CONSUMER_NAME", socket.gethostname())

PANDOC_BIN = os.getenv("PANDOC_BIN", "pandoc")
CONVERSION_TIMEOUT = float(os.getenv("CONVERSION_TIMEOUT", "300"))
# unacked deliveries idle this long are taken over from other (dead) consumers
CLAIM_IDLE_MS = int(os.getenv("CLAIM_IDLE_MS", str(int((CONVERSION_TIMEOUT + 60) * 1000))))
WORK_DIR = os.getenv("WORK_DIR", ".")

# "staged": ack right after the input is written (at-most-once for the tail)
# "published": ack only once the outcome reached the output queue
ACK_MODE = os.getenv("ACK_MODE", "staged")
PUBLISH_FAILURES = os.getenv("PUBLISH_FAILURES", "true").lower() in {"1", "true", "yes", "on"}
MAX_CONCURRENT_JOBS = int(os.getenv("MAX_CONCURRENT_JOBS", "1"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/worker.log")

ACK_MODES = ("staged", "published")


def validate() -> None:
    """Fail fast on settings the worker cannot start without."""
    if not REDIS_URL:
        raise StartupError("No REDIS_URL provided")
    if ACK_MODE not in ACK_MODES:
        raise StartupError(f"ACK_MODE must be one of {ACK_MODES}, got {ACK_MODE!r}")
    if CONVERSION_TIMEOUT <= 0:
        raise StartupError("CONVERSION_TIMEOUT must be positive")
    if CLAIM_IDLE_MS < 0:
        raise StartupError("CLAIM_IDLE_MS cannot be negative")
    if MAX_CONCURRENT_JOBS < 1:
        raise StartupError("MAX_CONCURRENT_JOBS must be at least 1")

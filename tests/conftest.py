"""
Global test configuration.

Settings are read from the environment when `config` is imported, so the
test defaults are put in place before any project module loads. A
developer's .env must not leak in either: `config` binds `load_dotenv` at
import time, so the no-op replaces it here rather than in a fixture.
"""

import os
import sys
from pathlib import Path

import dotenv

dotenv.load_dotenv = lambda *_args, **_kwargs: False

TEST_ENV = {
    "INPUT_QUEUE_NAME": "pandoc-bot-jobs",
    "OUTPUT_QUEUE_NAME": "pandoc-outputs",
    "CONSUMER_GROUP": "pandoc-worker",
    "PANDOC_BIN": "pandoc",
    "CONVERSION_TIMEOUT": "300",
    "WORK_DIR": ".",
    "ACK_MODE": "staged",
    "PUBLISH_FAILURES": "true",
    "MAX_CONCURRENT_JOBS": "1",
    "LOG_LEVEL": "DEBUG",
    "LOG_FILE": "",
}
os.environ.update(TEST_ENV)
for _name in ("REDIS_URL", "REDIS_PASSWORD", "CONSUMER_NAME", "CLAIM_IDLE_MS"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402

from infra.document_infra.converter import ConversionRunner  # noqa: E402
from infra.document_infra.stager import FileStager  # noqa: E402
from tests.helpers import FakeQueueClient  # noqa: E402

FAKE_PANDOC = Path(__file__).parent / "fake_pandoc.py"


@pytest.fixture
def fake_pandoc_cmd() -> tuple[str, str]:
    return (sys.executable, str(FAKE_PANDOC))


@pytest.fixture
def converter_mode(monkeypatch):
    """Select how the fake converter behaves for the current test."""

    def _set(mode: str) -> None:
        monkeypatch.setenv("FAKE_PANDOC_MODE", mode)

    _set("ok")
    return _set


@pytest.fixture
def runner(fake_pandoc_cmd, converter_mode) -> ConversionRunner:
    return ConversionRunner(command=fake_pandoc_cmd, timeout=10)


@pytest.fixture
def stager(tmp_path) -> FileStager:
    return FileStager(tmp_path)


@pytest.fixture
def queue() -> FakeQueueClient:
    return FakeQueueClient()

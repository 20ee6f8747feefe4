"""Tests for staging job inputs on disk."""

from __future__ import annotations

import pytest

from app.errors import JobIOError
from app.models import ConversionRequest
from infra.document_infra.stager import FileStager
from tests.helpers import request_doc


def _request(**overrides) -> ConversionRequest:
    return ConversionRequest(**request_doc(**overrides))


@pytest.mark.asyncio
async def test_stage_writes_file_named_by_file_id(stager, tmp_path):
    path = await stager.stage(_request())
    assert path == tmp_path / "doc1"
    assert path.read_bytes() == b"hello world"


@pytest.mark.asyncio
async def test_second_stage_overwrites_first(stager):
    await stager.stage(_request(file=b"first version, longer"))
    path = await stager.stage(_request(file=b"second"))
    assert path.read_bytes() == b"second"


@pytest.mark.asyncio
async def test_creates_missing_work_dir(tmp_path):
    stager = FileStager(tmp_path / "scratch" / "jobs")
    path = await stager.stage(_request())
    assert path.exists()


@pytest.mark.asyncio
async def test_directory_collision_raises(stager, tmp_path):
    (tmp_path / "doc1").mkdir()
    with pytest.raises(JobIOError, match="doc1"):
        await stager.stage(_request())
    assert (tmp_path / "doc1").is_dir()


def test_output_path_suffix(tmp_path):
    assert FileStager.output_path(tmp_path / "doc1") == tmp_path / "doc1.out"


@pytest.mark.asyncio
async def test_release_removes_input_and_output(stager, tmp_path):
    path = await stager.stage(_request())
    FileStager.output_path(path).write_bytes(b"converted")
    await stager.release(path)
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_release_tolerates_missing_files(stager, tmp_path):
    await stager.release(tmp_path / "never-staged")


@pytest.mark.asyncio
async def test_staged_context_cleans_up_on_error(stager, tmp_path):
    with pytest.raises(RuntimeError):
        async with stager.staged(_request()) as path:
            assert path.exists()
            raise RuntimeError("boom")
    assert not (tmp_path / "doc1").exists()


@pytest.mark.asyncio
async def test_unique_names_do_not_collide(tmp_path):
    stager = FileStager(tmp_path, unique=True)
    first = await stager.stage(_request(file=b"one"))
    second = await stager.stage(_request(file=b"two"))
    assert first != second
    assert first.name.startswith("doc1.")
    assert first.read_bytes() == b"one"
    assert second.read_bytes() == b"two"

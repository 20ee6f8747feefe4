import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Union

import aiofiles
import aiofiles.os

from app.errors import JobIOError
from app.models import ConversionRequest
from utils import get_logger

logger = get_logger(__name__)

OUTPUT_SUFFIX = ".out"


class FileStager:
    """Writes job inputs where the converter can read them.

    The staged name is the request's file_id. With `unique=True` a random
    suffix is appended so concurrent jobs sharing a file_id get their own path.
    """

    def __init__(self, work_dir: Union[str, Path] = ".", unique: bool = False):
        self.work_dir = Path(work_dir)
        self.unique = unique

    def input_path(self, request: ConversionRequest) -> Path:
        name = request.file_id
        if self.unique:
            name = f"{name}.{uuid.uuid4().hex[:12]}"
        return self.work_dir / name

    @staticmethod
    def output_path(input_path: Path) -> Path:
        return input_path.with_name(input_path.name + OUTPUT_SUFFIX)

    async def stage(self, request: ConversionRequest) -> Path:
        path = self.input_path(request)
        try:
            await aiofiles.os.makedirs(self.work_dir, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(request.file)
        except OSError as e:
            # drop a partial write, never a directory sitting on the path
            if await aiofiles.os.path.isfile(path):
                await self.release(path)
            raise JobIOError(f"Failed to stage {request.file_id} at {path}: {e}") from e
        logger.info(f"Staged {len(request.file)} bytes for {request.file_id} at {path}")
        return path

    async def release(self, input_path: Path) -> None:
        """Delete the staged input and the converter output, if present."""
        for path in (input_path, self.output_path(input_path)):
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to delete scratch file {path}: {e}")

    @asynccontextmanager
    async def staged(self, request: ConversionRequest) -> AsyncIterator[Path]:
        path = await self.stage(request)
        try:
            yield path
        finally:
            await self.release(path)

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

import aiofiles

import config
from app.errors import ConversionError, ConversionTimeout, JobIOError
from infra.document_infra.stager import FileStager
from utils import get_logger

logger = get_logger(__name__)


class RunnerState(str, Enum):
    idle = "idle"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


@dataclass(frozen=True)
class RunResult:
    exit_code: int
    stdout: bytes
    stderr: bytes
    output_path: Path

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def state(self) -> RunnerState:
        return RunnerState.succeeded if self.succeeded else RunnerState.failed

    @property
    def diagnostic(self) -> str:
        """Everything the converter printed, decoded leniently."""
        return (
            self.stdout.decode("utf-8", errors="replace")
            + self.stderr.decode("utf-8", errors="replace")
        )


class ConversionRunner:
    """Runs the external converter as a subprocess and waits for it.

    The command line is `<command...> <input> -o <input>.out --from <fmt> --to <fmt>`.
    A zero exit status is the only success signal.
    """

    def __init__(self, command: Optional[Sequence[str]] = None, timeout: Optional[float] = None):
        self.command = tuple(command) if command else (config.PANDOC_BIN,)
        self.timeout = timeout if timeout is not None else config.CONVERSION_TIMEOUT
        self.state = RunnerState.idle

    def build_args(self, input_path: Path, from_format: str, to_format: str) -> list:
        # absolute paths never parse as converter options
        input_path = Path(input_path).resolve()
        output_path = FileStager.output_path(input_path)
        return [
            *self.command,
            str(input_path),
            "-o",
            str(output_path),
            "--from",
            from_format,
            "--to",
            to_format,
        ]

    async def run(self, input_path: Path, from_format: str, to_format: str) -> RunResult:
        args = self.build_args(input_path, from_format, to_format)
        output_path = FileStager.output_path(Path(input_path).resolve())
        logger.debug(f"Spawning converter: {args}")

        self.state = RunnerState.running
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            # ValueError: an argument the OS cannot pass, e.g. embedded NUL
            self.state = RunnerState.failed
            raise ConversionError(f"Could not start converter {self.command[0]}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            self.state = RunnerState.failed
            raise ConversionTimeout(
                f"Converter timed out after {self.timeout:g}s on {input_path.name}"
            )

        result = RunResult(
            exit_code=proc.returncode,
            stdout=stdout or b"",
            stderr=stderr or b"",
            output_path=output_path,
        )
        self.state = result.state
        if result.succeeded:
            logger.info(f"Converter succeeded for {input_path.name}")
        else:
            logger.warning(f"Converter exited with code {result.exit_code} for {input_path.name}")
        return result

    @staticmethod
    async def read_output(result: RunResult) -> bytes:
        """Read back the converted file of a successful run."""
        if not result.succeeded:
            raise ConversionError(
                f"Converter exited with code {result.exit_code}",
                exit_code=result.exit_code,
                diagnostic=result.diagnostic,
            )
        try:
            async with aiofiles.open(result.output_path, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise JobIOError(f"Could not read converter output {result.output_path}: {e}") from e
        if not data:
            raise JobIOError(f"Converter produced an empty file at {result.output_path}")
        return data

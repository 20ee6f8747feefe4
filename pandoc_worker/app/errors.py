"""Error kinds raised by the worker.

Everything but StartupError is contained to the job that raised it.
"""
from typing import Optional


class WorkerError(Exception):
    """Base class for all worker errors."""


class StartupError(WorkerError):
    """Required configuration is missing or invalid; the process must exit."""


class DecodeError(WorkerError):
    """The delivery payload is not a well-formed conversion request."""


class JobIOError(WorkerError):
    """Staging the input or reading back the converter output failed."""


class ConversionError(WorkerError):
    """The converter could not be run or exited with a non-zero status."""

    def __init__(self, message: str, exit_code: Optional[int] = None, diagnostic: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.diagnostic = diagnostic


class ConversionTimeout(ConversionError):
    """The converter did not finish within the configured timeout."""


class PublishError(WorkerError):
    """Sending a message to the broker failed."""


class AckError(WorkerError):
    """Acknowledging a delivery to the broker failed."""

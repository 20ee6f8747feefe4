from infra.document_infra.codec import CONTENT_TYPE, RequestCodec
from infra.document_infra.converter import ConversionRunner, RunResult, RunnerState
from infra.document_infra.stager import FileStager

__all__ = [
    "CONTENT_TYPE",
    "ConversionRunner",
    "FileStager",
    "RequestCodec",
    "RunResult",
    "RunnerState",
]

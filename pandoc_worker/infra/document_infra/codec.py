import bson
from bson.int64 import Int64
from pydantic import ValidationError

from app.errors import DecodeError
from app.models import ConversionOutcome, ConversionRequest, Failure, Success

CONTENT_TYPE = "application/bson"


def _validation_summary(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
        for err in e.errors()
    )


def _load(data: bytes) -> dict:
    try:
        return bson.decode(data)
    except Exception as e:
        raise DecodeError(f"Payload is not a BSON document: {e}") from e


class RequestCodec:
    """BSON envelope for conversion jobs and their results.

    Results are untagged on the wire: a success carries `file`, a failure
    carries `error_message`.
    """

    content_type = CONTENT_TYPE

    @staticmethod
    def decode(data: bytes) -> ConversionRequest:
        doc = _load(data)
        try:
            return ConversionRequest(
                chat_id=doc.get("chat_id"),
                file_id=doc.get("file_id"),
                file=doc.get("file"),
                from_filetype=doc.get("from_filetype"),
                to_filetype=doc.get("to_filetype"),
            )
        except ValidationError as e:
            raise DecodeError(f"Invalid conversion request: {_validation_summary(e)}") from e

    @staticmethod
    def encode_request(request: ConversionRequest) -> bytes:
        return bson.encode({
            "chat_id": Int64(request.chat_id),
            "file": request.file,
            "file_id": request.file_id,
            "from_filetype": request.from_filetype,
            "to_filetype": request.to_filetype,
        })

    @staticmethod
    def encode(outcome: ConversionOutcome) -> bytes:
        if isinstance(outcome, Success):
            return bson.encode({
                "chat_id": Int64(outcome.chat_id),
                "file": outcome.output_bytes,
                "to_filetype": outcome.to_filetype,
            })
        if isinstance(outcome, Failure):
            return bson.encode({
                "chat_id": Int64(outcome.chat_id),
                "error_message": outcome.error_message,
            })
        raise TypeError(f"Unknown outcome type: {type(outcome).__name__}")

    @staticmethod
    def decode_outcome(data: bytes) -> ConversionOutcome:
        doc = _load(data)
        try:
            if "file" in doc:
                return Success(
                    chat_id=doc.get("chat_id"),
                    to_filetype=doc.get("to_filetype"),
                    output_bytes=doc.get("file"),
                )
            if "error_message" in doc:
                return Failure(chat_id=doc.get("chat_id"), error_message=doc.get("error_message"))
        except ValidationError as e:
            raise DecodeError(f"Invalid conversion result: {_validation_summary(e)}") from e
        raise DecodeError("Result carries neither 'file' nor 'error_message'")

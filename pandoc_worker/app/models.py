"""Job and outcome models shared by the pipeline stages."""
from enum import Enum
from typing import Annotated, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def _check_chat_id(v):
    # bool is an int subclass; BSON Int64 is too and must pass
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError("chat_id must be an integer")
    if not INT64_MIN <= v <= INT64_MAX:
        raise ValueError("chat_id does not fit in 64 bits")
    return int(v)


ChatId = Annotated[int, BeforeValidator(_check_chat_id)]


class JobState(str, Enum):
    """Lifecycle states of one delivery inside the pipeline."""

    received = "received"
    staged = "staged"
    converting = "converting"
    completed = "completed"
    failed = "failed"


class ConversionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    chat_id: ChatId
    file_id: str = Field(min_length=1)
    file: bytes = Field(min_length=1)
    from_filetype: str = Field(min_length=1)
    to_filetype: str = Field(min_length=1)

    @field_validator("file", mode="before")
    @classmethod
    def validate_file(cls, v):
        if not isinstance(v, (bytes, bytearray)):
            raise ValueError("file must be binary")
        return bytes(v)

    @field_validator("file_id", "from_filetype", "to_filetype", mode="before")
    @classmethod
    def validate_token(cls, v):
        if not isinstance(v, str):
            raise ValueError("must be a string")
        if not v.strip():
            raise ValueError("cannot be empty or whitespace")
        # every token ends up in the converter's argv
        if "\x00" in v:
            raise ValueError("cannot contain NUL")
        return v

    @field_validator("file_id")
    @classmethod
    def validate_file_id(cls, v: str) -> str:
        # file_id names a file in the working directory
        if v in (".", "..") or "/" in v or "\\" in v:
            raise ValueError("file_id must be a plain file name")
        # would be read as an option by the converter
        if v.startswith("-"):
            raise ValueError("file_id cannot start with '-'")
        return v


class Success(BaseModel):
    model_config = ConfigDict(frozen=True)

    chat_id: ChatId
    to_filetype: str = Field(min_length=1)
    output_bytes: bytes = Field(min_length=1)


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    chat_id: ChatId
    error_message: str


ConversionOutcome = Union[Success, Failure]

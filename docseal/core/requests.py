"""Input models validated before any storage or datastore access."""

import uuid
from typing import Annotated, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError

from docseal.core.errors import NotFoundError, ValidationError
from docseal.core.hashing import validate_email
from docseal.core.models import PDF_CONTENT_TYPE

M = TypeVar("M", bound=BaseModel)

Percent = Annotated[float, Field(ge=0, le=100, allow_inf_nan=False)]


class UploadRequest(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    content_type: str
    max_size_bytes: int = Field(gt=0)
    size_bytes: int = Field(gt=0)

    @field_validator("content_type")
    @classmethod
    def require_pdf(cls, value: str) -> str:
        if value.lower() != PDF_CONTENT_TYPE:
            raise ValueError("Invalid file type, only PDF files are allowed")
        return value.lower()

    @field_validator("size_bytes")
    @classmethod
    def within_limit(cls, value: int, info: ValidationInfo) -> int:
        limit = info.data.get("max_size_bytes")
        if limit is not None and value > limit:
            raise ValueError("File size exceeds limit")
        return value


class PlacementRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    page_number: StrictInt = Field(ge=1)
    x_percent: Percent
    y_percent: Percent


class PublicPlacementRequest(PlacementRequest):
    signer_email: str

    @field_validator("signer_email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        try:
            return validate_email(value)
        except ValidationError as exc:
            raise ValueError(exc.message) from exc


def parse_request(model: type[M], **data: object) -> M:
    """Build ``model`` from ``data``, reporting the first problem as a ValidationError."""
    try:
        return model(**data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or model.__name__
        message = str(first["msg"]).removeprefix("Value error, ")
        raise ValidationError(f"{field}: {message}") from exc


def parse_id(value: str | None, label: str) -> str:
    """Normalize a record identifier; malformed ids are reported as absent."""
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError) as exc:
        raise NotFoundError(f"{label} not found") from exc

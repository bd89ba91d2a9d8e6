from __future__ import annotations

from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from rental.core.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)


def blank_to_none(value: Any) -> Any:
    """HTML forms send "" for untouched optional inputs."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def describe_errors(errors: list[dict[str, Any]]) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = str(err.get("msg", "invalid value"))
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def parse_model(model_cls: Type[M], data: M | Mapping[str, Any]) -> M:
    """Validate loose input into model_cls, raising the domain ValidationError."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(describe_errors(e.errors()))


# ---------------------------------------------------------
# Response envelopes
# ---------------------------------------------------------
class MessageOut(BaseModel):
    success: bool = True
    message: str


class PaginationOut(BaseModel):
    current_page: int
    per_page: int
    total_pages: int
    total_records: int


class CountStatsOut(BaseModel):
    total_records: int


class DataCountsOut(BaseModel):
    tenants: int
    payments: int
    images: int
    bankInfo: int


class HealthOut(BaseModel):
    success: bool = True
    message: str
    timestamp: str
    dataCounts: DataCountsOut

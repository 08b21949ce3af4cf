from datetime import datetime, timezone
from typing import Annotated, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


def _as_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


# Datetimes go out with an explicit UTC offset.
UTCDateTime = Annotated[datetime, PlainSerializer(_as_utc, return_type=str, when_used="json")]


class CamelModel(BaseModel):
    """Base for wire schemas: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginationMeta(CamelModel):
    page: int
    limit: int
    total_pages: int
    total_count: int


class ApiResponse(CamelModel, Generic[DataT]):
    """Uniform response envelope."""
    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None
    pagination: Optional[PaginationMeta] = None

from datetime import datetime
from typing import Annotated, List, Generic, TypeVar

from pydantic import AfterValidator, BaseModel

T = TypeVar("T")


def to_local_naive(value: datetime) -> datetime:
    # Stored timestamps are naive local time; offsets are converted, not dropped
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# Request timestamp: accepts `Z` / `+08:00` input and hands the engine naive local time
LocalDatetime = Annotated[datetime, AfterValidator(to_local_naive)]


# Paginated response wrapper: used by the search endpoint
class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


# Error responses
class ErrorResponse(BaseModel):
    error: str
    message: str

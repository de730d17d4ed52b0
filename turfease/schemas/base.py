"""Base schemas with common configuration."""
from datetime import datetime, UTC

from pydantic import BaseModel, ConfigDict, model_serializer


def serialize_datetime_utc(dt: datetime) -> str:
    """ISO 8601 with a ``Z`` suffix; naive values (SQLite) are treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace('+00:00', 'Z')


class BaseSchema(BaseModel):
    """Base schema for API responses built from ORM objects."""

    model_config = ConfigDict(
        from_attributes=True,
    )

    @model_serializer(mode="wrap")
    def serialize_model(self, handler):
        def _convert(value):
            if isinstance(value, datetime):
                return serialize_datetime_utc(value)
            if isinstance(value, list):
                return [_convert(item) for item in value]
            if isinstance(value, dict):
                return {key: _convert(item) for key, item in value.items()}
            return value

        data = handler(self)
        return {key: _convert(value) for key, value in data.items()}


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class PageLink(BaseModel):
    page: int
    limit: int


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    next: PageLink | None = None
    prev: PageLink | None = None

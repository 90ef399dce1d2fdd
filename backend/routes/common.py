import logging
from datetime import datetime

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from backend.core.exceptions import StoreUnavailable, ValidationError
from backend.database import ensure_database_schema

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase on input and serializes camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


def ensure_database_ready() -> None:
    try:
        ensure_database_schema()
    except SQLAlchemyError as exc:
        logger.exception('Database initialization failed.')
        raise StoreUnavailable() from exc


def normalize_required_text(value: str | None, label: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValueError(f'{label} is required.')
    return normalized


def normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


def to_naive_local(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def reject_cleared_fields(changes: dict, required_fields: set[str]) -> None:
    for field_name in sorted(required_fields & changes.keys()):
        if changes[field_name] is None:
            raise ValidationError(f'{to_camel(field_name)} cannot be empty.')


def contains_pattern(search: str) -> str:
    escaped = search.strip().replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'

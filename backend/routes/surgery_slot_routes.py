import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenClaims, require_permission
from backend.auth.permissions import Permission
from backend.core.exceptions import NotFound, StoreUnavailable, ValidationError
from backend.database import get_db
from backend.models.surgery_slot import SurgerySlot
from backend.routes.common import (
    CamelModel,
    MessageResponse,
    ensure_database_ready,
    normalize_optional_text,
    normalize_required_text,
    to_naive_local,
)

router = APIRouter(tags=['surgery-slots'])

logger = logging.getLogger(__name__)


class CreateSurgerySlotRequest(CamelModel):
    title: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    created_by: str | None = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, value: str) -> str:
        return normalize_required_text(value, 'Title')

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, value: datetime) -> datetime:
        return to_naive_local(value).replace(microsecond=0)

    @field_validator('description', 'created_by')
    @classmethod
    def validate_optional_text(cls, value: str | None) -> str | None:
        return normalize_optional_text(value)


class SurgerySlotResponse(CamelModel):
    id: int
    title: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    created_by: str
    created_at: datetime


def get_slot_or_404(slot_id: int, db: Session) -> SurgerySlot:
    slot = db.query(SurgerySlot).filter(SurgerySlot.id == slot_id).first()
    if slot is None:
        raise NotFound('Surgery slot')
    return slot


@router.get('', response_model=list[SurgerySlotResponse])
def list_surgery_slots(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.SLOTS_READ)),
):
    ensure_database_ready()

    try:
        return db.query(SurgerySlot).order_by(SurgerySlot.start_time.asc(), SurgerySlot.id.asc()).all()
    except SQLAlchemyError as exc:
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc


@router.post('', response_model=SurgerySlotResponse, status_code=status.HTTP_201_CREATED)
def create_surgery_slot(
    data: CreateSurgerySlotRequest,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.SLOTS_MANAGE)),
):
    if data.start_time >= data.end_time:
        raise ValidationError('Start time must be before end time.')

    ensure_database_ready()

    try:
        slot = SurgerySlot(
            title=data.title,
            start_time=data.start_time,
            end_time=data.end_time,
            description=data.description,
            created_by=data.created_by or current_user.username,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    logger.info('Surgery slot %s (%s - %s) created by %s', slot.id, slot.start_time, slot.end_time, slot.created_by)
    return slot


@router.delete('/{slot_id}', response_model=MessageResponse)
def delete_surgery_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.SLOTS_MANAGE)),
):
    ensure_database_ready()

    try:
        slot = get_slot_or_404(slot_id, db)
        db.delete(slot)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    logger.info('Surgery slot %s deleted by %s', slot_id, current_user.username)
    return MessageResponse(message='Surgery slot deleted successfully')

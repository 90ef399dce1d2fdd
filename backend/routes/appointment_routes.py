import logging
from datetime import datetime, time, timedelta

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenClaims, require_permission
from backend.auth.permissions import Permission
from backend.core import config
from backend.core.exceptions import NotFound, SchedulingConflict, StoreUnavailable
from backend.core.lifecycle import (
    AppointmentStatus,
    check_appointment_transition,
    parse_status,
)
from backend.database import get_db
from backend.models.appointment import Appointment
from backend.models.surgery_slot import SurgerySlot
from backend.routes.common import (
    CamelModel,
    MessageResponse,
    contains_pattern,
    ensure_database_ready,
    normalize_optional_text,
    normalize_required_text,
    reject_cleared_fields,
    to_naive_local,
)

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600
TIME_FORMATS = ('%H:%M', '%H:%M:%S', '%I:%M %p')
REQUIRED_FIELDS = {
    'patient_name',
    'patient_email',
    'patient_phone',
    'appointment_date',
    'appointment_time',
    'service',
    'status',
}


def parse_appointment_time(value: str) -> time:
    normalized = (value or '').strip().upper()
    for time_format in TIME_FORMATS:
        try:
            return datetime.strptime(normalized, time_format).time()
        except ValueError:
            continue
    raise ValueError('Appointment time must be in HH:MM format.')


def _validate_time(value: str | None) -> str | None:
    if value is None:
        return None
    return parse_appointment_time(value).strftime('%H:%M')


def _validate_notes(value: str | None) -> str | None:
    normalized = normalize_optional_text(value)
    if normalized and len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')
    return normalized


class CreateAppointmentRequest(CamelModel):
    patient_name: str
    patient_email: str
    patient_phone: str
    appointment_date: datetime
    appointment_time: str
    service: str
    status: str | None = None
    notes: str | None = None

    @field_validator('patient_name', 'patient_phone', 'service')
    @classmethod
    def validate_required(cls, value: str, info) -> str:
        return normalize_required_text(value, info.field_name.replace('_', ' ').capitalize())

    @field_validator('patient_email')
    @classmethod
    def validate_patient_email(cls, value: str) -> str:
        return normalize_required_text(value, 'Patient email').lower()

    @field_validator('appointment_date')
    @classmethod
    def validate_appointment_date(cls, value: datetime) -> datetime:
        return to_naive_local(value)

    @field_validator('appointment_time')
    @classmethod
    def validate_appointment_time(cls, value: str) -> str:
        return _validate_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _validate_notes(value)


class UpdateAppointmentRequest(CamelModel):
    patient_name: str | None = None
    patient_email: str | None = None
    patient_phone: str | None = None
    appointment_date: datetime | None = None
    appointment_time: str | None = None
    service: str | None = None
    status: str | None = None
    notes: str | None = None

    @field_validator('patient_name', 'patient_phone', 'service')
    @classmethod
    def validate_text(cls, value: str | None, info) -> str | None:
        if value is None:
            return None
        return normalize_required_text(value, info.field_name.replace('_', ' ').capitalize())

    @field_validator('patient_email')
    @classmethod
    def validate_patient_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_required_text(value, 'Patient email').lower()

    @field_validator('appointment_date')
    @classmethod
    def validate_appointment_date(cls, value: datetime | None) -> datetime | None:
        return to_naive_local(value) if value is not None else None

    @field_validator('appointment_time')
    @classmethod
    def validate_appointment_time(cls, value: str | None) -> str | None:
        return _validate_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _validate_notes(value)


class AppointmentResponse(CamelModel):
    id: int
    patient_name: str
    patient_email: str
    patient_phone: str
    appointment_date: datetime
    appointment_time: str
    service: str
    status: str
    notes: str | None = None
    created_at: datetime


def get_appointment_window(appointment_date: datetime, appointment_time: str) -> tuple[datetime, datetime]:
    start_time = datetime.combine(appointment_date.date(), parse_appointment_time(appointment_time))
    end_time = start_time + timedelta(minutes=config.APPOINTMENT_DURATION_MINUTES)
    return start_time, end_time


def ensure_no_unavailability_overlap(appointment_date: datetime, appointment_time: str, db: Session) -> None:
    start_time, end_time = get_appointment_window(appointment_date, appointment_time)

    overlapping_slot = db.query(SurgerySlot).filter(
        SurgerySlot.start_time < end_time,
        SurgerySlot.end_time > start_time,
    ).order_by(SurgerySlot.start_time.asc()).first()

    if overlapping_slot:
        raise SchedulingConflict(
            f"The doctor is unavailable at this time ({overlapping_slot.title}).",
        )


def query_appointments(
    db: Session,
    status_filter: str | None = None,
    search: str | None = None,
) -> list[Appointment]:
    query = db.query(Appointment)

    if status_filter:
        query = query.filter(Appointment.status == parse_status(AppointmentStatus, status_filter).value)

    if search and search.strip():
        pattern = contains_pattern(search)
        query = query.filter(
            or_(
                Appointment.patient_name.ilike(pattern, escape='\\'),
                Appointment.patient_email.ilike(pattern, escape='\\'),
                Appointment.patient_phone.ilike(pattern, escape='\\'),
                Appointment.service.ilike(pattern, escape='\\'),
            )
        )

    return query.order_by(
        Appointment.appointment_date.asc(),
        Appointment.appointment_time.asc(),
        Appointment.id.asc(),
    ).all()


def get_appointment_or_404(appointment_id: int, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFound('Appointment')
    return appointment


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.APPOINTMENTS_READ)),
):
    ensure_database_ready()

    try:
        return query_appointments(db, status_filter, search)
    except SQLAlchemyError as exc:
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.APPOINTMENTS_CREATE)),
):
    ensure_database_ready()

    initial_status = AppointmentStatus.PENDING.value
    if data.status is not None:
        initial_status = parse_status(AppointmentStatus, data.status).value

    try:
        ensure_no_unavailability_overlap(data.appointment_date, data.appointment_time, db)

        appointment = Appointment(
            patient_name=data.patient_name,
            patient_email=data.patient_email,
            patient_phone=data.patient_phone,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            service=data.service,
            status=initial_status,
            notes=data.notes,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    logger.info('Appointment %s created by %s', appointment.id, current_user.username)
    return appointment


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: int,
    data: UpdateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.APPOINTMENTS_UPDATE)),
):
    ensure_database_ready()

    changes = data.model_dump(exclude_unset=True)
    reject_cleared_fields(changes, REQUIRED_FIELDS)

    try:
        appointment = get_appointment_or_404(appointment_id, db)

        if 'status' in changes:
            changes['status'] = check_appointment_transition(appointment.status, changes['status'])

        moved = (
            ('appointment_date' in changes and changes['appointment_date'] != appointment.appointment_date)
            or ('appointment_time' in changes and changes['appointment_time'] != appointment.appointment_time)
        )
        if moved:
            ensure_no_unavailability_overlap(
                changes.get('appointment_date', appointment.appointment_date),
                changes.get('appointment_time', appointment.appointment_time),
                db,
            )

        for field_name, value in changes.items():
            setattr(appointment, field_name, value)

        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    logger.info('Appointment %s updated by %s: %s', appointment_id, current_user.username, sorted(changes))
    return appointment


@router.delete('/{appointment_id}', response_model=MessageResponse)
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.APPOINTMENTS_DELETE)),
):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)
        db.delete(appointment)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    logger.info('Appointment %s deleted by %s', appointment_id, current_user.username)
    return MessageResponse(message='Appointment deleted successfully')

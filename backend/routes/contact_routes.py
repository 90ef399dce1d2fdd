import csv
import io
import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import field_validator
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenClaims, require_permission
from backend.auth.permissions import Permission
from backend.core.exceptions import NotFound, StoreUnavailable
from backend.core.lifecycle import ContactStatus, check_contact_transition, parse_status
from backend.database import get_db
from backend.models.contact import Contact
from backend.routes.common import (
    CamelModel,
    MessageResponse,
    contains_pattern,
    ensure_database_ready,
    normalize_required_text,
    reject_cleared_fields,
)

router = APIRouter(tags=['contacts'])
public_router = APIRouter(tags=['public'])

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000
REQUIRED_FIELDS = {'name', 'email', 'phone', 'message'}
CSV_COLUMNS = ['Name', 'Email', 'Phone', 'Message', 'Status', 'Date']


def _validate_email(value: str) -> str:
    normalized = normalize_required_text(value, 'Email').lower()
    if '@' not in normalized:
        raise ValueError('Email address is invalid.')
    return normalized


def _validate_message(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = normalize_required_text(value, 'Message')
    if len(normalized) > MAX_MESSAGE_LENGTH:
        raise ValueError(f'Message must be {MAX_MESSAGE_LENGTH} characters or fewer.')
    return normalized


class CreateContactRequest(CamelModel):
    name: str
    email: str
    phone: str
    message: str

    @field_validator('name', 'phone')
    @classmethod
    def validate_required(cls, value: str, info) -> str:
        return normalize_required_text(value, info.field_name.capitalize())

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _validate_email(value)

    @field_validator('message')
    @classmethod
    def validate_message(cls, value: str) -> str:
        return _validate_message(value)


class UpdateContactRequest(CamelModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    message: str | None = None
    status: str | None = None

    @field_validator('name', 'phone')
    @classmethod
    def validate_text(cls, value: str | None, info) -> str | None:
        if value is None:
            return None
        return normalize_required_text(value, info.field_name.capitalize())

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _validate_email(value)

    @field_validator('message')
    @classmethod
    def validate_message(cls, value: str | None) -> str | None:
        return _validate_message(value)


class ContactResponse(CamelModel):
    id: int
    name: str
    email: str
    phone: str
    message: str
    status: str
    created_at: datetime


def query_contacts(db: Session, status_filter: str | None = None, search: str | None = None) -> list[Contact]:
    query = db.query(Contact)

    if status_filter:
        query = query.filter(Contact.status == parse_status(ContactStatus, status_filter).value)

    if search and search.strip():
        pattern = contains_pattern(search)
        query = query.filter(
            or_(
                Contact.name.ilike(pattern, escape='\\'),
                Contact.email.ilike(pattern, escape='\\'),
                Contact.phone.ilike(pattern, escape='\\'),
            )
        )

    return query.order_by(Contact.created_at.desc(), Contact.id.desc()).all()


def get_contact_or_404(contact_id: int, db: Session) -> Contact:
    contact = db.query(Contact).filter(Contact.id == contact_id).first()
    if contact is None:
        raise NotFound('Contact')
    return contact


@public_router.post('/contacts', response_model=ContactResponse, status_code=status.HTTP_201_CREATED)
def submit_contact(data: CreateContactRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        contact = Contact(
            name=data.name,
            email=data.email,
            phone=data.phone,
            message=data.message,
            status=ContactStatus.NEW.value,
        )
        db.add(contact)
        db.commit()
        db.refresh(contact)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to store contact submission.')
        raise StoreUnavailable() from exc

    logger.info('New contact %s received', contact.id)
    return contact


@router.get('', response_model=list[ContactResponse])
def list_contacts(
    status_filter: str | None = Query(default=None, alias='status'),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.CONTACTS_READ)),
):
    ensure_database_ready()

    try:
        return query_contacts(db, status_filter, search)
    except SQLAlchemyError as exc:
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc


@router.get('/export')
def export_contacts(
    status_filter: str | None = Query(default=None, alias='status'),
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.CONTACTS_READ)),
):
    ensure_database_ready()

    try:
        contacts = query_contacts(db, status_filter, search)
    except SQLAlchemyError as exc:
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for contact in contacts:
        writer.writerow([
            contact.name,
            contact.email,
            contact.phone,
            contact.message,
            contact.status,
            contact.created_at.date().isoformat() if contact.created_at else '',
        ])

    filename = f'contacts_{datetime.now():%Y-%m-%d}.csv'
    return Response(
        content=buffer.getvalue(),
        media_type='text/csv',
        headers={'Content-Disposition': f'attachment; filename="{filename}"'},
    )


@router.put('/{contact_id}', response_model=ContactResponse)
def update_contact(
    contact_id: int,
    data: UpdateContactRequest,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.CONTACTS_UPDATE)),
):
    ensure_database_ready()

    changes = data.model_dump(exclude_unset=True)
    reject_cleared_fields(changes, REQUIRED_FIELDS | {'status'})

    try:
        contact = get_contact_or_404(contact_id, db)

        if 'status' in changes:
            changes['status'] = check_contact_transition(contact.status, changes['status'])

        for field_name, value in changes.items():
            setattr(contact, field_name, value)

        db.commit()
        db.refresh(contact)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    logger.info('Contact %s updated by %s: %s', contact_id, current_user.username, sorted(changes))
    return contact


@router.delete('/{contact_id}', response_model=MessageResponse)
def delete_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.CONTACTS_DELETE)),
):
    ensure_database_ready()

    try:
        contact = get_contact_or_404(contact_id, db)
        db.delete(contact)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

    logger.info('Contact %s deleted by %s', contact_id, current_user.username)
    return MessageResponse(message='Contact deleted successfully')

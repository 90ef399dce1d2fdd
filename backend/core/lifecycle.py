"""Status lifecycles for contacts and appointments."""

from enum import Enum

from backend.core import config
from backend.core.exceptions import InvalidStatus, InvalidTransition


class ContactStatus(str, Enum):
    NEW = 'new'
    CONTACTED = 'contacted'
    RESOLVED = 'resolved'


class AppointmentStatus(str, Enum):
    PENDING = 'pending'
    SCHEDULED = 'scheduled'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


CONTACT_TRANSITIONS: dict[ContactStatus, set[ContactStatus]] = {
    ContactStatus.NEW: {ContactStatus.CONTACTED},
    ContactStatus.CONTACTED: {ContactStatus.RESOLVED},
    ContactStatus.RESOLVED: set(),
}

APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, set[AppointmentStatus]] = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.SCHEDULED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: {AppointmentStatus.CANCELLED},
    AppointmentStatus.CANCELLED: set(),
}

# Statuses counted as "upcoming" on the dashboard.
ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)


def parse_status(enum_cls: type[Enum], value: str) -> Enum:
    normalized = (value or '').strip().lower()
    try:
        return enum_cls(normalized)
    except ValueError as exc:
        raise InvalidStatus(value) from exc


def check_transition(
    enum_cls: type[Enum],
    transitions: dict,
    current: str | None,
    requested: str,
    strict: bool | None = None,
) -> str:
    """Validate a status change and return the normalized new status.

    Rewriting the current status is always allowed. Rows stored with a
    status outside the enum (legacy data) may move to any valid status.
    """
    target = parse_status(enum_cls, requested)
    if strict is None:
        strict = config.STRICT_STATUS_TRANSITIONS

    if not strict or current is None or current == target.value:
        return target.value

    try:
        source = enum_cls(current)
    except ValueError:
        return target.value

    if target not in transitions[source]:
        raise InvalidTransition(source.value, target.value)
    return target.value


def check_contact_transition(current: str | None, requested: str, strict: bool | None = None) -> str:
    return check_transition(ContactStatus, CONTACT_TRANSITIONS, current, requested, strict)


def check_appointment_transition(current: str | None, requested: str, strict: bool | None = None) -> str:
    return check_transition(AppointmentStatus, APPOINTMENT_TRANSITIONS, current, requested, strict)

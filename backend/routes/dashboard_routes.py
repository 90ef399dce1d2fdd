import logging
from datetime import datetime, time, timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenClaims, require_permission
from backend.auth.permissions import Permission
from backend.core.exceptions import StoreUnavailable
from backend.core.lifecycle import ACTIVE_APPOINTMENT_STATUSES, AppointmentStatus, ContactStatus
from backend.database import get_db
from backend.models.appointment import Appointment
from backend.models.contact import Contact
from backend.routes.common import CamelModel, ensure_database_ready

router = APIRouter(tags=['dashboard'])

logger = logging.getLogger(__name__)


class DashboardStatsResponse(CamelModel):
    total_contacts: int
    new_contacts: int
    total_appointments: int
    pending_appointments: int
    upcoming_appointments: int
    today_appointments: int


def compute_dashboard_stats(db: Session, now: datetime | None = None) -> DashboardStatsResponse:
    now = now or datetime.now()
    day_start = datetime.combine(now.date(), time.min)
    day_end = day_start + timedelta(days=1)

    return DashboardStatsResponse(
        total_contacts=db.query(Contact).count(),
        new_contacts=db.query(Contact).filter(Contact.status == ContactStatus.NEW.value).count(),
        total_appointments=db.query(Appointment).count(),
        pending_appointments=db.query(Appointment).filter(
            Appointment.status == AppointmentStatus.PENDING.value,
        ).count(),
        # appointment_time is stored zero-padded as HH:MM.
        upcoming_appointments=db.query(Appointment).filter(
            or_(
                Appointment.appointment_date >= day_end,
                and_(
                    Appointment.appointment_date >= day_start,
                    Appointment.appointment_date < day_end,
                    Appointment.appointment_time >= now.strftime('%H:%M'),
                ),
            ),
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
        ).count(),
        today_appointments=db.query(Appointment).filter(
            Appointment.appointment_date >= day_start,
            Appointment.appointment_date < day_end,
        ).count(),
    )


@router.get('/stats', response_model=DashboardStatsResponse)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    current_user: TokenClaims = Depends(require_permission(Permission.DASHBOARD_READ)),
):
    ensure_database_ready()

    try:
        return compute_dashboard_stats(db)
    except SQLAlchemyError as exc:
        logger.exception('Database operation failed.')
        raise StoreUnavailable() from exc

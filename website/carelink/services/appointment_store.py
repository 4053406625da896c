"""Appointment persistence. Status changes are conditional UPDATEs keyed on the expected status."""

import logging

from sqlalchemy import update as sql_update
from sqlalchemy.exc import SQLAlchemyError

from carelink.extensions import db
from carelink.models.appointment import Appointment
from carelink.services import change_feed
from carelink.services.errors import AppointmentNotFound, StaleState, StoreUnavailable
from carelink.utils import utcnow

logger = logging.getLogger(__name__)

TABLE = "appointment"


def get(appointment_id):
    try:
        appointment = db.session.get(Appointment, appointment_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to load appointment {appointment_id}: {e}")
        raise StoreUnavailable(str(e)) from e

    if appointment is None:
        raise AppointmentNotFound(f"Appointment {appointment_id} does not exist")
    return appointment


def list_appointments(patient_id=None, doctor_id=None, statuses=None, created_before=None):
    """Appointments matching every given criterion, oldest first."""
    query = Appointment.query
    if patient_id is not None:
        query = query.filter(Appointment.patient_id == patient_id)
    if doctor_id is not None:
        query = query.filter(Appointment.doctor_id == doctor_id)
    if statuses:
        query = query.filter(Appointment.status.in_([s.value for s in statuses]))
    if created_before is not None:
        query = query.filter(Appointment.created_at < created_before)

    try:
        return query.order_by(Appointment.created_at.asc(), Appointment.appointment_id.asc()).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to list appointments: {e}")
        raise StoreUnavailable(str(e)) from e


def create(appointment):
    try:
        db.session.add(appointment)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to create appointment: {e}")
        raise StoreUnavailable(str(e)) from e

    change_feed.publish(TABLE, change_feed.INSERT, appointment.appointment_id)
    return appointment


def update(appointment_id, expected_status, patch, conditions=()):
    """
    Apply `patch` only if the row still has `expected_status`.

    `conditions` are extra SQL predicates evaluated in the same statement.
    Raises StaleState when no row matched and AppointmentNotFound when the
    row does not exist at all. Returns the refreshed appointment.
    """
    values = dict(patch)
    values.setdefault("updated_at", utcnow())

    statement = (
        sql_update(Appointment)
        .where(
            Appointment.appointment_id == appointment_id,
            Appointment.status == expected_status.value,
            *conditions,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    try:
        result = db.session.execute(statement)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Conditional update of appointment {appointment_id} failed: {e}")
        raise StoreUnavailable(str(e)) from e

    if result.rowcount == 0:
        current = get(appointment_id)
        raise StaleState(
            f"Appointment {appointment_id} expected '{expected_status.value}' but is '{current.status}'"
        )

    change_feed.publish(TABLE, change_feed.UPDATE, appointment_id)
    return get(appointment_id)

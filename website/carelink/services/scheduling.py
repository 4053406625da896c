"""
Doctor availability and slot checks.

A doctor may publish availability windows per day. On a day with published
windows, a slot must fit inside an open one; days without any window are
unrestricted. Independently, no two live appointments may share a doctor,
date and start time.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from carelink.extensions import db
from carelink.models.appointment import Appointment
from carelink.models.appointment_status import AppointmentStatus
from carelink.models.availability import Availability
from carelink.services.errors import SlotUnavailable, StoreUnavailable

logger = logging.getLogger(__name__)

SLOT_MINUTES = 30


def _same_slot(doctor_id, appointment_date, appointment_time, exclude_id):
    query = Appointment.query.filter(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date == appointment_date,
        Appointment.appointment_time == appointment_time,
    )
    if exclude_id is not None:
        query = query.filter(Appointment.appointment_id != exclude_id)
    return query


def slot_taken(doctor_id, appointment_date, appointment_time, exclude_id=None):
    """True if an appointment that is not cancelled already holds this slot."""
    clash = _same_slot(doctor_id, appointment_date, appointment_time, exclude_id).filter(
        Appointment.status != AppointmentStatus.CANCELLED.value
    ).first()
    return clash is not None


def has_conflict(appointment):
    """True if the doctor already has a confirmed appointment in the same slot."""
    clash = _same_slot(
        appointment.doctor_id,
        appointment.appointment_date,
        appointment.appointment_time,
        appointment.appointment_id,
    ).filter(Appointment.status == AppointmentStatus.CONFIRMED.value).first()
    return clash is not None


def windows_for(doctor_id, on_date):
    return (
        Availability.query
        .filter_by(doctor_id=doctor_id, availability_date=on_date)
        .order_by(Availability.start_time)
        .all()
    )


def within_availability(doctor_id, appointment_date, appointment_time, duration_minutes):
    windows = windows_for(doctor_id, appointment_date)
    if not windows:
        return True

    starts_at = datetime.combine(appointment_date, appointment_time)
    ends_at = starts_at + timedelta(minutes=duration_minutes)
    return any(window.covers(starts_at, ends_at) for window in windows)


def ensure_bookable(doctor_id, appointment_date, appointment_time, duration_minutes, exclude_id=None):
    try:
        in_hours = within_availability(doctor_id, appointment_date, appointment_time, duration_minutes)
        taken = slot_taken(doctor_id, appointment_date, appointment_time, exclude_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Slot check for doctor {doctor_id} failed: {e}")
        raise StoreUnavailable(str(e)) from e

    slot = f"{appointment_date} {appointment_time.strftime('%H:%M')}"
    if not in_hours:
        raise SlotUnavailable(
            f"Doctor {doctor_id} has no open availability covering {slot}",
            user_message="The doctor is not working at that time. Please pick another slot.",
        )
    if taken:
        raise SlotUnavailable(
            f"Doctor {doctor_id} already has an appointment at {slot}",
            user_message="That time is already booked. Please pick another slot.",
        )


def free_slots(doctor_id, on_date):
    """Every 30-minute start time inside the day's open windows, flagged by whether it is still free."""
    booked = {
        a.appointment_time: a.appointment_id
        for a in Appointment.query.filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == on_date,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        )
    }

    slots = []
    for window in windows_for(doctor_id, on_date):
        if not window.is_open:
            continue
        current = datetime.combine(on_date, window.start_time)
        end = datetime.combine(on_date, window.end_time)
        while current + timedelta(minutes=SLOT_MINUTES) <= end:
            slot_time = current.time()
            slots.append({
                "time": slot_time.strftime("%H:%M"),
                "available": slot_time not in booked,
                "appointment_id": booked.get(slot_time),
            })
            current += timedelta(minutes=SLOT_MINUTES)
    return slots


def add_availability(doctor_id, on_date, start_time, end_time):
    if start_time >= end_time:
        return None, "Start time must be before end time."

    overlapping = Availability.query.filter(
        Availability.doctor_id == doctor_id,
        Availability.availability_date == on_date,
        Availability.start_time < end_time,
        Availability.end_time > start_time,
    ).first()
    if overlapping:
        return None, "This window overlaps an existing one."

    availability = Availability(
        doctor_id=doctor_id,
        availability_date=on_date,
        start_time=start_time,
        end_time=end_time,
        is_open=True,
    )
    db.session.add(availability)
    db.session.commit()
    logger.info(f"Doctor {doctor_id} opened {on_date} {start_time}-{end_time}")
    return availability, None


def remove_availability(availability_id, doctor_id):
    availability = db.session.get(Availability, availability_id)
    if availability is None or availability.doctor_id != doctor_id:
        return False

    db.session.delete(availability)
    db.session.commit()
    return True

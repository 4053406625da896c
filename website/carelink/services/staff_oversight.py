"""Staff oversight of the appointment book. Urgency is recomputed on every call."""

import logging
from collections import deque
from dataclasses import asdict, dataclass
from datetime import timedelta
from typing import Optional

from flask import current_app

from carelink.models.appointment import Appointment
from carelink.models.appointment_status import AppointmentStatus
from carelink.services import appointment_store, change_feed, lifecycle, notices, notification_service
from carelink.services.lifecycle import TransitionResult
from carelink.services.errors import InvalidTransition, LifecycleError, NotificationDeliveryFailed
from carelink.utils import urgency_cutoff, utcnow

logger = logging.getLogger(__name__)

DATE_FILTERS = ("all", "today", "upcoming", "pending-urgent")
INTERVENTIONS = ("remind_doctor", "contact_patient", "auto_confirm")
RECENT_CHANGES_LIMIT = 20
CHANGE_LOG_KEY = "carelink.recent_changes"


@dataclass
class OversightFilter:
    search: str = ""
    status: str = "all"
    date_filter: str = "all"
    doctor_id: Optional[int] = None


def is_urgent(appointment, cutoff):
    return appointment.status == AppointmentStatus.PENDING.value and appointment.created_at < cutoff


def _matches_search(appointment, term):
    haystack = (
        appointment.patient.name,
        appointment.doctor.name,
        appointment.doctor.specialization,
        appointment.reason or "",
    )
    return any(term in value.lower() for value in haystack)


def list_appointments(criteria=None, now=None):
    """
    Appointments visible on the oversight dashboard, newest first, each
    paired with its current urgency.
    """
    criteria = criteria or OversightFilter()
    now = now or utcnow()
    cutoff = urgency_cutoff(now)
    today = now.date()

    query = Appointment.query
    if criteria.status and criteria.status != "all":
        query = query.filter(Appointment.status == criteria.status)
    if criteria.doctor_id is not None:
        query = query.filter(Appointment.doctor_id == criteria.doctor_id)

    if criteria.date_filter == "today":
        query = query.filter(Appointment.appointment_date == today)
    elif criteria.date_filter == "upcoming":
        query = query.filter(Appointment.appointment_date >= today)
    elif criteria.date_filter == "pending-urgent":
        query = query.filter(
            Appointment.status == AppointmentStatus.PENDING.value,
            Appointment.created_at < cutoff,
        )

    appointments = query.order_by(Appointment.created_at.desc(), Appointment.appointment_id.desc()).all()

    term = (criteria.search or "").strip().lower()
    if term:
        appointments = [a for a in appointments if _matches_search(a, term)]

    return [(appointment, is_urgent(appointment, cutoff)) for appointment in appointments]


def urgent_appointments(now=None):
    """Pending appointments older than the threshold, oldest first."""
    return appointment_store.list_appointments(
        statuses=[AppointmentStatus.PENDING],
        created_before=urgency_cutoff(now),
    )


def init_change_log(app):
    """Keep the latest appointment writes in memory for the staff dashboard."""
    changes = deque(maxlen=RECENT_CHANGES_LIMIT)
    app.extensions[CHANGE_LOG_KEY] = changes
    change_feed.subscribe(appointment_store.TABLE, changes.append)


def recent_changes():
    changes = current_app.extensions.get(CHANGE_LOG_KEY, ())
    return [asdict(change) for change in reversed(changes)]


def dashboard_stats(now=None):
    now = now or utcnow()
    by_status = {status.value: 0 for status in AppointmentStatus}
    for appointment in Appointment.query.all():
        by_status[appointment.status] = by_status.get(appointment.status, 0) + 1

    recent = Appointment.query.filter(Appointment.created_at >= now - timedelta(hours=24)).count()
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "urgent": len(urgent_appointments(now)),
        "created_last_24h": recent,
        "recent_changes": recent_changes(),
    }


def _send_intervention(appointment_id, kind, build_notice, now=None):
    result = TransitionResult()
    try:
        appointment = appointment_store.get(appointment_id)
    except LifecycleError as e:
        result.error = e
        return result

    if appointment.status_enum != AppointmentStatus.PENDING:
        result.error = InvalidTransition(
            f"Appointment {appointment_id} is {appointment.status}, not pending",
            user_message="Only pending appointments need a staff follow-up.",
        )
        return result

    if not is_urgent(appointment, urgency_cutoff(now)):
        result.error = InvalidTransition(
            f"Appointment {appointment_id} created at {appointment.created_at} is not overdue",
            user_message="This appointment is not overdue yet.",
        )
        return result

    result.appointment = appointment
    notice = build_notice(appointment)
    try:
        notification_service.dispatch(notice)
        logger.info(f"Staff intervention '{kind}' sent for appointment {appointment_id}")
    except NotificationDeliveryFailed as e:
        logger.warning(f"Staff intervention for appointment {appointment_id} failed: {e}")
        result.warnings.append(f"'{notice.title}' could not be delivered to user {notice.user_id}.")
    return result


def remind_doctor(appointment_id, now=None):
    hours = current_app.config["AUTO_CONFIRM_THRESHOLD_HOURS"]
    return _send_intervention(
        appointment_id,
        "remind_doctor",
        lambda appointment: notices.remind_doctor(appointment, hours),
        now=now,
    )


def contact_patient(appointment_id, now=None):
    return _send_intervention(appointment_id, "contact_patient", notices.contact_patient, now=now)


def auto_confirm(appointment_id, staff_user_id=None, now=None):
    logger.info(f"Staff user {staff_user_id} requested auto-confirmation of appointment {appointment_id}")
    return lifecycle.auto_confirm(appointment_id, actor=lifecycle.Actor.STAFF, now=now)


def intervene(appointment_id, intervention, staff_user_id=None, now=None):
    if intervention == "remind_doctor":
        return remind_doctor(appointment_id, now=now)
    if intervention == "contact_patient":
        return contact_patient(appointment_id, now=now)
    if intervention == "auto_confirm":
        return auto_confirm(appointment_id, staff_user_id=staff_user_id, now=now)
    raise ValueError(f"Unknown intervention: {intervention}")

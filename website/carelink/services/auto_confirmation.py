"""Automated confirmation of stalled appointments (`flask auto-confirm`)."""

import logging

from flask import current_app

from carelink.models.appointment_status import AppointmentStatus
from carelink.services import appointment_store, lifecycle, notices, notification_service, scheduling
from carelink.services.errors import NotificationDeliveryFailed
from carelink.utils import urgency_cutoff, utcnow

logger = logging.getLogger(__name__)


def _notify_staff(build_notice, appointment, staff_ids):
    for staff_id in staff_ids:
        try:
            notification_service.dispatch(build_notice(appointment, staff_id))
        except NotificationDeliveryFailed as e:
            logger.warning(f"Staff notification for appointment {appointment.appointment_id} failed: {e}")


def run_auto_confirmation(now=None):
    # Clashes with a confirmed slot are left for staff to review
    now = now or utcnow()
    summary = {"checked": 0, "confirmed": 0, "conflicts": 0, "failed": 0}
    staff_ids = notification_service.staff_recipients(current_app.config["STAFF_NOTIFICATION_LIMIT"])

    stalled = appointment_store.list_appointments(
        statuses=[AppointmentStatus.PENDING],
        created_before=urgency_cutoff(now),
    )
    logger.info(f"Found {len(stalled)} appointment(s) ready for auto-confirmation")

    for appointment in stalled:
        summary["checked"] += 1

        if scheduling.has_conflict(appointment):
            logger.warning(f"Conflict detected for appointment {appointment.appointment_id}, skipping")
            summary["conflicts"] += 1
            _notify_staff(notices.auto_confirm_conflict, appointment, staff_ids)
            continue

        result = lifecycle.auto_confirm(appointment.appointment_id, actor=lifecycle.Actor.SYSTEM, now=now)
        if not result.ok:
            summary["failed"] += 1
            continue

        summary["confirmed"] += 1
        _notify_staff(notices.auto_confirmed_for_staff, result.appointment, staff_ids)

    logger.info(f"Auto-confirmation summary: {summary}")
    return summary

"""
Notification payloads.

A notice is either an AppointmentNotice, which always points at the
appointment that triggered it, or a SystemNotice, where the reference is
optional. The dispatcher accepts nothing else.
"""

from dataclasses import dataclass
from typing import Optional, Union

from carelink.models.notification_kind import NotificationType, NotificationPriority
from carelink.utils import format_slot


@dataclass(frozen=True)
class AppointmentNotice:
    user_id: int
    title: str
    message: str
    appointment_id: int
    priority: NotificationPriority = NotificationPriority.MEDIUM

    @property
    def type(self):
        return NotificationType.APPOINTMENT


@dataclass(frozen=True)
class SystemNotice:
    user_id: int
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    appointment_id: Optional[int] = None

    @property
    def type(self):
        return NotificationType.SYSTEM


Notice = Union[AppointmentNotice, SystemNotice]


def _slot(appointment):
    return format_slot(appointment.appointment_date, appointment.appointment_time)


def booked(appointment):
    return AppointmentNotice(
        user_id=appointment.doctor_id,
        title="New Appointment",
        message=(
            f"New appointment booked by {appointment.patient.name} on {_slot(appointment)}."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.MEDIUM,
    )


def confirmed_for_patient(appointment, confirmed_by="doctor"):
    confirmer = {
        "staff": "our staff",
        "system": "the clinic",
        "patient": "you",
    }.get(confirmed_by, f"Dr. {appointment.doctor.name}")
    return AppointmentNotice(
        user_id=appointment.patient_id,
        title="Appointment Confirmed",
        message=f"Your appointment on {_slot(appointment)} has been confirmed by {confirmer}.",
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.HIGH,
    )


def confirmed_for_doctor(appointment):
    return AppointmentNotice(
        user_id=appointment.doctor_id,
        title="Appointment Confirmed",
        message=f"Your appointment with {appointment.patient.name} on {_slot(appointment)} is confirmed.",
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.MEDIUM,
    )


def staff_confirmed_for_doctor(appointment):
    return AppointmentNotice(
        user_id=appointment.doctor_id,
        title="Staff Confirmed Appointment",
        message=(
            f"Staff has confirmed your pending appointment with {appointment.patient.name} "
            f"on {_slot(appointment)}. No further action needed."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.MEDIUM,
    )


def auto_confirmed_for_doctor(appointment):
    return AppointmentNotice(
        user_id=appointment.doctor_id,
        title="Appointment Auto-Confirmed",
        message=(
            f"System has automatically confirmed your appointment with {appointment.patient.name} "
            f"on {_slot(appointment)}. No conflicts detected."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.MEDIUM,
    )


def reschedule_requested(appointment, recipient_id, requested_by, reason):
    return AppointmentNotice(
        user_id=recipient_id,
        title="Reschedule Requested",
        message=(
            f"The {requested_by} has requested to move your appointment to {_slot(appointment)}. "
            f"Reason: {reason}."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.HIGH,
    )


def reschedule_accepted(appointment, recipient_id):
    return AppointmentNotice(
        user_id=recipient_id,
        title="Reschedule Accepted",
        message=(
            f"Your reschedule request was accepted for {_slot(appointment)}. "
            f"Please confirm the new time."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.HIGH,
    )


def cancelled(appointment, recipient_id, cancelled_by, reason):
    return AppointmentNotice(
        user_id=recipient_id,
        title="Appointment Cancelled",
        message=(
            f"The appointment on {_slot(appointment)} has been cancelled by the {cancelled_by}. "
            f"Reason: {reason}."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.HIGH,
    )


def remind_doctor(appointment, hours):
    return SystemNotice(
        user_id=appointment.doctor_id,
        title="Staff Intervention",
        message=(
            f"STAFF REMINDER: Please confirm or respond to the pending appointment with "
            f"{appointment.patient.name} scheduled for {_slot(appointment)}. "
            f"It has been pending for over {hours:g} hours."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.HIGH,
    )


def contact_patient(appointment):
    return SystemNotice(
        user_id=appointment.patient_id,
        title="Staff Intervention",
        message=(
            f"STAFF UPDATE: We're following up on your appointment request. Our team is working "
            f"to confirm your appointment scheduled for {_slot(appointment)}."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.HIGH,
    )


def auto_confirmed_for_staff(appointment, staff_user_id):
    return SystemNotice(
        user_id=staff_user_id,
        title="Auto-Confirmation Completed",
        message=(
            f"System auto-confirmed appointment: {appointment.patient.name} with "
            f"Dr. {appointment.doctor.name} on {_slot(appointment)}. No conflicts detected."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.LOW,
    )


def auto_confirm_conflict(appointment, staff_user_id):
    return SystemNotice(
        user_id=staff_user_id,
        title="Auto-Confirmation Blocked",
        message=(
            f"Cannot auto-confirm the appointment for {appointment.patient.name} with "
            f"Dr. {appointment.doctor.name} on {_slot(appointment)}. "
            f"Manual review required due to a scheduling conflict."
        ),
        appointment_id=appointment.appointment_id,
        priority=NotificationPriority.HIGH,
    )

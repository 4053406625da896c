"""
Appointment lifecycle workflow.

Every status change is a conditional write keyed on the status just read, so
a request that lost a race gets StaleState instead of overwriting.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import List, Optional

from carelink.extensions import db
from carelink.models.appointment import Appointment
from carelink.models.appointment_status import AppointmentStatus
from carelink.models.consultation_type import ConsultationType
from carelink.models.doctor import Doctor
from carelink.models.patient import Patient
from carelink.services import appointment_store, notices, notification_service, scheduling
from carelink.services.errors import (
    AutoConfirmNotEligible,
    InvalidTransition,
    LifecycleError,
    MissingReason,
    NotificationDeliveryFailed,
    SlotUnavailable,
    StaleState,
    UnknownParty,
)
from carelink.utils import auto_confirm_threshold, urgency_cutoff, utcnow

logger = logging.getLogger(__name__)


class Actor(Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    STAFF = "staff"
    SYSTEM = "system"


TRANSITIONS = {
    AppointmentStatus.PENDING: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.NEEDS_RESCHEDULE,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.CONFIRMED: {
        AppointmentStatus.CANCELLED,
        AppointmentStatus.COMPLETED,
    },
    AppointmentStatus.NEEDS_RESCHEDULE: {
        AppointmentStatus.PENDING_RESCHEDULE_CONFIRMATION,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.PENDING_RESCHEDULE_CONFIRMATION: {
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.NEEDS_RESCHEDULE,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.COMPLETED: set(),
}


@dataclass
class TransitionResult:
    appointment: Optional[Appointment] = None
    error: Optional[LifecycleError] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self):
        return self.error is None


def is_valid_transition(current, target):
    return target in TRANSITIONS.get(current, set())


def _returns_result(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LifecycleError as e:
            logger.warning(f"{func.__name__} refused: {e.detail}")
            return TransitionResult(error=e)

    return wrapper


def _as_actor(value):
    try:
        return Actor(value)
    except ValueError:
        raise InvalidTransition(
            f"Unknown actor {value!r}",
            user_message="You are not allowed to change this appointment.",
        ) from None


def _check_transition(appointment, target, sources=None):
    # `sources` narrows where an operation may start; the table still applies
    current = appointment.status_enum

    if current == target:
        raise StaleState(
            f"Appointment {appointment.appointment_id} is already '{target.value}'",
            user_message=(
                f"This appointment is already {target.value.replace('_', ' ')}. "
                f"Refresh to see the latest status."
            ),
        )

    if not is_valid_transition(current, target) or (sources is not None and current not in sources):
        raise InvalidTransition(
            f"Appointment {appointment.appointment_id}: '{current.value}' -> '{target.value}' is not allowed"
        )
    return current


def _require_actor(actor, allowed, action):
    if actor not in allowed:
        raise InvalidTransition(
            f"A {actor.value} cannot {action} an appointment",
            user_message=f"You are not allowed to {action} this appointment.",
        )


def _require_reason(reason, action):
    reason = (reason or "").strip()
    if not reason:
        raise MissingReason(f"A reason is required to {action} an appointment")
    return reason


def _own_ids(appointment, actor):
    if actor == Actor.PATIENT:
        return {appointment.patient_id}
    if actor == Actor.DOCTOR:
        return {appointment.doctor_id}
    return set()


def _party_ids(appointment, party):
    """User ids behind a party name; staff and system stand for both sides."""
    if party == Actor.PATIENT.value:
        return [appointment.patient_id]
    if party == Actor.DOCTOR.value:
        return [appointment.doctor_id]
    return [appointment.patient_id, appointment.doctor_id]


def _counterparty_ids(appointment, actor):
    own = _own_ids(appointment, actor)
    return [uid for uid in (appointment.patient_id, appointment.doctor_id) if uid not in own]


def _slot_patch(appointment, new_date, new_time):
    """Move the slot, remembering the first-booked one the first time it changes."""
    new_date = new_date or appointment.appointment_date
    new_time = new_time or appointment.appointment_time
    if (new_date, new_time) == (appointment.appointment_date, appointment.appointment_time):
        return {}

    scheduling.ensure_bookable(
        appointment.doctor_id,
        new_date,
        new_time,
        appointment.duration_minutes,
        exclude_id=appointment.appointment_id,
    )
    patch = {"appointment_date": new_date, "appointment_time": new_time}
    if appointment.original_date is None and appointment.original_time is None:
        patch["original_date"] = appointment.appointment_date
        patch["original_time"] = appointment.appointment_time
    return patch


def _ensure_no_clash(appointment):
    if scheduling.has_conflict(appointment):
        raise SlotUnavailable(
            f"Doctor {appointment.doctor_id} already has a confirmed appointment at {appointment.starts_at}",
            user_message="The doctor already has a confirmed appointment at this time.",
        )


def _notify(result, notice_list):
    for notice in notice_list:
        try:
            notification_service.dispatch(notice)
        except NotificationDeliveryFailed as e:
            logger.warning(f"Appointment {notice.appointment_id}: {e}")
            result.warnings.append(f"'{notice.title}' could not be delivered to user {notice.user_id}.")
    return result


def _log_transition(appointment_id, current, target, actor):
    logger.info(f"Appointment {appointment_id} transitioned: {current.value} -> {target.value} by {actor.value}")


@_returns_result
def book(
    patient_id,
    doctor_id,
    appointment_date,
    appointment_time,
    duration_minutes=30,
    consultation_type=ConsultationType.IN_PERSON,
    reason=None,
    now=None,
):
    if db.session.get(Patient, patient_id) is None or db.session.get(Doctor, doctor_id) is None:
        raise UnknownParty(f"Patient {patient_id} or doctor {doctor_id} does not exist")

    try:
        consultation_type = ConsultationType(consultation_type)
    except ValueError:
        raise InvalidTransition(
            f"Unknown consultation type {consultation_type!r}",
            user_message="Please choose a valid consultation type.",
        ) from None

    scheduling.ensure_bookable(doctor_id, appointment_date, appointment_time, duration_minutes)

    now = now or utcnow()
    appointment = Appointment(
        patient_id=patient_id,
        doctor_id=doctor_id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        duration_minutes=duration_minutes,
        consultation_type=consultation_type.value,
        reason=reason,
        status=AppointmentStatus.PENDING.value,
        created_at=now,
        updated_at=now,
    )
    appointment_store.create(appointment)
    logger.info(f"Appointment {appointment.appointment_id} booked by patient {patient_id} with doctor {doctor_id}")

    result = TransitionResult(appointment=appointment)
    return _notify(result, [notices.booked(appointment)])


@_returns_result
def confirm(appointment_id, actor, now=None):
    """Confirm a pending appointment, or the proposed slot of a reschedule."""
    actor = _as_actor(actor)
    appointment = appointment_store.get(appointment_id)
    current = _check_transition(appointment, AppointmentStatus.CONFIRMED)

    if current == AppointmentStatus.PENDING:
        _require_actor(actor, {Actor.DOCTOR, Actor.STAFF, Actor.SYSTEM}, "confirm")
    elif actor != Actor.STAFF and actor.value != appointment.reschedule_requested_by:
        raise InvalidTransition(
            f"Only the {appointment.reschedule_requested_by} who requested the reschedule may confirm it",
            user_message="Only the party who requested the reschedule can confirm the new time.",
        )
    _ensure_no_clash(appointment)

    updated = appointment_store.update(
        appointment_id,
        current,
        {"status": AppointmentStatus.CONFIRMED.value, "confirmed_at": now or utcnow()},
    )
    _log_transition(appointment_id, current, AppointmentStatus.CONFIRMED, actor)

    outgoing = [notices.confirmed_for_patient(updated, confirmed_by=actor.value)]
    if current == AppointmentStatus.PENDING_RESCHEDULE_CONFIRMATION:
        outgoing.append(notices.confirmed_for_doctor(updated))
    elif actor == Actor.STAFF:
        outgoing.append(notices.staff_confirmed_for_doctor(updated))

    return _notify(TransitionResult(appointment=updated), outgoing)


@_returns_result
def auto_confirm(appointment_id, actor=Actor.STAFF, now=None):
    # The age check is repeated in the conditional write
    actor = _as_actor(actor)
    _require_actor(actor, {Actor.STAFF, Actor.SYSTEM}, "auto-confirm")

    appointment = appointment_store.get(appointment_id)
    current = _check_transition(
        appointment, AppointmentStatus.CONFIRMED, sources={AppointmentStatus.PENDING}
    )

    now = now or utcnow()
    cutoff = urgency_cutoff(now)
    if not appointment.created_at < cutoff:
        hours = auto_confirm_threshold().total_seconds() / 3600
        raise AutoConfirmNotEligible(
            f"Appointment {appointment_id} created at {appointment.created_at} is younger than {hours:g}h"
        )
    _ensure_no_clash(appointment)

    note = "Auto-confirmed by staff oversight" if actor == Actor.STAFF else "Auto-confirmed by system"
    updated = appointment_store.update(
        appointment_id,
        current,
        {"status": AppointmentStatus.CONFIRMED.value, "confirmed_at": now, "notes": note},
        conditions=(Appointment.created_at < cutoff,),
    )
    _log_transition(appointment_id, current, AppointmentStatus.CONFIRMED, actor)

    outgoing = [notices.confirmed_for_patient(updated, confirmed_by=actor.value)]
    if actor == Actor.STAFF:
        outgoing.append(notices.staff_confirmed_for_doctor(updated))
    else:
        outgoing.append(notices.auto_confirmed_for_doctor(updated))

    return _notify(TransitionResult(appointment=updated), outgoing)


@_returns_result
def request_reschedule(appointment_id, actor, reason, new_date=None, new_time=None):
    actor = _as_actor(actor)
    reason = _require_reason(reason, "reschedule")
    _require_actor(actor, {Actor.PATIENT, Actor.DOCTOR, Actor.STAFF}, "reschedule")

    appointment = appointment_store.get(appointment_id)
    current = _check_transition(
        appointment, AppointmentStatus.NEEDS_RESCHEDULE, sources={AppointmentStatus.PENDING}
    )

    patch = {
        "status": AppointmentStatus.NEEDS_RESCHEDULE.value,
        "reschedule_requested_by": actor.value,
        "reschedule_reason": reason,
    }
    patch.update(_slot_patch(appointment, new_date, new_time))

    updated = appointment_store.update(appointment_id, current, patch)
    _log_transition(appointment_id, current, AppointmentStatus.NEEDS_RESCHEDULE, actor)

    outgoing = [
        notices.reschedule_requested(updated, user_id, actor.value, reason)
        for user_id in _counterparty_ids(updated, actor)
    ]
    return _notify(TransitionResult(appointment=updated), outgoing)


@_returns_result
def accept_reschedule(appointment_id, actor, new_date=None, new_time=None):
    """
    The counterparty accepts the requested slot, or counter-proposes one.
    The original requester then confirms or rejects it.
    """
    actor = _as_actor(actor)
    _require_actor(actor, {Actor.PATIENT, Actor.DOCTOR, Actor.STAFF}, "accept a reschedule for")

    appointment = appointment_store.get(appointment_id)
    current = _check_transition(appointment, AppointmentStatus.PENDING_RESCHEDULE_CONFIRMATION)

    requester = appointment.reschedule_requested_by
    if actor != Actor.STAFF and actor.value == requester:
        raise InvalidTransition(
            f"The {requester} who requested the reschedule cannot also accept it",
            user_message="Waiting for the other party to respond to your reschedule request.",
        )

    patch = {"status": AppointmentStatus.PENDING_RESCHEDULE_CONFIRMATION.value}
    patch.update(_slot_patch(appointment, new_date, new_time))

    updated = appointment_store.update(appointment_id, current, patch)
    _log_transition(appointment_id, current, AppointmentStatus.PENDING_RESCHEDULE_CONFIRMATION, actor)

    own = _own_ids(updated, actor)
    outgoing = [
        notices.reschedule_accepted(updated, user_id)
        for user_id in _party_ids(updated, requester)
        if user_id not in own
    ]
    return _notify(TransitionResult(appointment=updated), outgoing)


@_returns_result
def reject_reschedule(appointment_id, actor, reason, new_date=None, new_time=None):
    """The original requester turns down the proposed slot; the rejecting party becomes the requester."""
    actor = _as_actor(actor)
    reason = _require_reason(reason, "reject a reschedule for")

    appointment = appointment_store.get(appointment_id)
    current = _check_transition(
        appointment,
        AppointmentStatus.NEEDS_RESCHEDULE,
        sources={AppointmentStatus.PENDING_RESCHEDULE_CONFIRMATION},
    )

    if actor != Actor.STAFF and actor.value != appointment.reschedule_requested_by:
        raise InvalidTransition(
            f"Only the {appointment.reschedule_requested_by} who requested the reschedule may reject it",
            user_message="Only the party who requested the reschedule can reject the proposed time.",
        )

    patch = {
        "status": AppointmentStatus.NEEDS_RESCHEDULE.value,
        "reschedule_requested_by": actor.value,
        "reschedule_reason": reason,
    }
    patch.update(_slot_patch(appointment, new_date, new_time))

    updated = appointment_store.update(appointment_id, current, patch)
    _log_transition(appointment_id, current, AppointmentStatus.NEEDS_RESCHEDULE, actor)

    outgoing = [
        notices.reschedule_requested(updated, user_id, actor.value, reason)
        for user_id in _counterparty_ids(updated, actor)
    ]
    return _notify(TransitionResult(appointment=updated), outgoing)


@_returns_result
def cancel(appointment_id, actor, reason):
    actor = _as_actor(actor)
    reason = _require_reason(reason, "cancel")
    _require_actor(actor, {Actor.PATIENT, Actor.DOCTOR, Actor.STAFF}, "cancel")

    appointment = appointment_store.get(appointment_id)
    current = _check_transition(appointment, AppointmentStatus.CANCELLED)

    updated = appointment_store.update(
        appointment_id,
        current,
        {"status": AppointmentStatus.CANCELLED.value, "cancellation_reason": reason},
    )
    _log_transition(appointment_id, current, AppointmentStatus.CANCELLED, actor)

    outgoing = [
        notices.cancelled(updated, user_id, actor.value, reason)
        for user_id in (updated.patient_id, updated.doctor_id)
    ]
    return _notify(TransitionResult(appointment=updated), outgoing)


@_returns_result
def complete(appointment_id, actor=Actor.SYSTEM, now=None):
    actor = _as_actor(actor)
    _require_actor(actor, {Actor.DOCTOR, Actor.STAFF, Actor.SYSTEM}, "complete")

    appointment = appointment_store.get(appointment_id)
    current = _check_transition(appointment, AppointmentStatus.COMPLETED)

    now = now or utcnow()
    if now < appointment.ends_at:
        raise InvalidTransition(
            f"Appointment {appointment_id} ends at {appointment.ends_at}, cannot complete at {now}",
            user_message="This appointment has not taken place yet.",
        )

    updated = appointment_store.update(
        appointment_id, current, {"status": AppointmentStatus.COMPLETED.value}
    )
    _log_transition(appointment_id, current, AppointmentStatus.COMPLETED, actor)
    return TransitionResult(appointment=updated)


def complete_elapsed(now=None):
    """Complete every confirmed appointment whose slot has ended. Run as a scheduled job."""
    now = now or utcnow()
    summary = {"completed": 0, "skipped": 0}

    for appointment in appointment_store.list_appointments(statuses=[AppointmentStatus.CONFIRMED]):
        if appointment.ends_at > now:
            continue

        result = complete(appointment.appointment_id, actor=Actor.SYSTEM, now=now)
        if result.ok:
            summary["completed"] += 1
        else:
            summary["skipped"] += 1

    if summary["completed"]:
        logger.info(f"Completion sweep summary: {summary}")
    else:
        logger.debug("No elapsed appointments to complete")
    return summary

"""
Tests for doctor availability windows and slot clashes.
"""

from datetime import date, time, timedelta

import pytest

from carelink.models.appointment import Appointment
from carelink.models.availability import Availability
from carelink.services import appointment_store, lifecycle, scheduling
from carelink.services.auth_service import register_user
from carelink.services.errors import SlotUnavailable
from carelink.services.lifecycle import Actor

from conftest import BOOKED_DATE, BOOKED_TIME, NOW


@pytest.fixture
def open_day(doctor):
    """The doctor works 09:00-11:00 on the booked date."""
    window, error = scheduling.add_availability(doctor.user_id, BOOKED_DATE, time(9, 0), time(11, 0))
    assert error is None, error
    return window


class TestSlotClashes:
    def test_second_booking_of_same_slot_is_refused(self, pending_id, patient, doctor):
        result = lifecycle.book(patient.user_id, doctor.user_id, BOOKED_DATE, BOOKED_TIME, now=NOW)

        assert isinstance(result.error, SlotUnavailable)
        assert result.error.http_status == 409
        assert result.error.user_message == "That time is already booked. Please pick another slot."
        assert Appointment.query.count() == 1

    def test_other_doctor_may_take_the_same_time(self, pending_id, patient):
        other, error = register_user("okafor@doctor.com", "Okafor", "secret", specialization="Dermatology")
        assert error is None

        result = lifecycle.book(patient.user_id, other.user_id, BOOKED_DATE, BOOKED_TIME, now=NOW)

        assert result.ok

    def test_cancelled_slot_can_be_rebooked(self, pending_id, patient, doctor):
        lifecycle.cancel(pending_id, Actor.PATIENT, "feeling better")

        result = lifecycle.book(patient.user_id, doctor.user_id, BOOKED_DATE, BOOKED_TIME, now=NOW)

        assert result.ok
        assert result.appointment.appointment_id != pending_id

    def test_reschedule_into_taken_slot_is_refused(self, book):
        taken = book(appointment_time=time(14, 0))
        moving = book()

        result = lifecycle.request_reschedule(moving, Actor.PATIENT, "earlier bus", new_time=time(14, 0))

        assert isinstance(result.error, SlotUnavailable)
        appointment = appointment_store.get(moving)
        assert appointment.status == "pending"
        assert appointment.appointment_time == BOOKED_TIME
        assert appointment_store.get(taken).status == "pending"

    def test_counter_proposal_into_taken_slot_is_refused(self, book):
        book(appointment_time=time(14, 0))
        moving = book()
        lifecycle.request_reschedule(moving, Actor.DOCTOR, "surgery")

        result = lifecycle.accept_reschedule(moving, Actor.PATIENT, new_time=time(14, 0))

        assert isinstance(result.error, SlotUnavailable)
        assert appointment_store.get(moving).status == "needs_reschedule"

    def test_reschedule_keeping_own_slot_is_not_a_clash(self, pending_id):
        result = lifecycle.request_reschedule(
            pending_id, Actor.PATIENT, "just checking", new_date=BOOKED_DATE, new_time=BOOKED_TIME
        )

        assert result.ok

    def test_confirm_refused_when_slot_already_confirmed(self, pending_id, patient, doctor):
        lifecycle.confirm(pending_id, Actor.DOCTOR)
        # Rows written before slot checks existed can still share a slot
        legacy = appointment_store.create(Appointment(
            patient_id=patient.user_id,
            doctor_id=doctor.user_id,
            appointment_date=BOOKED_DATE,
            appointment_time=BOOKED_TIME,
            created_at=NOW - timedelta(days=1),
        )).appointment_id

        manual = lifecycle.confirm(legacy, Actor.STAFF)
        automatic = lifecycle.auto_confirm(legacy, actor=Actor.STAFF, now=NOW)

        assert isinstance(manual.error, SlotUnavailable)
        assert isinstance(automatic.error, SlotUnavailable)
        assert appointment_store.get(legacy).status == "pending"
        assert appointment_store.get(legacy).confirmed_at is None

    def test_has_conflict_only_counts_confirmed(self, book):
        first = book()
        lifecycle.cancel(first, Actor.PATIENT, "changed plans")
        second = book()

        assert scheduling.has_conflict(appointment_store.get(second)) is False
        assert scheduling.slot_taken(appointment_store.get(second).doctor_id, BOOKED_DATE, BOOKED_TIME) is True


class TestAvailabilityWindows:
    def test_days_without_windows_are_unrestricted(self, doctor):
        assert scheduling.within_availability(doctor.user_id, BOOKED_DATE, time(22, 0), 30) is True

    def test_booking_inside_window(self, open_day, book):
        appointment_id = book(appointment_time=time(10, 30))

        assert appointment_store.get(appointment_id).status == "pending"

    @pytest.mark.parametrize("starts", [time(8, 30), time(10, 45), time(11, 0)])
    def test_booking_outside_window_is_refused(self, open_day, patient, doctor, starts):
        result = lifecycle.book(patient.user_id, doctor.user_id, BOOKED_DATE, starts, now=NOW)

        assert isinstance(result.error, SlotUnavailable)
        assert result.error.user_message == "The doctor is not working at that time. Please pick another slot."
        assert Appointment.query.count() == 0

    def test_closed_window_does_not_count(self, open_day, patient, doctor):
        open_day.is_open = False
        result = lifecycle.book(patient.user_id, doctor.user_id, BOOKED_DATE, BOOKED_TIME, now=NOW)

        assert isinstance(result.error, SlotUnavailable)

    def test_reschedule_outside_window_is_refused(self, open_day, book):
        appointment_id = book()

        result = lifecycle.request_reschedule(appointment_id, Actor.DOCTOR, "overbooked", new_time=time(16, 0))

        assert isinstance(result.error, SlotUnavailable)
        assert appointment_store.get(appointment_id).appointment_time == BOOKED_TIME

    def test_free_slots_flag_booked_times(self, open_day, book):
        appointment_id = book(appointment_time=time(9, 30))

        slots = scheduling.free_slots(open_day.doctor_id, BOOKED_DATE)

        assert [s["time"] for s in slots] == ["09:00", "09:30", "10:00", "10:30"]
        assert [s["available"] for s in slots] == [True, False, True, True]
        assert slots[1]["appointment_id"] == appointment_id

    def test_free_slots_reopen_after_cancel(self, open_day, book):
        appointment_id = book(appointment_time=time(9, 30))
        lifecycle.cancel(appointment_id, Actor.PATIENT, "changed plans")

        slots = scheduling.free_slots(open_day.doctor_id, BOOKED_DATE)

        assert all(s["available"] for s in slots)

    def test_no_windows_means_no_listed_slots(self, doctor):
        assert scheduling.free_slots(doctor.user_id, date(2025, 3, 2)) == []


class TestManageAvailability:
    def test_start_must_precede_end(self, doctor):
        window, error = scheduling.add_availability(doctor.user_id, BOOKED_DATE, time(12, 0), time(12, 0))

        assert window is None
        assert error == "Start time must be before end time."

    def test_overlapping_window_is_refused(self, open_day, doctor):
        window, error = scheduling.add_availability(doctor.user_id, BOOKED_DATE, time(10, 30), time(12, 0))

        assert window is None
        assert error == "This window overlaps an existing one."
        assert Availability.query.count() == 1

    def test_adjacent_window_is_allowed(self, open_day, doctor):
        window, error = scheduling.add_availability(doctor.user_id, BOOKED_DATE, time(11, 0), time(12, 0))

        assert error is None
        assert window.to_dict()["start_time"] == "11:00"

    def test_remove_own_window_only(self, open_day, doctor):
        assert scheduling.remove_availability(open_day.availability_id, doctor.user_id + 1) is False
        assert scheduling.remove_availability(open_day.availability_id, doctor.user_id) is True
        assert Availability.query.count() == 0

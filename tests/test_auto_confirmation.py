from datetime import time, timedelta

from carelink.models.appointment import Appointment
from carelink.models.notification import Notification
from carelink.services import appointment_store, auto_confirmation, lifecycle, scheduling
from carelink.services.auth_service import register_user
from carelink.services.lifecycle import Actor

from conftest import BOOKED_DATE, BOOKED_TIME, NOW, notifications_for


class TestAutoConfirmationSweep:
    def test_confirms_stalled_and_skips_fresh(self, book, doctor, staff):
        stalled = book(now=NOW - timedelta(hours=3))
        fresh = book(appointment_time=time(11, 0), now=NOW - timedelta(minutes=30))

        summary = auto_confirmation.run_auto_confirmation(now=NOW)

        assert summary == {"checked": 1, "confirmed": 1, "conflicts": 0, "failed": 0}
        confirmed = appointment_store.get(stalled)
        assert confirmed.status == "confirmed"
        assert confirmed.notes == "Auto-confirmed by system"
        assert appointment_store.get(fresh).status == "pending"
        assert len(notifications_for(doctor.user_id, "Appointment Auto-Confirmed")) == 1
        assert len(notifications_for(staff.user_id, "Auto-Confirmation Completed")) == 1

    def test_conflict_is_left_for_staff(self, book, patient, doctor, staff):
        taken = book(now=NOW - timedelta(hours=5))
        lifecycle.confirm(taken, Actor.DOCTOR)
        # Rows written before slot checks existed can still share a slot
        clashing = appointment_store.create(Appointment(
            patient_id=patient.user_id,
            doctor_id=doctor.user_id,
            appointment_date=BOOKED_DATE,
            appointment_time=BOOKED_TIME,
            created_at=NOW - timedelta(hours=4),
        )).appointment_id

        summary = auto_confirmation.run_auto_confirmation(now=NOW)

        assert summary["conflicts"] == 1
        assert summary["confirmed"] == 0
        assert appointment_store.get(clashing).status == "pending"
        [blocked] = notifications_for(staff.user_id, "Auto-Confirmation Blocked")
        assert blocked.appointment_id == clashing
        assert blocked.priority == "high"

    def test_has_conflict_ignores_other_slots(self, book):
        first = book(now=NOW - timedelta(hours=5))
        lifecycle.confirm(first, Actor.DOCTOR)
        other = book(appointment_time=time(15, 0), now=NOW - timedelta(hours=5))

        assert scheduling.has_conflict(appointment_store.get(other)) is False
        assert scheduling.has_conflict(appointment_store.get(first)) is False

    def test_staff_notifications_are_capped(self, book, staff):
        for index in range(3):
            register_user(f"desk{index}@staff.com", f"Desk {index}", "secret")
        book(now=NOW - timedelta(hours=3))

        auto_confirmation.run_auto_confirmation(now=NOW)

        assert Notification.query.filter_by(title="Auto-Confirmation Completed").count() == 3

    def test_second_run_is_a_no_op(self, book):
        book(now=NOW - timedelta(hours=3))

        auto_confirmation.run_auto_confirmation(now=NOW)
        summary = auto_confirmation.run_auto_confirmation(now=NOW)

        assert summary == {"checked": 0, "confirmed": 0, "conflicts": 0, "failed": 0}

    def test_cli_command(self, app, book):
        book(now=NOW - timedelta(days=1))

        result = app.test_cli_runner().invoke(args=["auto-confirm"])

        assert result.exit_code == 0
        assert "confirmed 1" in result.output

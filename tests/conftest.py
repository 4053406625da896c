"""
Shared pytest fixtures.

Every test gets a fresh application on an in-memory SQLite database with
one patient, one doctor and one staff member registered.
"""

from datetime import date, datetime, time

import pytest

from carelink import create_app
from carelink.config import TestConfig
from carelink.extensions import db
from carelink.models.notification import Notification
from carelink.services import change_feed, lifecycle
from carelink.services.auth_service import register_user

PASSWORD = "secret"

# Fixed server clock used by tests that care about appointment age
NOW = datetime(2025, 2, 27, 12, 0, 0)
BOOKED_DATE = date(2025, 3, 1)
BOOKED_TIME = time(10, 0)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
    change_feed.clear()


@pytest.fixture
def client(app):
    return app.test_client()


def _register(email, username, **kwargs):
    user, error = register_user(email, username, PASSWORD, **kwargs)
    assert error is None, error
    return user


@pytest.fixture
def patient(app):
    return _register("ana@patient.com", "Ana Reyes")


@pytest.fixture
def doctor(app):
    return _register("mendoza@doctor.com", "Mendoza", specialization="Family Medicine")


@pytest.fixture
def staff(app):
    return _register("front@staff.com", "Front Desk")


@pytest.fixture
def book(patient, doctor):
    """Book an appointment for the default patient and doctor; returns its id."""
    def _book(appointment_date=BOOKED_DATE, appointment_time=BOOKED_TIME, now=NOW, **kwargs):
        result = lifecycle.book(
            patient.user_id,
            doctor.user_id,
            appointment_date,
            appointment_time,
            now=now,
            **kwargs,
        )
        assert result.ok, result.error
        return result.appointment.appointment_id

    return _book


@pytest.fixture
def pending_id(book):
    return book()


def notifications_for(user_id, title=None):
    query = Notification.query.filter_by(user_id=user_id)
    if title:
        query = query.filter_by(title=title)
    return query.all()

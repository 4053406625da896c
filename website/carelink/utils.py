from datetime import datetime, timedelta, timezone

from flask import current_app


def utcnow():
    """Naive UTC timestamp, matching how every DateTime column is stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def auto_confirm_threshold():
    return timedelta(hours=current_app.config["AUTO_CONFIRM_THRESHOLD_HOURS"])


def urgency_cutoff(now=None):
    """
    Latest created_at that still counts as urgent.
    An appointment is urgent when it was created strictly before this instant.
    """
    return (now or utcnow()) - auto_confirm_threshold()


def format_slot(appointment_date, appointment_time):
    return f"{appointment_date.strftime('%Y-%m-%d')} at {appointment_time.strftime('%H:%M')}"

from datetime import datetime
from functools import wraps

from flask import g, jsonify, request, session

from carelink.extensions import db
from carelink.models.roles import RoleEnum
from carelink.models.user import User
from carelink.services import notification_service
from carelink.services.lifecycle import Actor

ROLE_HOME = {
    RoleEnum.PATIENT: "patient.dashboard",
    RoleEnum.DOCTOR: "doctor.dashboard",
    RoleEnum.STAFF: "staff.dashboard",
}

ROLE_ACTOR = {
    RoleEnum.PATIENT: Actor.PATIENT,
    RoleEnum.DOCTOR: Actor.DOCTOR,
    RoleEnum.STAFF: Actor.STAFF,
}


def role_required(role):
    """
    Resolve the logged-in user once per request into `g.user`, `g.actor`
    and `g.home`, refusing anyone whose role does not match.
    """
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            user_id = session.get("user_id")
            if not user_id:
                return jsonify({"error": "Not logged in"}), 401

            user = db.session.get(User, user_id)
            if user is None:
                session.clear()
                return jsonify({"error": "Not logged in"}), 401
            if user.role != role:
                return jsonify({"error": "Unauthorized"}), 403

            g.user = user
            g.actor = ROLE_ACTOR[role]
            g.home = ROLE_HOME[role]
            return view(*args, **kwargs)

        return wrapped

    return decorator


def result_response(result, success_status=200):
    """Render a TransitionResult: the error's status and message, or the appointment plus warnings."""
    if not result.ok:
        return jsonify({
            "error": type(result.error).__name__,
            "message": result.error.user_message,
        }), result.error.http_status

    return jsonify({
        "appointment": result.appointment.to_dict() if result.appointment else None,
        "warnings": result.warnings,
    }), success_status


def notifications_response(user_id):
    unread_only = request.args.get("unread") == "1"
    notifications = notification_service.list_for_user(
        user_id,
        unread_only=unread_only,
        type=request.args.get("type"),
        priority=request.args.get("priority"),
    )
    return jsonify({
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": notification_service.unread_count(user_id),
    })


def mark_seen_response(notif_id, user_id):
    if not notification_service.mark_read(notif_id, user_id):
        return jsonify({"error": "Notification not found"}), 404
    return jsonify({"unread_count": notification_service.unread_count(user_id)})


def mark_all_seen_response(user_id):
    updated = notification_service.mark_all_read(user_id)
    return jsonify({"marked": updated, "unread_count": 0})


def parse_slot(payload, required=False):
    """
    Read `date` (YYYY-MM-DD) and `time` (HH:MM) from a request body.
    Returns (date, time, error).
    """
    date_str = (payload or {}).get("date")
    time_str = (payload or {}).get("time")

    if not date_str and not time_str:
        if required:
            return None, None, "Date and time are required."
        return None, None, None

    try:
        new_date = datetime.strptime(date_str, "%Y-%m-%d").date() if date_str else None
        new_time = datetime.strptime(time_str, "%H:%M").time() if time_str else None
    except (TypeError, ValueError):
        return None, None, "Date must be YYYY-MM-DD and time must be HH:MM."

    if required and (new_date is None or new_time is None):
        return None, None, "Date and time are required."
    return new_date, new_time, None

from datetime import datetime

from flask import Blueprint, g, jsonify, request

from carelink.controllers.routing import (
    role_required,
    result_response,
    notifications_response,
    mark_seen_response,
    mark_all_seen_response,
    parse_slot,
)
from carelink.models.appointment import Appointment
from carelink.models.appointment_status import AppointmentStatus
from carelink.models.availability import Availability
from carelink.models.roles import RoleEnum
from carelink.services import lifecycle, notification_service, scheduling

doctor_bp = Blueprint("doctor", __name__, url_prefix="/doctor")

def _own_appointment(appointment_id):
    return Appointment.query.filter_by(appointment_id=appointment_id, doctor_id=g.user.user_id).first()

def _not_found():
    return jsonify({"error": "Appointment not found"}), 404

@doctor_bp.route("/dashboard")
@role_required(RoleEnum.DOCTOR)
def dashboard():
    pending = Appointment.query.filter_by(
        doctor_id=g.user.user_id, status=AppointmentStatus.PENDING.value
    ).count()

    return jsonify({
        "user": g.user.username,
        "pending_appointments": pending,
        "unseen_notifications": notification_service.unread_count(g.user.user_id)
    })

# region Appointments
@doctor_bp.route("/appointments")
@role_required(RoleEnum.DOCTOR)
def appointments():
    query = Appointment.query.filter_by(doctor_id=g.user.user_id)

    status = request.args.get("status")
    if status:
        query = query.filter(Appointment.status == status)

    appointments_list = query.order_by(Appointment.appointment_date, Appointment.appointment_time).all()
    return jsonify([a.to_dict() for a in appointments_list])

@doctor_bp.route("/appointments/<int:appointment_id>/confirm", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def confirm_appointment(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    return result_response(lifecycle.confirm(appointment_id, g.actor))

@doctor_bp.route("/appointments/<int:appointment_id>/reschedule", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def request_reschedule(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    form = request.get_json(silent=True) or {}
    new_date, new_time, error = parse_slot(form)
    if error:
        return jsonify({"error": error}), 400

    result = lifecycle.request_reschedule(
        appointment_id, g.actor, form.get("reason"), new_date=new_date, new_time=new_time
    )
    return result_response(result)

@doctor_bp.route("/appointments/<int:appointment_id>/reschedule/accept", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def accept_reschedule(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    new_date, new_time, error = parse_slot(request.get_json(silent=True))
    if error:
        return jsonify({"error": error}), 400

    return result_response(lifecycle.accept_reschedule(appointment_id, g.actor, new_date=new_date, new_time=new_time))

@doctor_bp.route("/appointments/<int:appointment_id>/reschedule/reject", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def reject_reschedule(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    form = request.get_json(silent=True) or {}
    new_date, new_time, error = parse_slot(form)
    if error:
        return jsonify({"error": error}), 400

    result = lifecycle.reject_reschedule(
        appointment_id, g.actor, form.get("reason"), new_date=new_date, new_time=new_time
    )
    return result_response(result)

@doctor_bp.route("/appointments/<int:appointment_id>/cancel", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def cancel_appointment(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    form = request.get_json(silent=True) or {}
    return result_response(lifecycle.cancel(appointment_id, g.actor, form.get("reason")))

@doctor_bp.route("/appointments/<int:appointment_id>/complete", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def complete_appointment(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    return result_response(lifecycle.complete(appointment_id, actor=g.actor))
# endregion

# region Availability
@doctor_bp.route("/availability", methods=["GET", "POST"])
@role_required(RoleEnum.DOCTOR)
def availability():
    if request.method == "POST":
        form = request.get_json(silent=True) or {}
        date_str = form.get("date")
        start_time_str = form.get("start_time")
        end_time_str = form.get("end_time")

        if not date_str or not start_time_str or not end_time_str:
            return jsonify({"error": "All fields are required."}), 400

        try:
            on_date = datetime.strptime(date_str, "%Y-%m-%d").date()
            start_time = datetime.strptime(start_time_str, "%H:%M").time()
            end_time = datetime.strptime(end_time_str, "%H:%M").time()
        except (TypeError, ValueError):
            return jsonify({"error": "Date must be YYYY-MM-DD and times must be HH:MM."}), 400

        window, error = scheduling.add_availability(g.user.user_id, on_date, start_time, end_time)
        if error:
            return jsonify({"error": error}), 400
        return jsonify(window.to_dict()), 201

    windows = (
        Availability.query
        .filter_by(doctor_id=g.user.user_id)
        .order_by(Availability.availability_date, Availability.start_time)
        .all()
    )
    return jsonify([w.to_dict() for w in windows])

@doctor_bp.route("/availability/<int:availability_id>/delete", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def delete_availability(availability_id):
    if not scheduling.remove_availability(availability_id, g.user.user_id):
        return jsonify({"error": "Availability not found"}), 404
    return jsonify({"deleted": availability_id})
# endregion

# region Notifications
@doctor_bp.route("/notifications")
@role_required(RoleEnum.DOCTOR)
def notifications():
    return notifications_response(g.user.user_id)

@doctor_bp.route("/notifications/mark_seen/<int:notif_id>", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def mark_notification_seen(notif_id):
    return mark_seen_response(notif_id, g.user.user_id)

@doctor_bp.route("/notifications/mark_all_seen", methods=["POST"])
@role_required(RoleEnum.DOCTOR)
def mark_all_notifications_seen():
    return mark_all_seen_response(g.user.user_id)
# endregion

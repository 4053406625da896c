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
from carelink.extensions import db
from carelink.models.appointment import Appointment
from carelink.models.consultation_type import ConsultationType
from carelink.models.doctor import Doctor
from carelink.models.roles import RoleEnum
from carelink.services import lifecycle, notification_service, scheduling

patient_bp = Blueprint("patient", __name__, url_prefix="/patient")

CONSULTATION_TYPES = {c.value for c in ConsultationType}

def _own_appointment(appointment_id):
    return Appointment.query.filter_by(appointment_id=appointment_id, patient_id=g.user.user_id).first()

def _not_found():
    return jsonify({"error": "Appointment not found"}), 404

@patient_bp.route("/dashboard")
@role_required(RoleEnum.PATIENT)
def dashboard():
    appointments_count = Appointment.query.filter_by(patient_id=g.user.user_id).count()

    return jsonify({
        "user": g.user.username,
        "appointments_count": appointments_count,
        "unseen_notifications": notification_service.unread_count(g.user.user_id)
    })

# region Doctors
@patient_bp.route("/doctors")
@role_required(RoleEnum.PATIENT)
def doctors():
    data = [
        {"id": d.doctor_id, "name": d.name, "specialization": d.specialization}
        for d in Doctor.query.all()
    ]
    return jsonify(data)

@patient_bp.route("/doctors/<int:doctor_id>/slots")
@role_required(RoleEnum.PATIENT)
def doctor_slots(doctor_id):
    if db.session.get(Doctor, doctor_id) is None:
        return jsonify({"error": "Doctor not found"}), 404

    try:
        on_date = datetime.strptime(request.args.get("date", ""), "%Y-%m-%d").date()
    except ValueError:
        return jsonify({"error": "Date must be YYYY-MM-DD."}), 400

    return jsonify({
        "doctor_id": doctor_id,
        "date": on_date.isoformat(),
        "slots": scheduling.free_slots(doctor_id, on_date),
    })
# endregion

# region Appointments
@patient_bp.route("/appointments")
@role_required(RoleEnum.PATIENT)
def appointments():
    appointments_list = (
        Appointment.query
        .filter_by(patient_id=g.user.user_id)
        .order_by(Appointment.appointment_date, Appointment.appointment_time)
        .all()
    )
    return jsonify([a.to_dict() for a in appointments_list])

@patient_bp.route("/appointments/new", methods=["POST"])
@role_required(RoleEnum.PATIENT)
def create_appointment():
    form = request.get_json(silent=True) or {}

    try:
        doctor_id = int(form.get("doctor_id"))
    except (TypeError, ValueError):
        return jsonify({"error": "Please select a doctor."}), 400

    appointment_date, appointment_time, error = parse_slot(form, required=True)
    if error:
        return jsonify({"error": error}), 400

    consultation_type = form.get("consultation_type", ConsultationType.IN_PERSON.value)
    if consultation_type not in CONSULTATION_TYPES:
        return jsonify({"error": f"Consultation type must be one of {sorted(CONSULTATION_TYPES)}."}), 400

    try:
        duration_minutes = int(form.get("duration_minutes", 30))
    except (TypeError, ValueError):
        return jsonify({"error": "Duration must be a whole number of minutes."}), 400

    result = lifecycle.book(
        patient_id=g.user.user_id,
        doctor_id=doctor_id,
        appointment_date=appointment_date,
        appointment_time=appointment_time,
        duration_minutes=duration_minutes,
        consultation_type=consultation_type,
        reason=form.get("reason")
    )
    return result_response(result, success_status=201)

@patient_bp.route("/appointments/<int:appointment_id>/reschedule", methods=["POST"])
@role_required(RoleEnum.PATIENT)
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

@patient_bp.route("/appointments/<int:appointment_id>/reschedule/accept", methods=["POST"])
@role_required(RoleEnum.PATIENT)
def accept_reschedule(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    new_date, new_time, error = parse_slot(request.get_json(silent=True))
    if error:
        return jsonify({"error": error}), 400

    return result_response(lifecycle.accept_reschedule(appointment_id, g.actor, new_date=new_date, new_time=new_time))

@patient_bp.route("/appointments/<int:appointment_id>/reschedule/confirm", methods=["POST"])
@role_required(RoleEnum.PATIENT)
def confirm_reschedule(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    return result_response(lifecycle.confirm(appointment_id, g.actor))

@patient_bp.route("/appointments/<int:appointment_id>/reschedule/reject", methods=["POST"])
@role_required(RoleEnum.PATIENT)
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

@patient_bp.route("/appointments/<int:appointment_id>/cancel", methods=["POST"])
@role_required(RoleEnum.PATIENT)
def cancel_appointment(appointment_id):
    if not _own_appointment(appointment_id):
        return _not_found()

    form = request.get_json(silent=True) or {}
    return result_response(lifecycle.cancel(appointment_id, g.actor, form.get("reason")))
# endregion

# region Notifications
@patient_bp.route("/notifications")
@role_required(RoleEnum.PATIENT)
def notifications():
    return notifications_response(g.user.user_id)

@patient_bp.route("/notifications/mark_seen/<int:notif_id>", methods=["POST"])
@role_required(RoleEnum.PATIENT)
def mark_notification_seen(notif_id):
    return mark_seen_response(notif_id, g.user.user_id)

@patient_bp.route("/notifications/mark_all_seen", methods=["POST"])
@role_required(RoleEnum.PATIENT)
def mark_all_notifications_seen():
    return mark_all_seen_response(g.user.user_id)
# endregion

from flask import Blueprint, g, jsonify, request

from carelink.controllers.routing import (
    role_required,
    result_response,
    notifications_response,
    mark_seen_response,
    mark_all_seen_response,
)
from carelink.models.roles import RoleEnum
from carelink.services import lifecycle, staff_oversight

staff_bp = Blueprint("staff", __name__, url_prefix="/staff")

@staff_bp.route("/dashboard")
@role_required(RoleEnum.STAFF)
def dashboard():
    return jsonify(staff_oversight.dashboard_stats())

# region Oversight
@staff_bp.route("/appointments")
@role_required(RoleEnum.STAFF)
def appointments():
    date_filter = request.args.get("date_filter", "all")
    if date_filter not in staff_oversight.DATE_FILTERS:
        return jsonify({"error": f"date_filter must be one of {list(staff_oversight.DATE_FILTERS)}"}), 400

    doctor_id = request.args.get("doctor_id", type=int)
    criteria = staff_oversight.OversightFilter(
        search=request.args.get("search", ""),
        status=request.args.get("status", "all"),
        date_filter=date_filter,
        doctor_id=doctor_id,
    )

    rows = []
    for appointment, urgent in staff_oversight.list_appointments(criteria):
        row = appointment.to_dict()
        row["patient_name"] = appointment.patient.name
        row["doctor_name"] = appointment.doctor.name
        row["is_urgent"] = urgent
        rows.append(row)

    return jsonify(rows)

@staff_bp.route("/appointments/urgent")
@role_required(RoleEnum.STAFF)
def urgent_appointments():
    return jsonify([a.to_dict() for a in staff_oversight.urgent_appointments()])

@staff_bp.route("/appointments/<int:appointment_id>/interventions/<intervention>", methods=["POST"])
@role_required(RoleEnum.STAFF)
def intervene(appointment_id, intervention):
    if intervention not in staff_oversight.INTERVENTIONS:
        return jsonify({"error": f"Unknown intervention '{intervention}'"}), 404

    result = staff_oversight.intervene(appointment_id, intervention, staff_user_id=g.user.user_id)
    return result_response(result)

@staff_bp.route("/appointments/<int:appointment_id>/confirm", methods=["POST"])
@role_required(RoleEnum.STAFF)
def confirm_appointment(appointment_id):
    return result_response(lifecycle.confirm(appointment_id, g.actor))

@staff_bp.route("/appointments/<int:appointment_id>/cancel", methods=["POST"])
@role_required(RoleEnum.STAFF)
def cancel_appointment(appointment_id):
    form = request.get_json(silent=True) or {}
    return result_response(lifecycle.cancel(appointment_id, g.actor, form.get("reason")))
# endregion

# region Notifications
@staff_bp.route("/notifications")
@role_required(RoleEnum.STAFF)
def notifications():
    return notifications_response(g.user.user_id)

@staff_bp.route("/notifications/mark_seen/<int:notif_id>", methods=["POST"])
@role_required(RoleEnum.STAFF)
def mark_notification_seen(notif_id):
    return mark_seen_response(notif_id, g.user.user_id)

@staff_bp.route("/notifications/mark_all_seen", methods=["POST"])
@role_required(RoleEnum.STAFF)
def mark_all_notifications_seen():
    return mark_all_seen_response(g.user.user_id)
# endregion

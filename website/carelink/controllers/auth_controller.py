from flask import Blueprint, jsonify, request, session, url_for

from carelink.controllers.routing import ROLE_HOME
from carelink.services.auth_service import register_user, authenticate_user

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/register", methods=["POST"])
def register():
    form = request.get_json(silent=True) or request.form

    user, error = register_user(
        email=form.get("email"),
        username=form.get("username"),
        password=form.get("password"),
        specialization=form.get("specialization")
    )

    if error:
        return jsonify({"error": error}), 400

    return jsonify({"user_id": user.user_id, "role": user.role.value}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    form = request.get_json(silent=True) or request.form

    user, error = authenticate_user(
        email=form.get("email"),
        password=form.get("password")
    )

    if error:
        return jsonify({"error": error}), 401

    session.clear()
    session["user_id"] = user.user_id
    session["role"] = user.role.value

    return jsonify({
        "user_id": user.user_id,
        "role": user.role.value,
        "home": url_for(ROLE_HOME[user.role])
    })

@auth_bp.route("/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify({"logged_out": True})

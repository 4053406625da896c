import re

from carelink.extensions import db
from carelink.models.doctor import Doctor
from carelink.models.notification import Notification
from carelink.models.patient import Patient
from carelink.models.roles import RoleEnum
from carelink.models.user import User

EMAIL_REGEX = r"^[A-Za-z0-9._%+-]+@(patient|doctor|staff)\.com$"

ROLE_DOMAINS = {
    "@patient.com": RoleEnum.PATIENT,
    "@doctor.com": RoleEnum.DOCTOR,
    "@staff.com": RoleEnum.STAFF,
}

def extract_role_from_email(email):
    for domain, role in ROLE_DOMAINS.items():
        if email.endswith(domain):
            return role
    return None

def is_valid_email(email):
    return re.match(EMAIL_REGEX, email or "") is not None

def register_user(email, username, password, specialization=None):
    if not is_valid_email(email):
        return None, "Invalid email format. Must end in '@patient.com', '@doctor.com' or '@staff.com'."

    if not username or not password:
        return None, "Username and password are required."

    role = extract_role_from_email(email)

    if User.query.filter_by(email=email).first():
        return None, "Email already exists."

    user = User(email=email, username=username, role=role)
    user.set_password(password)

    try:
        db.session.add(user)
        db.session.flush()

        if role == RoleEnum.PATIENT:
            db.session.add(Patient(patient_id=user.user_id))
            db.session.add(Notification(
                user_id=user.user_id,
                type="system",
                priority="low",
                title="Complete your profile",
                message="Please add a phone number and an emergency contact to your profile."
            ))

        elif role == RoleEnum.DOCTOR:
            db.session.add(Doctor(
                doctor_id=user.user_id,
                specialization=specialization or "General Practice"
            ))
            db.session.add(Notification(
                user_id=user.user_id,
                type="system",
                priority="low",
                title="Complete your profile",
                message="Please update your licence number to complete your profile."
            ))

        db.session.commit()

    except Exception as e:
        db.session.rollback()
        return None, f"Error creating role-specific info: {str(e)}"

    return user, None


def authenticate_user(email, password):
    user = User.query.filter_by(email=email).first()
    if not user:
        return None, "Email not found."

    if not user.check_password(password):
        return None, "Incorrect password."

    return user, None

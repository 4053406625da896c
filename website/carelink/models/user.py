from werkzeug.security import generate_password_hash, check_password_hash

from carelink.extensions import db
from carelink.models.roles import RoleEnum
from carelink.utils import utcnow

class User(db.Model):
    __tablename__ = "users"

    user_id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password = db.Column(db.String(255), nullable=False)
    username = db.Column(db.String(80), nullable=False)
    role = db.Column(db.Enum(RoleEnum), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    patient_profile = db.relationship("Patient", back_populates="user", uselist=False, lazy="select")
    doctor_profile = db.relationship("Doctor", back_populates="user", uselist=False, lazy="select")
    notifications = db.relationship("Notification", back_populates="user", lazy="dynamic")

    def set_password(self, raw_password):
        self.password = generate_password_hash(raw_password)

    def check_password(self, raw_password):
        return check_password_hash(self.password, raw_password)

    def __repr__(self):
        return f"<User {self.user_id} {self.role.value}: {self.email}>"

from carelink.extensions import db

class Doctor(db.Model):
    __tablename__ = "doctor"

    doctor_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), primary_key=True)
    specialization = db.Column(db.String(150), nullable=False, default="General Practice")
    licence_no = db.Column(db.String(100), nullable=True)

    user = db.relationship("User", back_populates="doctor_profile", uselist=False)
    appointments = db.relationship("Appointment", back_populates="doctor")
    availabilities = db.relationship("Availability", back_populates="doctor", cascade="all, delete-orphan")

    @property
    def name(self):
        return self.user.username

    def __repr__(self):
        return f"<Doctor {self.doctor_id}, {self.specialization}>"

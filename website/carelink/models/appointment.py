from datetime import datetime, timedelta

from carelink.extensions import db
from carelink.models.appointment_status import AppointmentStatus
from carelink.models.consultation_type import ConsultationType
from carelink.utils import utcnow

class Appointment(db.Model):
    __tablename__ = "appointment"

    appointment_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    patient_id = db.Column(db.Integer, db.ForeignKey("patient.patient_id"), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctor.doctor_id"), nullable=False, index=True)

    appointment_date = db.Column(db.Date, nullable=False)
    appointment_time = db.Column(db.Time, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=30)
    consultation_type = db.Column(db.String(20), nullable=False, default=ConsultationType.IN_PERSON.value)
    reason = db.Column(db.String(500), nullable=True)

    status = db.Column(db.String(40), nullable=False, default=AppointmentStatus.PENDING.value, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    confirmed_at = db.Column(db.DateTime, nullable=True)

    cancellation_reason = db.Column(db.String(500), nullable=True)
    reschedule_requested_by = db.Column(db.String(20), nullable=True)
    reschedule_reason = db.Column(db.String(500), nullable=True)
    original_date = db.Column(db.Date, nullable=True)
    original_time = db.Column(db.Time, nullable=True)

    notes = db.Column(db.String(500), nullable=True)

    patient = db.relationship("Patient", back_populates="appointments")
    doctor = db.relationship("Doctor", back_populates="appointments")
    notifications = db.relationship("Notification", back_populates="appointment")

    @property
    def status_enum(self):
        return AppointmentStatus(self.status)

    @property
    def starts_at(self):
        return datetime.combine(self.appointment_date, self.appointment_time)

    @property
    def ends_at(self):
        return self.starts_at + timedelta(minutes=self.duration_minutes)

    def to_dict(self):
        return {
            "id": self.appointment_id,
            "patient_id": self.patient_id,
            "doctor_id": self.doctor_id,
            "appointment_date": self.appointment_date.isoformat(),
            "appointment_time": self.appointment_time.strftime("%H:%M"),
            "duration_minutes": self.duration_minutes,
            "consultation_type": self.consultation_type,
            "reason": self.reason,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "cancellation_reason": self.cancellation_reason,
            "reschedule_requested_by": self.reschedule_requested_by,
            "reschedule_reason": self.reschedule_reason,
            "original_date": self.original_date.isoformat() if self.original_date else None,
            "original_time": self.original_time.strftime("%H:%M") if self.original_time else None,
        }

    def __repr__(self):
        return f"<Appointment {self.appointment_id} {self.status}>"

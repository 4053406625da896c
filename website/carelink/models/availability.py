from datetime import datetime

from carelink.extensions import db

class Availability(db.Model):
    __tablename__ = "availability"

    availability_id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey("doctor.doctor_id"), nullable=False, index=True)
    availability_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    is_open = db.Column(db.Boolean, nullable=False, default=True)

    doctor = db.relationship("Doctor", back_populates="availabilities")

    def covers(self, starts_at, ends_at):
        window_start = datetime.combine(self.availability_date, self.start_time)
        window_end = datetime.combine(self.availability_date, self.end_time)
        return self.is_open and window_start <= starts_at and ends_at <= window_end

    def to_dict(self):
        return {
            "id": self.availability_id,
            "doctor_id": self.doctor_id,
            "date": self.availability_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "is_open": self.is_open,
        }

    def __repr__(self):
        return (
            f"<Availability Doctor={self.doctor_id} "
            f"{self.availability_date} {self.start_time}-{self.end_time}>"
        )

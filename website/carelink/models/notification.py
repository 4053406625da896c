from carelink.extensions import db
from carelink.models.notification_kind import NotificationType, NotificationPriority
from carelink.utils import utcnow

class Notification(db.Model):
    __tablename__ = "notification"

    notification_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.user_id"), nullable=False, index=True)
    title = db.Column(db.String(150), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default=NotificationType.APPOINTMENT.value)
    priority = db.Column(db.String(10), nullable=False, default=NotificationPriority.MEDIUM.value)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointment.appointment_id"), nullable=True)

    user = db.relationship("User", back_populates="notifications")
    appointment = db.relationship("Appointment", back_populates="notifications")

    def to_dict(self):
        return {
            "id": self.notification_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": self.priority,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
            "appointment_id": self.appointment_id,
        }

    def __repr__(self):
        return f"<Notification {self.notification_id} to User {self.user_id}: {self.title}>"

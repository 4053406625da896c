from enum import Enum

class AppointmentStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    NEEDS_RESCHEDULE = "needs_reschedule"
    PENDING_RESCHEDULE_CONFIRMATION = "pending_reschedule_confirmation"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self):
        return self in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED)

from enum import Enum

class NotificationType(Enum):
    APPOINTMENT = "appointment"
    SYSTEM = "system"

class NotificationPriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

from enum import Enum

class ConsultationType(Enum):
    IN_PERSON = "in_person"
    VIDEO = "video"
    PHONE = "phone"

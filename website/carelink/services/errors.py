class LifecycleError(Exception):
    """Base class for every refused or failed appointment operation."""

    http_status = 400
    default_message = "The appointment could not be updated."

    def __init__(self, detail=None, user_message=None):
        super().__init__(detail or self.default_message)
        self.detail = detail or self.default_message
        self.user_message = user_message or self.default_message


class AppointmentNotFound(LifecycleError):
    http_status = 404
    default_message = "Appointment not found."


class UnknownParty(LifecycleError):
    http_status = 404
    default_message = "The selected patient or doctor does not exist."


class InvalidTransition(LifecycleError):
    http_status = 409
    default_message = "This action is not allowed for the appointment's current status."


class StaleState(LifecycleError):
    """A conditional write lost a race. Callers should re-fetch and decide whether to retry."""

    http_status = 409
    default_message = (
        "This appointment was already updated by someone else. Refresh and try again."
    )


class SlotUnavailable(LifecycleError):
    http_status = 409
    default_message = "The doctor is not available at that time. Please pick another slot."


class MissingReason(LifecycleError):
    default_message = "Please provide a reason."


class AutoConfirmNotEligible(LifecycleError):
    http_status = 409
    default_message = "This appointment has not been pending long enough to auto-confirm."


class StoreUnavailable(LifecycleError):
    http_status = 503
    default_message = "The appointment service is temporarily unavailable. Please try again."


class NotificationDeliveryFailed(Exception):
    """The notification insert failed. Never reverses the status change that triggered it."""

    def __init__(self, user_id, title, cause=None):
        super().__init__(f"Notification '{title}' to user {user_id} was not delivered: {cause}")
        self.user_id = user_id
        self.title = title
        self.cause = cause

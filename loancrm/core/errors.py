from typing import Optional


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response.

    Handlers in ``loancrm.main`` turn these into ``{"message": ..., "error": ...}``
    bodies with ``status_code``.
    """

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: Optional[str] = None, *, error: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.error = error
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class ConflictError(ServiceError):
    status_code = 400
    default_message = "Record already exists"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class AuthError(ServiceError):
    status_code = 401
    default_message = "Token is not valid"


class StoreError(ServiceError):
    status_code = 500
    default_message = "Server error"


class NotificationError(ServiceError):
    # Raised by the notifier; the notification worker logs and drops it.
    status_code = 500
    default_message = "Notification delivery failed"

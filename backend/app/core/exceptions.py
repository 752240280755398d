class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(AppError):
    """Raised when a command carries invalid input. Nothing is applied."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)

class StateConflictError(AppError):
    """Raised when an action does not fit the current state of a leave request."""
    def __init__(self, message: str, current_status: str | None = None, details: dict = None):
        payload = dict(details or {})
        if current_status is not None:
            payload["status"] = current_status
        super().__init__(message, status_code=409, details=payload)

class PermissionDeniedError(AppError):
    """Raised when the acting role may not perform the action on this request."""
    def __init__(self, message: str):
        super().__init__(message, status_code=403)

class ConcurrencyError(AppError):
    """Raised when a concurrent writer won the race twice in a row."""
    def __init__(self, message: str = "The leave request was modified concurrently. Please retry."):
        super().__init__(message, status_code=409, details={"retryable": True})

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class SchedulingError(Exception):
    """
    Base for every failure the engine reports to its callers.
    `kind` is machine-checkable, `message` is for humans.
    """
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, "details": self.details}


class ValidationError(SchedulingError):
    kind = "validation_error"
    status_code = 400


class InvalidTransitionError(ValidationError):
    kind = "invalid_transition"


class NotFoundError(SchedulingError):
    kind = "not_found"
    status_code = 404


class AuthorizationError(SchedulingError):
    kind = "forbidden"
    status_code = 403


class ConflictError(SchedulingError):
    kind = "conflict"
    status_code = 409


class InternalError(SchedulingError):
    kind = "internal_error"
    status_code = 500

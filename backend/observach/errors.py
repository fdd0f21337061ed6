"""Domain errors raised by the content store and moderation engine.

Each error carries a machine-readable ``kind`` and a human message; the API
layer maps them onto HTTP status codes in one place (see ``observach.main``).
"""


class ObservachError(Exception):
    """Base exception for content store and moderation failures."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class ValidationError(ObservachError):
    """A required field is missing, empty or outside its allowed values."""

    kind = "validation_error"
    status_code = 400


class Conflict(ObservachError):
    """A unique key (e.g. user email) is already taken."""

    kind = "conflict"
    status_code = 409


class NotFound(ObservachError):
    """Referenced entity is absent or not in the status the operation requires."""

    kind = "not_found"
    status_code = 404


class Forbidden(ObservachError):
    """The acting user failed the admin authorization gate."""

    kind = "forbidden"
    status_code = 403

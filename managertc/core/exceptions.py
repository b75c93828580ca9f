"""
Service-level error taxonomy.

Services raise these; the HTTP layer turns them into the
``{done: false, error}`` envelope with the matching status code and the
socket layer emits the same envelope on the ``-response`` event.
"""

from typing import Optional


class ServiceError(Exception):
    status_code: int = 400

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_envelope(self) -> dict:
        body = {"done": False, "error": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class ValidationError(ServiceError):
    """Missing or malformed input."""

    status_code = 400


class ConflictError(ServiceError):
    """Duplicate names, blocked transitions, referential guards."""

    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ForbiddenError(ServiceError):
    status_code = 403

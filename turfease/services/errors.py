"""Service-layer error taxonomy.

Every failure a service can report is a ``ServiceError`` subclass carrying a
machine-readable ``code``. The HTTP layer maps each kind to a status code
(see ``turfease.main``); services never raise ``HTTPException`` themselves.
"""


class ServiceError(RuntimeError):
    """Base class for expected, per-request failures."""

    status_code = 400

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        self.message = message or code.replace("_", " ").capitalize()
        super().__init__(code)


class ValidationError(ServiceError):
    """Malformed or missing input."""

    status_code = 400

    def __init__(self, code: str, message: str | None = None, field: str | None = None):
        super().__init__(code, message)
        self.field = field


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class UnauthorizedError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class ExpiredError(ServiceError):
    status_code = 400


class DependencyFailureError(ServiceError):
    """A collaborator (mail, identity provider, image host) failed or timed out."""

    status_code = 502

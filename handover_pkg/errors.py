# handover_pkg/errors.py
"""
Typed errors raised by the handover engine.

Every error carries a stable ``code`` so callers can tell a failed operation
apart from a successful but empty result, and a ``status_code`` hint for
whatever HTTP layer sits on top.
"""


class HandoverError(Exception):
    code = 'INTERNAL_ERROR'
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        error = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


class ValidationError(HandoverError):
    """Malformed or missing input. Never retried."""
    code = 'VALIDATION_ERROR'
    status_code = 400


class NotFoundError(HandoverError):
    code = 'NOT_FOUND'
    status_code = 404


class InvalidStateError(HandoverError):
    """The operation is not legal for the handover's current status."""
    code = 'INVALID_STATE'
    status_code = 409


class ConflictError(HandoverError):
    """Duplicate active handover, or a concurrent write won the version race."""
    code = 'CONFLICT'
    status_code = 409


class DataSourceError(HandoverError):
    """A collaborator query failed. Propagated as-is, retry policy lives elsewhere."""
    code = 'DATA_SOURCE_ERROR'
    status_code = 503

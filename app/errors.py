"""
Domain error taxonomy.

Services raise these and never HTTPException; app.main maps each kind to a
status code so routers stay free of error translation.
"""


class DomainError(Exception):
    """Base class for every error a domain operation can surface"""

    status_code = 500
    kind = "domain_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Bad input shape or business-rule violation"""

    status_code = 400
    kind = "validation_error"


class InvalidStateError(DomainError):
    """Operation attempted from a state that forbids it"""

    status_code = 409
    kind = "invalid_state"


class NotFoundError(DomainError):
    status_code = 404
    kind = "not_found"


class AuthorizationError(DomainError):
    """Actor lacks rights on the target entity"""

    status_code = 403
    kind = "authorization_error"


class StorageError(DomainError):
    """Underlying store failure, surfaced to the caller without retry"""

    status_code = 503
    kind = "storage_error"


class StoreTimeoutError(StorageError):
    """A store call exceeded its deadline"""

    status_code = 504
    kind = "timeout"

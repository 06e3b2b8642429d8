"""Application error taxonomy.

Services raise these; the API layer turns them into JSON responses carrying
``status_code``. None of them is fatal to the process.
"""


class AppError(Exception):
    """Base application error class."""

    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed or missing input, equal scores, wrong participant count."""

    status_code = 400


class AuthorizationError(AppError):
    """Caller is not allowed to act on the resource (e.g. not a match player)."""

    status_code = 403


class NotFoundError(AppError):
    """Unknown tournament, match or participant."""

    status_code = 404


class ConflictError(AppError):
    """Duplicate submission or already-registered wallet."""

    status_code = 409


class StateError(AppError):
    """Operation is illegal in the current lifecycle status."""

    status_code = 409


class PersistenceError(AppError):
    """The document store could not be read or written."""

    status_code = 500


class DocumentCorruptError(PersistenceError):
    """A stored document exists but cannot be parsed."""

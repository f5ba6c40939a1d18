"""
Error taxonomy and database-error classification
"""

import traceback
from typing import Any, Optional

from sqlalchemy.exc import InterfaceError, OperationalError

DB_UNAVAILABLE_MESSAGE = (
    "Désolé, le service est temporairement indisponible. Notre base de données ne répond pas. "
    "Veuillez réessayer dans quelques instants."
)
GENERIC_ERROR_MESSAGE = "Une erreur inattendue est survenue."

DB_ERROR_KEYWORDS = (
    "connection refused",
    "connection timeout",
    "deadlock detected",
    "database does not exist",
    "role does not exist",
    "password authentication failed",
    "could not connect to server",
    "socket hangs up",
    "enotfound",
    "etimedout",
    "econnrefused",
    "dns timeout",
    "address not found",
    "neon.tech",
)


class DatabaseError(Exception):
    """Database connectivity or availability problem"""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ActionError(Exception):
    """Application error passed through unchanged to the caller"""

    status_code = 400
    error_code = "action_error"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(ActionError):
    status_code = 422
    error_code = "validation_error"


class NotFoundError(ActionError):
    status_code = 404
    error_code = "not_found"


class UnauthorizedError(ActionError):
    status_code = 403
    error_code = "unauthorized"


class ConflictError(ActionError):
    status_code = 409
    error_code = "conflict"


def is_database_error(error: BaseException) -> bool:
    """Heuristic check for connectivity-style database failures"""
    if isinstance(error, (DatabaseError, OperationalError, InterfaceError)):
        return True

    message = str(error).lower()
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__)).lower()
    return any(keyword in message or keyword in stack for keyword in DB_ERROR_KEYWORDS)

# taskboard/core/errors.py

from typing import Dict, Optional

from fastapi import status


class TaskboardError(Exception):
    """Base class for domain errors surfaced to the routing layer."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class Unauthenticated(TaskboardError):
    """Mandatory identity missing, or a credential was presented and rejected."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Could not validate credentials"

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(TaskboardError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(TaskboardError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Task not found"


class ValidationError(TaskboardError, ValueError):
    """
    Field value outside its domain (unknown enum member, bad length, malformed filter).

    Also a ValueError so that pydantic validators calling the domain
    checks report it as a regular field error.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation error"

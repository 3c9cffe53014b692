# app/utils/errors.py
from typing import Optional


class TaskManagerError(Exception):
    """Base class for errors reported back to the caller"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(TaskManagerError):
    """A required field is missing or malformed"""

    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {"detail": self.message, "field": self.field}


class Unauthorized(TaskManagerError):
    status_code = 403

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message)


class NotFound(TaskManagerError):
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class InvalidTransition(TaskManagerError):
    """Status change not allowed by the task state machine"""

    status_code = 409

    def __init__(self, current_status: str, attempted_status: str):
        super().__init__(
            f"Cannot change task status from '{current_status}' to '{attempted_status}'"
        )
        self.current_status = current_status
        self.attempted_status = attempted_status

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "current_status": self.current_status,
            "attempted_status": self.attempted_status,
        }


class Conflict(TaskManagerError):
    status_code = 409

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"{field} already exists")
        self.field = field


class StorageError(TaskManagerError):
    """The database rejected or failed an operation"""

    status_code = 500

    def __init__(self, message: str = "Storage error"):
        super().__init__(message)

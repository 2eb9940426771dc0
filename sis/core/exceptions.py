from typing import Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    """Referenced id does not resolve to a live (non-deleted) row."""

    def __init__(self, message: str = "Resource not found", resource_type: Optional[str] = None) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)
        self.resource_type = resource_type


class ValidationError(ServiceError):
    """A runtime invariant check failed before any write."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
        super().__init__(message, status_code)


class ScheduleConflictError(ValidationError):
    """Time slot overlaps another active schedule of the same class or teacher."""

    def __init__(self, message: str = "Schedule conflicts with an existing schedule") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class InvalidTransitionError(ValidationError):
    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(f"{entity} status cannot change from '{current}' to '{target}'")
        self.current = current
        self.target = target


class DuplicateError(ServiceError):
    """Storage-level uniqueness constraint rejected the write."""

    def __init__(self, message: str = "Duplicate record") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class ConsistencyError(ServiceError):
    """A multi-step operation found a state it cannot safely reconcile."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)

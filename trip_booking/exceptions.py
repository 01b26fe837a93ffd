"""Application error taxonomy.

Services raise these; ``main.py`` renders them as
``{"error": {"kind": ..., "message": ...}}`` with the matching status code.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors surfaced to API clients"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "AppError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(AppError):
    """Malformed or disallowed input, including protected-field mutation"""
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "ValidationError"


class RessourceNotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "RessourceNotFoundError"


class TripCompletedError(AppError):
    """Mutation attempted on a trip in a terminal state"""
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "TripCompletedError"


class SeatTakenError(AppError):
    status_code = status.HTTP_409_CONFLICT
    kind = "SeatTakenError"


class BusUnavailableError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "BusUnavailableError"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "AuthenticationError"


class PermissionDeniedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "PermissionDeniedError"


class InternalError(AppError):
    """Store or job-queue failure not otherwise classified"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "InternalError"


def reject_null_fields(update_data: dict, required) -> None:
    """Raise ValidationError when a partial update sets a non-nullable field to null"""
    nulls = [field for field in required if field in update_data and update_data[field] is None]
    if nulls:
        raise ValidationError(f"The following fields cannot be null: {', '.join(nulls)}")

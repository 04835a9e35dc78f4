"""Domain errors raised by the service layer and rendered by the API handlers."""

from fastapi import status


class DomainException(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


class ValidationFailed(DomainException):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(DomainException):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(DomainException):
    status_code = status.HTTP_409_CONFLICT

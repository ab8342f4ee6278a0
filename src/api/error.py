"""Client-facing API errors

Maps use case error codes onto HTTP status codes.
"""

from fastapi import status
from libs.result import Error

ERROR_STATUS_CODES = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "SAME_USER": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "INSUFFICIENT_POINTS": status.HTTP_409_CONFLICT,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "TRANSFER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
}


def status_for(error: Error) -> int:
    """HTTP status for a use case error; unknown codes are server errors"""
    return ERROR_STATUS_CODES.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)


class ClientError(Exception):
    """Raised by routes to return a structured error response"""

    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code

    @classmethod
    def from_error(cls, error: Error) -> "ClientError":
        return cls(error, status_code=status_for(error))

    def to_body(self) -> dict:
        return {"error": {"code": self.error.code, "message": self.error.message}}

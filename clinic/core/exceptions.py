from fastapi import HTTPException, status

from .security import AuthenticationError, AuthorizationError

# Unauthenticated and Forbidden live with the token helpers
__all__ = [
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "InvalidInputError",
    "ConflictError",
]


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidInputError(HTTPException):
    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

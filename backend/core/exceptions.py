"""HTTP errors raised by the clinic API.

Each error is an ``HTTPException`` so handlers can raise it directly and
FastAPI renders ``{"detail": ...}`` with the matching status code.
"""

from fastapi import HTTPException, status


class InvalidCredentials(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid credentials')


class Unauthenticated(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Access token required',
            headers={'WWW-Authenticate': 'Bearer'},
        )


class InvalidToken(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail='Invalid token')


class Forbidden(HTTPException):
    def __init__(self, detail: str = 'Insufficient permissions') -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ValidationError(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class InvalidStatus(ValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(detail=f"Invalid status '{value}'.")


class NotFound(HTTPException):
    def __init__(self, entity: str) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=f'{entity} not found.')


class SchedulingConflict(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidTransition(HTTPException):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change status from '{current}' to '{requested}'.",
        )


class StoreUnavailable(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        )

from fastapi import HTTPException, status


class EngineError(HTTPException):
    """Base class for engine failures surfaced to the caller.

    Every error carries a stable machine-readable ``code`` next to the human
    message; the HTTP response body is ``{"detail": {"code": ..., "message": ...}}``.
    """

    status_code_default: int = status.HTTP_400_BAD_REQUEST
    default_code: str = 'engine_error'

    def __init__(self, message: str, *, code: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message
        super().__init__(
            status_code=self.status_code_default,
            detail={'code': self.code, 'message': message},
        )

    def __str__(self) -> str:
        return f'{self.code}: {self.message}'


class NotFoundError(EngineError):
    status_code_default = status.HTTP_404_NOT_FOUND
    default_code = 'not_found'


class ForbiddenError(EngineError):
    status_code_default = status.HTTP_403_FORBIDDEN
    default_code = 'forbidden'


class InvalidStateError(EngineError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    default_code = 'invalid_state'


class ConflictError(EngineError):
    status_code_default = status.HTTP_409_CONFLICT
    default_code = 'conflict'

"""
errors.py — типизированные ошибки ядра знакомств.

Ошибки бросаются внутри сервисов и хранилищ, а на границе публичных методов
превращаются в Failure (models/results.py). Наружу исключения не выходят.
"""
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    SELF_REFERENCE = "self_reference"
    ALREADY_EXISTS = "already_exists"
    INVALID_STATE = "invalid_state"
    VALIDATION_ERROR = "validation_error"
    STORAGE_FAILURE = "storage_failure"


class MatchmakingError(Exception):
    """Базовая ошибка: message + kind."""
    kind = ErrorKind.INVALID_STATE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_failure(self):
        from models.results import Failure
        return Failure(kind=self.kind, message=self.message)


class NotFoundError(MatchmakingError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, key=None):
        message = f"{resource} not found" if key is None else f"{resource} '{key}' not found"
        super().__init__(message)
        self.resource = resource


class SelfReferenceError(MatchmakingError):
    kind = ErrorKind.SELF_REFERENCE

    def __init__(self, action: str):
        super().__init__(f"Cannot {action} yourself")


class AlreadyExistsError(MatchmakingError):
    kind = ErrorKind.ALREADY_EXISTS


class InvalidStateError(MatchmakingError):
    kind = ErrorKind.INVALID_STATE


class ValidationError(MatchmakingError):
    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class StorageFailureError(MatchmakingError):
    kind = ErrorKind.STORAGE_FAILURE

    def __init__(self, message: str, operation: str = None):
        text = f"Storage {operation} failed: {message}" if operation else message
        super().__init__(text)
        self.operation = operation

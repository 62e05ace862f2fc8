from enum import Enum


class ServiceError(Exception):
    """Базовая ошибка сервисного слоя. status_code используется только на границе HTTP."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 422


class AuthError(ServiceError):
    status_code = 401


class NotFoundError(ServiceError):
    status_code = 404


class ForbiddenError(ServiceError):
    status_code = 403


class AssetErrorKind(str, Enum):
    TOO_LARGE = "too_large"
    WRITE_FAILURE = "write_failure"
    DELETE_FAILURE = "delete_failure"


class AssetError(ServiceError):
    def __init__(self, kind: AssetErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    @property
    def status_code(self) -> int:
        if self.kind is AssetErrorKind.TOO_LARGE:
            return 422
        return 500


class RepositoryError(ServiceError):
    """Ошибка хранилища записей (БД). Репозиторий уже сделал rollback."""

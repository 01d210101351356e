"""
Доменные исключения приложения

Сервисы выбрасывают эти исключения, обработчик в main.py
преобразует их в HTTP ответ с соответствующим статусом.
"""
from fastapi import status


class DomainError(Exception):
    """
    Базовое доменное исключение
    """
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """Сущность не найдена или удалена"""
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(DomainError):
    """Нарушение ролевых ограничений или области видимости депо"""
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(DomainError):
    """Нарушение уникальности (email, табельный номер, код)"""
    status_code = status.HTTP_409_CONFLICT


class BusinessValidationError(DomainError):
    """Нарушение бизнес-правила валидации"""
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(DomainError):
    """Неверные учетные данные или недействительный токен"""
    status_code = status.HTTP_401_UNAUTHORIZED

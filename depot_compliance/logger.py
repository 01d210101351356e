"""
Модуль для настройки структурированного логирования
"""
import logging
import sys
import json
from datetime import datetime


# Стандартные атрибуты LogRecord, которые не попадают в extra
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()) | {"message", "asctime"}


def _extract_extra(record: logging.LogRecord) -> dict:
    """
    Извлечение полей, переданных через extra={...}
    """
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    Форматтер для логирования в JSON формате
    """
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Добавляем дополнительные поля если они есть
        log_data.update(_extract_extra(record))

        # Добавляем информацию об исключении если есть
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """
    Читаемый форматтер для development: extra-поля выводятся после сообщения
    """
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        extra = _extract_extra(record)
        if extra:
            message += " | " + ", ".join(f"{key}={value}" for key, value in extra.items())
        return message


def setup_logging(log_level: str = None) -> logging.Logger:
    """
    Настройка логирования для приложения

    Args:
        log_level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                  По умолчанию берется из настроек (LOG_LEVEL)

    Returns:
        Настроенный logger
    """
    from depot_compliance.config import get_settings
    settings = get_settings()

    level = (log_level or settings.log_level).upper()

    logger = logging.getLogger("depot_compliance")
    logger.setLevel(getattr(logging, level, logging.INFO))

    # Убираем дублирование логов
    logger.propagate = False

    # Повторный вызов не должен добавлять handler второй раз
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level, logging.INFO))

    # В production - JSON для сборщиков логов, в development - читаемый формат
    if settings.environment == "production":
        formatter = JSONFormatter()
    else:
        formatter = ReadableFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


# Создаем глобальный logger
logger = setup_logging()

"""
Классификация статуса срока допуска

Чистая функция без побочных эффектов: используется планировщиком
уведомлений и при формировании ответов API.
"""
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Union


DateLike = Union[date, datetime]


class ComplianceStatus(Enum):
    """Статусы срока"""
    CURRENT = "CURRENT"  # Срок не скоро
    DUE_SOON = "DUE_SOON"  # Срок в пределах порога
    OVERDUE = "OVERDUE"  # Срок прошел

    @property
    def color(self) -> str:
        """Цвет отображения статуса"""
        return _STATUS_COLORS[self]


_STATUS_COLORS = {
    ComplianceStatus.CURRENT: "green",
    ComplianceStatus.DUE_SOON: "amber",
    ComplianceStatus.OVERDUE: "red",
}


def _align(value: DateLike, now: DateLike):
    """
    Приведение аргументов к сравнимому виду

    datetime и date сравниваются на уровне дат.
    """
    value_is_datetime = isinstance(value, datetime)
    now_is_datetime = isinstance(now, datetime)
    if value_is_datetime and not now_is_datetime:
        return value.date(), now
    if now_is_datetime and not value_is_datetime:
        return value, now.date()
    return value, now


def classify(due_date: DateLike, now: DateLike, threshold_days: int) -> ComplianceStatus:
    """
    Определение статуса срока

    OVERDUE  - due_date < now
    DUE_SOON - now <= due_date <= now + threshold_days (обе границы включительно)
    CURRENT  - иначе

    Args:
        due_date: Срок прохождения или окончания допуска
        now: Текущий момент
        threshold_days: Порог "скоро" в днях

    Returns:
        ComplianceStatus
    """
    if threshold_days < 0:
        raise ValueError("threshold_days не может быть отрицательным")

    due_date, now = _align(due_date, now)

    if due_date < now:
        return ComplianceStatus.OVERDUE
    if due_date <= now + timedelta(days=threshold_days):
        return ComplianceStatus.DUE_SOON
    return ComplianceStatus.CURRENT

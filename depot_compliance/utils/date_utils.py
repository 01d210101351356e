"""
Утилиты для работы с датами
"""
import calendar
from datetime import datetime, date, timedelta
from typing import Optional, Tuple
from fastapi import HTTPException


def parse_date_range(
    date_from: Optional[str] = None,
    date_to: Optional[str] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Парсинг диапазона дат из строковых параметров

    Поддерживает форматы:
    - YYYY-MM-DD
    - YYYY-MM-DD HH:MM:SS

    Для date_to без времени автоматически устанавливается время 23:59:59

    Args:
        date_from: Начальная дата (включительно)
        date_to: Конечная дата (включительно)

    Returns:
        Tuple[Optional[datetime], Optional[datetime]]: Парсенные даты

    Raises:
        HTTPException: Если формат даты неверный
    """
    parsed_date_from = None
    parsed_date_to = None

    if date_from:
        try:
            parsed_date_from = datetime.strptime(date_from, '%Y-%m-%d %H:%M:%S')
        except ValueError:
            try:
                parsed_date_from = datetime.strptime(date_from, '%Y-%m-%d')
            except ValueError:
                raise HTTPException(
                    status_code=400,
                    detail=f"Неверный формат date_from: {date_from}. Используйте YYYY-MM-DD или YYYY-MM-DD HH:MM:SS"
                )

    if date_to:
        try:
            parsed_date_to = datetime.strptime(date_to, '%Y-%m-%d %H:%M:%S')
        except ValueError:
            try:
                parsed_date_to = datetime.strptime(date_to, '%Y-%m-%d')
                # Устанавливаем время на конец дня
                parsed_date_to = parsed_date_to.replace(hour=23, minute=59, second=59)
            except ValueError:
                raise HTTPException(
                    status_code=400,
                    detail=f"Неверный формат date_to: {date_to}. Используйте YYYY-MM-DD или YYYY-MM-DD HH:MM:SS"
                )

    return parsed_date_from, parsed_date_to


def add_months(value: date, months: int) -> date:
    """
    Прибавление месяцев к дате

    Если в целевом месяце нет такого дня, берется последний день месяца
    (31 января + 1 месяц = 28/29 февраля).
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def utc_today() -> date:
    """
    Текущая дата (UTC) - единый источник "сегодня" для сервисов
    """
    return datetime.utcnow().date()

"""
Утилиты для работы с API
"""
from .date_utils import parse_date_range, add_months, add_days, utc_today

__all__ = [
    "parse_date_range",
    "add_months",
    "add_days",
    "utc_today",
]

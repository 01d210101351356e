"""
Unit тесты утилит работы с датами
"""
import pytest
from datetime import date, datetime
from fastapi import HTTPException

from depot_compliance.utils.date_utils import add_months, add_days, parse_date_range


class TestAddMonths:
    """Тесты для add_months"""

    def test_simple(self):
        assert add_months(date(2025, 11, 29), 6) == date(2026, 5, 29)

    def test_year_rollover(self):
        assert add_months(date(2025, 10, 8), 3) == date(2026, 1, 8)

    def test_end_of_month_clamped(self):
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_add_days(self):
        assert add_days(date(2026, 1, 30), 2) == date(2026, 2, 1)


class TestParseDateRange:
    """Тесты для parse_date_range"""

    def test_date_to_set_to_end_of_day(self):
        start, end = parse_date_range("2026-01-01", "2026-01-31")
        assert start == datetime(2026, 1, 1)
        assert end == datetime(2026, 1, 31, 23, 59, 59)

    def test_empty_values(self):
        assert parse_date_range(None, None) == (None, None)

    def test_invalid_format(self):
        with pytest.raises(HTTPException) as exc_info:
            parse_date_range("01.01.2026", None)
        assert exc_info.value.status_code == 400

"""
Тесты служебных скриптов: очистка дублей и демонстрационные данные
"""
from datetime import date

from sqlalchemy import text

from depot_compliance.models import DriverCompliance, DriverRouteAuth, RouteSection, DriverProfile
from scripts.cleanup_duplicates import cleanup_duplicates
from scripts.seed import seed

from conftest import make_compliance


class TestCleanupDuplicates:
    """Тесты для cleanup_duplicates"""

    def _make_duplicates(self, test_db, driver_profile, compliance_type):
        # Унаследованные данные появились до уникального индекса
        test_db.execute(text("DROP INDEX uq_driver_compliance_active_pair"))
        test_db.commit()
        first = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        second = make_compliance(test_db, driver_profile, compliance_type, date(2024, 4, 4), date(2028, 4, 3))
        third = make_compliance(test_db, driver_profile, compliance_type, date(2025, 4, 4), date(2029, 4, 3))
        return first, second, third

    def test_keeps_oldest(self, test_db, driver_profile, compliance_type):
        first, second, third = self._make_duplicates(test_db, driver_profile, compliance_type)

        summary = cleanup_duplicates(test_db)

        assert summary["compliance_groups"] == 1
        assert summary["compliance_removed"] == 2
        assert summary["route_auth_groups"] == 0
        for row in (first, second, third):
            test_db.refresh(row)
        assert first.is_active is True
        assert second.is_active is False
        assert second.deleted_at is not None
        assert third.is_active is False

    def test_dry_run_changes_nothing(self, test_db, driver_profile, compliance_type):
        self._make_duplicates(test_db, driver_profile, compliance_type)

        summary = cleanup_duplicates(test_db, dry_run=True)

        assert summary["compliance_removed"] == 2
        active = test_db.query(DriverCompliance).filter(DriverCompliance.is_active.is_(True)).count()
        assert active == 3

    def test_no_duplicates(self, test_db, driver_profile, compliance_type):
        make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        summary = cleanup_duplicates(test_db)
        assert summary == {
            "compliance_groups": 0,
            "compliance_removed": 0,
            "route_auth_groups": 0,
            "route_auth_removed": 0,
        }


class TestSeed:
    """Тесты для seed"""

    def test_seed_creates_demo_data(self, test_db):
        summary = seed(test_db)

        assert summary == {"compliances_created": 4, "route_auths_created": 3}
        profile = test_db.query(DriverProfile).filter(DriverProfile.pf_number == "15629802390").one()
        assert profile.user.email == "durgadas.k@railway.com"

        pme = [c for c in profile.compliances if c.compliance_type.name == "PME"][0]
        assert pme.due_date == date(2027, 4, 3)
        assert test_db.query(RouteSection).filter(RouteSection.is_predefined.is_(True)).count() == 3

    def test_seed_is_idempotent(self, test_db):
        seed(test_db)
        summary = seed(test_db)

        assert summary == {"compliances_created": 0, "route_auths_created": 0}
        assert test_db.query(DriverCompliance).count() == 4
        assert test_db.query(DriverRouteAuth).count() == 3

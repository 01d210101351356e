"""
Тесты системных настроек
"""
import pytest

from depot_compliance.exceptions import NotFoundError, ConflictError, BusinessValidationError
from depot_compliance.main import bootstrap_initial_data
from depot_compliance.models import User, UserRole
from depot_compliance.repositories.system_setting_repository import SystemSettingRepository
from depot_compliance.services.cache_service import MemorySettingsCache
from depot_compliance.utils import utc_today
from depot_compliance.services.system_settings_service import (
    SystemSettingsService,
    DUE_SOON_THRESHOLD_DAYS,
    NOTIFICATION_BEFORE_DAYS,
)


class TestSystemSettingsService:
    """Тесты для SystemSettingsService"""

    def test_initialize_defaults_is_idempotent(self, test_db, settings_cache):
        service = SystemSettingsService(test_db, settings_cache)
        assert service.initialize_defaults() == 3
        assert service.initialize_defaults() == 0
        assert service.get_setting_as_int(DUE_SOON_THRESHOLD_DAYS) == 7
        assert service.get_setting_as_int(NOTIFICATION_BEFORE_DAYS) == 2

    def test_initialize_keeps_existing_value(self, test_db, settings_cache):
        service = SystemSettingsService(test_db, settings_cache)
        service.create_setting(DUE_SOON_THRESHOLD_DAYS, "14")
        service.initialize_defaults()
        assert service.get_setting(DUE_SOON_THRESHOLD_DAYS) == "14"

    def test_missing_setting(self, test_db, settings_cache):
        service = SystemSettingsService(test_db, settings_cache)
        with pytest.raises(NotFoundError):
            service.get_setting("UNKNOWN")

    def test_default_used_when_missing(self, test_db, settings_cache):
        service = SystemSettingsService(test_db, settings_cache)
        assert service.get_int_or_default(DUE_SOON_THRESHOLD_DAYS) == 7

    def test_default_used_when_not_a_number(self, test_db, settings_cache):
        """Некорректное значение, записанное в БД в обход сервиса"""
        SystemSettingRepository(test_db).create(DUE_SOON_THRESHOLD_DAYS, "seven")
        service = SystemSettingsService(test_db, settings_cache)
        assert service.get_int_or_default(DUE_SOON_THRESHOLD_DAYS) == 7

    def test_default_used_when_negative(self, test_db, settings_cache):
        SystemSettingRepository(test_db).create(DUE_SOON_THRESHOLD_DAYS, "-1")
        service = SystemSettingsService(test_db, settings_cache)
        assert service.get_int_or_default(DUE_SOON_THRESHOLD_DAYS) == 7

    @pytest.mark.parametrize("value", ["-1", "seven", ""])
    def test_numeric_setting_rejects_invalid_value(self, test_db, settings_cache, value):
        service = SystemSettingsService(test_db, settings_cache)
        with pytest.raises(BusinessValidationError):
            service.create_setting(NOTIFICATION_BEFORE_DAYS, value)

        service.initialize_defaults()
        with pytest.raises(BusinessValidationError):
            service.update_setting(DUE_SOON_THRESHOLD_DAYS, value)
        assert service.get_setting(DUE_SOON_THRESHOLD_DAYS) == "7"

    def test_zero_threshold_allowed(self, test_db, settings_cache):
        service = SystemSettingsService(test_db, settings_cache)
        service.initialize_defaults()
        service.update_setting(DUE_SOON_THRESHOLD_DAYS, "0")
        assert service.get_int_or_default(DUE_SOON_THRESHOLD_DAYS) == 0

    def test_text_setting_not_validated(self, test_db, settings_cache):
        service = SystemSettingsService(test_db, settings_cache)
        service.create_setting("TIMEZONE", "UTC")
        assert service.get_setting("TIMEZONE") == "UTC"

    def test_duplicate_key(self, test_db, settings_cache):
        service = SystemSettingsService(test_db, settings_cache)
        service.create_setting("CUSTOM", "1")
        with pytest.raises(ConflictError):
            service.create_setting("CUSTOM", "2")

    def test_update_invalidates_only_changed_key(self, test_db):
        """После изменения новое значение видно сразу, другие ключи остаются в кэше"""
        cache = MemorySettingsCache()
        service = SystemSettingsService(test_db, cache)
        service.initialize_defaults()

        assert service.get_setting(DUE_SOON_THRESHOLD_DAYS) == "7"
        assert service.get_setting(NOTIFICATION_BEFORE_DAYS) == "2"

        service.update_setting(DUE_SOON_THRESHOLD_DAYS, "10")

        assert cache.get(DUE_SOON_THRESHOLD_DAYS) is None
        assert cache.get(NOTIFICATION_BEFORE_DAYS) == "2"
        assert service.get_setting(DUE_SOON_THRESHOLD_DAYS) == "10"

    def test_cached_value_served_without_db(self, test_db):
        cache = MemorySettingsCache()
        cache.set("CUSTOM", "cached")
        service = SystemSettingsService(test_db, cache)
        assert service.get_setting("CUSTOM") == "cached"


class TestSystemSettingsRouter:
    """Тесты для /api/v1/system-settings"""

    def test_create_and_get(self, client, admin_headers, super_admin):
        response = client.post(
            "/api/v1/system-settings",
            headers=admin_headers,
            json={"key": DUE_SOON_THRESHOLD_DAYS, "value": "10", "description": "Порог"}
        )
        assert response.status_code == 201
        assert response.json()["updated_by"] == super_admin.id

        response = client.get(f"/api/v1/system-settings/{DUE_SOON_THRESHOLD_DAYS}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["value"] == "10"

    def test_update(self, client, admin_headers):
        client.post("/api/v1/system-settings", headers=admin_headers, json={"key": "TIMEZONE", "value": "UTC"})
        response = client.patch(
            "/api/v1/system-settings/TIMEZONE",
            headers=admin_headers,
            json={"value": "Asia/Kolkata"}
        )
        assert response.status_code == 200
        assert response.json()["value"] == "Asia/Kolkata"

    def test_update_missing(self, client, admin_headers):
        response = client.patch("/api/v1/system-settings/UNKNOWN", headers=admin_headers, json={"value": "1"})
        assert response.status_code == 404

    def test_manager_forbidden(self, client, manager_headers):
        response = client.get("/api/v1/system-settings", headers=manager_headers)
        assert response.status_code == 403

    def test_threshold_change_affects_status(self, client, test_db, admin_headers, driver_profile, compliance_type):
        """Изменение порога сразу влияет на статус в ответах API"""
        from datetime import timedelta
        from conftest import make_compliance

        today = utc_today()
        make_compliance(test_db, driver_profile, compliance_type, today - timedelta(days=100), today + timedelta(days=10))
        url = f"/api/v1/driver-profiles/{driver_profile.id}/compliance"

        assert client.get(url, headers=admin_headers).json()[0]["status"] == "CURRENT"

        client.post(
            "/api/v1/system-settings",
            headers=admin_headers,
            json={"key": DUE_SOON_THRESHOLD_DAYS, "value": "10"}
        )
        assert client.get(url, headers=admin_headers).json()[0]["status"] == "DUE_SOON"

    def test_negative_threshold_rejected(self, client, test_db, admin_headers, driver_profile, compliance_type):
        """Отрицательный порог не сохраняется, списки допусков продолжают работать"""
        from datetime import timedelta
        from conftest import make_compliance

        client.post(
            "/api/v1/system-settings",
            headers=admin_headers,
            json={"key": DUE_SOON_THRESHOLD_DAYS, "value": "7"}
        )
        response = client.patch(
            f"/api/v1/system-settings/{DUE_SOON_THRESHOLD_DAYS}",
            headers=admin_headers,
            json={"value": "-1"}
        )
        assert response.status_code == 400

        today = utc_today()
        make_compliance(test_db, driver_profile, compliance_type, today - timedelta(days=100), today + timedelta(days=10))
        response = client.get("/api/v1/driver-compliance", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["items"][0]["status"] == "CURRENT"


class TestBootstrapInitialData:
    """Начальные данные при первом запуске"""

    def test_fresh_database(self, test_db, settings_cache):
        """На пустой БД создаются и настройки, и суперадминистратор"""
        bootstrap_initial_data(test_db, settings_cache, "root@railway.com", "rootpassword123")

        assert SystemSettingsService(test_db, settings_cache).get_setting(DUE_SOON_THRESHOLD_DAYS) == "7"
        admin = test_db.query(User).filter(User.email == "root@railway.com").one()
        assert admin.role == UserRole.SUPER_ADMIN.value
        assert admin.depot_id is None

    def test_repeated_start(self, test_db, settings_cache):
        bootstrap_initial_data(test_db, settings_cache, "root@railway.com", "rootpassword123")
        bootstrap_initial_data(test_db, settings_cache, "root@railway.com", "rootpassword123")
        assert test_db.query(User).filter(User.email == "root@railway.com").count() == 1

    def test_without_credentials(self, test_db, settings_cache):
        bootstrap_initial_data(test_db, settings_cache, "", "")
        assert test_db.query(User).count() == 0
        assert len(SystemSettingsService(test_db, settings_cache).get_all_settings()) == 3

"""
Тесты допусков машинистов
"""
import json
import pytest
from datetime import date, timedelta
from unittest.mock import patch

from depot_compliance.exceptions import BusinessValidationError, ConflictError
from depot_compliance.models import AuditLog, DriverCompliance
from depot_compliance.repositories.compliance_repository import ComplianceRepository
from depot_compliance.services.compliance_service import (
    ComplianceService,
    OVERRIDE_REQUIRED_MESSAGE,
    DUPLICATE_MESSAGE,
)
from depot_compliance.utils import utc_today

from conftest import make_compliance, caller_for


def _payload(profile_id: int, type_id: int, **overrides) -> dict:
    payload = {
        "driver_profile_id": profile_id,
        "compliance_type_id": type_id,
        "done_date": "2023-04-04",
        "due_date": "2027-04-03",
        "frequency_months": 48,
    }
    payload.update(overrides)
    return payload


class TestCreateCompliance:
    """Тесты для POST /api/v1/driver-compliance"""

    def test_due_date_stored_as_given(self, client, test_db, manager_headers, driver_profile, compliance_type):
        """Срок, рассчитанный клиентом, сохраняется без пересчета"""
        response = client.post(
            "/api/v1/driver-compliance",
            headers=manager_headers,
            json=_payload(driver_profile.id, compliance_type.id)
        )
        assert response.status_code == 201
        data = response.json()
        assert data["done_date"] == "2023-04-04"
        assert data["due_date"] == "2027-04-03"
        assert data["status"] in ("CURRENT", "DUE_SOON", "OVERDUE")

        stored = test_db.query(DriverCompliance).one()
        assert stored.due_date == date(2027, 4, 3)

        audit = test_db.query(AuditLog).filter(AuditLog.entity_type == "DriverCompliance").one()
        assert audit.action == "CREATE"
        assert audit.depot_id == driver_profile.depot_id

    def test_due_before_done_rejected(self, client, manager_headers, driver_profile, compliance_type):
        response = client.post(
            "/api/v1/driver-compliance",
            headers=manager_headers,
            json=_payload(driver_profile.id, compliance_type.id, due_date="2023-04-03")
        )
        assert response.status_code == 400

    def test_duplicate_active_pair(self, client, test_db, manager_headers, driver_profile, compliance_type):
        """Вторая активная запись той же пары отклоняется"""
        make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.post(
            "/api/v1/driver-compliance",
            headers=manager_headers,
            json=_payload(driver_profile.id, compliance_type.id)
        )
        assert response.status_code == 409
        assert response.json()["detail"] == DUPLICATE_MESSAGE

    def test_pair_allowed_after_soft_delete(self, client, test_db, manager_headers, driver_profile, compliance_type):
        existing = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        client.delete(f"/api/v1/driver-compliance/{existing.id}", headers=manager_headers)

        response = client.post(
            "/api/v1/driver-compliance",
            headers=manager_headers,
            json=_payload(driver_profile.id, compliance_type.id)
        )
        assert response.status_code == 201

    def test_manager_foreign_depot_driver(self, client, manager_headers, other_driver_profile, compliance_type):
        response = client.post(
            "/api/v1/driver-compliance",
            headers=manager_headers,
            json=_payload(other_driver_profile.id, compliance_type.id)
        )
        assert response.status_code == 403

    def test_unknown_type(self, client, manager_headers, driver_profile):
        response = client.post(
            "/api/v1/driver-compliance",
            headers=manager_headers,
            json=_payload(driver_profile.id, 99999)
        )
        assert response.status_code == 404

    def test_driver_cannot_create(self, client, driver_headers, driver_profile, compliance_type):
        response = client.post(
            "/api/v1/driver-compliance",
            headers=driver_headers,
            json=_payload(driver_profile.id, compliance_type.id)
        )
        assert response.status_code == 403


class TestConcurrentCreate:
    """Параллельное создание одной и той же пары"""

    def test_unique_index_turns_race_into_conflict(self, test_db, manager, driver_profile, compliance_type):
        """Проверка на дубликат пропущена, но уникальный индекс не дает создать вторую запись"""
        service = ComplianceService(test_db)
        caller = caller_for(manager)
        service.create_compliance(caller, driver_profile.id, compliance_type.id, date(2023, 4, 4), date(2027, 4, 3), 48)

        with patch.object(ComplianceRepository, "find_active_pair", return_value=None):
            with pytest.raises(ConflictError) as exc_info:
                service.create_compliance(
                    caller, driver_profile.id, compliance_type.id, date(2023, 4, 4), date(2027, 4, 3), 48
                )
        assert exc_info.value.message == DUPLICATE_MESSAGE
        assert test_db.query(DriverCompliance).count() == 1


class TestUpdateCompliance:
    """Тесты для PATCH /api/v1/driver-compliance/{id}"""

    def test_admin_override_without_justification(self, client, test_db, admin_headers, driver_profile, compliance_type):
        """Изменение сроков суперадминистратором без обоснования отклоняется до записи"""
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.patch(
            f"/api/v1/driver-compliance/{compliance.id}",
            headers=admin_headers,
            json={"due_date": "2028-01-01", "override_reason": "Перенос"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == OVERRIDE_REQUIRED_MESSAGE

        test_db.refresh(compliance)
        assert compliance.due_date == date(2027, 4, 3)
        assert test_db.query(AuditLog).count() == 0

    def test_admin_override_with_justification(self, client, test_db, admin_headers, driver_profile, compliance_type):
        """Причина и обоснование попадают в журнал аудита"""
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.patch(
            f"/api/v1/driver-compliance/{compliance.id}",
            headers=admin_headers,
            json={
                "due_date": "2028-01-01",
                "override_reason": "Перенос срока",
                "override_justification": "Приказ по депо",
            }
        )
        assert response.status_code == 200
        assert response.json()["due_date"] == "2028-01-01"

        audit = test_db.query(AuditLog).filter(AuditLog.action == "UPDATE").one()
        old_value = json.loads(audit.old_value)
        assert old_value["override_reason"] == "Перенос срока"
        assert old_value["override_justification"] == "Приказ по депо"
        assert old_value["due_date"] == "2027-04-03"
        assert json.loads(audit.new_value)["due_date"] == "2028-01-01"

    def test_admin_notes_only_not_override(self, client, test_db, admin_headers, driver_profile, compliance_type):
        """Изменение только примечаний не требует обоснования"""
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.patch(
            f"/api/v1/driver-compliance/{compliance.id}",
            headers=admin_headers,
            json={"notes": "Проверено", "due_date": "2027-04-03"}
        )
        assert response.status_code == 200
        assert response.json()["notes"] == "Проверено"

    def test_manager_override_allowed_by_default(self, client, manager_headers, test_db, driver_profile, compliance_type):
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.patch(
            f"/api/v1/driver-compliance/{compliance.id}",
            headers=manager_headers,
            json={"frequency_months": 24}
        )
        assert response.status_code == 200
        assert response.json()["frequency_months"] == 24

    def test_manager_justification_when_configured(self, test_db, manager, driver_profile, compliance_type):
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        service = ComplianceService(test_db, require_manager_justification=True)
        with pytest.raises(BusinessValidationError):
            service.update_compliance(caller_for(manager), compliance.id, frequency_months=24)

    def test_update_due_before_done(self, client, test_db, manager_headers, driver_profile, compliance_type):
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.patch(
            f"/api/v1/driver-compliance/{compliance.id}",
            headers=manager_headers,
            json={"done_date": "2027-05-01"}
        )
        assert response.status_code == 400


class TestComplianceVisibility:
    """Тесты чтения допусков"""

    def test_list_with_status(self, client, test_db, manager_headers, driver_profile, other_driver_profile, compliance_type):
        today = utc_today()
        make_compliance(test_db, driver_profile, compliance_type, today - timedelta(days=30), today + timedelta(days=3))
        make_compliance(test_db, other_driver_profile, compliance_type, today - timedelta(days=30), today + timedelta(days=3))

        response = client.get("/api/v1/driver-compliance", headers=manager_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["status"] == "DUE_SOON"
        assert data["items"][0]["compliance_type"]["name"] == "PME"

    def test_driver_sees_own(self, client, test_db, driver_headers, driver_profile, compliance_type):
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.get(f"/api/v1/driver-compliance/{compliance.id}", headers=driver_headers)
        assert response.status_code == 200

    def test_manager_foreign_record(self, client, test_db, manager_headers, other_driver_profile, compliance_type):
        compliance = make_compliance(test_db, other_driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.get(f"/api/v1/driver-compliance/{compliance.id}", headers=manager_headers)
        assert response.status_code == 403

    def test_types(self, client, driver_headers, compliance_type):
        response = client.get("/api/v1/driver-compliance/types", headers=driver_headers)
        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["PME"]

    def test_delete(self, client, test_db, manager_headers, driver_profile, compliance_type):
        compliance = make_compliance(test_db, driver_profile, compliance_type, date(2023, 4, 4), date(2027, 4, 3))
        response = client.delete(f"/api/v1/driver-compliance/{compliance.id}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Запись о допуске удалена"

        response = client.get(f"/api/v1/driver-compliance/{compliance.id}", headers=manager_headers)
        assert response.status_code == 404

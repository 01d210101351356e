"""
Тесты оборудования депо и графиков ТО
"""
from datetime import date, timedelta

from depot_compliance.models import Asset, MaintenanceType
from depot_compliance.services.maintenance_service import is_due_by_hours
from depot_compliance.utils import utc_today


def _make_asset(db, depot, number: str = "WAP7-30245", current_hours=None) -> Asset:
    asset = Asset(
        asset_number=number,
        asset_type="LOCOMOTIVE",
        depot_id=depot.id,
        current_hours=current_hours,
        is_active=True,
    )
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return asset


def _make_maintenance_type(db, name: str = "Trip Inspection", frequency_days=None, frequency_hours=None) -> MaintenanceType:
    maintenance_type = MaintenanceType(
        name=name,
        frequency_days=frequency_days,
        frequency_hours=frequency_hours,
        is_active=True,
    )
    db.add(maintenance_type)
    db.commit()
    db.refresh(maintenance_type)
    return maintenance_type


class TestAssets:
    """Тесты для /api/v1/assets"""

    def test_manager_creates_asset(self, client, manager_headers, depot):
        response = client.post(
            "/api/v1/assets",
            headers=manager_headers,
            json={"asset_number": "WAP7-30245", "asset_type": "LOCOMOTIVE", "depot_id": depot.id, "current_hours": 1200}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["asset_type"] == "LOCOMOTIVE"
        assert data["depot"]["code"] == "CBE"

    def test_manager_cannot_create_in_other_depot(self, client, manager_headers, other_depot):
        response = client.post(
            "/api/v1/assets",
            headers=manager_headers,
            json={"asset_number": "WAG9-1", "asset_type": "LOCOMOTIVE", "depot_id": other_depot.id}
        )
        assert response.status_code == 403

    def test_unknown_asset_type(self, client, manager_headers, depot):
        response = client.post(
            "/api/v1/assets",
            headers=manager_headers,
            json={"asset_number": "X", "asset_type": "SPACESHIP", "depot_id": depot.id}
        )
        assert response.status_code == 422

    def test_list_scope(self, client, test_db, manager_headers, depot, other_depot):
        _make_asset(test_db, depot, "CBE-1")
        _make_asset(test_db, other_depot, "ED-1")
        response = client.get("/api/v1/assets", headers=manager_headers)
        assert response.status_code == 200
        assert [a["asset_number"] for a in response.json()["items"]] == ["CBE-1"]

    def test_driver_sees_own_depot_assets(self, client, test_db, driver_headers, depot, other_depot):
        """Машинист видит оборудование своего депо"""
        _make_asset(test_db, depot, "CBE-1")
        _make_asset(test_db, other_depot, "ED-1")
        response = client.get("/api/v1/assets", headers=driver_headers)
        assert response.json()["total"] == 1

    def test_update_and_delete(self, client, test_db, manager_headers, depot):
        asset = _make_asset(test_db, depot)
        response = client.patch(f"/api/v1/assets/{asset.id}", headers=manager_headers, json={"current_hours": 5000})
        assert response.status_code == 200
        assert response.json()["current_hours"] == 5000

        response = client.delete(f"/api/v1/assets/{asset.id}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Оборудование удалено"
        assert client.get(f"/api/v1/assets/{asset.id}", headers=manager_headers).status_code == 404

    def test_foreign_asset(self, client, test_db, manager_headers, other_depot):
        asset = _make_asset(test_db, other_depot)
        response = client.get(f"/api/v1/assets/{asset.id}", headers=manager_headers)
        assert response.status_code == 403


class TestMaintenance:
    """Тесты для /api/v1/maintenance"""

    def test_next_due_calculated_from_frequency(self, client, test_db, manager_headers, depot):
        """Следующий срок и наработка рассчитываются по виду ТО, если не переданы"""
        asset = _make_asset(test_db, depot, current_hours=900)
        maintenance_type = _make_maintenance_type(test_db, frequency_days=30, frequency_hours=500)

        response = client.post(
            "/api/v1/maintenance",
            headers=manager_headers,
            json={
                "asset_id": asset.id,
                "maintenance_type_id": maintenance_type.id,
                "last_completed_date": "2026-01-10",
                "last_completed_hours": 400,
            }
        )
        assert response.status_code == 201
        data = response.json()
        assert data["next_due_date"] == "2026-02-09"
        assert data["next_due_hours"] == 900
        assert data["due_by_hours"] is True

    def test_explicit_next_due_kept(self, client, test_db, manager_headers, depot):
        asset = _make_asset(test_db, depot)
        maintenance_type = _make_maintenance_type(test_db, frequency_days=30)
        response = client.post(
            "/api/v1/maintenance",
            headers=manager_headers,
            json={
                "asset_id": asset.id,
                "maintenance_type_id": maintenance_type.id,
                "last_completed_date": "2026-01-10",
                "next_due_date": "2026-03-01",
            }
        )
        assert response.status_code == 201
        assert response.json()["next_due_date"] == "2026-03-01"

    def test_foreign_asset_not_found(self, client, test_db, manager_headers, other_depot):
        """Оборудование другого депо для менеджера не существует"""
        asset = _make_asset(test_db, other_depot)
        maintenance_type = _make_maintenance_type(test_db)
        response = client.post(
            "/api/v1/maintenance",
            headers=manager_headers,
            json={"asset_id": asset.id, "maintenance_type_id": maintenance_type.id}
        )
        assert response.status_code == 404

    def test_status_by_date(self, client, test_db, manager_headers, depot):
        asset = _make_asset(test_db, depot)
        maintenance_type = _make_maintenance_type(test_db)
        today = utc_today()
        client.post(
            "/api/v1/maintenance",
            headers=manager_headers,
            json={
                "asset_id": asset.id,
                "maintenance_type_id": maintenance_type.id,
                "next_due_date": (today - timedelta(days=1)).isoformat(),
            }
        )
        response = client.get("/api/v1/maintenance", headers=manager_headers, params={"asset_id": asset.id})
        assert response.status_code == 200
        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["status"] == "OVERDUE"

    def test_types(self, client, test_db, manager_headers):
        _make_maintenance_type(test_db, "Trip Inspection")
        response = client.get("/api/v1/maintenance/types", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()[0]["name"] == "Trip Inspection"

    def test_update_and_delete(self, client, test_db, manager_headers, depot):
        asset = _make_asset(test_db, depot)
        maintenance_type = _make_maintenance_type(test_db)
        created = client.post(
            "/api/v1/maintenance",
            headers=manager_headers,
            json={"asset_id": asset.id, "maintenance_type_id": maintenance_type.id}
        ).json()

        response = client.patch(
            f"/api/v1/maintenance/{created['id']}",
            headers=manager_headers,
            json={"next_due_date": "2027-01-01", "notes": "После ремонта"}
        )
        assert response.status_code == 200
        assert response.json()["next_due_date"] == "2027-01-01"

        response = client.delete(f"/api/v1/maintenance/{created['id']}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "График ТО удален"


class TestDueByHours:
    """Тесты для is_due_by_hours"""

    def test_reached(self):
        assert is_due_by_hours(500, 500) is True

    def test_not_reached(self):
        assert is_due_by_hours(499, 500) is False

    def test_unknown_hours(self):
        assert is_due_by_hours(None, 500) is False
        assert is_due_by_hours(500, None) is False

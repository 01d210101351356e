"""
Тесты для роутера депо
"""
from depot_compliance.models import AuditLog


class TestDepots:
    """Тесты CRUD депо"""

    def test_create_depot(self, client, test_db, admin_headers):
        """Тест создания депо"""
        response = client.post(
            "/api/v1/depots",
            headers=admin_headers,
            json={"name": "Salem Depot", "code": "SA", "address": "Salem"}
        )
        assert response.status_code == 201
        data = response.json()
        assert data["code"] == "SA"
        assert data["is_active"] is True

        audit = test_db.query(AuditLog).filter(AuditLog.entity_type == "Depot").one()
        assert audit.action == "CREATE"
        assert audit.depot_id == data["id"]

    def test_create_duplicate_code(self, client, admin_headers, depot):
        response = client.post(
            "/api/v1/depots",
            headers=admin_headers,
            json={"name": "Another", "code": "CBE"}
        )
        assert response.status_code == 409

    def test_create_forbidden_for_manager(self, client, manager_headers):
        response = client.post(
            "/api/v1/depots",
            headers=manager_headers,
            json={"name": "Salem Depot", "code": "SA"}
        )
        assert response.status_code == 403

    def test_admin_lists_all(self, client, admin_headers, depot, other_depot):
        response = client.get("/api/v1/depots", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 2

    def test_manager_lists_own_depot(self, client, manager_headers, depot, other_depot):
        """Менеджер видит только свое депо"""
        response = client.get("/api/v1/depots", headers=manager_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["code"] == "CBE"

    def test_driver_sees_no_depots(self, client, driver_headers, depot):
        response = client.get("/api/v1/depots", headers=driver_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 0

    def test_manager_foreign_depot(self, client, manager_headers, other_depot):
        response = client.get(f"/api/v1/depots/{other_depot.id}", headers=manager_headers)
        assert response.status_code == 403

    def test_update_depot(self, client, admin_headers, depot):
        response = client.patch(
            f"/api/v1/depots/{depot.id}",
            headers=admin_headers,
            json={"address": "Coimbatore Junction"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["address"] == "Coimbatore Junction"
        assert data["name"] == "Coimbatore Depot"

    def test_update_code_conflict(self, client, admin_headers, depot, other_depot):
        response = client.patch(
            f"/api/v1/depots/{depot.id}",
            headers=admin_headers,
            json={"code": "ED"}
        )
        assert response.status_code == 409

    def test_delete_depot(self, client, admin_headers, depot):
        """Удаленное депо не возвращается в выборках"""
        response = client.delete(f"/api/v1/depots/{depot.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Депо удалено"

        response = client.get(f"/api/v1/depots/{depot.id}", headers=admin_headers)
        assert response.status_code == 404

    def test_unauthenticated(self, client, depot):
        response = client.get("/api/v1/depots")
        assert response.status_code == 401

"""
Тесты для роутера пользователей
"""
import pytest

from depot_compliance.exceptions import ConflictError
from depot_compliance.models import User, UserRole, AuditLog
from depot_compliance.repositories.scoping import mark_deleted
from depot_compliance.services.user_service import UserService, CreateNew, ReactivateUser

from conftest import make_user, auth_headers_for


class TestCreateUser:
    """Тесты для POST /api/v1/users"""

    def test_create_manager(self, client, test_db, admin_headers, depot):
        """Тест создания менеджера депо"""
        response = client.post(
            "/api/v1/users",
            headers=admin_headers,
            json={
                "email": "New.Manager@Railway.com",
                "password": "password123",
                "role": "DEPOT_MANAGER",
                "depot_id": depot.id,
            }
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.manager@railway.com"
        assert data["role"] == "DEPOT_MANAGER"
        assert data["depot_id"] == depot.id

        audit = test_db.query(AuditLog).filter(AuditLog.entity_type == "User").all()
        assert len(audit) == 1
        assert audit[0].action == "CREATE"

    def test_create_manager_without_depot(self, client, admin_headers):
        """Менеджеру депо обязательно нужно депо"""
        response = client.post(
            "/api/v1/users",
            headers=admin_headers,
            json={"email": "x@railway.com", "password": "password123", "role": "DEPOT_MANAGER"}
        )
        assert response.status_code == 400

    def test_super_admin_depot_ignored(self, client, admin_headers, depot):
        response = client.post(
            "/api/v1/users",
            headers=admin_headers,
            json={"email": "root2@railway.com", "password": "password123", "role": "SUPER_ADMIN", "depot_id": depot.id}
        )
        assert response.status_code == 201
        assert response.json()["depot_id"] is None

    def test_create_duplicate_email(self, client, admin_headers, manager, depot):
        response = client.post(
            "/api/v1/users",
            headers=admin_headers,
            json={"email": "manager@railway.com", "password": "password123", "role": "DEPOT_MANAGER", "depot_id": depot.id}
        )
        assert response.status_code == 409

    def test_recreate_deleted_user_reactivates(self, client, test_db, admin_headers, manager, depot):
        """Создание пользователя с email удаленной записи восстанавливает ее"""
        delete_response = client.delete(f"/api/v1/users/{manager.id}", headers=admin_headers)
        assert delete_response.status_code == 200

        response = client.post(
            "/api/v1/users",
            headers=admin_headers,
            json={"email": "manager@railway.com", "password": "password123", "role": "DEPOT_MANAGER", "depot_id": depot.id}
        )
        assert response.status_code == 201
        assert response.json()["id"] == manager.id
        assert test_db.query(User).filter(User.email == "manager@railway.com").count() == 1

    def test_create_user_forbidden_for_manager(self, client, manager_headers, depot):
        response = client.post(
            "/api/v1/users",
            headers=manager_headers,
            json={"email": "x@railway.com", "password": "password123", "role": "DRIVER", "depot_id": depot.id}
        )
        assert response.status_code == 403

    def test_short_password_rejected(self, client, admin_headers, depot):
        response = client.post(
            "/api/v1/users",
            headers=admin_headers,
            json={"email": "x@railway.com", "password": "short", "role": "DRIVER", "depot_id": depot.id}
        )
        assert response.status_code == 422


class TestListUsers:
    """Тесты для GET /api/v1/users"""

    def test_admin_sees_all(self, client, admin_headers, manager, other_manager):
        response = client.get("/api/v1/users", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 3

    def test_manager_sees_own_depot(self, client, manager_headers, manager, other_manager):
        """Менеджер видит только пользователей своего депо"""
        response = client.get("/api/v1/users", headers=manager_headers)
        assert response.status_code == 200
        emails = {item["email"] for item in response.json()["items"]}
        assert "manager@railway.com" in emails
        assert "manager.ed@railway.com" not in emails

    def test_filter_by_role(self, client, admin_headers, manager, driver_profile):
        response = client.get("/api/v1/users", headers=admin_headers, params={"role": "DRIVER"})
        assert response.status_code == 200
        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["role"] == "DRIVER"

    def test_driver_forbidden(self, client, driver_headers):
        response = client.get("/api/v1/users", headers=driver_headers)
        assert response.status_code == 403

    def test_depot_admins(self, client, admin_headers, manager, other_manager):
        response = client.get("/api/v1/users/depot-admins", headers=admin_headers)
        assert response.status_code == 200
        assert [u["email"] for u in response.json()] == ["manager.ed@railway.com", "manager@railway.com"]

    def test_me(self, client, manager_headers):
        response = client.get("/api/v1/users/me", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "DEPOT_MANAGER"


class TestGetUser:
    """Тесты для GET /api/v1/users/{id}"""

    def test_manager_foreign_depot_user(self, client, manager_headers, other_manager):
        response = client.get(f"/api/v1/users/{other_manager.id}", headers=manager_headers)
        assert response.status_code == 403

    def test_manager_cannot_read_super_admin(self, client, manager_headers, super_admin):
        """Пользователь без депо не считается пользователем депо менеджера"""
        response = client.get(f"/api/v1/users/{super_admin.id}", headers=manager_headers)
        assert response.status_code == 403

    def test_manager_reads_own_depot_user(self, client, manager_headers, driver_profile):
        response = client.get(f"/api/v1/users/{driver_profile.user_id}", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "DRIVER"

    def test_not_found(self, client, admin_headers):
        response = client.get("/api/v1/users/99999", headers=admin_headers)
        assert response.status_code == 404

    def test_manager_without_depot(self, client, test_db):
        """Менеджер без депо не получает доступ"""
        orphan = make_user(test_db, "orphan@railway.com", UserRole.DEPOT_MANAGER)
        response = client.get("/api/v1/users", headers=auth_headers_for(orphan))
        assert response.status_code == 403


class TestUpdateDeleteUser:
    """Тесты для PATCH и DELETE /api/v1/users/{id}"""

    def test_update_role_and_depot(self, client, admin_headers, manager, other_depot):
        response = client.patch(
            f"/api/v1/users/{manager.id}",
            headers=admin_headers,
            json={"depot_id": other_depot.id}
        )
        assert response.status_code == 200
        assert response.json()["depot_id"] == other_depot.id

    def test_update_email_conflict(self, client, admin_headers, manager, other_manager):
        response = client.patch(
            f"/api/v1/users/{manager.id}",
            headers=admin_headers,
            json={"email": "manager.ed@railway.com"}
        )
        assert response.status_code == 409

    def test_delete_user(self, client, test_db, admin_headers, manager):
        response = client.delete(f"/api/v1/users/{manager.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Пользователь удален"
        test_db.refresh(manager)
        assert manager.is_active is False
        assert manager.deleted_at is not None

    def test_deleted_user_cannot_login(self, client, admin_headers, manager):
        client.delete(f"/api/v1/users/{manager.id}", headers=admin_headers)
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "manager@railway.com", "password": "testpassword123"}
        )
        assert response.status_code == 401

    def test_delete_self_rejected(self, client, admin_headers, super_admin):
        """Нельзя удалить собственную учетную запись"""
        response = client.delete(f"/api/v1/users/{super_admin.id}", headers=admin_headers)
        assert response.status_code == 400

    def test_delete_twice(self, client, admin_headers, manager):
        client.delete(f"/api/v1/users/{manager.id}", headers=admin_headers)
        response = client.delete(f"/api/v1/users/{manager.id}", headers=admin_headers)
        assert response.status_code == 404


class TestResolveUserCreation:
    """Тесты выбора между созданием и восстановлением учетной записи"""

    def test_create_new(self, test_db):
        assert isinstance(UserService(test_db).resolve_creation("new@railway.com"), CreateNew)

    def test_reactivate_deleted(self, test_db, manager):
        mark_deleted(manager)
        test_db.commit()

        decision = UserService(test_db).resolve_creation(manager.email)
        assert isinstance(decision, ReactivateUser)
        assert decision.user.id == manager.id

    def test_live_user_conflict(self, test_db, manager):
        with pytest.raises(ConflictError):
            UserService(test_db).resolve_creation(manager.email)

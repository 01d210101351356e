"""
Тесты аутентификации
"""
from datetime import timedelta

from depot_compliance.auth import create_access_token, create_refresh_token
from depot_compliance.models import User

from conftest import TEST_PASSWORD


class TestLogin:
    """Тесты для POST /api/v1/auth/login"""

    def test_login_success(self, client, manager: User):
        """Тест успешного входа"""
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "manager@railway.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["user"]["role"] == "DEPOT_MANAGER"
        assert data["user"]["depot_id"] == manager.depot_id

    def test_login_email_case_insensitive(self, client, manager: User):
        """Тест входа с email в другом регистре"""
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "Manager@Railway.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 200

    def test_login_updates_last_login(self, client, test_db, manager: User):
        client.post("/api/v1/auth/login", json={"email": manager.email, "password": TEST_PASSWORD})
        test_db.refresh(manager)
        assert manager.last_login is not None

    def test_login_wrong_password(self, client, manager: User):
        """Тест входа с неверным паролем"""
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "manager@railway.com", "password": "wrongpassword"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Неверный email или пароль"

    def test_login_unknown_email(self, client):
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "nobody@railway.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 401

    def test_login_inactive_user(self, client, test_db, manager: User):
        """Тест входа деактивированного пользователя"""
        manager.is_active = False
        test_db.commit()
        response = client.post(
            "/api/v1/auth/login",
            json={"email": "manager@railway.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 401


class TestRefresh:
    """Тесты для POST /api/v1/auth/refresh"""

    def test_refresh_success(self, client, manager: User):
        response = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": create_refresh_token(manager)}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["user"]["id"] == manager.id

    def test_refresh_with_access_token_rejected(self, client, manager: User):
        """Access токен не принимается вместо refresh токена"""
        response = client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": create_access_token(manager)}
        )
        assert response.status_code == 401

    def test_refresh_garbage_token(self, client):
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": "not-a-token"})
        assert response.status_code == 401

    def test_refresh_for_deleted_user(self, client, test_db, manager: User):
        """Тест refresh токена удаленного пользователя"""
        token = create_refresh_token(manager)
        manager.is_active = False
        test_db.commit()
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": token})
        assert response.status_code == 401


class TestCurrentUser:
    """Тесты для GET /api/v1/auth/me"""

    def test_me(self, client, manager: User, manager_headers):
        response = client.get("/api/v1/auth/me", headers=manager_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "manager@railway.com"

    def test_me_without_token(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401

    def test_me_with_refresh_token(self, client, manager: User):
        """Refresh токен не дает доступа к API"""
        headers = {"Authorization": f"Bearer {create_refresh_token(manager)}"}
        response = client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401

    def test_me_with_expired_token(self, client, manager: User):
        token = create_access_token(manager, expires_delta=timedelta(seconds=-1))
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Не удалось подтвердить учетные данные"

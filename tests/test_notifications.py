"""
Тесты для роутера уведомлений
"""
from datetime import timedelta

from depot_compliance.models import Notification
from depot_compliance.utils import utc_today

from conftest import make_compliance


def _make_notification(db, user_id: int, title: str = "PME: скоро срок", is_read: bool = False) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        message="Срок прохождения PME - 03.04.2027.",
        category="COMPLIANCE_DUE_SOON",
        is_read=is_read,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


class TestUserNotifications:
    """Тесты чтения и отметки уведомлений"""

    def test_list_own_notifications(self, client, test_db, manager, manager_headers, super_admin):
        _make_notification(test_db, manager.id)
        _make_notification(test_db, manager.id, is_read=True)
        _make_notification(test_db, super_admin.id)

        response = client.get("/api/v1/notifications", headers=manager_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["unread_count"] == 1

    def test_filter_unread(self, client, test_db, manager, manager_headers):
        _make_notification(test_db, manager.id)
        _make_notification(test_db, manager.id, is_read=True)
        response = client.get("/api/v1/notifications", headers=manager_headers, params={"is_read": False})
        assert response.json()["total"] == 1

    def test_unread_count(self, client, test_db, manager, manager_headers):
        _make_notification(test_db, manager.id)
        _make_notification(test_db, manager.id)
        response = client.get("/api/v1/notifications/unread-count", headers=manager_headers)
        assert response.status_code == 200
        assert response.json() == {"unread_count": 2}

    def test_mark_as_read(self, client, test_db, manager, manager_headers):
        notification = _make_notification(test_db, manager.id)
        response = client.patch(f"/api/v1/notifications/{notification.id}/read", headers=manager_headers)
        assert response.status_code == 200
        assert response.json() == {"updated": 1}

        test_db.refresh(notification)
        assert notification.is_read is True
        assert notification.read_at is not None

    def test_cannot_mark_foreign_notification(self, client, test_db, super_admin, manager_headers):
        """Чужое уведомление не изменяется"""
        notification = _make_notification(test_db, super_admin.id)
        response = client.patch(f"/api/v1/notifications/{notification.id}/read", headers=manager_headers)
        assert response.status_code == 200
        assert response.json() == {"updated": 0}

        test_db.refresh(notification)
        assert notification.is_read is False

    def test_mark_all_as_read(self, client, test_db, manager, manager_headers, super_admin):
        _make_notification(test_db, manager.id)
        _make_notification(test_db, manager.id)
        foreign = _make_notification(test_db, super_admin.id)

        response = client.patch("/api/v1/notifications/read-all", headers=manager_headers)
        assert response.json() == {"updated": 2}
        test_db.refresh(foreign)
        assert foreign.is_read is False

    def test_unauthenticated(self, client):
        response = client.get("/api/v1/notifications")
        assert response.status_code == 401


class TestRunChecks:
    """Тесты для POST /api/v1/notifications/run-checks"""

    def test_admin_runs_checks(self, client, test_db, admin_headers, manager, driver_profile, compliance_type):
        today = utc_today()
        make_compliance(test_db, driver_profile, compliance_type, today - timedelta(days=400), today - timedelta(days=1))

        response = client.post("/api/v1/notifications/run-checks", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["due_soon_records"] == 0
        assert data["overdue_records"] == 1
        assert data["notifications_created"] == 3

    def test_manager_forbidden(self, client, manager_headers):
        response = client.post("/api/v1/notifications/run-checks", headers=manager_headers)
        assert response.status_code == 403

    def test_scheduler_jobs_when_disabled(self, client, admin_headers):
        response = client.get("/api/v1/notifications/scheduler/jobs", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == []

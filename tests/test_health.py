"""
Тесты health check endpoints
"""
from unittest.mock import MagicMock

from depot_compliance.main import app


class TestHealth:
    """Тесты для /health"""

    def test_health_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"]["status"] == "healthy"
        assert data["scheduler"] == {"status": "disabled"}

    def test_health_with_scheduler(self, client):
        scheduler = MagicMock()
        scheduler.running = True
        scheduler.get_scheduled_jobs.return_value = [{"id": "compliance_notifications"}]
        app.state.notification_scheduler = scheduler
        try:
            response = client.get("/health")
        finally:
            app.state.notification_scheduler = None
        assert response.json()["scheduler"] == {"status": "running", "jobs_count": 1}

    def test_liveness(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["message"] == "Depot Compliance API"

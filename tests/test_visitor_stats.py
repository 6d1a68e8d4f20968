"""
Tests for the active-visitor and health endpoints.
"""

import json

import pytest

from config_manager import ConfigManager

from conftest import CHROME_UA, make_pageview

HEADERS = {"User-Agent": CHROME_UA, "X-Forwarded-For": "8.8.8.8"}


class TestActiveVisitorsEndpoint:
    """Test the real-time visitor counter."""

    def test_counts_recent_sessions(self, client):
        client.post("/metrics", json=make_pageview(), headers=HEADERS)

        response = client.get("/api/active-visitors")

        assert response.status_code == 200
        assert response.get_json() == {"count": 1, "window_seconds": 300}
        assert response.headers["Cache-Control"] == "no-store"

    def test_unknown_when_cache_down(self, client, fake_redis):
        fake_redis.fail = True
        response = client.get("/api/active-visitors")
        assert response.status_code == 200
        assert response.get_json()["count"] is None


class TestDashboardToken:
    """Test bearer token protection."""

    @pytest.fixture
    def secured_client(self, config_file, fake_redis, geoip, engine):
        from app.main import create_app

        config = json.loads(config_file.read_text())
        config["app"]["dashboard_token"] = "s3cret"
        config_file.write_text(json.dumps(config))

        app = create_app(ConfigManager(str(config_file)), redis_client=fake_redis, geoip=geoip, engine=engine)
        return app.test_client()

    def test_missing_token(self, secured_client):
        response = secured_client.get("/api/active-visitors")
        assert response.status_code == 401
        assert response.get_json() == {"error": "Unauthorized"}

    def test_wrong_token(self, secured_client):
        response = secured_client.get("/api/active-visitors", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_valid_token(self, secured_client):
        response = secured_client.get("/api/active-visitors", headers={"Authorization": "Bearer s3cret"})
        assert response.status_code == 200

    def test_health_is_public(self, secured_client):
        assert secured_client.get("/api/health").status_code == 200


class TestHealth:
    """Test dependency health reporting."""

    def test_healthy(self, client):
        client.get("/metrics")

        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "ok"
        assert body["checks"] == {"database": "ok", "cache": "ok"}
        assert body["transport"]["dropped"]["get"]["missing_data"] == 1

    def test_cache_down_is_degraded(self, client, fake_redis):
        fake_redis.fail = True

        response = client.get("/api/health")

        assert response.status_code == 503
        body = response.get_json()
        assert body["status"] == "degraded"
        assert body["checks"]["cache"] == "error"
        assert body["checks"]["database"] == "ok"

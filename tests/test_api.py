"""Tests for the scanner and health API endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.models.verification import TargetType
from src.services.store import InMemoryVerificationStore
from src.services.verification.engine import ScanOrchestrator
from src.services.verification.fetcher import SearchResults


class _StaticFetcher:
    trusted_domains = frozenset({"prc.cm"})

    async def search(self, query: str, urls=None) -> SearchResults:
        return SearchResults(
            query=query,
            found_names=["Paul Biya"],
            relevant_text=["Paul Biya is the current President."],
            sources_checked=["https://www.prc.cm/?s=Paul+Biya"],
            sources_ok=["https://www.prc.cm/?s=Paul+Biya"],
        )


@pytest.fixture
def store() -> InMemoryVerificationStore:
    store = InMemoryVerificationStore()
    store.add_target(TargetType.POLITICIAN, {"id": "p1", "name": "Paul Biya", "role_title": "President"})
    return store


@pytest.fixture
def client(store):
    """Test client with the scanner wired onto app.state (lifespan is not run)."""
    from src.main import app

    app.state.scanner = ScanOrchestrator(store, _StaticFetcher())
    app.state.store_backend = "memory"
    app.state.fetcher = _StaticFetcher()
    yield TestClient(app)
    for name in ("scanner", "store_backend", "fetcher"):
        if hasattr(app.state, name):
            delattr(app.state, name)


# -----------------------------------------------------------------------
# Scanner endpoint
# -----------------------------------------------------------------------


class TestScannerEndpoint:
    def test_successful_scan(self, client, store) -> None:
        response = client.post(
            "/api/v1/politica-ai-scanner",
            json={"target_type": "politician", "target_id": "p1"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["log_id"] in store.logs
        assert data["scan_results"]["target_id"] == "p1"
        assert data["scan_results"]["status"] == "verified"
        assert [v["field"] for v in data["scan_results"]["verifications"]] == ["name", "term_status", "role_title"]

    def test_manual_scan_flag(self, client, store) -> None:
        response = client.post(
            "/api/v1/politica-ai-scanner",
            json={"target_type": "politician", "target_id": "p1", "manual_scan": True},
        )
        assert response.status_code == 200
        assert store.logs[response.json()["log_id"]]["action_type"] == "manual_scan"

    def test_missing_target_is_500(self, client, store) -> None:
        response = client.post(
            "/api/v1/politica-ai-scanner",
            json={"target_type": "politician", "target_id": "ghost"},
        )
        assert response.status_code == 500
        assert response.json() == {"error": "politician ghost not found"}
        assert [log["status"] for log in store.logs.values()] == ["pending"]

    def test_invalid_target_type_is_500(self, client) -> None:
        response = client.post(
            "/api/v1/politica-ai-scanner",
            json={"target_type": "senator", "target_id": "p1"},
        )
        assert response.status_code == 500
        assert response.json()["error"].startswith("Invalid request")

    def test_malformed_body_is_500(self, client) -> None:
        response = client.post(
            "/api/v1/politica-ai-scanner",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Invalid request: body is not valid JSON"}

    def test_uninitialised_scanner(self, client) -> None:
        from src.main import app

        del app.state.scanner
        response = client.post(
            "/api/v1/politica-ai-scanner",
            json={"target_type": "politician", "target_id": "p1"},
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Scanner not initialised."}

    def test_cors_preflight(self, client) -> None:
        response = client.options(
            "/api/v1/politica-ai-scanner",
            headers={
                "Origin": "https://dashboard.example.org",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


# -----------------------------------------------------------------------
# Health endpoints
# -----------------------------------------------------------------------


class TestHealth:
    def test_liveness(self, client) -> None:
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["store_backend"] == "memory"

    def test_readiness(self, client) -> None:
        response = client.get("/api/v1/health/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"] == {"scanner": "ok", "store": "memory", "trusted_domains": "1"}

    def test_api_info(self, client) -> None:
        response = client.get("/api")
        assert response.status_code == 200
        assert response.json()["endpoints"]["scanner"] == "/api/v1/politica-ai-scanner"

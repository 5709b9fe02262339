"""Integration tests for pool, withdrawal, reset and health endpoints."""

from fastapi.testclient import TestClient


def pooled_milk(client: TestClient, liters: float = 100.0, fat: float = 4.0) -> int:
    """Fold one approved collection into the active pool; return the pool ID."""
    response = client.post(
        "/api/collections/",
        json={"supplier_id": 1, "quantity_liters": liters, "fat_percent": fat, "snf_percent": 8.5},
    )
    collection_id = response.json()["id"]
    client.post(f"/api/collections/{collection_id}/qc", json={"status": "approved"})
    response = client.post(
        "/api/batches/",
        json={
            "created_by": 1,
            "collection_ids": [collection_id],
            "product_id": 1,
            "yield_quantity": 95.0,
        },
    )
    assert response.status_code == 201
    return response.json()["milk_pool_id"]


class TestActivePool:
    """Tests for GET /api/pools/active."""

    def test_active_pool_created_on_demand(self, client: TestClient):
        response = client.get("/api/pools/active")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "active"
        assert data["name"] == "Main Pool"
        assert data["remaining_milk_liters"] == 0.0
        assert data["current_avg_fat"] == 0.0

    def test_active_pool_is_stable(self, client: TestClient):
        first = client.get("/api/pools/active").json()
        second = client.get("/api/pools/active").json()
        assert first["id"] == second["id"]

    def test_pool_not_found(self, client: TestClient):
        assert client.get("/api/pools/999").status_code == 404


class TestWithdraw:
    """Tests for POST /api/pools/{id}/withdraw."""

    def test_withdraw_keeps_average(self, client: TestClient):
        pool_id = pooled_milk(client)

        response = client.post(
            f"/api/pools/{pool_id}/withdraw",
            json={"quantity_liters": 40, "purpose": "CH-17", "used_by": 5},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["usage"]["used_liters"] == 40.0
        assert data["usage"]["used_avg_fat"] == 4.0
        assert data["usage"]["purpose"] == "CH-17"
        assert data["pool"]["remaining_milk_liters"] == 60.0
        assert data["pool"]["current_avg_fat"] == 4.0
        assert data["pool"]["milk_used"] == 40.0

    def test_withdraw_more_than_remaining_returns_409(self, client: TestClient):
        pool_id = pooled_milk(client, liters=10.0)

        response = client.post(f"/api/pools/{pool_id}/withdraw", json={"quantity_liters": 11})

        assert response.status_code == 409
        assert "Insufficient milk" in response.json()["detail"]
        pool = client.get(f"/api/pools/{pool_id}").json()
        assert pool["remaining_milk_liters"] == 10.0

    def test_withdraw_zero_returns_422(self, client: TestClient):
        pool_id = pooled_milk(client)
        response = client.post(f"/api/pools/{pool_id}/withdraw", json={"quantity_liters": 0})
        assert response.status_code == 422

    def test_withdraw_from_archived_pool_returns_409(self, client: TestClient):
        pool_id = pooled_milk(client)
        client.post(f"/api/pools/{pool_id}/reset", json={})

        response = client.post(f"/api/pools/{pool_id}/withdraw", json={"quantity_liters": 1})

        assert response.status_code == 409

    def test_usage_listing(self, client: TestClient):
        pool_id = pooled_milk(client)
        client.post(f"/api/pools/{pool_id}/withdraw", json={"quantity_liters": 10})
        client.post(f"/api/pools/{pool_id}/withdraw", json={"quantity_liters": 5})

        data = client.get(f"/api/pools/{pool_id}/usage").json()

        assert data["total"] == 2
        assert [e["remaining_liters_after"] for e in data["entries"]] == [85.0, 90.0]

    def test_usage_unknown_pool_returns_404(self, client: TestClient):
        assert client.get("/api/pools/999/usage").status_code == 404

    def test_collection_history_survives_reset(self, client: TestClient):
        pool_id = pooled_milk(client, liters=60.0, fat=4.0)
        pooled_milk(client, liters=40.0, fat=3.0)
        client.post(f"/api/pools/{pool_id}/reset", json={})

        data = client.get(f"/api/pools/{pool_id}/collections").json()

        assert data["total"] == 2
        assert [e["quantity_liters"] for e in data["entries"]] == [60.0, 40.0]
        assert [e["avg_fat"] for e in data["entries"]] == [4.0, 3.0]
        assert all(e["milk_pool_id"] == pool_id for e in data["entries"])

    def test_collections_unknown_pool_returns_404(self, client: TestClient):
        assert client.get("/api/pools/999/collections").status_code == 404


class TestReset:
    """Tests for POST /api/pools/{id}/reset."""

    def test_reset_archives_and_opens_new_pool(self, client: TestClient):
        pool_id = pooled_milk(client)
        client.post(f"/api/pools/{pool_id}/withdraw", json={"quantity_liters": 40})

        response = client.post(f"/api/pools/{pool_id}/reset", json={"acting_user": 9})

        assert response.status_code == 200
        summary = response.json()
        assert summary["archived_pool_id"] == pool_id
        assert summary["milk_used"] == 40.0
        assert summary["collections_count"] == 1
        assert summary["usage_count"] == 1
        assert summary["inventory_count"] == 1

        active = client.get("/api/pools/active").json()
        assert active["id"] == summary["new_pool_id"]
        assert active["total_milk_liters"] == 0.0
        assert active["created_by"] == 9

        archived = client.get("/api/pools/archived").json()
        assert [p["id"] for p in archived["pools"]] == [pool_id]
        assert archived["pools"][0]["remaining_milk_liters"] == 60.0

    def test_reset_stale_pool_returns_409(self, client: TestClient):
        pool_id = pooled_milk(client)
        client.post(f"/api/pools/{pool_id}/reset", json={})

        response = client.post(f"/api/pools/{pool_id}/reset", json={})

        assert response.status_code == 409
        assert "not the active pool" in response.json()["detail"]

    def test_reset_without_any_pool_returns_409(self, client: TestClient):
        response = client.post("/api/pools/1/reset", json={})

        assert response.status_code == 409
        assert response.json()["detail"] == "No active milk pool"


class TestHealth:
    """Tests for /health and /health/pool."""

    def test_health(self, client: TestClient):
        response = client.get("/health")
        assert response.json() == {"status": "ok"}

    def test_pool_health_degraded_without_pool(self, client: TestClient):
        data = client.get("/health/pool").json()
        assert data == {"status": "degraded", "active_pools": 0}

    def test_pool_health_ok_after_reset(self, client: TestClient):
        pool_id = pooled_milk(client)
        client.post(f"/api/pools/{pool_id}/reset", json={})

        data = client.get("/health/pool").json()
        assert data == {"status": "ok", "active_pools": 1}

    def test_correlation_id_echoed(self, client: TestClient):
        response = client.get("/health", headers={"X-Correlation-ID": "req-42"})
        assert response.headers["X-Correlation-ID"] == "req-42"

"""Integration tests for batch API endpoints."""

from fastapi.testclient import TestClient


def approved_collection(client: TestClient, liters: float = 100.0, fat: float = 4.0) -> int:
    """Helper to record and approve a collection, returning its ID."""
    response = client.post(
        "/api/collections/",
        json={"supplier_id": 7, "quantity_liters": liters, "fat_percent": fat, "snf_percent": 8.5},
    )
    assert response.status_code == 201
    collection_id = response.json()["id"]
    response = client.post(f"/api/collections/{collection_id}/qc", json={"status": "approved"})
    assert response.status_code == 200
    return collection_id


def batch_data(collection_ids: list[int], **overrides: object) -> dict:
    return {
        "created_by": 1,
        "collection_ids": collection_ids,
        "product_id": 12,
        "yield_quantity": 95.0,
        **overrides,
    }


def create_batch(client: TestClient, data: dict) -> dict:
    """Helper to create a batch and return response JSON."""
    response = client.post("/api/batches/", json=data)
    assert response.status_code == 201
    return response.json()


class TestCreateBatch:
    """Tests for POST /api/batches/."""

    def test_create_batch_success(self, client: TestClient):
        """Happy path: batch from one approved collection."""
        cid = approved_collection(client)

        data = create_batch(
            client,
            batch_data([cid], batch_code="YOG-0001", expiry_date="2026-11-01"),
        )

        assert data["batch_code"] == "YOG-0001"
        assert data["input_collection_ids"] == [cid]
        assert data["input_liters"] == 100.0
        assert data["yield_quantity"] == 95.0
        assert data["expiry_date"] == "2026-11-01"
        assert data["qc_status"] == "pending"
        assert "milk_pool_id" in data

    def test_create_batch_folds_into_active_pool(self, client: TestClient):
        c1 = approved_collection(client, 100.0, 4.0)
        c2 = approved_collection(client, 50.0, 3.0)

        created = create_batch(client, batch_data([c1, c2]))
        pool = client.get(f"/api/pools/{created['milk_pool_id']}").json()

        assert pool["status"] == "active"
        assert pool["remaining_milk_liters"] == 150.0
        assert pool["current_avg_fat"] == 3.6667

    def test_create_batch_marks_collections_used(self, client: TestClient):
        cid = approved_collection(client)
        create_batch(client, batch_data([cid]))

        collection = client.get(f"/api/collections/{cid}").json()
        assert collection["consumption_status"] == "used_in_batch"

    def test_collection_used_twice_returns_409(self, client: TestClient):
        cid = approved_collection(client)
        create_batch(client, batch_data([cid]))

        response = client.post("/api/batches/", json=batch_data([cid]))

        assert response.status_code == 409
        assert str(cid) in response.json()["detail"]

    def test_pending_collection_returns_409(self, client: TestClient):
        response = client.post(
            "/api/collections/",
            json={"supplier_id": 7, "quantity_liters": 10.0},
        )
        pending_id = response.json()["id"]

        response = client.post("/api/batches/", json=batch_data([pending_id]))

        assert response.status_code == 409
        assert "qc_status is pending" in response.json()["detail"]

    def test_missing_collection_returns_409(self, client: TestClient):
        response = client.post("/api/batches/", json=batch_data([4242]))

        assert response.status_code == 409
        assert "4242 (not found)" in response.json()["detail"]

    def test_duplicate_batch_code_returns_409(self, client: TestClient):
        create_batch(client, batch_data([approved_collection(client)], batch_code="LOT-7"))

        response = client.post(
            "/api/batches/",
            json=batch_data([approved_collection(client)], batch_code="LOT-7"),
        )

        assert response.status_code == 409
        assert "already exists" in response.json()["detail"]

    def test_empty_collection_ids_returns_422(self, client: TestClient):
        response = client.post("/api/batches/", json=batch_data([]))
        assert response.status_code == 422

    def test_duplicate_collection_ids_returns_422(self, client: TestClient):
        cid = approved_collection(client)
        response = client.post("/api/batches/", json=batch_data([cid, cid]))

        assert response.status_code == 422
        assert "Duplicate collection ids" in response.json()["detail"]

    def test_non_positive_yield_returns_422(self, client: TestClient):
        cid = approved_collection(client)
        response = client.post("/api/batches/", json=batch_data([cid], yield_quantity=0))
        assert response.status_code == 422

    def test_invalid_batch_code_returns_422(self, client: TestClient):
        cid = approved_collection(client)
        response = client.post("/api/batches/", json=batch_data([cid], batch_code="no spaces"))
        assert response.status_code == 422


class TestListBatches:
    """Tests for GET /api/batches/."""

    def test_list_batches_empty(self, client: TestClient):
        response = client.get("/api/batches/")

        assert response.status_code == 200
        assert response.json() == {"batches": [], "total": 0}

    def test_list_batches_by_pool(self, client: TestClient):
        first = create_batch(client, batch_data([approved_collection(client)]))
        client.post(f"/api/pools/{first['milk_pool_id']}/reset", json={})
        second = create_batch(client, batch_data([approved_collection(client)]))

        everything = client.get("/api/batches/").json()
        old_pool = client.get(
            "/api/batches/", params={"milk_pool_id": first["milk_pool_id"]}
        ).json()

        assert everything["total"] == 2
        assert [b["id"] for b in old_pool["batches"]] == [first["id"]]
        assert second["milk_pool_id"] != first["milk_pool_id"]


class TestGetBatch:
    """Tests for GET /api/batches/{id}."""

    def test_get_batch_success(self, client: TestClient):
        created = create_batch(client, batch_data([approved_collection(client)]))
        response = client.get(f"/api/batches/{created['id']}")

        assert response.status_code == 200
        assert response.json()["batch_code"] == created["batch_code"]

    def test_get_batch_not_found(self, client: TestClient):
        response = client.get("/api/batches/9999")
        assert response.status_code == 404

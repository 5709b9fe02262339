"""Integration tests for collection ledger endpoints."""

from fastapi.testclient import TestClient

VALID_COLLECTION_DATA = {
    "supplier_id": 7,
    "quantity_liters": 100.0,
    "fat_percent": 4.0,
    "snf_percent": 8.5,
    "price_per_liter": 0.5,
    "operator_id": 2,
}


def record_collection(client: TestClient, data: dict | None = None) -> dict:
    """Helper to record a collection and return response JSON."""
    response = client.post("/api/collections/", json=data or VALID_COLLECTION_DATA)
    assert response.status_code == 201
    return response.json()


def approve(client: TestClient, collection_id: int) -> dict:
    response = client.post(
        f"/api/collections/{collection_id}/qc",
        json={"status": "approved", "reviewed_by": 3},
    )
    assert response.status_code == 200
    return response.json()


class TestRecordCollection:
    """Tests for POST /api/collections/."""

    def test_record_collection_success(self, client: TestClient):
        data = record_collection(client)

        assert data["supplier_id"] == 7
        assert data["quantity_liters"] == 100.0
        assert data["fat_percent"] == 4.0
        assert data["qc_status"] == "pending"
        assert data["consumption_status"] == "new"
        assert data["version"] == 1

    def test_quality_is_optional(self, client: TestClient):
        data = record_collection(client, {"supplier_id": 1, "quantity_liters": 12.5})
        assert data["fat_percent"] is None
        assert data["snf_percent"] is None

    def test_negative_quantity_returns_422(self, client: TestClient):
        response = client.post(
            "/api/collections/",
            json={**VALID_COLLECTION_DATA, "quantity_liters": -1},
        )
        assert response.status_code == 422

    def test_fat_over_100_returns_422(self, client: TestClient):
        response = client.post(
            "/api/collections/",
            json={**VALID_COLLECTION_DATA, "fat_percent": 101},
        )
        assert response.status_code == 422


class TestQcReview:
    """Tests for POST /api/collections/{id}/qc."""

    def test_approve(self, client: TestClient):
        created = record_collection(client)
        data = approve(client, created["id"])

        assert data["qc_status"] == "approved"
        assert data["reviewed_by"] == 3
        assert data["reviewed_at"] is not None
        assert data["version"] == 2

    def test_review_twice_returns_409(self, client: TestClient):
        created = record_collection(client)
        approve(client, created["id"])

        response = client.post(
            f"/api/collections/{created['id']}/qc",
            json={"status": "rejected"},
        )

        assert response.status_code == 409
        assert "already approved" in response.json()["detail"]

    def test_pending_outcome_returns_422(self, client: TestClient):
        created = record_collection(client)
        response = client.post(
            f"/api/collections/{created['id']}/qc",
            json={"status": "pending"},
        )
        assert response.status_code == 422

    def test_unknown_collection_returns_404(self, client: TestClient):
        response = client.post("/api/collections/999/qc", json={"status": "approved"})
        assert response.status_code == 404


class TestListCollections:
    """Tests for GET /api/collections/ and /eligible."""

    def test_list_empty(self, client: TestClient):
        response = client.get("/api/collections/")

        assert response.status_code == 200
        assert response.json() == {"collections": [], "total": 0}

    def test_filter_by_qc_status(self, client: TestClient):
        first = record_collection(client)
        record_collection(client)
        approve(client, first["id"])

        response = client.get("/api/collections/", params={"qc_status": "approved"})

        data = response.json()
        assert data["total"] == 1
        assert data["collections"][0]["id"] == first["id"]

    def test_filter_by_supplier(self, client: TestClient):
        record_collection(client)
        record_collection(client, {**VALID_COLLECTION_DATA, "supplier_id": 8})

        data = client.get("/api/collections/", params={"supplier_id": 8}).json()

        assert [c["supplier_id"] for c in data["collections"]] == [8]

    def test_eligible_excludes_pending_and_used(self, client: TestClient):
        used = record_collection(client)
        ready = record_collection(client)
        record_collection(client)
        approve(client, used["id"])
        approve(client, ready["id"])
        client.post(
            "/api/batches/",
            json={
                "created_by": 1,
                "collection_ids": [used["id"]],
                "product_id": 5,
                "yield_quantity": 90,
            },
        )

        data = client.get("/api/collections/eligible").json()

        assert [c["id"] for c in data["collections"]] == [ready["id"]]


class TestGetCollection:
    """Tests for GET /api/collections/{id}."""

    def test_get_collection(self, client: TestClient):
        created = record_collection(client)
        response = client.get(f"/api/collections/{created['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_get_collection_not_found(self, client: TestClient):
        response = client.get("/api/collections/999")

        assert response.status_code == 404
        assert "not found" in response.json()["detail"]

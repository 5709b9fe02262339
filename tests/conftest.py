"""Pytest fixtures for testing."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from milkpool.database import get_session
from milkpool.domain.models import CollectionEntry, QcStatus
from milkpool.main import app


@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session

    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create test client with overridden database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()


@pytest.fixture(name="make_collection")
def make_collection_fixture(session: Session):
    """Insert a collection entry directly, already reviewed if asked."""

    def _make(
        liters: str | int = "100",
        fat: str | None = "4.0",
        snf: str | None = "8.5",
        qc_status: QcStatus = QcStatus.APPROVED,
        supplier_id: int = 1,
    ) -> CollectionEntry:
        entry = CollectionEntry(
            supplier_id=supplier_id,
            quantity_liters=Decimal(liters),
            fat_percent=Decimal(fat) if fat is not None else None,
            snf_percent=Decimal(snf) if snf is not None else None,
            qc_status=qc_status.value,
        )
        session.add(entry)
        session.commit()
        session.refresh(entry)
        return entry

    return _make

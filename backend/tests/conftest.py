import os
from datetime import date
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.deps import get_db
from app.main import app
from app.models import Base, Kunchinittu, Packaging, Warehouse


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def mill(db):
    """Two storage units in one warehouse plus a 26 kg packaging."""
    warehouse = Warehouse(name="Main Godown", code="WH1")
    db.add(warehouse)
    db.flush()
    k1 = Kunchinittu(name="Kunchinittu 1", code="K1", warehouse_id=warehouse.warehouse_id, variety="SONA")
    k2 = Kunchinittu(name="Kunchinittu 2", code="K2", warehouse_id=warehouse.warehouse_id, variety="SONA")
    packaging = Packaging(brand_name="Gold", code="G26", allotted_kg=Decimal("26"))
    db.add_all([k1, k2, packaging])
    db.commit()
    return {"warehouse": warehouse, "k1": k1, "k2": k2, "packaging": packaging}


@pytest.fixture()
def day():
    def _day(n: int) -> date:
        return date(2024, 1, n)

    return _day

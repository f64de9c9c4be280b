"""Shared fixtures: in-memory database, API client and stock factories."""
import os

# Settings are read at import time; keep tests off the on-disk database
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.api.deps import get_db
from app.db.init_db import init_db
from app.db.session import build_engine
from app.main import app
from app.models.medicine import Medicine
from app.models.medicine_variant import MedicineVariant


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_medicine(db):
    def _make(name="Paracetamol", gst_rate=5, hsn_code="3004", category=None):
        medicine = Medicine(name=name, gst_rate=gst_rate, hsn_code=hsn_code, category=category)
        db.add(medicine)
        db.commit()
        db.refresh(medicine)
        return medicine
    return _make


@pytest.fixture
def make_variant(db, make_medicine):
    def _make(
        medicine=None,
        brand_name="Dolo",
        dosage="650mg",
        selling_price="100.00",
        quantity=10,
        min_threshold=2,
        mrp=None,
        batch_number="B001",
        expiry_date=date(2027, 12, 31),
    ):
        medicine = medicine or make_medicine()
        price = Decimal(selling_price)
        variant = MedicineVariant(
            medicine_id=medicine.id,
            brand_name=brand_name,
            dosage=dosage,
            form="Tablet",
            packing="Strip",
            batch_number=batch_number,
            expiry_date=expiry_date,
            purchase_price=price * Decimal("0.7"),
            mrp=Decimal(mrp) if mrp is not None else price,
            selling_price=price,
            quantity=quantity,
            min_threshold=min_threshold,
        )
        db.add(variant)
        db.commit()
        db.refresh(variant)
        return variant
    return _make


def fresh_quantity(db, variant_id):
    """Current stock straight from the database."""
    db.expire_all()
    return db.get(MedicineVariant, variant_id).quantity

import os
import tempfile

# Settings are read at import time, so the test database must be chosen
# before anything from cornshop is imported.
_DB_DIR = tempfile.mkdtemp(prefix="cornshop-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["PAYMENT_MOCK_DELAY_MS"] = "0"
os.environ["ORDER_SIMULATION_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from cornshop.db import SessionLocal, init_db  # noqa: E402
from cornshop.services.menu_service import import_catalog  # noqa: E402

TEST_MENU = [
    {"id": "A", "name": "Butter Corn", "description": "Sweet corn with butter", "price": "RM 7.90", "category": "mains", "tags": ["bestseller"], "createdAt": "2025-01-01T10:00:00"},
    {"id": "B", "name": "Corn Drink", "description": "Chilled corn milk", "price": 5.00, "category": "beverages", "tags": ["cold"], "createdAt": "2025-01-02T10:00:00"},
    {"id": "CAPPED", "name": "Limited Corn Ribs", "description": "Only a few per order", "price": "RM 12.00", "category": "appetizers", "maxQuantity": 3, "createdAt": "2025-01-03T10:00:00"},
    {"id": "SOLDOUT", "name": "Corn Ice Cream", "description": "Soft serve", "price": "RM 5.90", "category": "desserts", "inStock": False, "createdAt": "2025-01-04T10:00:00"},
    {"id": "BIG", "name": "Corn Platter", "description": "Sharing platter", "price": "RM 60.00", "category": "mains", "rating": 4.9, "createdAt": "2025-01-05T10:00:00"},
]


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    init_db(reset=True)
    db = SessionLocal()
    try:
        import_catalog(db, TEST_MENU)
    finally:
        db.close()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from cornshop.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def checkout_payload():
    return {
        "customer_info": {
            "name": "Aisyah",
            "email": "aisyah@gmail.com",
            "phone": "+60123456789",
            "address": "12 Jalan Jagung, Kuala Lumpur",
        },
        "delivery_method": "delivery",
        "payment_method": "card",
    }

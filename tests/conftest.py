"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Each test gets a fresh session that
rolls back after the test, so no test data persists.
"""

import os

# Point the application engine at SQLite before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pos_ledger.chart import seed_chart_of_accounts
from pos_ledger.main import app
from pos_ledger.models.base import Base, get_db
from pos_ledger.models.inventory import Product
from pos_ledger.models.parties import Customer, Vendor
from pos_ledger.models.purchases import Purchase, PurchaseItem


# Use SQLite for tests; no external database needed.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test, drop them after.

    autouse=True means every test gets this automatically.
    This ensures each test starts with a clean database.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def seeded_chart(db_session):
    """The standard chart of accounts and global method mappings, keyed by code."""
    accounts = seed_chart_of_accounts(db_session)
    db_session.commit()
    return accounts


@pytest.fixture
def customer(db_session):
    c = Customer(first_name="Ayesha", last_name="Rahman")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture
def vendor(db_session):
    v = Vendor(name="Acme Wholesale")
    db_session.add(v)
    db_session.commit()
    return v


@pytest.fixture
def product(db_session):
    p = Product(sku="SKU-001", name="Basmati Rice 5kg", price=Decimal("250"),
                cost_price=Decimal("180"))
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture
def make_purchase(db_session, vendor, product):
    """
    Build a committed purchase with one line per (quantity, price) pair.

    Header totals are derived from the lines; tax defaults to zero.
    """
    def _make(lines=((10, "100"),), tax="0", branch_id=1):
        purchase = Purchase(
            invoice_no="PO-1001",
            vendor_id=vendor.id,
            branch_id=branch_id,
        )
        subtotal = Decimal("0")
        for qty, price in lines:
            total = Decimal(price) * qty
            purchase.items.append(PurchaseItem(
                product_id=product.id, quantity=qty,
                price=Decimal(price), total=total,
            ))
            subtotal += total
        purchase.subtotal = subtotal
        purchase.discount = Decimal("0")
        purchase.tax = Decimal(tax)
        purchase.total = subtotal + Decimal(tax)
        db_session.add(purchase)
        db_session.commit()
        return purchase

    return _make


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    We override the get_db dependency so the FastAPI app
    uses our test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

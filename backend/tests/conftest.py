"""
Pytest fixtures for ministore backend tests.

Provides a fixed clock, operation contexts, record factories, an in-memory
Store, and a Flask app/test client backed by an in-memory SQLite database.
"""

from datetime import datetime

import pytest

from ministore import create_app
from ministore.extensions import db
from ministore.models import Product, Sale, Settings, StoreState
from ministore.services.identifier_service import IdSequence
from ministore.services.persistence_service import MemoryStorage
from ministore.services.store_service import OperationContext, Store

FIXED_NOW = datetime(2026, 3, 15, 12, 0, 0)


def pytest_configure(config):
    for marker in ("products", "sales", "restock", "reports", "persistence", "api"):
        config.addinivalue_line("markers", f"{marker}: {marker} tests")


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def ctx():
    """Operation context pinned to FIXED_NOW with a fresh id sequence."""
    return OperationContext(now=FIXED_NOW, ids=IdSequence())


@pytest.fixture
def make_product():
    counter = {"next": 100}

    def _make(name="Widget", quantity=10, original_price=10.0, selling_price=20.0, **overrides):
        counter["next"] += 1
        values = dict(
            id=counter["next"],
            name=name,
            quantity=quantity,
            original_price=original_price,
            selling_price=selling_price,
            created_date=FIXED_NOW,
        )
        values.update(overrides)
        return Product(**values)

    return _make


@pytest.fixture
def make_sale():
    counter = {"next": 500}

    def _make(product, quantity=1, date=FIXED_NOW, **overrides):
        counter["next"] += 1
        values = dict(
            id=counter["next"],
            date=date,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.selling_price,
            original_price=product.original_price,
            total_amount=quantity * product.selling_price,
        )
        values.update(overrides)
        return Sale(**values)

    return _make


@pytest.fixture
def make_state():
    def _make(products=(), sales=(), threshold=5, **settings):
        return StoreState(
            products=tuple(products),
            sales=tuple(sales),
            settings=Settings(low_stock_threshold=threshold, **settings),
        )

    return _make


@pytest.fixture
def memory_store():
    """Loaded Store on MemoryStorage with no remote and a fixed clock."""
    store = Store(MemoryStorage(), clock=lambda: FIXED_NOW)
    store.load()
    return store


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REMOTE_STORE_URL': '',
        'OFFLINE_DEMO_DATA': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()

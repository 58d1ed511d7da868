"""
Pytest fixtures for G24 POS backend tests.

Provides an in-memory application, a per-test clean database, a test client
and a small catalog of products and customers.
"""

import pytest
from g24pos import create_app
from g24pos.extensions import db
from g24pos.services.customers_service import add_customer
from g24pos.services.products_service import add_product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SEED_DEMO_DATA': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def noodles(db_session):
    """Dry goods product with comfortable stock."""
    return add_product(patch={
        "name": "Mì tôm Hảo Hảo",
        "barcode": "8934563113567",
        "price": 8000,
        "cost_price": 6000,
        "stock": 50,
        "min_stock": 10,
        "max_stock": 100,
        "category": "Thực Phẩm Khô",
        "supplier": "Công ty ACECOOK",
    })


@pytest.fixture(scope='function')
def cola(db_session):
    """Drink product with comfortable stock."""
    return add_product(patch={
        "name": "Coca Cola 330ml",
        "barcode": "8934561234567",
        "price": 12000,
        "cost_price": 9000,
        "stock": 30,
        "min_stock": 15,
        "max_stock": 60,
        "category": "Nước Giải Khát",
        "supplier": "Coca Cola Vietnam",
    })


@pytest.fixture(scope='function')
def customer(db_session):
    return add_customer(patch={
        "name": "Nguyễn Văn An",
        "phone": "0123456789",
        "email": "an.nguyen@email.com",
    })


def make_product(**overrides):
    """Create a product through the service with sensible defaults."""
    patch = {
        "name": "Test product",
        "barcode": "0000000000000",
        "price": 10000,
        "cost_price": 7000,
        "stock": 20,
        "min_stock": 5,
        "category": "General",
        "supplier": "Test Supplier",
    }
    patch.update(overrides)
    return add_product(patch=patch)

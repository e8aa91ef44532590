"""
Pytest fixtures for the billing backend tests.

Provides the app on in-memory SQLite, a per-test table wipe, seeded
items and the Flask test client.
"""

import pytest

from billing import create_app
from billing.extensions import db
from billing.models import Item
from billing.services.inventory_service import ensure_universal_item


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    upload_dir = tmp_path_factory.mktemp("uploads")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BOOTSTRAP_ON_STARTUP': False,
        'UPLOAD_FOLDER': str(upload_dir),
        'WASENDER_API_KEY': None,
        'WASENDER_API_BASE_URL': None,
        'LOG_LEVEL': 'WARNING',
        'LOG_DIR': None,
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


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test; the universal item is always present."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    ensure_universal_item()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def wheat(db_session):
    item = Item(product_name="Wheat", category="Primary", purchase_price=20, sale_price=25, opening_stock=0)
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def rice(db_session):
    item = Item(product_name="Rice", category="Primary", purchase_price=40, sale_price=48, opening_stock=0)
    db_session.add(item)
    db_session.commit()
    return item

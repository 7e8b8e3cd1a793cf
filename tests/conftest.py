"""
Pytest fixtures for the saree inventory tests.

Every test gets its own in-memory database, an empty shop (no sample
stock) and the owner login from TEST_CONFIG.
"""

import pytest

from app import create_app
from ledger import InventoryLedger
from models import db
from repository import SqlRepository

OWNER = {'username': 'owner', 'password': 'test-password'}


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SEED_SAMPLE_DATA': False,
        'UPLOAD_FOLDER': str(tmp_path / 'uploads'),
        'ADMIN_USERNAME': OWNER['username'],
        'ADMIN_PASSWORD': OWNER['password'],
        'REPORTING_TIMEZONE': 'UTC',
        'LOG_LEVEL': 'WARNING',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def auth_client(client):
    response = client.post('/login', json=OWNER)
    assert response.status_code == 200
    return client


@pytest.fixture()
def ledger(app):
    """A ledger over the test database, inside an app context."""
    with app.app_context():
        yield InventoryLedger(SqlRepository())


def add_saree(client, **overrides):
    """Adds a saree through the API and returns its JSON."""
    body = {'name': 'Royal Silk', 'type': 'Silk', 'price': '12500', 'quantity': 3}
    body.update(overrides)
    response = client.post('/sarees', json=body)
    assert response.status_code == 201, response.get_json()
    return response.get_json()

"""
STORE TESTS
Repository writes and the errors they surface.
"""

import pytest

from app import create_app
from errors import StoreError
from models import db, Customer


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SECRET_KEY': 'test-secret',
    })
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture
def store(app):
    return app.extensions['erp_store']


def test_upsert_then_get(store):
    c = store.customers.upsert(Customer(customer_name='ABC Electronics'))
    store.commit()

    assert store.customers.get(c.customer_id).customer_name == 'ABC Electronics'
    assert store.customers.ids() == [c.customer_id]


def test_duplicate_key_raises_store_error(store):
    store.customers.upsert(Customer(customer_id=1, customer_name='ABC Electronics'))
    store.commit()

    with pytest.raises(StoreError):
        store.customers.upsert(Customer(customer_id=1, customer_name='XYZ Corporation'))

    # rolled back, the session is usable again
    assert Customer.query.count() == 1
    assert store.customers.get(1).customer_name == 'ABC Electronics'


def test_delete_unknown_returns_false(store):
    assert store.customers.delete(999) is False

import pytest

from app import create_app, db
from models import Customer
from seed import seed_demo_data


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
def client(app):
    return app.test_client()


def test_homepage_empty(client):
    rv = client.get('/')
    assert rv.status_code == 200
    assert b'Dashboard' in rv.data
    assert b'Total Sales' in rv.data


def test_homepage_with_demo_data(app, client):
    assert seed_demo_data(app.extensions['erp_store']) is True

    rv = client.get('/')
    assert rv.status_code == 200
    assert b'ABC Electronics' in rv.data
    assert b'S202404005' in rv.data
    assert b'P202404003' in rv.data


def test_seed_runs_once(app):
    store = app.extensions['erp_store']
    assert seed_demo_data(store) is True
    assert seed_demo_data(store) is False
    assert Customer.query.count() == 5


def test_seed_cli_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['seed-demo'])
    assert 'Demo data loaded.' in result.output

    result = runner.invoke(args=['seed-demo'])
    assert 'nothing loaded' in result.output


def test_every_page_renders(app, client):
    seed_demo_data(app.extensions['erp_store'])
    for path in ('/purchase', '/purchase/add', '/inventory', '/inventory/add', '/customer', '/customer/add',
                 '/product-price', '/product-price/add', '/sales', '/billing', '/report', '/order',
                 '/order/add', '/order/O20250400001', '/supplier', '/supplier/add', '/supplier/transaction'):
        rv = client.get(path)
        assert rv.status_code == 200, path


def test_unknown_page_is_404(client):
    rv = client.get('/does-not-exist')
    assert rv.status_code == 404
    assert b'Page not found' in rv.data

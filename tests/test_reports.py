from datetime import date

import pytest

import reports
from app import create_app, db
from errors import ValidationError
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
        seed_demo_data(app.extensions['erp_store'])
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['erp_store']


def test_dashboard_summary(store):
    summary = reports.dashboard_summary(store)

    assert summary['total_sales'] == 40100 + 68700 + 34900 + 51250 + 29800
    assert summary['total_received'] == 145000
    assert summary['total_balance'] == summary['total_sales'] - summary['total_received']
    assert summary['top_profit_customers'][0].customer_name == 'LMN Traders'
    assert summary['top_debt_customers'][0].customer_name == 'LMN Traders'
    assert summary['recent_sales'][0].sales_id == 'S202404005'
    assert len(summary['monthly']) == 12


def test_top_selling_products(store):
    top = reports.top_selling_products(store)
    assert top[0]['product_name'] == 'Smartphone'
    assert top[0]['total_quantity'] == 5
    assert top[0]['profit'] == top[0]['total_sales'] * reports.PRODUCT_PROFIT_RATE


def test_monthly_uses_latest_year(store):
    rows = reports.monthly_sales_purchases(store)
    april = rows[3]
    assert april['name'] == 'Apr'
    assert april['sales'] == 224750
    assert april['purchases'] == 160000 + 73000 + 180000
    assert april['profit'] == april['sales'] - april['purchases']
    assert rows[0]['sales'] == 0


def test_sales_report_date_range_and_customer(store):
    data = reports.sales_report(store, start=date(2024, 4, 16), end=date(2024, 4, 20))
    assert [s.sales_id for s in data['sales']] == ['S202404004', 'S202404003', 'S202404002']

    data = reports.sales_report(store, customer_id=1)
    assert data['total_sales'] == 40100
    assert data['total_paid'] == 30000
    assert data['by_customer'][0]['balance'] == 10100


def test_purchase_report_by_company(store):
    data = reports.purchase_report(store, company='Gadget World')
    assert [p.purchase_id for p in data['purchases']] == ['P202404003']
    assert data['total_amount'] == 180000
    assert data['by_product'][0]['total_quantity'] == 15


def test_customer_report(store):
    data = reports.customer_report(store, 3)
    assert data['total_sales'] == 34900
    assert {r['product_name'] for r in data['products']} == {'Laptop', 'Scanner'}

    with pytest.raises(ValidationError):
        reports.customer_report(store, 99)


def test_company_names(store):
    names = reports.company_names(store)
    assert names[:3] == ['Tech Solutions', 'Office Supplies Inc.', 'Gadget World']
    assert 'Fresh Farms' in names


def test_report_pages(client):
    rv = client.get('/report?type=sales&start=2024-04-15&end=2024-04-15')
    assert rv.status_code == 200
    assert b'By Customer' in rv.data
    assert b'ABC Electronics' in rv.data

    rv = client.get('/report?type=purchase&company=Tech+Solutions')
    assert rv.status_code == 200
    assert b'P202404001' in rv.data

    rv = client.get('/report?type=customer&customer_id=2')
    assert rv.status_code == 200
    assert b'S202404002' in rv.data

    rv = client.get('/report?type=customer&customer_id=99', follow_redirects=True)
    assert b'Customer not found' in rv.data

"""
SALES AND BILLING TESTS
"""

from datetime import date

import pytest

from app import create_app, db
from errors import ValidationError
from models import Customer, Product, ProductPrice, Sale, SaleItem
from reports import build_bill


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


@pytest.fixture
def setup(app):
    c = Customer(customer_name='ABC Electronics', customer_address='123 Main St, City',
                 customer_mobile='9876543210', total_sales=45000, amount_received=32500, amount_balance=12500)
    db.session.add(c)
    db.session.flush()
    laptop = Product(company_name='Tech Solutions', product_name='Laptop', default_sales_price=25000,
                     available_quantity=15)
    laptop.customer_prices.append(ProductPrice(customer_id=c.customer_id, price=24500))
    monitor = Product(company_name='Tech Solutions', product_name='Monitor', default_sales_price=8000,
                      available_quantity=20)
    db.session.add_all([laptop, monitor])
    db.session.commit()
    return c, laptop, monitor


def test_record_sale(client, setup):
    c, laptop, monitor = setup
    resp = client.post('/sales', data={
        'customer_id': str(c.customer_id),
        'date': '2024-04-15',
        'product_id': [str(laptop.product_id), str(monitor.product_id), ''],
        'quantity': ['1', '2', ''],
        'sales_price': ['', '7800', ''],
        'amount_paid': '30000',
    }, follow_redirects=True)
    assert b'has been recorded successfully' in resp.data

    s = Sale.query.one()
    # laptop falls back to the customer price, monitor uses the typed price
    assert s.total_amount == 24500 + 2 * 7800
    assert s.amount_paid == 30000
    assert s.balance == 10100
    assert s.date == date(2024, 4, 15)
    # customer totals are left alone unless sales tracking is switched on
    assert c.total_sales == 45000
    assert c.amount_received == 32500
    assert c.amount_balance == 12500


def test_record_sale_with_tracking(app, client, setup):
    app.config['LEDGER_TRACK_SALES'] = True
    c, laptop, _ = setup
    client.post('/sales', data={
        'customer_id': str(c.customer_id),
        'product_id': [str(laptop.product_id)],
        'quantity': ['2'],
        'sales_price': [''],
        'amount_paid': '9000',
    })
    assert Sale.query.count() == 1
    assert c.total_sales == 45000 + 49000
    assert c.amount_received == 32500 + 9000
    assert c.amount_balance == c.total_sales - c.amount_received


def test_payment_only_sale(client, setup):
    c, _, _ = setup
    resp = client.post('/sales', data={
        'customer_id': str(c.customer_id),
        'date': '2024-04-16',
        'amount_paid': '5000',
    }, follow_redirects=True)
    assert b'has been recorded for ABC Electronics' in resp.data

    s = Sale.query.one()
    assert s.total_amount == 0
    assert s.items == []
    assert c.amount_received == 37500
    assert c.amount_balance == 7500


def test_sale_needs_customer(client, setup):
    _, laptop, _ = setup
    resp = client.post('/sales', data={
        'product_id': [str(laptop.product_id)],
        'quantity': ['1'],
        'sales_price': [''],
    }, follow_redirects=True)
    assert b'Please select a customer' in resp.data
    assert Sale.query.count() == 0


def test_sale_needs_lines_or_payment(client, setup):
    c, _, _ = setup
    resp = client.post('/sales', data={'customer_id': str(c.customer_id), 'amount_paid': '0'},
                       follow_redirects=True)
    assert b'Please add at least one product or enter an amount paid' in resp.data
    assert Sale.query.count() == 0


def test_sales_search(client, setup):
    c, laptop, _ = setup
    for sid in ('S202404001', 'S202404002'):
        s = Sale(sales_id=sid, date=date(2024, 4, 15), customer_id=c.customer_id,
                 customer_name=c.customer_name, amount_paid=0)
        s.items = [SaleItem(product_id=laptop.product_id, product_name='Laptop', sales_price=100, quantity=1)]
        s.recompute_total()
        db.session.add(s)
    db.session.commit()

    resp = client.get('/sales?q=S202404002')
    assert b'S202404002' in resp.data
    assert b'S202404001' not in resp.data


# *** BILLING ***

def add_sale(c, product, sales_id, day, price, quantity, paid):
    s = Sale(sales_id=sales_id, date=day, customer_id=c.customer_id, customer_name=c.customer_name,
             amount_paid=paid)
    s.items = [SaleItem(product_id=product.product_id, product_name=product.product_name,
                        sales_price=price, quantity=quantity)]
    s.recompute_total()
    db.session.add(s)
    db.session.commit()
    return s


def test_bill_combines_sales_of_the_day(app, setup):
    c, laptop, monitor = setup
    add_sale(c, laptop, 'S202404001', date(2024, 4, 15), 24500, 1, 20000)
    add_sale(c, monitor, 'S202404002', date(2024, 4, 15), 7800, 2, 0)
    add_sale(c, monitor, 'S202404003', date(2024, 4, 16), 7800, 1, 0)

    bill = build_bill(app.extensions['erp_store'], c.customer_id, date(2024, 4, 15))

    assert [line['product_name'] for line in bill['products']] == ['Laptop', 'Monitor']
    assert bill['total_amount'] == 40100
    assert bill['amount_paid'] == 20000
    assert bill['balance'] == 20100
    assert bill['total_balance'] == 12500
    assert bill['previous_balance'] == 12500 - 20100


def test_bill_errors(app, setup):
    c, _, _ = setup
    store = app.extensions['erp_store']
    with pytest.raises(ValidationError, match='Please select a customer'):
        build_bill(store, None, date(2024, 4, 15))
    with pytest.raises(ValidationError, match='Customer not found'):
        build_bill(store, 999, date(2024, 4, 15))
    with pytest.raises(ValidationError, match='No sales found for ABC Electronics on 2024-04-15'):
        build_bill(store, c.customer_id, date(2024, 4, 15))


def test_billing_page(client, setup):
    c, laptop, _ = setup
    add_sale(c, laptop, 'S202404001', date(2024, 4, 15), 24500, 1, 20000)

    resp = client.get(f'/billing?customer_id={c.customer_id}&date=2024-04-15')
    assert b'Bill for ABC Electronics' in resp.data
    assert b'Total Balance' in resp.data

    resp = client.get(f'/billing?customer_id={c.customer_id}&date=2024-04-20')
    assert b'No sales found for ABC Electronics on 2024-04-20' in resp.data

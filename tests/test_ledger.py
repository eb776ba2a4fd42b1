"""
LEDGER TESTS
Stock, customer and supplier balance bookkeeping.

This test module covers:
- Purchase receipt adds to available stock and recomputes actual quantity
- Order / cancel / complete effects on ordered and available stock
- Zero clamping on every decrement
- Customer payments against the running balance
- Supplier transaction balances and the supplier snapshot they overwrite
"""

from datetime import date
from types import SimpleNamespace

import pytest

import ledger
from app import create_app
from models import db, Customer, Product, Supplier, SupplierTransaction


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


@pytest.fixture
def laptop(store):
    p = Product(company_name='Tech Solutions', product_name='Laptop', default_sales_price=25000,
                available_quantity=15, ordered_quantity=5)
    p.recompute_actual()
    store.products.upsert(p)
    store.commit()
    return p


def line(product, quantity, price=0.0):
    return SimpleNamespace(product_id=product.product_id, product_name=product.product_name,
                           quantity=quantity, purchase_price=price, sales_price=price)


def test_purchase_adds_to_available_stock(store, laptop):
    # *** 15 available, 5 ordered -> receive 10 ***
    ledger.apply_purchase_to_inventory([line(laptop, 10, 20000)], store.products)

    assert laptop.available_quantity == 25
    assert laptop.ordered_quantity == 5
    assert laptop.actual_quantity == laptop.available_quantity - laptop.ordered_quantity == 20
    assert laptop.purchase_rate == 20000


def test_purchase_reversal_clamps_at_zero(store, laptop):
    ledger.apply_purchase_to_inventory([line(laptop, 40)], store.products, sign=-1)
    assert laptop.available_quantity == 0
    assert laptop.actual_quantity == -5


def test_order_then_cancel_restores_ordered_quantity(store, laptop):
    items = [line(laptop, 7)]

    ledger.apply_order_to_inventory(items, ledger.ORDER, store.products)
    assert laptop.ordered_quantity == 12
    assert laptop.actual_quantity == 3

    ledger.apply_order_to_inventory(items, ledger.CANCEL, store.products)
    assert laptop.ordered_quantity == 5
    assert laptop.actual_quantity == 10


def test_cancel_clamps_ordered_quantity_at_zero(store, laptop):
    ledger.apply_order_to_inventory([line(laptop, 9)], ledger.CANCEL, store.products)
    assert laptop.ordered_quantity == 0
    assert laptop.available_quantity == 15
    assert laptop.actual_quantity == 15


def test_complete_takes_stock_out_of_available(store, laptop):
    items = [line(laptop, 5)]
    ledger.apply_order_to_inventory(items, ledger.COMPLETE, store.products)

    assert laptop.available_quantity == 10
    assert laptop.ordered_quantity == 0
    assert laptop.actual_quantity == 10


def test_complete_twice_double_decrements(store, laptop):
    # no idempotence guard: the second call takes the stock out again
    items = [line(laptop, 5)]
    ledger.apply_order_to_inventory(items, ledger.COMPLETE, store.products)
    ledger.apply_order_to_inventory(items, ledger.COMPLETE, store.products)
    assert laptop.available_quantity == 5


def test_unknown_product_lines_are_skipped(store, laptop):
    ghost = SimpleNamespace(product_id=999, product_name='Ghost', quantity=3)
    touched = ledger.apply_order_to_inventory([ghost, line(laptop, 1)], ledger.ORDER, store.products)
    assert touched == [laptop]


def test_unknown_action_is_rejected(store, laptop):
    with pytest.raises(ValueError):
        ledger.apply_order_to_inventory([line(laptop, 1)], 'refund', store.products)


def test_purchase_change_moves_stock_by_difference(store, laptop):
    monitor = store.products.upsert(Product(company_name='Tech Solutions', product_name='Monitor',
                                            default_sales_price=8000, available_quantity=20))
    scanner = store.products.upsert(Product(company_name='Office Supplies Inc.', product_name='Scanner',
                                            default_sales_price=5000, available_quantity=10))

    old = [line(laptop, 5), line(monitor, 10)]
    new = [line(laptop, 8), line(scanner, 2)]
    changes = ledger.apply_purchase_change(old, new, store.products)

    assert laptop.available_quantity == 18
    assert monitor.available_quantity == 10
    assert scanner.available_quantity == 12
    assert 'Increased Laptop by 3' in changes
    assert 'Removed 10 of Monitor' in changes
    assert 'Added 2 of Scanner' in changes


def test_purchase_change_takes_edited_price_as_purchase_rate(store, laptop):
    laptop.purchase_rate = 20000
    ledger.apply_purchase_change([line(laptop, 5, 20000)], [line(laptop, 5, 21000)], store.products)

    assert laptop.purchase_rate == 21000
    assert laptop.available_quantity == 15


def test_customer_payment_reduces_balance(store):
    c = Customer(customer_name='ABC Electronics', total_sales=40100, amount_received=30000, amount_balance=10100)
    store.customers.upsert(c)

    ledger.apply_customer_payment(c, 5000)

    assert c.amount_received == 35000
    assert c.amount_balance == 5100
    assert c.total_sales == 40100


def test_customer_sale_raises_total_and_balance(store):
    c = Customer(customer_name='XYZ Retail', total_sales=1000, amount_received=400, amount_balance=600)
    ledger.apply_customer_sale(c, 250)
    assert c.total_sales == 1250
    assert c.amount_balance == 850


def test_supplier_transaction_balances(store):
    s = store.suppliers.upsert(Supplier(supplier_name='Fresh Farms', balance_amount=1000, crate_balance=12))
    t = SupplierTransaction(transaction_id='ST20240402001', supplier_id=s.supplier_id, date=date(2024, 4, 2),
                            opening_amount=1000, bill_amount=5000, paid=3000, damage=200,
                            crate_opening=12, crate_supply=30, crate_return=18)

    in_step = ledger.apply_supplier_transaction(t, s)

    assert in_step is True
    assert t.balance == 1000 + 5000 - 3000 - 200
    assert t.crate_balance == 12 + 30 - 18
    assert s.balance_amount == t.balance
    assert s.crate_balance == t.crate_balance


def test_stale_supplier_opening_overwrites_and_is_reported(store, caplog):
    s = store.suppliers.upsert(Supplier(supplier_name='Green Valley', balance_amount=800, crate_balance=4))
    t = SupplierTransaction(transaction_id='ST20240403001', supplier_id=s.supplier_id,
                            opening_amount=0, bill_amount=100, crate_opening=0, crate_supply=1)

    with caplog.at_level('WARNING', logger='ledger'):
        in_step = ledger.apply_supplier_transaction(t, s)

    assert in_step is False
    assert s.balance_amount == 100
    assert s.crate_balance == 1
    assert 'opens at' in caplog.text


def test_fold_supplier_history():
    first = SimpleNamespace(transaction_id='ST1', date=date(2024, 4, 1), created_at=None,
                            opening_amount=500, bill_amount=1000, paid=300, damage=0,
                            crate_opening=2, crate_supply=10, crate_return=4)
    second = SimpleNamespace(transaction_id='ST2', date=date(2024, 4, 5), created_at=None,
                             opening_amount=0, bill_amount=200, paid=900, damage=50,
                             crate_opening=0, crate_supply=0, crate_return=3)

    assert ledger.fold_supplier_history([second, first]) == (500 + 1000 - 300 + 200 - 900 - 50, 2 + 10 - 4 - 3)
    assert ledger.fold_supplier_history([]) == (0.0, 0)

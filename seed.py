"""
Demo dataset for a fresh database (``flask --app app seed-demo``).

Rows are inserted as-is: the product counters already reflect the seeded
purchases and orders, so no ledger function runs here.
"""

from datetime import date

from models import (
    Customer, Product, ProductPrice, Supplier, SupplierTransaction,
    Purchase, PurchaseItem, Sale, SaleItem, Order, OrderItem,
)

CUSTOMERS = [
    (1, 'ABC Electronics', '123 Main St, City', '9876543210', 45000, 32500, 8500),
    (2, 'XYZ Retail', '456 Oak St, Town', '8765432109', 60000, 52000, 9800),
    (3, 'PQR Distributors', '789 Pine St, Village', '7654321098', 38000, 33000, 7200),
    (4, 'LMN Traders', '101 Cedar St, County', '6543210987', 72000, 57000, 12500),
    (5, 'EFG Enterprises', '202 Maple St, District', '5432109876', 28000, 25000, 6300),
]

# id, company, name, default price, purchase rate, available, ordered
PRODUCTS = [
    (1, 'Tech Solutions', 'Laptop', 25000, 20000, 15, 5),
    (2, 'Tech Solutions', 'Monitor', 8000, 6000, 20, 10),
    (3, 'Office Supplies Inc.', 'Printer', 12000, 9000, 8, 2),
    (4, 'Office Supplies Inc.', 'Scanner', 5000, 3500, 10, 0),
    (5, 'Gadget World', 'Smartphone', 15000, 12000, 25, 8),
]

# product id -> {customer id: price}
CUSTOMER_PRICES = {
    1: {1: 24500, 2: 24000, 3: 25000, 4: 24800, 5: 25000},
    2: {1: 7800, 2: 7900, 3: 8000, 4: 7850, 5: 8000},
    3: {1: 11800, 2: 12000, 3: 11900, 4: 12000, 5: 11800},
    4: {1: 4900, 2: 5000, 3: 4950, 4: 4980, 5: 5000},
    5: {1: 14800, 2: 14900, 3: 15000, 4: 14850, 5: 14900},
}

PURCHASES = [
    ('P202404001', 'Tech Solutions', date(2024, 4, 1), [(1, 'Laptop', 20000, 5), (2, 'Monitor', 6000, 10)]),
    ('P202404002', 'Office Supplies Inc.', date(2024, 4, 5), [(3, 'Printer', 9000, 5), (4, 'Scanner', 3500, 8)]),
    ('P202404003', 'Gadget World', date(2024, 4, 10), [(5, 'Smartphone', 12000, 15)]),
]

SALES = [
    ('S202404001', date(2024, 4, 15), 1, [(1, 'Laptop', 24500, 1), (2, 'Monitor', 7800, 2)], 30000),
    ('S202404002', date(2024, 4, 16), 2, [(3, 'Printer', 12000, 2), (5, 'Smartphone', 14900, 3)], 40000),
    ('S202404003', date(2024, 4, 17), 3, [(1, 'Laptop', 25000, 1), (4, 'Scanner', 4950, 2)], 25000),
    ('S202404004', date(2024, 4, 20), 4, [(2, 'Monitor', 7850, 5), (3, 'Printer', 12000, 1)], 30000),
    ('S202404005', date(2024, 4, 21), 5, [(5, 'Smartphone', 14900, 2)], 20000),
]

ORDERS = [
    ('O20250400001', date(2025, 4, 26), 1, [(1, 'Laptop', 24500, 5), (2, 'Monitor', 7800, 3)],
     'Urgent order, needed by end of week', 'pending', 500, None),
    ('O20250400002', date(2025, 4, 27), 2, [(3, 'Printer', 12000, 2), (2, 'Monitor', 7900, 7)],
     '', 'processing', None, None),
    ('O20250400003', date(2025, 4, 28), 3, [(2, 'Monitor', 8000, 10)],
     'Corporate bulk order', 'completed', None, 'S202504001'),
]

SUPPLIERS = [
    (1, 'Fresh Farms', date(2024, 4, 2), 0, 18000, 10000, 500, 0, 40, 25),
    (2, 'Green Valley Traders', date(2024, 4, 3), 0, 9500, 9500, 0, 0, 20, 20),
]


def seed_demo_data(store):
    """Insert the demo rows unless the database already has customers. Returns True if seeded."""
    if store.customers.list():
        return False

    customers = {}
    for cid, name, address, mobile, total, received, profit in CUSTOMERS:
        customers[cid] = store.customers.upsert(Customer(
            customer_id=cid, customer_name=name, customer_address=address, customer_mobile=mobile,
            total_sales=total, amount_received=received, amount_balance=total - received, profit=profit,
        ))

    for pid, company, name, price, rate, available, ordered in PRODUCTS:
        product = Product(
            product_id=pid, company_name=company, product_name=name, default_sales_price=price,
            purchase_rate=rate, available_quantity=available, ordered_quantity=ordered,
        )
        product.recompute_actual()
        for cid, cprice in CUSTOMER_PRICES[pid].items():
            product.customer_prices.append(ProductPrice(customer_id=cid, price=cprice))
        store.products.upsert(product)

    for purchase_id, company, day, lines in PURCHASES:
        purchase = Purchase(purchase_id=purchase_id, company_name=company, purchase_date=day)
        purchase.items = [PurchaseItem(product_id=p, product_name=n, purchase_price=price, quantity=q)
                          for p, n, price, q in lines]
        purchase.recompute_total()
        store.purchases.upsert(purchase)

    for sales_id, day, cid, lines, paid in SALES:
        sale = Sale(sales_id=sales_id, date=day, customer_id=cid,
                    customer_name=customers[cid].customer_name, amount_paid=paid)
        sale.items = [SaleItem(product_id=p, product_name=n, sales_price=price, quantity=q)
                      for p, n, price, q in lines]
        sale.recompute_total()
        store.sales.upsert(sale)

    for order_id, day, cid, lines, remarks, status, advance, sales_id in ORDERS:
        order = Order(order_id=order_id, order_date=day, customer_id=cid,
                      customer_name=customers[cid].customer_name, remarks=remarks, status=status,
                      advance_amount=advance, sales_id=sales_id)
        order.items = [OrderItem(product_id=p, product_name=n, sales_price=price, quantity=q)
                       for p, n, price, q in lines]
        store.orders.upsert(order)

    for sid, name, day, opening, bill, paid, damage, crate_opening, supply, returned in SUPPLIERS:
        txn = SupplierTransaction(
            transaction_id=f"ST{day:%Y%m%d}001", date=day,
            opening_amount=opening, bill_amount=bill, paid=paid, damage=damage,
            balance=opening + bill - paid - damage,
            crate_opening=crate_opening, crate_supply=supply, crate_return=returned,
            crate_balance=crate_opening + supply - returned,
        )
        supplier = Supplier(supplier_id=sid, supplier_name=name,
                            balance_amount=txn.balance, crate_balance=txn.crate_balance)
        supplier.transactions.append(txn)
        store.suppliers.upsert(supplier)

    store.commit()
    return True

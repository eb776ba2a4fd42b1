"""
Read-only aggregates for the dashboard, the report page and billing.
"""

from collections import OrderedDict

from errors import ValidationError
from models import Purchase, Sale

# profit is not tracked per line, the dashboard estimates it from revenue
PRODUCT_PROFIT_RATE = 0.2

MONTH_NAMES = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')


def _in_range(day, start, end):
    if start and day < start:
        return False
    if end and day > end:
        return False
    return True


# ==================== DASHBOARD ====================

def top_profit_customers(store, limit=5):
    return sorted(store.customers.list(), key=lambda c: c.profit or 0.0, reverse=True)[:limit]


def top_debt_customers(store, limit=5):
    return sorted(store.customers.list(), key=lambda c: c.amount_balance or 0.0, reverse=True)[:limit]


def product_sales(store, sales=None):
    """Per-product revenue and quantity over ``sales`` (all sales by default)."""
    if sales is None:
        sales = store.sales.list()
    rows = OrderedDict()
    for product in store.products.list():
        rows[product.product_id] = {
            'product_id': product.product_id,
            'product_name': product.product_name,
            'total_sales': 0.0,
            'total_quantity': 0,
        }
    for sale in sales:
        for item in sale.items:
            row = rows.setdefault(item.product_id, {
                'product_id': item.product_id,
                'product_name': item.product_name,
                'total_sales': 0.0,
                'total_quantity': 0,
            })
            row['total_sales'] += item.sales_price * item.quantity
            row['total_quantity'] += item.quantity
    for row in rows.values():
        row['profit'] = row['total_sales'] * PRODUCT_PROFIT_RATE
    return list(rows.values())


def top_selling_products(store, limit=5):
    return sorted(product_sales(store), key=lambda r: r['total_sales'], reverse=True)[:limit]


def recent_sales(store, limit=20):
    return store.sales.list(order_by=Sale.date.desc())[:limit]


def recent_purchases(store, limit=10):
    return store.purchases.list(order_by=Purchase.purchase_date.desc())[:limit]


def monthly_sales_purchases(store, year=None):
    """Twelve rows of {name, sales, purchases, profit} for one year."""
    sales = store.sales.list()
    purchases = store.purchases.list()
    if year is None:
        years = [s.date.year for s in sales] + [p.purchase_date.year for p in purchases]
        year = max(years) if years else None

    rows = [{'name': name, 'sales': 0.0, 'purchases': 0.0, 'profit': 0.0} for name in MONTH_NAMES]
    if year is None:
        return rows
    for sale in sales:
        if sale.date.year == year:
            rows[sale.date.month - 1]['sales'] += sale.total_amount or 0.0
    for purchase in purchases:
        if purchase.purchase_date.year == year:
            rows[purchase.purchase_date.month - 1]['purchases'] += purchase.total_amount or 0.0
    for row in rows:
        row['profit'] = row['sales'] - row['purchases']
    return rows


def dashboard_summary(store):
    sales = recent_sales(store)
    total_sales = sum(s.total_amount or 0.0 for s in sales)
    total_received = sum(s.amount_paid or 0.0 for s in sales)
    top_products = top_selling_products(store)
    return {
        'total_sales': total_sales,
        'total_received': total_received,
        'total_balance': total_sales - total_received,
        'total_profit': sum(p['profit'] for p in top_products),
        'top_profit_customers': top_profit_customers(store),
        'top_debt_customers': top_debt_customers(store),
        'top_products': top_products,
        'recent_sales': sales,
        'recent_purchases': recent_purchases(store, limit=5),
        'monthly': monthly_sales_purchases(store),
    }


# ==================== REPORTS ====================

def sales_report(store, start=None, end=None, customer_id=None):
    sales = [
        s for s in store.sales.list(order_by=Sale.date.desc())
        if _in_range(s.date, start, end) and (customer_id is None or s.customer_id == customer_id)
    ]

    by_customer = OrderedDict()
    for sale in sales:
        row = by_customer.setdefault(sale.customer_id, {
            'customer_name': sale.customer_name, 'total_sales': 0.0, 'amount_paid': 0.0, 'count': 0,
        })
        row['total_sales'] += sale.total_amount or 0.0
        row['amount_paid'] += sale.amount_paid or 0.0
        row['count'] += 1
    for row in by_customer.values():
        row['balance'] = row['total_sales'] - row['amount_paid']

    by_product = [r for r in product_sales(store, sales) if r['total_quantity']]
    by_product.sort(key=lambda r: r['total_sales'], reverse=True)

    total = sum(s.total_amount or 0.0 for s in sales)
    paid = sum(s.amount_paid or 0.0 for s in sales)
    return {
        'sales': sales,
        'by_customer': list(by_customer.values()),
        'by_product': by_product,
        'total_sales': total,
        'total_paid': paid,
        'total_balance': total - paid,
    }


def purchase_report(store, start=None, end=None, company=None):
    purchases = [
        p for p in store.purchases.list(order_by=Purchase.purchase_date.desc())
        if _in_range(p.purchase_date, start, end) and (not company or p.counterparty == company)
    ]

    by_company = OrderedDict()
    by_product = OrderedDict()
    for purchase in purchases:
        row = by_company.setdefault(purchase.counterparty, {
            'company_name': purchase.counterparty, 'total_amount': 0.0, 'count': 0,
        })
        row['total_amount'] += purchase.total_amount or 0.0
        row['count'] += 1
        for item in purchase.items:
            prow = by_product.setdefault(item.product_id, {
                'product_name': item.product_name, 'total_quantity': 0, 'total_amount': 0.0,
            })
            prow['total_quantity'] += item.quantity
            prow['total_amount'] += item.quantity * item.purchase_price

    return {
        'purchases': purchases,
        'by_company': list(by_company.values()),
        'by_product': sorted(by_product.values(), key=lambda r: r['total_amount'], reverse=True),
        'total_amount': sum(p.total_amount or 0.0 for p in purchases),
    }


def customer_report(store, customer_id):
    customer = store.customers.get(customer_id)
    if customer is None:
        raise ValidationError('Customer not found')
    sales = store.sales.list(Sale.customer_id == customer_id, order_by=Sale.date.desc())
    total = sum(s.total_amount or 0.0 for s in sales)
    paid = sum(s.amount_paid or 0.0 for s in sales)
    products = [r for r in product_sales(store, sales) if r['total_quantity']]
    return {
        'customer': customer,
        'sales': sales,
        'products': products,
        'total_sales': total,
        'total_paid': paid,
        'total_balance': total - paid,
    }


def company_names(store):
    """Distinct product companies and supplier names, for the purchase filters."""
    names = []
    for product in store.products.list():
        if product.company_name not in names:
            names.append(product.company_name)
    for supplier in store.suppliers.list():
        if supplier.supplier_name not in names:
            names.append(supplier.supplier_name)
    return names


def filter_purchases(purchases, purchase_id=None, company=None, on=None, product_name=None):
    """Purchase-list filter: id substring, counterparty, exact date, product name substring."""
    result = list(purchases)
    if purchase_id:
        result = [p for p in result if purchase_id in p.purchase_id]
    if company and company != 'all':
        result = [p for p in result if p.counterparty == company]
    if on:
        result = [p for p in result if p.purchase_date == on]
    if product_name:
        needle = product_name.lower()
        result = [p for p in result if any(needle in i.product_name.lower() for i in p.items)]
    return result


# ==================== BILLING ====================

def build_bill(store, customer_id, on):
    """
    Combine a customer's sales for one day into a bill.

    previous_balance is what the customer owed before these sales, derived from
    the stored amount_balance.
    """
    if not customer_id:
        raise ValidationError('Please select a customer')
    customer = store.customers.get(customer_id)
    if customer is None:
        raise ValidationError('Customer not found')

    sales = store.sales.list(Sale.customer_id == customer_id, Sale.date == on)
    if not sales:
        raise ValidationError(f'No sales found for {customer.customer_name} on {on.isoformat()}')

    lines = []
    for sale in sales:
        for item in sale.items:
            lines.append({
                'product_name': item.product_name,
                'sales_price': item.sales_price,
                'quantity': item.quantity,
                'total': item.sales_price * item.quantity,
            })
    total = sum(s.total_amount or 0.0 for s in sales)
    paid = sum(s.amount_paid or 0.0 for s in sales)
    balance = total - paid
    return {
        'customer': customer,
        'date': on,
        'products': lines,
        'total_amount': total,
        'amount_paid': paid,
        'balance': balance,
        'previous_balance': (customer.amount_balance or 0.0) - balance,
        'total_balance': customer.amount_balance or 0.0,
    }

"""
Document number generation: <prefix><yyyy><mm>[<dd>]<sequence>.

The sequence is one more than the highest sequence already used with the same
prefix and period. Two sessions creating documents at once can still collide;
the primary key on the table is what finally rejects the duplicate.
"""

from datetime import date

PURCHASE_PREFIX = 'P'
SALES_PREFIX = 'S'
ORDER_PREFIX = 'O'
SUPPLIER_TXN_PREFIX = 'ST'

PURCHASE_WIDTH = 3
SALES_WIDTH = 3
ORDER_WIDTH = 5
SUPPLIER_TXN_WIDTH = 3


def period_prefix(prefix, today=None, daily=False):
    today = today or date.today()
    base = f"{prefix}{today.year:04d}{today.month:02d}"
    if daily:
        base += f"{today.day:02d}"
    return base


def next_identifier(prefix, existing_ids, today=None, width=3, daily=False):
    """Return the next id for ``prefix`` in the current month (or day)."""
    base = period_prefix(prefix, today, daily)
    highest = 0
    for ident in existing_ids:
        if not ident or not ident.startswith(base):
            continue
        tail = ident[len(base):]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return f"{base}{highest + 1:0{width}d}"


def next_purchase_id(store, today=None):
    return next_identifier(PURCHASE_PREFIX, store.purchases.ids(), today, PURCHASE_WIDTH)


def next_sales_id(store, today=None):
    # completed orders carry sales ids too, scan both
    existing = store.sales.ids() + [o.sales_id for o in store.orders.list() if o.sales_id]
    return next_identifier(SALES_PREFIX, existing, today, SALES_WIDTH)


def next_order_id(store, today=None):
    return next_identifier(ORDER_PREFIX, store.orders.ids(), today, ORDER_WIDTH)


def next_supplier_transaction_id(store, today=None):
    return next_identifier(SUPPLIER_TXN_PREFIX, store.supplier_transactions.ids(), today,
                           SUPPLIER_TXN_WIDTH, daily=True)

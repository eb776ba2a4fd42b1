"""
Balance bookkeeping for products, customers and suppliers.

These functions only mutate the model instances handed to them; committing
(and rolling back on failure) is the caller's job, so a handler's mutation and
the balance update it triggers land in the same database transaction.

Decrements clamp at zero. Increments are not guarded, and nothing here is
idempotent: applying ``complete`` to the same order twice takes the stock out
twice.
"""

import logging
from datetime import date, datetime

logger = logging.getLogger(__name__)

ORDER = 'order'
CANCEL = 'cancel'
COMPLETE = 'complete'
INVENTORY_ACTIONS = (ORDER, CANCEL, COMPLETE)


def _product(products, product_id):
    product = products.get(product_id)
    if product is None:
        logger.debug('no product %s, line skipped', product_id)
    return product


# ==================== INVENTORY ====================

def apply_order_to_inventory(items, action, products):
    """
    Fold order line items into product stock.

    order:    ordered += qty
    cancel:   ordered = max(0, ordered - qty)
    complete: ordered = max(0, ordered - qty), available = max(0, available - qty)

    ``products`` is anything with ``get(product_id)`` (a store Repository).
    Returns the touched products.
    """
    if action not in INVENTORY_ACTIONS:
        raise ValueError(f'unknown inventory action {action!r}')

    touched = []
    for item in items:
        product = _product(products, item.product_id)
        if product is None:
            continue
        qty = item.quantity or 0
        if action == ORDER:
            product.ordered_quantity = (product.ordered_quantity or 0) + qty
        elif action == CANCEL:
            product.ordered_quantity = max(0, (product.ordered_quantity or 0) - qty)
        else:
            product.ordered_quantity = max(0, (product.ordered_quantity or 0) - qty)
            product.available_quantity = max(0, (product.available_quantity or 0) - qty)
        product.recompute_actual()
        logger.debug('%s %s x%s -> available=%s ordered=%s', action, product.product_name, qty,
                     product.available_quantity, product.ordered_quantity)
        touched.append(product)
    return touched


def apply_purchase_to_inventory(items, products, sign=1):
    """
    Receive (sign=1) or take back (sign=-1) purchased stock.

    Receiving also records the line's price as the product's purchase rate.
    """
    touched = []
    for item in items:
        product = _product(products, item.product_id)
        if product is None:
            continue
        qty = item.quantity or 0
        if sign >= 0:
            product.available_quantity = (product.available_quantity or 0) + qty
            if item.purchase_price:
                product.purchase_rate = item.purchase_price
        else:
            product.available_quantity = max(0, (product.available_quantity or 0) - qty)
        product.recompute_actual()
        touched.append(product)
    return touched


def _quantities_by_product(items):
    totals = {}
    names = {}
    for item in items:
        totals[item.product_id] = totals.get(item.product_id, 0) + (item.quantity or 0)
        names[item.product_id] = item.product_name
    return totals, names


def apply_purchase_change(old_items, new_items, products):
    """
    Move stock by the per-product difference between two versions of a purchase.

    Returns readable change lines for the notification shown after a modify.
    """
    old_qty, old_names = _quantities_by_product(old_items)
    new_qty, new_names = _quantities_by_product(new_items)
    changes = []

    for product_id, before in old_qty.items():
        after = new_qty.get(product_id)
        name = old_names[product_id]
        if after is None:
            changes.append(f'Removed {before} of {name}')
        elif after < before:
            changes.append(f'Decreased {name} by {before - after}')

    for product_id, after in new_qty.items():
        before = old_qty.get(product_id)
        name = new_names[product_id]
        if before is None:
            changes.append(f'Added {after} of {name}')
        elif after > before:
            changes.append(f'Increased {name} by {after - before}')

    for product_id in set(old_qty) | set(new_qty):
        delta = new_qty.get(product_id, 0) - old_qty.get(product_id, 0)
        if delta == 0:
            continue
        product = _product(products, product_id)
        if product is None:
            continue
        product.available_quantity = max(0, (product.available_quantity or 0) + delta)
        product.recompute_actual()

    # edited prices become the purchase rate, as on receipt
    for item in new_items:
        price = getattr(item, 'purchase_price', None)
        if not price:
            continue
        product = _product(products, item.product_id)
        if product is not None:
            product.purchase_rate = price

    return changes


# ==================== CUSTOMERS ====================

def _recompute_customer(customer):
    customer.amount_balance = (customer.total_sales or 0.0) - (customer.amount_received or 0.0)


def apply_customer_payment(customer, amount):
    """amount_received += amount; balance = total_sales - amount_received.

    total_sales is left alone, a sale has to be added separately.
    """
    customer.amount_received = (customer.amount_received or 0.0) + amount
    _recompute_customer(customer)
    logger.debug('payment %s from customer %s -> balance %s', amount, customer.customer_id,
                 customer.amount_balance)
    return customer


def apply_customer_sale(customer, total):
    customer.total_sales = (customer.total_sales or 0.0) + total
    _recompute_customer(customer)
    return customer


# ==================== SUPPLIERS ====================

def compute_supplier_balances(txn):
    """Fill in txn.balance and txn.crate_balance from the transaction's own fields."""
    txn.balance = ((txn.opening_amount or 0.0) + (txn.bill_amount or 0.0)
                   - (txn.paid or 0.0) - (txn.damage or 0.0))
    txn.crate_balance = (txn.crate_opening or 0) + (txn.crate_supply or 0) - (txn.crate_return or 0)
    return txn.balance, txn.crate_balance


def apply_supplier_transaction(txn, supplier):
    """
    Compute the transaction's balances and overwrite the supplier's with them.

    The supplier ends up holding whatever the transaction says, so the
    transaction's opening fields must have been seeded from the supplier's
    current balances. Returns False (and logs a warning) when they were not,
    which is how a stale form overwriting a newer transaction shows up.
    """
    in_step = ((txn.opening_amount or 0.0) == (supplier.balance_amount or 0.0)
               and (txn.crate_opening or 0) == (supplier.crate_balance or 0))
    if not in_step:
        logger.warning(
            'supplier %s: transaction %s opens at %s/%s crates but supplier is at %s/%s crates',
            supplier.supplier_id, txn.transaction_id, txn.opening_amount, txn.crate_opening,
            supplier.balance_amount, supplier.crate_balance,
        )

    balance, crate_balance = compute_supplier_balances(txn)
    supplier.balance_amount = balance
    supplier.crate_balance = crate_balance
    return in_step


def fold_supplier_history(transactions):
    """
    Balance and crate balance obtained by folding every transaction's movement
    onto the first transaction's opening figures.
    """
    ordered = sorted(transactions, key=lambda t: (t.date or date.min, t.created_at or datetime.min,
                                                  t.transaction_id or ''))
    if not ordered:
        return 0.0, 0
    balance = ordered[0].opening_amount or 0.0
    crates = ordered[0].crate_opening or 0
    for txn in ordered:
        balance += (txn.bill_amount or 0.0) - (txn.paid or 0.0) - (txn.damage or 0.0)
        crates += (txn.crate_supply or 0) - (txn.crate_return or 0)
    return balance, crates

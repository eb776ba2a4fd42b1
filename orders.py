"""
Order lifecycle: create, change status, modify line items.

Statuses are pending -> processing -> completed | cancelled, and a completed or
cancelled order can be reopened to pending. ``allowed_transitions`` lists the
moves the order page offers; ``change_status`` itself accepts any known status.
"""

import logging
from datetime import date

import ledger
from errors import ValidationError
from identifiers import next_order_id, next_sales_id
from models import ORDER_STATUSES, Order, OrderItem, Sale, SaleItem

logger = logging.getLogger(__name__)

_TRANSITIONS = {
    'pending': ('processing', 'completed', 'cancelled'),
    'processing': ('completed', 'cancelled'),
    'completed': ('pending',),
    'cancelled': ('pending',),
}

OPEN_STATUSES = ('pending', 'processing')


def allowed_transitions(status):
    return _TRANSITIONS.get(status, ())


def build_order_items(store, customer_id, lines):
    """
    Turn (product_id, quantity, price) tuples into OrderItem rows.

    Lines without a product or with a non-positive quantity are dropped, as the
    entry form always carries blank rows. A missing price falls back to the
    customer's price for the product.
    """
    items = []
    for product_id, quantity, price in lines:
        if not product_id or not quantity or quantity <= 0:
            continue
        product = store.products.get(product_id)
        if product is None:
            raise ValidationError(f'Product {product_id} not found')
        if price is None:
            price = product.price_for(customer_id)
        if price < 0:
            raise ValidationError('Price cannot be negative')
        items.append(OrderItem(product_id=product.product_id, product_name=product.product_name,
                               sales_price=price, quantity=quantity))
    return items


def create_order(store, customer, items, order_date=None, remarks='', advance_amount=None, today=None):
    """New pending order; its quantities are booked as ordered stock."""
    if customer is None:
        raise ValidationError('Please select a customer')
    if not items:
        raise ValidationError('Please add at least one product')
    if advance_amount is not None and advance_amount < 0:
        raise ValidationError('Advance amount cannot be negative')

    order = Order(
        order_id=next_order_id(store, today),
        order_date=order_date or date.today(),
        customer_id=customer.customer_id,
        customer_name=customer.customer_name,
        remarks=remarks or '',
        status='pending',
        advance_amount=advance_amount,
    )
    order.items = list(items)
    store.orders.upsert(order)
    ledger.apply_order_to_inventory(order.items, ledger.ORDER, store.products)
    return order


def _record_sale(store, order, today=None, track_sales=False):
    sale = Sale(
        sales_id=order.sales_id,
        date=today or date.today(),
        customer_id=order.customer_id,
        customer_name=order.customer_name,
        amount_paid=order.advance_amount or 0.0,
    )
    sale.items = [
        SaleItem(product_id=i.product_id, product_name=i.product_name,
                 sales_price=i.sales_price, quantity=i.quantity)
        for i in order.items
    ]
    sale.recompute_total()
    store.sales.upsert(sale)

    if track_sales:
        customer = store.customers.get(order.customer_id)
        if customer is not None:
            ledger.apply_customer_sale(customer, sale.total_amount)
            if sale.amount_paid:
                ledger.apply_customer_payment(customer, sale.amount_paid)
    return sale


def change_status(store, order, status, today=None, track_sales=False):
    """
    Write a new status and apply its stock effect.

    cancelled releases the ordered quantities; completed takes them out of
    available stock, assigns a sales id and records the sale. Other statuses
    only change the field.
    """
    if status not in ORDER_STATUSES:
        raise ValidationError(f'Unknown order status: {status}')

    previous = order.status
    if status == 'cancelled':
        ledger.apply_order_to_inventory(order.items, ledger.CANCEL, store.products)
    elif status == 'completed':
        ledger.apply_order_to_inventory(order.items, ledger.COMPLETE, store.products)
        order.sales_id = next_sales_id(store, today)
        _record_sale(store, order, today, track_sales)

    order.status = status
    logger.info('order %s: %s -> %s', order.order_id, previous, status)
    return order


def modify_order(store, order, new_items, remarks=None, advance_amount=None):
    """
    Replace an open order's line items: release the old quantities, then book
    the new ones.
    """
    if order.status not in OPEN_STATUSES:
        raise ValidationError(f'Order {order.order_id} is {order.status} and cannot be modified')
    if not new_items:
        raise ValidationError('Please add at least one product')

    ledger.apply_order_to_inventory(order.items, ledger.CANCEL, store.products)
    order.items = list(new_items)
    store.orders.upsert(order)
    ledger.apply_order_to_inventory(order.items, ledger.ORDER, store.products)

    if remarks is not None:
        order.remarks = remarks
    if advance_amount is not None:
        order.advance_amount = advance_amount
    return order


def orders_by_date(orders):
    """{date: [orders]} for the order calendar."""
    grouped = {}
    for order in orders:
        grouped.setdefault(order.order_date, []).append(order)
    return grouped

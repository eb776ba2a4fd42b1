# ERP dashboard database models
# Every page of the dashboard reads and writes these tables through the store (store.py)

from datetime import date, datetime

from flask_sqlalchemy import SQLAlchemy

# Initialize SQLAlchemy database instance
# Bound to the Flask app inside create_app()
db = SQLAlchemy()


ORDER_STATUSES = ('pending', 'processing', 'completed', 'cancelled')


def line_total(items):
    """Sum of price * quantity over line items (sale, order or purchase lines)."""
    total = 0.0
    for item in items:
        total += (item.unit_price or 0.0) * (item.quantity or 0)
    return total


# ==================== MASTER DATA ====================

class Customer(db.Model):
    """
    Customer account with running sales/receipt balances.
    amount_balance is derived: total_sales - amount_received.
    """
    __tablename__ = 'customers'

    customer_id = db.Column(db.Integer, primary_key=True)  # Unique customer identifier
    customer_name = db.Column(db.String(120), nullable=False)  # Customer or business name
    customer_address = db.Column(db.String(255), nullable=True)  # Postal address shown on bills
    customer_mobile = db.Column(db.String(20), nullable=True)  # Contact number (searchable)
    total_sales = db.Column(db.Float, nullable=False, default=0.0)  # Sum of sales billed to the customer
    amount_received = db.Column(db.Float, nullable=False, default=0.0)  # Sum of payments received
    amount_balance = db.Column(db.Float, nullable=False, default=0.0)  # Outstanding amount: total_sales - amount_received
    profit = db.Column(db.Float, nullable=False, default=0.0)  # Profit earned on this customer


class Product(db.Model):
    """
    Product with stock counters.
    actual_quantity = available_quantity - ordered_quantity (stock not yet promised to an order).
    """
    __tablename__ = 'products'

    product_id = db.Column(db.Integer, primary_key=True)  # Unique product identifier
    company_name = db.Column(db.String(120), nullable=False)  # Manufacturer / company the product is bought from
    product_name = db.Column(db.String(120), nullable=False)  # Product name
    default_sales_price = db.Column(db.Float, nullable=False, default=0.0)  # Price for customers without an override
    purchase_rate = db.Column(db.Float, nullable=False, default=0.0)  # Last purchase price paid
    available_quantity = db.Column(db.Integer, nullable=False, default=0)  # Stock on hand
    ordered_quantity = db.Column(db.Integer, nullable=False, default=0)  # Stock committed to open orders
    actual_quantity = db.Column(db.Integer, nullable=False, default=0)  # Free stock: available - ordered

    customer_prices = db.relationship('ProductPrice', back_populates='product', cascade='all, delete-orphan')
    price_history = db.relationship(
        'PriceHistory', back_populates='product', cascade='all, delete-orphan',
        order_by='PriceHistory.changed_on',
    )

    def recompute_actual(self):
        self.actual_quantity = (self.available_quantity or 0) - (self.ordered_quantity or 0)
        return self.actual_quantity

    def price_for(self, customer_id):
        """Customer override price when one is set, otherwise the default sales price."""
        for cp in self.customer_prices:
            if cp.customer_id == customer_id and cp.price:
                return cp.price
        return self.default_sales_price or 0.0


class ProductPrice(db.Model):
    """Per-customer price list entry; overrides Product.default_sales_price."""
    __tablename__ = 'product_prices'
    __table_args__ = (db.UniqueConstraint('product_id', 'customer_id', name='uq_product_customer_price'),)

    id = db.Column(db.Integer, primary_key=True)  # Unique price list entry ID
    product_id = db.Column(db.Integer, db.ForeignKey('products.product_id'), nullable=False)  # Link to product
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.customer_id', ondelete='CASCADE'), nullable=False)  # Link to customer (removed with the customer)
    price = db.Column(db.Float, nullable=False)  # Override sales price for this customer

    product = db.relationship('Product', back_populates='customer_prices')  # Product the price applies to


class PriceHistory(db.Model):
    """Append-only log of purchase rate / default sales price changes."""
    __tablename__ = 'price_history'

    id = db.Column(db.Integer, primary_key=True)  # Unique history entry ID
    product_id = db.Column(db.Integer, db.ForeignKey('products.product_id'), nullable=False)  # Link to product
    kind = db.Column(db.String(10), nullable=False)  # 'purchase' or 'sales'
    price = db.Column(db.Float, nullable=False)  # New price from that day on
    changed_on = db.Column(db.Date, nullable=False, default=date.today)  # Date of the change

    product = db.relationship('Product', back_populates='price_history')


class Supplier(db.Model):
    """
    Supplier account. balance_amount and crate_balance are the running ledger
    balances, only ever written through a SupplierTransaction.
    """
    __tablename__ = 'suppliers'

    supplier_id = db.Column(db.Integer, primary_key=True)  # Unique supplier identifier
    supplier_name = db.Column(db.String(120), nullable=False)  # Supplier name
    balance_amount = db.Column(db.Float, nullable=False, default=0.0)  # Amount owed to the supplier after the latest transaction
    crate_balance = db.Column(db.Integer, nullable=False, default=0)  # Crates held after the latest transaction
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)  # Registration time

    transactions = db.relationship(
        'SupplierTransaction', back_populates='supplier', cascade='all, delete-orphan',
        order_by='SupplierTransaction.created_at',
    )


class SupplierTransaction(db.Model):
    """One bill/payment/crate movement against a supplier."""
    __tablename__ = 'supplier_transactions'

    transaction_id = db.Column(db.String(20), primary_key=True)  # ST<yyyymmdd><seq>
    supplier_id = db.Column(db.Integer, db.ForeignKey('suppliers.supplier_id'), nullable=False)  # Link to supplier
    date = db.Column(db.Date, nullable=False, default=date.today)  # Transaction date
    opening_amount = db.Column(db.Float, nullable=False, default=0.0)  # Supplier balance before this transaction
    bill_amount = db.Column(db.Float, nullable=False, default=0.0)  # Amount billed by the supplier
    paid = db.Column(db.Float, nullable=False, default=0.0)  # Amount paid to the supplier
    damage = db.Column(db.Float, nullable=False, default=0.0)  # Deduction for damaged goods
    balance = db.Column(db.Float, nullable=False, default=0.0)  # opening + bill - paid - damage
    crate_opening = db.Column(db.Integer, nullable=False, default=0)  # Crates held before this transaction
    crate_supply = db.Column(db.Integer, nullable=False, default=0)  # Crates received with the goods
    crate_return = db.Column(db.Integer, nullable=False, default=0)  # Crates sent back
    crate_balance = db.Column(db.Integer, nullable=False, default=0)  # opening + supply - return
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)  # Entry time, orders same-day transactions

    supplier = db.relationship('Supplier', back_populates='transactions')  # Owning supplier

    @property
    def supplier_name(self):
        return self.supplier.supplier_name if self.supplier else ''


# ==================== TRANSACTIONS ====================

class Purchase(db.Model):
    """
    Purchase header. A purchase is bought either from a registered supplier
    (supplier_id set) or from a product company by name (company_name set);
    counterparty_kind tells the two apart.
    """
    __tablename__ = 'purchases'

    purchase_id = db.Column(db.String(20), primary_key=True)  # P<yyyymm><seq>
    supplier_id = db.Column(db.Integer, db.ForeignKey('suppliers.supplier_id'), nullable=True)  # Set when bought from a registered supplier
    company_name = db.Column(db.String(120), nullable=True)  # Set when bought from a product company
    purchase_date = db.Column(db.Date, nullable=False, default=date.today)  # Date of purchase
    total_amount = db.Column(db.Float, nullable=False, default=0.0)  # Sum of line totals
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)  # Entry time

    supplier = db.relationship('Supplier')  # Registered supplier, None for company purchases
    items = db.relationship('PurchaseItem', back_populates='purchase', cascade='all, delete-orphan',
                            order_by='PurchaseItem.item_id')

    @property
    def counterparty_kind(self):
        return 'supplier' if self.supplier_id is not None else 'company'

    @property
    def counterparty(self):
        if self.supplier is not None:
            return self.supplier.supplier_name
        return self.company_name or ''

    def recompute_total(self):
        self.total_amount = line_total(self.items)
        return self.total_amount


class PurchaseItem(db.Model):
    __tablename__ = 'purchase_items'

    item_id = db.Column(db.Integer, primary_key=True)  # Unique line ID
    purchase_id = db.Column(db.String(20), db.ForeignKey('purchases.purchase_id'), nullable=False)  # Link to purchase
    product_id = db.Column(db.Integer, nullable=False)  # Product received
    product_name = db.Column(db.String(120), nullable=False)  # Product name at the time of purchase
    quantity = db.Column(db.Integer, nullable=False)  # Quantity received
    purchase_price = db.Column(db.Float, nullable=False)  # Purchase price per unit
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)  # Entry time

    purchase = db.relationship('Purchase', back_populates='items')

    @property
    def unit_price(self):
        return self.purchase_price


class Order(db.Model):
    """
    Customer order. status moves pending -> processing -> completed | cancelled,
    and completed/cancelled orders can be reopened to pending.
    sales_id is only assigned when the order is completed.
    """
    __tablename__ = 'orders'

    order_id = db.Column(db.String(20), primary_key=True)  # O<yyyymm><seq>
    order_date = db.Column(db.Date, nullable=False, default=date.today)  # Date the order is for
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.customer_id'), nullable=False)  # Link to customer
    customer_name = db.Column(db.String(120), nullable=False)  # Customer name at the time of the order
    remarks = db.Column(db.String(255), nullable=False, default='')  # Free-text notes
    status = db.Column(db.String(20), nullable=False, default='pending')  # One of ORDER_STATUSES
    advance_amount = db.Column(db.Float, nullable=True)  # Amount paid up front, if any
    sales_id = db.Column(db.String(20), nullable=True)  # Sales ID assigned on completion

    items = db.relationship('OrderItem', back_populates='order', cascade='all, delete-orphan',
                            order_by='OrderItem.id')

    @property
    def total_amount(self):
        return line_total(self.items)


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)  # Unique line ID
    order_id = db.Column(db.String(20), db.ForeignKey('orders.order_id'), nullable=False)  # Link to order
    product_id = db.Column(db.Integer, nullable=False)  # Product ordered
    product_name = db.Column(db.String(120), nullable=False)  # Product name at the time of the order
    sales_price = db.Column(db.Float, nullable=False)  # Agreed price per unit
    quantity = db.Column(db.Integer, nullable=False)  # Quantity ordered

    order = db.relationship('Order', back_populates='items')

    @property
    def unit_price(self):
        return self.sales_price


class Sale(db.Model):
    """Sales transaction; a sale with no items is a plain payment from the customer."""
    __tablename__ = 'sales'

    sales_id = db.Column(db.String(20), primary_key=True)  # S<yyyymm><seq>
    date = db.Column(db.Date, nullable=False, default=date.today)  # Sale date
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.customer_id'), nullable=False)  # Link to customer
    customer_name = db.Column(db.String(120), nullable=False)  # Customer name at the time of the sale
    amount_paid = db.Column(db.Float, nullable=False, default=0.0)  # Amount paid against this sale
    total_amount = db.Column(db.Float, nullable=False, default=0.0)  # Sum of line totals

    items = db.relationship('SaleItem', back_populates='sale', cascade='all, delete-orphan',
                            order_by='SaleItem.id')

    @property
    def balance(self):
        return (self.total_amount or 0.0) - (self.amount_paid or 0.0)

    @property
    def is_paid(self):
        return (self.total_amount or 0.0) <= (self.amount_paid or 0.0)

    def recompute_total(self):
        self.total_amount = line_total(self.items)
        return self.total_amount


class SaleItem(db.Model):
    __tablename__ = 'sale_items'

    id = db.Column(db.Integer, primary_key=True)  # Unique line ID
    sales_id = db.Column(db.String(20), db.ForeignKey('sales.sales_id'), nullable=False)  # Link to sale
    product_id = db.Column(db.Integer, nullable=False)  # Product sold
    product_name = db.Column(db.String(120), nullable=False)  # Product name at the time of the sale
    sales_price = db.Column(db.Float, nullable=False)  # Sale price per unit
    quantity = db.Column(db.Integer, nullable=False)  # Quantity sold

    sale = db.relationship('Sale', back_populates='items')

    @property
    def unit_price(self):
        return self.sales_price

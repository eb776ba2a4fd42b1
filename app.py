# Flask ERP Dashboard
# Application factory with the page routes for purchases, inventory, customers, prices,
# sales, billing, reports, orders and suppliers

import logging
import os
from datetime import date, datetime
from types import SimpleNamespace

import click
from flask import Flask, render_template, request, redirect, url_for, flash, abort
from sqlalchemy.exc import SQLAlchemyError

import ledger
import orders as order_flow
import reports
from errors import ValidationError, StoreError
from identifiers import next_purchase_id, next_sales_id, next_supplier_transaction_id
from models import (
    db, ORDER_STATUSES, Customer, Product, ProductPrice, PriceHistory, Supplier,
    SupplierTransaction, Purchase, PurchaseItem, Order, Sale, SaleItem,
)
from seed import seed_demo_data
from store import Store


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# ==================== FORM PARSING HELPERS ====================

def _to_int(value, default=None):
    try:
        return int(value) if value not in (None, '') else default
    except ValueError:
        return default


def _to_float(value, default=None):
    try:
        return float(value) if value not in (None, '') else default
    except ValueError:
        return default


def _to_date(value, default=None):
    if not value:
        return default
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return default


def _form_lines(price_field):
    """Zip the repeated product_id / quantity / <price_field> inputs of a line-item table."""
    product_ids = request.form.getlist('product_id')
    quantities = request.form.getlist('quantity')
    prices = request.form.getlist(price_field)
    lines = []
    for i, raw_pid in enumerate(product_ids):
        qty = _to_int(quantities[i] if i < len(quantities) else None, 0)
        price = _to_float(prices[i] if i < len(prices) else None)
        lines.append((_to_int(raw_pid, 0), qty, price))
    return lines


def _format_money(value, symbol):
    value = value or 0
    if float(value).is_integer():
        return f'{symbol}{value:,.0f}'
    return f'{symbol}{value:,.2f}'


# ==================== APPLICATION FACTORY ====================

def create_app(test_config=None):
    """
    Create and configure the ERP dashboard.

    Args:
        test_config (dict, optional): overrides applied after the defaults,
            e.g. an in-memory SQLALCHEMY_DATABASE_URI for tests.
    """
    app = Flask(__name__, template_folder='templates')

    # ==================== APPLICATION CONFIGURATION ====================
    project_root = os.path.abspath(os.path.dirname(__file__))
    db_path = os.path.join(project_root, 'erp.db')
    app.config.from_mapping(
        SECRET_KEY=os.environ.get('FLASK_SECRET', 'dev-secret'),
        # Hosted backend credentials come in through DATABASE_URL
        SQLALCHEMY_DATABASE_URI=os.environ.get('DATABASE_URL', f"sqlite:///{db_path}"),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        # Off by default: recording a sale leaves the customer's total_sales untouched
        LEDGER_TRACK_SALES=_env_flag('LEDGER_TRACK_SALES'),
        SEED_DEMO_DATA=_env_flag('SEED_DEMO_DATA'),
        CURRENCY_SYMBOL='₹',
        LOG_LEVEL=os.environ.get('LOG_LEVEL', 'INFO'),
    )

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config['LOG_LEVEL'])
    for name in ('ledger', 'orders'):
        logging.getLogger(name).setLevel(app.config['LOG_LEVEL'])

    db.init_app(app)
    store = Store()
    app.extensions['erp_store'] = store

    with app.app_context():
        db.create_all()
        if app.config.get('SEED_DEMO_DATA') and seed_demo_data(store):
            app.logger.info('Demo data loaded')

    @app.cli.command('seed-demo')
    def seed_demo_command():
        """Load the demo customers, products, purchases, sales, orders and suppliers."""
        if seed_demo_data(store):
            click.echo('Demo data loaded.')
        else:
            click.echo('Database already has data, nothing loaded.')

    @app.template_filter('money')
    def money_filter(value):
        return _format_money(value, app.config['CURRENCY_SYMBOL'])

    @app.context_processor
    def inject_navigation():
        return {
            'nav_items': [
                ('home', 'Dashboard'), ('purchase', 'Purchase'), ('inventory', 'Inventory'),
                ('customer', 'Customer'), ('product_price', 'Product Price'), ('sales', 'Sales'),
                ('billing', 'Billing'), ('report', 'Report'), ('order', 'Order'), ('supplier', 'Supplier'),
            ],
            'today': date.today(),
        }

    def save(failure):
        """
        Commit the request's changes. Store failures are logged, shown to the
        user and leave the database untouched (the session was rolled back).
        """
        try:
            store.commit()
        except StoreError:
            app.logger.exception(failure)
            flash(f'{failure}. The change was not saved.', 'error')
            return False
        return True

    def rejected(exc):
        store.rollback()
        flash(str(exc), 'error')

    def get_or_404(repo, ident):
        obj = repo.get(ident)
        if obj is None:
            abort(404)
        return obj

    @app.errorhandler(404)
    def not_found(error):
        return render_template('404.html', path=request.path), 404

    @app.errorhandler(StoreError)
    @app.errorhandler(SQLAlchemyError)
    def store_failed(error):
        """
        A write rejected before the final commit, such as a duplicate id on
        flush. The session is rolled back and the user is sent back to the page
        they came from.
        """
        store.rollback()
        app.logger.error('store failure on %s %s: %s', request.method, request.path, error, exc_info=error)
        flash('The database rejected the change. The change was not saved.', 'error')
        return redirect(request.referrer or url_for('home'))

    # ==================== DASHBOARD ====================

    @app.route('/')
    def home():
        """Sales/receipt totals, top customers and products, recent sales and the monthly table."""
        summary = reports.dashboard_summary(store)
        return render_template('home.html', **summary)

    # ==================== PURCHASE ROUTES ====================

    @app.route('/purchase')
    def purchase():
        """
        Purchase list with the filter panel (purchase id, company/supplier,
        date, product name), most recent first.
        """
        filters = {
            'purchase_id': request.args.get('purchase_id', '').strip(),
            'company': request.args.get('company', 'all'),
            'date': request.args.get('date', ''),
            'product_name': request.args.get('product_name', '').strip(),
        }
        items = reports.filter_purchases(
            store.purchases.list(order_by=Purchase.purchase_date.desc()),
            purchase_id=filters['purchase_id'],
            company=filters['company'],
            on=_to_date(filters['date']),
            product_name=filters['product_name'],
        )
        return render_template('purchases.html', purchases=items, filters=filters,
                               companies=reports.company_names(store))

    def _purchase_items_from_form():
        # rows missing a product, quantity or price are blank table rows
        items = []
        for product_id, quantity, price in _form_lines('purchase_price'):
            if not product_id or quantity <= 0 or not price or price <= 0:
                continue
            product = store.products.get(product_id)
            if product is None:
                raise ValidationError(f'Product {product_id} not found')
            items.append(PurchaseItem(product_id=product.product_id, product_name=product.product_name,
                                      quantity=quantity, purchase_price=price))
        if not items:
            raise ValidationError('Please add at least one valid product')
        return items

    @app.route('/purchase/add', methods=['GET', 'POST'])
    def add_purchase():
        """
        Record a purchase from a supplier or a product company.
        The received quantities are added to available stock.
        """
        if request.method == 'POST':
            supplier_id = _to_int(request.form.get('supplier_id'))
            company_name = request.form.get('company_name', '').strip() or None
            supplier = store.suppliers.get(supplier_id) if supplier_id else None
            purchase_date = _to_date(request.form.get('purchase_date'), date.today())

            try:
                if supplier is None and not company_name:
                    raise ValidationError('Please select a supplier')
                items = _purchase_items_from_form()
                p = Purchase(
                    purchase_id=next_purchase_id(store),
                    supplier_id=supplier.supplier_id if supplier else None,
                    company_name=None if supplier else company_name,
                    purchase_date=purchase_date,
                )
                p.items = items
                p.recompute_total()
                store.purchases.upsert(p)
                ledger.apply_purchase_to_inventory(p.items, store.products)
            except ValidationError as exc:
                rejected(exc)
                return redirect(url_for('add_purchase'))

            if save('Could not save purchase'):
                app.logger.info('purchase %s added (%s lines)', p.purchase_id, len(p.items))
                flash(f'Purchase #{p.purchase_id} has been added successfully')
            return redirect(url_for('purchase'))

        return render_template(
            'purchase_form.html', purchase=None, next_id=next_purchase_id(store),
            products=store.products.list(order_by=Product.product_name),
            suppliers=store.suppliers.list(order_by=Supplier.supplier_name),
            companies=reports.company_names(store),
        )

    @app.route('/purchase/search')
    def search_purchase():
        """Find a purchase by id for modification."""
        purchase_id = request.args.get('purchase_id', '').strip()
        if not purchase_id:
            flash('Please enter a purchase ID', 'error')
            return redirect(url_for('purchase'))
        if store.purchases.get(purchase_id) is None:
            flash(f'Purchase with ID {purchase_id} not found', 'error')
            return redirect(url_for('purchase'))
        return redirect(url_for('edit_purchase', purchase_id=purchase_id))

    @app.route('/purchase/<purchase_id>/edit', methods=['GET', 'POST'])
    def edit_purchase(purchase_id):
        """
        Modify a purchase's date and line items.
        Stock moves by the per-product difference between the old and new lines.
        """
        p = get_or_404(store.purchases, purchase_id)

        if request.method == 'POST':
            before = [SimpleNamespace(product_id=i.product_id, product_name=i.product_name, quantity=i.quantity)
                      for i in p.items]
            try:
                items = _purchase_items_from_form()
                p.purchase_date = _to_date(request.form.get('purchase_date'), p.purchase_date)
                p.items = items
                p.recompute_total()
                changes = ledger.apply_purchase_change(before, p.items, store.products)
            except ValidationError as exc:
                rejected(exc)
                return redirect(url_for('edit_purchase', purchase_id=purchase_id))

            if save('Could not modify purchase'):
                if changes:
                    flash('Inventory updated: ' + '; '.join(changes))
                flash(f'Purchase #{purchase_id} has been updated successfully')
            return redirect(url_for('purchase'))

        return render_template(
            'purchase_form.html', purchase=p, next_id=p.purchase_id,
            products=store.products.list(order_by=Product.product_name),
            suppliers=store.suppliers.list(order_by=Supplier.supplier_name),
            companies=reports.company_names(store),
        )

    @app.route('/purchase/<purchase_id>/delete', methods=['POST'])
    def delete_purchase(purchase_id):
        """Delete a purchase and take its quantities back out of stock."""
        p = get_or_404(store.purchases, purchase_id)
        count = len(p.items)
        ledger.apply_purchase_to_inventory(p.items, store.products, sign=-1)
        store.purchases.delete(p)
        if save('Could not delete purchase'):
            flash(f'Removed {count} products from inventory')
            flash(f'Purchase #{purchase_id} has been deleted successfully')
        return redirect(url_for('purchase'))

    # ==================== INVENTORY ROUTES ====================

    @app.route('/inventory')
    def inventory():
        """Products by available quantity, largest first, with a name/company search."""
        q = request.args.get('q', '').strip().lower()
        items = store.products.list(order_by=Product.available_quantity.desc())
        if q:
            items = [p for p in items if q in p.product_name.lower() or q in p.company_name.lower()]
        return render_template('inventory.html', products=items, q=q)

    @app.route('/inventory/add', methods=['GET', 'POST'])
    def add_product():
        if request.method == 'POST':
            company_name = request.form.get('company_name', '').strip()
            product_name = request.form.get('product_name', '').strip()
            price = _to_float(request.form.get('default_sales_price'), 0.0)
            available = _to_int(request.form.get('available_quantity'), 0)
            ordered = _to_int(request.form.get('ordered_quantity'), 0)

            if not company_name or not product_name or price <= 0 or available < 0 or ordered < 0:
                flash('Please fill all required fields correctly', 'error')
                return redirect(url_for('add_product'))

            p = Product(company_name=company_name, product_name=product_name, default_sales_price=price,
                        available_quantity=available, ordered_quantity=ordered)
            p.recompute_actual()
            store.products.upsert(p)
            if save('Could not add product'):
                app.logger.info('product %s added', p.product_id)
                flash(f'{product_name} has been added to inventory')
            return redirect(url_for('inventory'))

        return render_template('product_form.html', product=None)

    @app.route('/inventory/<int:product_id>/edit', methods=['GET', 'POST'])
    def edit_product(product_id):
        """Edit a product in place; actual quantity is recomputed from the two counters."""
        p = get_or_404(store.products, product_id)

        if request.method == 'POST':
            company_name = request.form.get('company_name', '').strip() or p.company_name
            product_name = request.form.get('product_name', '').strip()
            price = _to_float(request.form.get('default_sales_price'), p.default_sales_price)
            available = _to_int(request.form.get('available_quantity'), p.available_quantity)
            ordered = _to_int(request.form.get('ordered_quantity'), p.ordered_quantity)

            if not product_name or price <= 0 or available < 0 or ordered < 0:
                flash('Please fill all required fields correctly', 'error')
                return redirect(url_for('edit_product', product_id=product_id))

            if price != p.default_sales_price:
                p.price_history.append(PriceHistory(kind='sales', price=price))
            p.company_name = company_name
            p.product_name = product_name
            p.default_sales_price = price
            p.available_quantity = available
            p.ordered_quantity = ordered
            p.recompute_actual()
            if save('Could not update product'):
                flash(f'{product_name} has been updated successfully')
            return redirect(url_for('inventory'))

        return render_template('product_form.html', product=p)

    @app.route('/inventory/<int:product_id>/delete', methods=['POST'])
    def delete_product(product_id):
        p = get_or_404(store.products, product_id)
        name = p.product_name
        store.products.delete(p)
        if save('Could not delete product'):
            flash(f'{name} has been deleted')
        return redirect(url_for('inventory'))

    # ==================== CUSTOMER ROUTES ====================

    @app.route('/customer')
    def customer():
        q = request.args.get('q', '').strip().lower()
        items = store.customers.list(order_by=Customer.customer_name)
        if q:
            items = [c for c in items
                     if q in c.customer_name.lower() or q in (c.customer_mobile or '') or q in str(c.customer_id)]
        return render_template('customers.html', customers=items, q=q)

    @app.route('/customer/add', methods=['GET', 'POST'])
    def add_customer():
        """New customers start with zero sales, receipts and balance."""
        if request.method == 'POST':
            name = request.form.get('customer_name', '').strip()
            address = request.form.get('customer_address', '').strip()
            mobile = request.form.get('customer_mobile', '').strip()
            if not name or not address or not mobile:
                flash('Please fill all required fields', 'error')
                return redirect(url_for('add_customer'))

            c = Customer(customer_name=name, customer_address=address, customer_mobile=mobile,
                         total_sales=0.0, amount_received=0.0, amount_balance=0.0, profit=0.0)
            store.customers.upsert(c)
            if save('Could not add customer'):
                flash(f'{name} has been added successfully')
            return redirect(url_for('customer'))

        return render_template('customer_form.html', customer=None)

    @app.route('/customer/<int:customer_id>/edit', methods=['GET', 'POST'])
    def edit_customer(customer_id):
        c = get_or_404(store.customers, customer_id)

        if request.method == 'POST':
            name = request.form.get('customer_name', '').strip()
            address = request.form.get('customer_address', '').strip()
            mobile = request.form.get('customer_mobile', '').strip()
            if not name or not address or not mobile:
                flash('Please fill all required fields', 'error')
                return redirect(url_for('edit_customer', customer_id=customer_id))

            c.customer_name = name
            c.customer_address = address
            c.customer_mobile = mobile
            if save('Could not update customer'):
                flash(f'{name} has been updated successfully')
            return redirect(url_for('customer'))

        return render_template('customer_form.html', customer=c)

    @app.route('/customer/delete', methods=['POST'])
    def delete_customers():
        """Delete the customers ticked in the list, with their price list entries."""
        ids = [i for i in (_to_int(v) for v in request.form.getlist('customer_ids')) if i]
        if not ids:
            flash('Please select at least one customer', 'error')
            return redirect(url_for('customer'))

        deleted = 0
        for cid in ids:
            for cp in store.product_prices.list(ProductPrice.customer_id == cid):
                store.product_prices.delete(cp)
            if store.customers.delete(cid):
                deleted += 1
        if save('Could not delete customers'):
            flash(f'{deleted} customers have been deleted')
        return redirect(url_for('customer'))

    @app.route('/customer/<int:customer_id>/payment', methods=['POST'])
    def receive_payment(customer_id):
        """Record money received from a customer against their balance."""
        c = get_or_404(store.customers, customer_id)
        amount = _to_float(request.form.get('amount'), 0.0)
        if amount <= 0:
            flash('Payment amount must be positive', 'error')
            return redirect(url_for('customer'))

        ledger.apply_customer_payment(c, amount)
        if save('Could not record payment'):
            flash(f'Payment of {money_filter(amount)} has been recorded for {c.customer_name}')
        return redirect(url_for('customer'))

    # ==================== PRODUCT PRICE ROUTES ====================

    @app.route('/product-price')
    def product_price():
        """Purchase rates and the customer x product sales price grid."""
        q = request.args.get('q', '').strip().lower()
        products = store.products.list(order_by=Product.product_name)
        if q:
            products = [p for p in products if q in p.product_name.lower() or q in p.company_name.lower()]
        customers = store.customers.list(order_by=Customer.customer_id)
        prices = {(cp.product_id, cp.customer_id): cp.price for cp in store.product_prices.list()}
        return render_template('product_prices.html', products=products, customers=customers,
                               prices=prices, q=q)

    @app.route('/product-price/purchase', methods=['POST'])
    def update_purchase_prices():
        for p in store.products.list():
            rate = _to_float(request.form.get(f'rate_{p.product_id}'))
            if rate is None or rate == p.purchase_rate:
                continue
            if rate < 0:
                rejected(ValidationError(f'Purchase price for {p.product_name} cannot be negative'))
                return redirect(url_for('product_price'))
            p.purchase_rate = rate
            p.price_history.append(PriceHistory(kind='purchase', price=rate))
        if save('Could not update purchase prices'):
            flash('Product purchase prices have been updated successfully')
        return redirect(url_for('product_price'))

    @app.route('/product-price/sales', methods=['POST'])
    def update_sales_prices():
        customers = store.customers.list()
        existing = {(cp.product_id, cp.customer_id): cp for cp in store.product_prices.list()}
        for p in store.products.list():
            default = _to_float(request.form.get(f'default_{p.product_id}'))
            if default is not None and default != p.default_sales_price:
                if default <= 0:
                    rejected(ValidationError(f'Sales price for {p.product_name} must be positive'))
                    return redirect(url_for('product_price'))
                p.default_sales_price = default
                p.price_history.append(PriceHistory(kind='sales', price=default))

            for c in customers:
                price = _to_float(request.form.get(f'price_{p.product_id}_{c.customer_id}'))
                if price is None:
                    continue
                if price <= 0:
                    rejected(ValidationError(f'Sales price for {p.product_name} must be positive'))
                    return redirect(url_for('product_price'))
                cp = existing.get((p.product_id, c.customer_id))
                if cp is None:
                    p.customer_prices.append(ProductPrice(customer_id=c.customer_id, price=price))
                else:
                    cp.price = price
        if save('Could not update sales prices'):
            flash('Product sales prices have been updated successfully')
        return redirect(url_for('product_price'))

    @app.route('/product-price/add', methods=['GET', 'POST'])
    def add_priced_product():
        if request.method == 'POST':
            company_name = request.form.get('company_name', '').strip()
            product_name = request.form.get('product_name', '').strip()
            rate = _to_float(request.form.get('purchase_rate'), 0.0)
            price = _to_float(request.form.get('default_sales_price'), 0.0)
            if not company_name or not product_name or rate <= 0 or price <= 0:
                flash('Please fill all required fields correctly', 'error')
                return redirect(url_for('add_priced_product'))

            p = Product(company_name=company_name, product_name=product_name, purchase_rate=rate,
                        default_sales_price=price, available_quantity=0, ordered_quantity=0)
            p.recompute_actual()
            p.price_history = [PriceHistory(kind='purchase', price=rate), PriceHistory(kind='sales', price=price)]
            store.products.upsert(p)
            if save('Could not add product'):
                flash(f'{product_name} has been added successfully')
            return redirect(url_for('product_price'))

        return render_template('priced_product_form.html')

    # ==================== SALES ROUTES ====================

    @app.route('/sales', methods=['GET', 'POST'])
    def sales():
        """
        Sales entry and recent sales.
        A sale with no products but an amount paid is recorded as a customer payment.
        """
        if request.method == 'POST':
            customer_id = _to_int(request.form.get('customer_id'))
            c = store.customers.get(customer_id) if customer_id else None
            sale_date = _to_date(request.form.get('date'), date.today())
            amount_paid = _to_float(request.form.get('amount_paid'), 0.0)

            try:
                if c is None:
                    raise ValidationError('Please select a customer')
                if amount_paid < 0:
                    raise ValidationError('Amount paid cannot be negative')
                lines = order_flow.build_order_items(store, c.customer_id, _form_lines('sales_price'))
                if not lines and amount_paid <= 0:
                    raise ValidationError('Please add at least one product or enter an amount paid')
            except ValidationError as exc:
                rejected(exc)
                return redirect(url_for('sales'))

            s = Sale(sales_id=next_sales_id(store), date=sale_date, customer_id=c.customer_id,
                     customer_name=c.customer_name, amount_paid=amount_paid)
            s.items = [SaleItem(product_id=i.product_id, product_name=i.product_name,
                                sales_price=i.sales_price, quantity=i.quantity) for i in lines]
            s.recompute_total()
            store.sales.upsert(s)

            if not lines:
                ledger.apply_customer_payment(c, amount_paid)
                if save('Could not record payment'):
                    flash(f'Payment of {money_filter(amount_paid)} has been recorded for {c.customer_name}')
                return redirect(url_for('sales'))

            if app.config['LEDGER_TRACK_SALES']:
                ledger.apply_customer_sale(c, s.total_amount)
                if amount_paid:
                    ledger.apply_customer_payment(c, amount_paid)
            if save('Could not record sale'):
                app.logger.info('sale %s recorded for customer %s', s.sales_id, c.customer_id)
                flash(f'Sales ID: {s.sales_id} has been recorded successfully')
            return redirect(url_for('sales'))

        q = request.args.get('q', '').strip().lower()
        recent = reports.recent_sales(store, limit=50)
        if q:
            recent = [s for s in recent if q in s.sales_id.lower() or q in s.customer_name.lower()]
        return render_template(
            'sales.html', sales=recent, q=q, next_id=next_sales_id(store),
            customers=store.customers.list(order_by=Customer.customer_name),
            products=store.products.list(order_by=Product.product_name),
        )

    # ==================== BILLING ROUTES ====================

    @app.route('/billing')
    def billing():
        """Bill for one customer's sales on one day."""
        bill = None
        customer_id = _to_int(request.args.get('customer_id'))
        bill_date = _to_date(request.args.get('date'), date.today())
        if 'customer_id' in request.args:
            try:
                bill = reports.build_bill(store, customer_id, bill_date)
            except ValidationError as exc:
                flash(str(exc), 'error')
        return render_template('billing.html', bill=bill, customer_id=customer_id, bill_date=bill_date,
                               customers=store.customers.list(order_by=Customer.customer_name))

    # ==================== REPORT ROUTES ====================

    @app.route('/report')
    def report():
        """Sales, purchase and customer reports, chosen with ?type=."""
        report_type = request.args.get('type', 'sales')
        start = _to_date(request.args.get('start'))
        end = _to_date(request.args.get('end'))
        context = {'report_type': report_type, 'start': start, 'end': end,
                   'customers': store.customers.list(order_by=Customer.customer_name),
                   'companies': reports.company_names(store), 'data': None}

        if report_type == 'purchase':
            company = request.args.get('company', 'all')
            context['company'] = company
            context['data'] = reports.purchase_report(store, start, end, None if company == 'all' else company)
        elif report_type == 'customer':
            customer_id = _to_int(request.args.get('customer_id'))
            context['customer_id'] = customer_id
            if customer_id:
                try:
                    context['data'] = reports.customer_report(store, customer_id)
                except ValidationError as exc:
                    flash(str(exc), 'error')
        else:
            context['report_type'] = 'sales'
            customer_id = _to_int(request.args.get('customer_id'))
            context['customer_id'] = customer_id
            context['data'] = reports.sales_report(store, start, end, customer_id)

        return render_template('report.html', **context)

    # ==================== ORDER ROUTES ====================

    @app.route('/order')
    def order():
        """Orders for the selected day plus order counts for every day that has orders."""
        selected = _to_date(request.args.get('date'), date.today())
        grouped = order_flow.orders_by_date(store.orders.list(order_by=Order.order_date))
        calendar = [
            {'date': day, 'count': len(day_orders),
             'pending': len([o for o in day_orders if o.status == 'pending'])}
            for day, day_orders in sorted(grouped.items())
        ]
        return render_template('orders.html', selected=selected, orders=grouped.get(selected, []),
                               calendar=calendar)

    @app.route('/order/add', methods=['GET', 'POST'])
    def add_order():
        if request.method == 'POST':
            customer_id = _to_int(request.form.get('customer_id'))
            c = store.customers.get(customer_id) if customer_id else None
            order_date = _to_date(request.form.get('order_date'), date.today())
            try:
                if c is None:
                    raise ValidationError('Please select a customer')
                items = order_flow.build_order_items(store, c.customer_id, _form_lines('sales_price'))
                o = order_flow.create_order(
                    store, c, items, order_date=order_date,
                    remarks=request.form.get('remarks', '').strip(),
                    advance_amount=_to_float(request.form.get('advance_amount')),
                )
            except ValidationError as exc:
                rejected(exc)
                return redirect(url_for('add_order'))

            if save('Could not create order'):
                flash(f'Order #{o.order_id} has been created for {c.customer_name}')
            return redirect(url_for('order', date=order_date.isoformat()))

        return render_template(
            'order_form.html', order=None,
            order_date=_to_date(request.args.get('date'), date.today()),
            customers=store.customers.list(order_by=Customer.customer_name),
            products=store.products.list(order_by=Product.product_name),
        )

    @app.route('/order/<order_id>')
    def order_detail(order_id):
        o = get_or_404(store.orders, order_id)
        return render_template('order_detail.html', order=o,
                               transitions=order_flow.allowed_transitions(o.status))

    @app.route('/order/<order_id>/status', methods=['POST'])
    def order_status(order_id):
        """Move an order to a new status and apply its stock effect."""
        o = get_or_404(store.orders, order_id)
        status = request.form.get('status', '')
        try:
            order_flow.change_status(store, o, status, track_sales=app.config['LEDGER_TRACK_SALES'])
        except ValidationError as exc:
            rejected(exc)
            return redirect(url_for('order_detail', order_id=order_id))

        if save('Could not update order'):
            flash(f'Order #{order_id} status changed to {status}')
            if status == 'completed':
                flash(f'Sales ID {o.sales_id} assigned')
        return redirect(url_for('order_detail', order_id=order_id))

    @app.route('/order/<order_id>/edit', methods=['GET', 'POST'])
    def edit_order(order_id):
        o = get_or_404(store.orders, order_id)

        if request.method == 'POST':
            try:
                items = order_flow.build_order_items(store, o.customer_id, _form_lines('sales_price'))
                order_flow.modify_order(
                    store, o, items,
                    remarks=request.form.get('remarks', '').strip(),
                    advance_amount=_to_float(request.form.get('advance_amount')),
                )
            except ValidationError as exc:
                rejected(exc)
                return redirect(url_for('edit_order', order_id=order_id))

            if save('Could not modify order'):
                flash(f'Order #{order_id} has been updated successfully')
            return redirect(url_for('order_detail', order_id=order_id))

        return render_template(
            'order_form.html', order=o, order_date=o.order_date,
            customers=store.customers.list(order_by=Customer.customer_name),
            products=store.products.list(order_by=Product.product_name),
        )

    # ==================== SUPPLIER ROUTES ====================

    @app.route('/supplier')
    def supplier():
        """
        Suppliers with their ledger balances, and the transaction list filtered
        by supplier and date. folded shows the balance rebuilt from history next
        to the stored snapshot so drift is visible.
        """
        supplier_id = _to_int(request.args.get('supplier_id'))
        on = _to_date(request.args.get('date'))
        criteria = []
        if supplier_id:
            criteria.append(SupplierTransaction.supplier_id == supplier_id)
        if on:
            criteria.append(SupplierTransaction.date == on)
        transactions = store.supplier_transactions.list(*criteria, order_by=SupplierTransaction.date.desc())
        suppliers = store.suppliers.list(order_by=Supplier.supplier_id)
        folded = {s.supplier_id: ledger.fold_supplier_history(s.transactions) for s in suppliers}
        return render_template('suppliers.html', suppliers=suppliers, transactions=transactions,
                               folded=folded, supplier_id=supplier_id, on=on)

    @app.route('/supplier/add', methods=['GET', 'POST'])
    def add_supplier():
        if request.method == 'POST':
            name = request.form.get('supplier_name', '').strip()
            if not name:
                flash('Supplier name is required', 'error')
                return redirect(url_for('add_supplier'))
            s = Supplier(supplier_name=name, balance_amount=0.0, crate_balance=0)
            store.suppliers.upsert(s)
            if save('Could not add supplier'):
                flash(f'{name} has been added successfully')
            return redirect(url_for('supplier'))
        return render_template('supplier_form.html', supplier=None)

    @app.route('/supplier/<int:supplier_id>/edit', methods=['GET', 'POST'])
    def edit_supplier(supplier_id):
        s = get_or_404(store.suppliers, supplier_id)
        if request.method == 'POST':
            name = request.form.get('supplier_name', '').strip()
            if not name:
                flash('Supplier name is required', 'error')
                return redirect(url_for('edit_supplier', supplier_id=supplier_id))
            s.supplier_name = name
            if save('Could not update supplier'):
                flash(f'{name} has been updated successfully')
            return redirect(url_for('supplier'))
        return render_template('supplier_form.html', supplier=s)

    @app.route('/supplier/delete', methods=['POST'])
    def delete_suppliers():
        ids = [i for i in (_to_int(v) for v in request.form.getlist('supplier_ids')) if i]
        if not ids:
            flash('Please select at least one supplier to delete', 'error')
            return redirect(url_for('supplier'))
        deleted = len([sid for sid in ids if store.suppliers.delete(sid)])
        if save('Could not delete suppliers'):
            flash(f'{deleted} supplier(s) have been deleted')
        return redirect(url_for('supplier'))

    @app.route('/supplier/transaction', methods=['GET', 'POST'])
    def add_supplier_transaction():
        """
        Record a bill / payment / crate movement. The opening fields default to
        the supplier's current balances; the supplier's balances are then
        replaced by the ones this transaction works out.
        """
        if request.method == 'POST':
            supplier_id = _to_int(request.form.get('supplier_id'))
            s = store.suppliers.get(supplier_id) if supplier_id else None
            if s is None:
                flash('Please select a supplier', 'error')
                return redirect(url_for('add_supplier_transaction'))

            amounts = {f: _to_float(request.form.get(f), 0.0) for f in ('bill_amount', 'paid', 'damage')}
            crates = {f: _to_int(request.form.get(f), 0) for f in ('crate_supply', 'crate_return')}
            if any(v < 0 for v in list(amounts.values()) + list(crates.values())):
                flash('Amounts and crate counts cannot be negative', 'error')
                return redirect(url_for('add_supplier_transaction', supplier_id=supplier_id))

            t = SupplierTransaction(
                transaction_id=next_supplier_transaction_id(store),
                supplier_id=s.supplier_id,
                date=_to_date(request.form.get('date'), date.today()),
                opening_amount=_to_float(request.form.get('opening_amount'), s.balance_amount),
                crate_opening=_to_int(request.form.get('crate_opening'), s.crate_balance),
                **amounts, **crates,
            )
            in_step = ledger.apply_supplier_transaction(t, s)
            s.transactions.append(t)
            if save('Could not add supplier transaction'):
                if not in_step:
                    flash(f'Opening balance did not match the current balance of {s.supplier_name}; '
                          f'the supplier balance now follows this transaction', 'warning')
                flash(f'Transaction for {s.supplier_name} has been added successfully')
            return redirect(url_for('supplier', supplier_id=s.supplier_id))

        selected = store.suppliers.get(_to_int(request.args.get('supplier_id')))
        return render_template('supplier_transaction_form.html', selected=selected,
                               suppliers=store.suppliers.list(order_by=Supplier.supplier_name))

    return app


# ==================== APPLICATION ENTRY POINT ====================

if __name__ == '__main__':
    create_app().run(debug=True, host='127.0.0.1', port=5000)

"""
Repository layer over the Flask-SQLAlchemy session.

Handlers and the ledger never touch ``db.session`` directly for CRUD; they go
through a ``Store`` that the application factory attaches to the app, so that
tests can drive the same code without a browser.
"""

from sqlalchemy.exc import SQLAlchemyError

from errors import StoreError
from models import (
    db, Customer, Product, ProductPrice, Supplier, SupplierTransaction,
    Purchase, Order, Sale,
)


class Repository:
    """CRUD access to one mapped model: get / list / upsert / delete."""

    def __init__(self, model, session=None):
        self.model = model
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    @property
    def pk(self):
        return self.model.__mapper__.primary_key[0]

    def get(self, ident):
        if ident is None:
            return None
        return self.session.get(self.model, ident)

    def list(self, *criteria, order_by=None):
        query = self.session.query(self.model)
        if criteria:
            query = query.filter(*criteria)
        if order_by is not None:
            query = query.order_by(order_by)
        else:
            query = query.order_by(self.pk)
        return query.all()

    def ids(self):
        """All primary key values, used by the identifier generator."""
        return [row[0] for row in self.session.query(self.pk).all()]

    def _flush(self):
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(str(exc)) from exc

    def upsert(self, obj):
        # add() is a no-op for objects already in the session
        self.session.add(obj)
        self._flush()
        return obj

    def delete(self, obj_or_id):
        obj = obj_or_id
        if not isinstance(obj_or_id, self.model):
            obj = self.get(obj_or_id)
        if obj is None:
            return False
        self.session.delete(obj)
        self._flush()
        return True


class Store:
    """One repository per entity plus the unit-of-work boundary (commit/rollback)."""

    def __init__(self, session=None):
        self._session = session
        self.customers = Repository(Customer, session)
        self.products = Repository(Product, session)
        self.product_prices = Repository(ProductPrice, session)
        self.suppliers = Repository(Supplier, session)
        self.supplier_transactions = Repository(SupplierTransaction, session)
        self.purchases = Repository(Purchase, session)
        self.orders = Repository(Order, session)
        self.sales = Repository(Sale, session)

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def commit(self):
        """Commit pending changes; on failure roll back and raise StoreError."""
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(str(exc)) from exc

    def rollback(self):
        self.session.rollback()

"""
Pytest fixtures for LELCA POS backend tests.

Provides an in-memory database app, per-test clean tables, the test client,
operator tokens and small factories for items and sales.
"""

from datetime import datetime

import pytest
from lelca_pos import create_app
from lelca_pos.extensions import db
from lelca_pos.services import inventory_service, ledger_service
from lelca_pos.services.factories import create_transaction


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POS_TIMEZONE': 'UTC',
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory: make_item("Coke (350ml)", quantity=10, price="5.00")."""
    def _make(item_name="Coke (350ml)", quantity=10, price="5.00", material_details=""):
        return inventory_service.add_item({
            "item_name": item_name,
            "material_details": material_details,
            "quantity": quantity,
            "price": price,
        })
    return _make


@pytest.fixture(scope='function')
def record_sale(db_session):
    """
    Factory: append a Completed transaction straight to the ledger (no stock
    movement), optionally back-dated.

    lines: [(item, quantity)] using each item's current price.
    """
    def _record(lines, *, date: datetime | None = None, payment_method="Cash", tax_cents=0):
        items = [
            {
                "item_id": item.id,
                "item_name": item.item_name,
                "quantity": quantity,
                "unit_price_cents": item.price_cents,
            }
            for item, quantity in lines
        ]
        subtotal = sum(i["quantity"] * i["unit_price_cents"] for i in items)
        fields = {
            "items": items,
            "subtotal_cents": subtotal,
            "tax_cents": tax_cents,
            "payment_method": payment_method,
        }
        if payment_method == "Cash":
            fields["amount_tendered_cents"] = subtotal + tax_cents
            fields["change_given_cents"] = 0
        txn = create_transaction(fields)
        if date is not None:
            txn.date = date
        return ledger_service.append_transaction(txn)
    return _record


def get_auth_token(client, pin: str) -> str:
    """Helper to get auth token for an operator."""
    response = client.post('/api/auth/login', json={'pin': pin})
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, db_session):
    return auth_headers(get_auth_token(client, '1234'))


@pytest.fixture(scope='function')
def keeper_headers(client, db_session):
    return auth_headers(get_auth_token(client, '0000'))

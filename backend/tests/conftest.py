"""
Pytest fixtures for back office tests.

Provides test database setup, two tenant owners, catalog/customer factories,
a fake identity verifier, a recording push transport and the test client.
"""

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Customer, Item, ItemSerial, Service, User
from backoffice.services.identity_service import InvalidTokenError, TokenExpiredError


def fake_verifier(token: str) -> dict:
    """
    Stand-in for the external identity provider.

    "uid:<uid>" verifies as <uid>; "expired" is an expired token; anything
    else is rejected.
    """
    if token == "expired":
        raise TokenExpiredError("token expired")
    if not token.startswith("uid:"):
        raise InvalidTokenError("malformed token")
    uid = token[len("uid:"):]
    return {"uid": uid, "email": f"{uid}@example.com", "name": uid.title(), "picture": ""}


class RecordingTransport:
    """Push transport that records messages; tokens in `failing` report failure."""

    def __init__(self):
        self.sent = []
        self.failing = set()

    def send(self, tokens, title, body, data):
        self.sent.append({"tokens": list(tokens), "title": title, "body": body, "data": data})
        return [t not in self.failing for t in tokens]


PUSH = RecordingTransport()


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'IDENTITY_VERIFIER': fake_verifier,
        'PUSH_TRANSPORT': PUSH,
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
        PUSH.sent.clear()
        PUSH.failing.clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def push(db_session):
    return PUSH


@pytest.fixture(scope='function')
def owner_a(db_session):
    """Engineer A (first tenant)."""
    user = User(identity_uid="alice", email="alice@example.com", display_name="Alice")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def owner_b(db_session):
    """Engineer B (second tenant)."""
    user = User(identity_uid="bob", email="bob@example.com", display_name="Bob")
    db_session.add(user)
    db_session.commit()
    return user


def make_customer(owner, name="Ravi Kumar", phone="9000000001"):
    customer = Customer(owner_id=owner.id, name=name, phone=phone)
    db.session.add(customer)
    db.session.commit()
    return customer


def make_generic_item(owner, stock_qty=0, sale_price_cents=100, purchase_price_cents=60, name="Cable"):
    item = Item(
        owner_id=owner.id,
        item_type="generic",
        name=name,
        unit="pcs",
        mrp_cents=sale_price_cents,
        purchase_price_cents=purchase_price_cents,
        sale_price_cents=sale_price_cents,
        stock_qty=stock_qty,
    )
    db.session.add(item)
    db.session.commit()
    return item


def make_serialized_item(owner, serials=(), sale_price_cents=1500, purchase_price_cents=1000, name="Router"):
    item = Item(
        owner_id=owner.id,
        item_type="serialized",
        name=name,
        unit="pcs",
        mrp_cents=sale_price_cents,
        purchase_price_cents=purchase_price_cents,
        sale_price_cents=sale_price_cents,
    )
    db.session.add(item)
    db.session.flush()
    for serial in serials:
        db.session.add(ItemSerial(item_id=item.id, serial_no=serial))
    db.session.commit()
    return item


def make_service(owner, price_cents=80, name="Installation"):
    service = Service(owner_id=owner.id, name=name, price_cents=price_cents)
    db.session.add(service)
    db.session.commit()
    return service


def auth_headers(user) -> dict:
    """Helper to create Authorization headers for a user."""
    return {'Authorization': f'Bearer uid:{user.identity_uid}'}

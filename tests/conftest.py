from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from werkzeug.security import generate_password_hash

from fairtix import create_app
from fairtix.models import db, User
from fairtix.rail import WalletRail
from fairtix.errors import TransferError

PASSWORD = 'passwr0d'
STARTING_BALANCE = 1000

ACCOUNTS = {
    'admin': ('admin', '0xadmin'),
    'alice': ('customer', '0xalice'),
    'bob': ('customer', '0xbob'),
    'carol': ('customer', '0xcarol'),
}


def future(days=30):
    return datetime.now(timezone.utc) + timedelta(days=days)


def balance(address):
    return User.query.filter_by(wallet_address=address).one().balance


def build_app(database_uri='sqlite:///:memory:', **config):
    """App with tables created and the standard accounts funded."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': database_uri,
        **config,
    })
    with app.app_context():
        db.create_all()
        for username, (role, wallet) in ACCOUNTS.items():
            db.session.add(User(
                username=username,
                password_hash=generate_password_hash(PASSWORD, method='pbkdf2:sha256:1000'),
                wallet_address=wallet,
                role=role,
                balance=STARTING_BALANCE,
            ))
        db.session.commit()
    return app


@pytest.fixture
def app():
    app = build_app()
    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def market(app, ctx):
    return app.extensions['fairtix']


@pytest.fixture
def accounts():
    return SimpleNamespace(**{name: wallet for name, (_, wallet) in ACCOUNTS.items()})


@pytest.fixture
def make_event(market, accounts):
    """Scenario defaults: one ticket at 100, 5% royalty, 1.5x resale cap."""
    def _make_event(**overrides):
        params = dict(
            name='Dash Out Thursdays',
            description='Weekly night out',
            date=future(),
            location='Tivoli Gardens',
            total_tickets=1,
            ticket_price=100,
            royalty_percent=500,
            max_resale_multiplier=150,
        )
        params.update(overrides)
        return market.create_event(accounts.admin, **params)
    return _make_event


@pytest.fixture
def sold_ticket(market, accounts, make_event):
    """A ticket alice bought at face value."""
    event_id = make_event()
    return market.purchase_ticket(accounts.alice, event_id, seat_number=0, value=100)


class FailingRail(WalletRail):
    """Refuses every payout to ``refuse``."""

    def __init__(self, refuse):
        self.refuse = refuse

    def pay(self, recipient, amount, reference, ticket_id=None, memo=None, kind='SALE'):
        if recipient == self.refuse:
            raise TransferError(f"Payout to {recipient} bounced")
        return super().pay(recipient, amount, reference, ticket_id=ticket_id, memo=memo, kind=kind)


class CallbackRail(WalletRail):
    """Runs ``callback`` during every payout, the way a hostile recipient might."""

    def __init__(self, callback):
        self.callback = callback
        self.errors = []

    def pay(self, recipient, amount, reference, ticket_id=None, memo=None, kind='SALE'):
        try:
            self.callback()
        except Exception as exc:
            self.errors.append(exc)
        return super().pay(recipient, amount, reference, ticket_id=ticket_id, memo=memo, kind=kind)


@pytest.fixture
def failing_rail(market, monkeypatch):
    def _install(refuse):
        rail = FailingRail(refuse)
        monkeypatch.setattr(market.payments, 'rail', rail)
        return rail
    return _install


@pytest.fixture
def callback_rail(market, monkeypatch):
    def _install(callback):
        rail = CallbackRail(callback)
        monkeypatch.setattr(market.payments, 'rail', rail)
        return rail
    return _install

import threading

import pytest

from fairtix.errors import NotFoundError, ValidationError
from fairtix.models import Transaction
from fairtix.rail import WalletRail

from conftest import PASSWORD, STARTING_BALANCE, balance, build_app, future


def test_top_up(market, accounts):
    assert market.top_up(accounts.alice, 250) == STARTING_BALANCE + 250
    assert balance(accounts.alice) == STARTING_BALANCE + 250
    assert Transaction.query.filter_by(type='TOPUP', to_address=accounts.alice).count() == 1


def test_withdraw(market, accounts):
    assert market.withdraw(accounts.alice, 300) == STARTING_BALANCE - 300
    assert Transaction.query.filter_by(type='WITHDRAW', from_address=accounts.alice).count() == 1


def test_withdraw_more_than_balance(market, accounts):
    with pytest.raises(ValidationError):
        market.withdraw(accounts.alice, STARTING_BALANCE + 1)
    assert balance(accounts.alice) == STARTING_BALANCE
    assert Transaction.query.count() == 0


@pytest.mark.parametrize('amount', [0, -5, 12.5, True, '10'])
def test_wallet_amounts_must_be_positive_integers(market, accounts, amount):
    with pytest.raises(ValidationError):
        market.top_up(accounts.alice, amount)
    with pytest.raises(ValidationError):
        market.withdraw(accounts.alice, amount)
    assert balance(accounts.alice) == STARTING_BALANCE


def test_unknown_wallet(market):
    with pytest.raises(NotFoundError):
        market.top_up('0xnobody', 10)


class HeldRail(WalletRail):
    """Holds every payout until ``release`` is set."""

    def __init__(self):
        self.paying = threading.Event()
        self.release = threading.Event()

    def pay(self, recipient, amount, reference, ticket_id=None, memo=None, kind='SALE'):
        self.paying.set()
        self.release.wait(timeout=5)
        return super().pay(recipient, amount, reference, ticket_id=ticket_id, memo=memo, kind=kind)


def test_withdraw_waits_for_running_sale(tmp_path):
    app = build_app(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        SQLALCHEMY_ENGINE_OPTIONS={'connect_args': {'check_same_thread': False}},
    )
    market = app.extensions['fairtix']
    rail = HeldRail()
    market.payments.rail = rail

    with app.app_context():
        event_id = market.create_event(
            '0xadmin', 'Dash Out Thursdays', '', future(), 'Tivoli Gardens',
            total_tickets=1, ticket_price=100, royalty_percent=500, max_resale_multiplier=150,
        )

    alice = app.test_client()
    assert alice.post('/login', json={'username': 'alice', 'password': PASSWORD}).status_code == 200

    outcome = {}

    def buy():
        with app.app_context():
            outcome['ticket_id'] = market.purchase_ticket('0xalice', event_id, value=100)

    def cash_out():
        outcome['withdraw'] = alice.post('/withdraw', json={'amount': 50})

    buyer = threading.Thread(target=buy)
    buyer.start()
    assert rail.paying.wait(timeout=5)

    withdrawer = threading.Thread(target=cash_out)
    withdrawer.start()
    withdrawer.join(timeout=0.3)
    # The withdrawal queues behind the sale instead of racing it.
    assert withdrawer.is_alive()

    rail.release.set()
    buyer.join(timeout=5)
    withdrawer.join(timeout=5)

    assert 'ticket_id' in outcome
    assert outcome['withdraw'].status_code == 200
    assert outcome['withdraw'].get_json()['balance'] == STARTING_BALANCE - 100 - 50
    with app.app_context():
        assert balance('0xalice') == STARTING_BALANCE - 100 - 50
        assert balance('0xadmin') == STARTING_BALANCE + 100

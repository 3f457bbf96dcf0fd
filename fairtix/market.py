"""The marketplace: every externally invoked operation enters here."""
from functools import wraps
import logging
import threading

from .authority import RoleAuthority
from .errors import AuthorizationError, NotFoundError, StateError, ValidationError
from .events import EventRegistry, require_integer, utcnow
from .guards import ReentrancyGuard, TransferGuard, atomic, nonreentrant
from .models import User, emit, log_ledger, new_tx_hash
from .payments import PaymentDistributor
from .rail import WalletRail
from .registry import LedgerRegistry
from .tickets import TicketLedger

logger = logging.getLogger(__name__)


def serialized(method):
    # Operations run one at a time; the same thread may re-enter.
    @wraps(method)
    def decorated_function(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return decorated_function


class Marketplace:

    def __init__(self, rail=None, authority=None, registry=None, clock=utcnow):
        self.registry = registry or LedgerRegistry()
        self.authority = authority or RoleAuthority()
        self.rail = rail or WalletRail()

        self.events = EventRegistry(self.authority, clock=clock)
        self.tickets = TicketLedger(self.registry)
        self.payments = PaymentDistributor(self.rail, self.registry)

        self.reentrancy_guard = ReentrancyGuard()
        self.transfer_guard = TransferGuard()
        self.registry.add_transfer_hook(self.transfer_guard)
        self._lock = threading.RLock()

    # --- EVENTS ---

    @serialized
    def create_event(self, caller, name, description, date, location,
                     total_tickets, ticket_price, royalty_percent, max_resale_multiplier):
        with atomic():
            return self.events.create_event(
                caller, name, description, date, location,
                total_tickets, ticket_price, royalty_percent, max_resale_multiplier,
            )

    def get_event_info(self, event_id):
        return self.events.get_event_info(event_id)

    # --- PRIMARY SALE ---

    @serialized
    @nonreentrant
    def purchase_ticket(self, caller, event_id, seat_number=0, value=0):
        with atomic():
            event = self.events.get(event_id)
            self.tickets.check_primary_sale(event, seat_number, value)

            reference = new_tx_hash()
            self.payments.receive(caller, value, reference, memo=event.name)

            # Commit the sale before any value leaves escrow.
            ticket = self.tickets.mint(caller, event, seat_number)
            ticket_id = ticket.id
            self.payments.settle_primary(event, ticket, value, reference)

            emit("TicketPurchased", event_id=event.id, ticket_id=ticket_id, actor=caller, amount=value)
        return ticket_id

    # --- SECONDARY MARKET ---

    @serialized
    def resell_ticket(self, caller, ticket_id, new_price):
        with atomic():
            self.tickets.resell(caller, ticket_id, new_price)

    @serialized
    @nonreentrant
    def purchase_resold_ticket(self, caller, ticket_id, value=0):
        with atomic():
            require_integer(value, 'value')
            ticket = self.tickets.get(ticket_id)
            seller = self.registry.owner_of(ticket_id)
            if seller == caller:
                raise StateError("You already hold this ticket")
            if ticket.is_used:
                raise StateError(f"Ticket {ticket_id} has already been used")
            if value < ticket.current_price:
                raise StateError(f"Insufficient payment: ticket is listed at {ticket.current_price}")

            event = ticket.event
            reference = new_tx_hash()
            self.payments.receive(caller, value, reference, ticket_id=ticket_id, memo=event.name)
            split = self.payments.settle_secondary(event, ticket, seller, caller, value, reference)

            emit("TicketTransferred", event_id=event.id, ticket_id=ticket_id,
                 actor=seller, counterparty=caller, amount=value)
        return split

    @serialized
    def transfer_ticket(self, caller, ticket_id, recipient):
        with atomic():
            ticket = self.tickets.get(ticket_id)
            if self.registry.owner_of(ticket_id) != caller:
                raise AuthorizationError("Only the ticket holder can transfer it")
            if not recipient or recipient == caller:
                raise ValidationError("A different recipient is required")

            self.registry.transfer(caller, recipient, ticket_id)
            emit("TicketGifted", event_id=ticket.event_id, ticket_id=ticket_id,
                 actor=caller, counterparty=recipient)
        logger.info("Ticket %s handed from %s to %s", ticket_id, caller, recipient)

    # --- USAGE ---

    @serialized
    def validate_ticket(self, caller, ticket_id):
        with atomic():
            self.tickets.validate(caller, ticket_id)

    # --- READS ---

    def get_ticket_info(self, ticket_id):
        return self.tickets.get_ticket_info(ticket_id)

    def owner_of(self, ticket_id):
        self.tickets.get(ticket_id)
        return self.registry.owner_of(ticket_id)

    # --- WALLETS ---

    def _wallet(self, caller):
        user = User.query.filter_by(wallet_address=caller).first()
        if user is None:
            raise NotFoundError(f"Unknown wallet {caller}")
        return user

    @serialized
    def top_up(self, caller, amount):
        require_integer(amount, 'amount')
        if amount <= 0:
            raise ValidationError("Top-up amount must be positive")
        with atomic():
            account = self._wallet(caller)
            account.balance += amount
            log_ledger(new_tx_hash(), None, "Wallet Top-Up", "BANK", caller, amount, "TOPUP")
            balance = account.balance
        logger.info("Wallet %s topped up by %s", caller, amount)
        return balance

    @serialized
    def withdraw(self, caller, amount):
        require_integer(amount, 'amount')
        if amount <= 0:
            raise ValidationError("Withdrawal amount must be positive")
        with atomic():
            account = self._wallet(caller)
            if amount > account.balance:
                raise ValidationError("Insufficient Funds")
            account.balance -= amount
            log_ledger(new_tx_hash(), None, "Withdrawal", caller, "BANK", amount, "WITHDRAW")
            balance = account.balance
        logger.info("Wallet %s withdrew %s", caller, amount)
        return balance

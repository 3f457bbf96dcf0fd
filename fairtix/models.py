# models.py
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
import secrets

db = SQLAlchemy()

# --- ACCOUNTS ---

class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    wallet_address = db.Column(db.String(42), unique=True, nullable=False, index=True)
    balance = db.Column(db.Integer, default=0, nullable=False)
    role = db.Column(db.String(20), nullable=False) # admin, customer

    # Account Status (Active/Inactive)
    is_active = db.Column(db.Boolean, default=True)

    def __init__(self, **kwargs):
        super(User, self).__init__(**kwargs)
        if not self.wallet_address:
            self.wallet_address = "0x" + secrets.token_hex(20)
        if self.balance is None:
            self.balance = 0

# --- MARKETPLACE STATE ---

class Event(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    organizer_address = db.Column(db.String(42), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, default='')
    location = db.Column(db.String(150), default='')
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    total_tickets = db.Column(db.Integer, nullable=False)
    tickets_sold = db.Column(db.Integer, default=0, nullable=False)
    ticket_price = db.Column(db.Integer, nullable=False)
    royalty_percent = db.Column(db.Integer, nullable=False) # basis points, 10000 = 100%
    max_resale_multiplier = db.Column(db.Integer, nullable=False) # 100 = 1.0x
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    __table_args__ = (
        db.CheckConstraint('tickets_sold <= total_tickets', name='ck_event_capacity'),
    )

class Ticket(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(db.Integer, db.ForeignKey('event.id'), nullable=False, index=True)
    original_price = db.Column(db.Integer, nullable=False)
    current_price = db.Column(db.Integer, nullable=False)
    max_resale_price = db.Column(db.Integer, nullable=False)
    is_used = db.Column(db.Boolean, default=False, nullable=False)
    seat_number = db.Column(db.Integer, default=0, nullable=False) # 0 = general admission

    event = db.relationship('Event')

    __table_args__ = (
        db.CheckConstraint('current_price <= max_resale_price', name='ck_ticket_price_cap'),
    )

class TicketOrigin(db.Model):
    """Principal that made the primary purchase; survives resale."""
    ticket_id = db.Column(db.Integer, db.ForeignKey('ticket.id'), primary_key=True)
    owner_address = db.Column(db.String(42), nullable=False, index=True)

class Holding(db.Model):
    """Current holder of a ticket, as kept by the in-process ownership registry."""
    ticket_id = db.Column(db.Integer, db.ForeignKey('ticket.id'), primary_key=True)
    owner_address = db.Column(db.String(42), nullable=False, index=True)

# --- LEDGER ---

class Transaction(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    tx_hash = db.Column(db.String(66))
    ticket_id = db.Column(db.Integer, nullable=True)
    event_name = db.Column(db.String(150), nullable=True)
    from_address = db.Column(db.String(42))
    to_address = db.Column(db.String(42))
    amount = db.Column(db.Integer)
    timestamp = db.Column(db.DateTime, server_default=db.func.now())
    type = db.Column(db.String(20)) # 'TOPUP', 'WITHDRAW', 'ESCROW', 'SALE', 'ROYALTY', 'RESALE'

class Activity(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(32), nullable=False, index=True)
    event_id = db.Column(db.Integer, nullable=True)
    ticket_id = db.Column(db.Integer, nullable=True)
    actor = db.Column(db.String(42))
    counterparty = db.Column(db.String(42), nullable=True)
    amount = db.Column(db.Integer, nullable=True)
    timestamp = db.Column(db.DateTime, server_default=db.func.now())

# --- HELPER FUNCTIONS: Ledger Logging ---

def new_tx_hash():
    return "0x" + secrets.token_hex(20)

def log_ledger(tx_hash, t_id, evt_name, f_addr, t_addr, amt, t_type):
    new_tx = Transaction(
        tx_hash=tx_hash, ticket_id=t_id, event_name=evt_name,
        from_address=f_addr, to_address=t_addr, amount=amt, type=t_type
    )
    db.session.add(new_tx)
    return new_tx

def emit(kind, event_id=None, ticket_id=None, actor=None, counterparty=None, amount=None):
    record = Activity(
        kind=kind, event_id=event_id, ticket_id=ticket_id,
        actor=actor, counterparty=counterparty, amount=amount
    )
    db.session.add(record)
    return record

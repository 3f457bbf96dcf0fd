from dataclasses import dataclass, asdict
import logging

from .errors import AuthorizationError, NotFoundError, StateError, ValidationError
from .events import MULTIPLIER_BASE, require_integer
from .models import db, Ticket, TicketOrigin, emit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TicketInfo:
    id: int
    event_id: int
    original_price: int
    current_price: int
    max_resale_price: int
    is_used: bool
    seat_number: int
    original_owner: str

    @classmethod
    def from_model(cls, ticket, original_owner):
        return cls(
            id=ticket.id,
            event_id=ticket.event_id,
            original_price=ticket.original_price,
            current_price=ticket.current_price,
            max_resale_price=ticket.max_resale_price,
            is_used=ticket.is_used,
            seat_number=ticket.seat_number,
            original_owner=original_owner,
        )

    def as_dict(self):
        return asdict(self)


def resale_cap(price, multiplier):
    return price * multiplier // MULTIPLIER_BASE


class TicketLedger:
    """Ticket records: minting, resale listings and the one-way used flag."""

    def __init__(self, registry):
        self.registry = registry

    def get(self, ticket_id):
        ticket = db.session.get(Ticket, ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} does not exist")
        return ticket

    def original_owner(self, ticket_id):
        origin = db.session.get(TicketOrigin, ticket_id)
        return origin.owner_address if origin else None

    def get_ticket_info(self, ticket_id):
        ticket = self.get(ticket_id)
        return TicketInfo.from_model(ticket, self.original_owner(ticket_id))

    # --- PRIMARY SALE ---

    def check_primary_sale(self, event, seat_number, value):
        require_integer(value, 'value')
        if not event.is_active:
            raise StateError(f"Event {event.id} is not active")
        if event.tickets_sold >= event.total_tickets:
            raise StateError(f"Event {event.id} is sold out")
        if value < event.ticket_price:
            raise StateError(f"Insufficient payment: ticket costs {event.ticket_price}")
        if isinstance(seat_number, bool) or not isinstance(seat_number, int) or seat_number < 0:
            raise ValidationError("Seat number must be a non-negative integer")

    def mint(self, buyer, event, seat_number):
        ticket = Ticket(
            event_id=event.id,
            original_price=event.ticket_price,
            current_price=event.ticket_price,
            max_resale_price=resale_cap(event.ticket_price, event.max_resale_multiplier),
            is_used=False,
            seat_number=seat_number,
        )
        db.session.add(ticket)
        db.session.flush()

        db.session.add(TicketOrigin(ticket_id=ticket.id, owner_address=buyer))
        self.registry.mint(buyer, ticket.id)
        event.tickets_sold += 1

        logger.info("Minted ticket %s for event %s to %s", ticket.id, event.id, buyer)
        return ticket

    # --- RESALE ---

    def resell(self, caller, ticket_id, new_price):
        require_integer(new_price, 'price')
        ticket = self.get(ticket_id)
        if self.registry.owner_of(ticket_id) != caller:
            raise AuthorizationError("Only the ticket holder can list it for resale")
        if ticket.is_used:
            raise StateError(f"Ticket {ticket_id} has already been used")
        if new_price < 0:
            raise ValidationError("Price must not be negative")
        if new_price > ticket.max_resale_price:
            raise ValidationError(f"Price Cap Exceeded: maximum resale price is {ticket.max_resale_price}")

        ticket.current_price = new_price
        emit("TicketResold", event_id=ticket.event_id, ticket_id=ticket_id, actor=caller, amount=new_price)
        logger.info("Ticket %s listed at %s by %s", ticket_id, new_price, caller)

    # --- USAGE ---

    def validate(self, caller, ticket_id):
        ticket = self.get(ticket_id)
        if ticket.event.organizer_address != caller:
            raise AuthorizationError("Only the event organizer can validate tickets")
        if ticket.is_used:
            raise StateError(f"Ticket {ticket_id} has already been used")

        ticket.is_used = True
        emit("TicketValidated", event_id=ticket.event_id, ticket_id=ticket_id, actor=caller)
        logger.info("Ticket %s validated by %s", ticket_id, caller)

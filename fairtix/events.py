from dataclasses import dataclass, asdict
from datetime import datetime, timezone
import logging

from .errors import AuthorizationError, NotFoundError, ValidationError
from .models import db, Event, emit

logger = logging.getLogger(__name__)

BASIS_POINTS = 10000
MULTIPLIER_BASE = 100


def require_integer(value, name):
    # Money and counts are whole units; bool is an int subclass but never an amount.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(moment):
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True)
class EventInfo:
    id: int
    organizer: str
    name: str
    description: str
    location: str
    date: datetime
    total_tickets: int
    tickets_sold: int
    ticket_price: int
    royalty_percent: int
    max_resale_multiplier: int
    is_active: bool

    @classmethod
    def from_model(cls, event):
        return cls(
            id=event.id,
            organizer=event.organizer_address,
            name=event.name,
            description=event.description or '',
            location=event.location or '',
            date=as_utc(event.date),
            total_tickets=event.total_tickets,
            tickets_sold=event.tickets_sold,
            ticket_price=event.ticket_price,
            royalty_percent=event.royalty_percent,
            max_resale_multiplier=event.max_resale_multiplier,
            is_active=event.is_active,
        )

    def as_dict(self):
        data = asdict(self)
        data['date'] = self.date.isoformat()
        return data


class EventRegistry:
    """Creates events and answers questions about them."""

    def __init__(self, authority, clock=utcnow):
        self.authority = authority
        self.clock = clock

    def create_event(self, caller, name, description, date, location,
                     total_tickets, ticket_price, royalty_percent, max_resale_multiplier):
        if not self.authority.is_administrator(caller):
            raise AuthorizationError("Only the administrator can create events")
        for field, number in (('total_tickets', total_tickets), ('ticket_price', ticket_price),
                              ('royalty_percent', royalty_percent),
                              ('max_resale_multiplier', max_resale_multiplier)):
            require_integer(number, field)

        date = as_utc(date)
        if date <= self.clock():
            raise ValidationError("Event date must be in the future")
        if total_tickets <= 0:
            raise ValidationError("Total tickets must be greater than zero")
        if ticket_price <= 0:
            raise ValidationError("Ticket price must be greater than zero")
        if royalty_percent < 0 or royalty_percent > BASIS_POINTS:
            raise ValidationError("Royalty must be between 0 and 10000 basis points")
        if max_resale_multiplier < MULTIPLIER_BASE:
            raise ValidationError("Resale multiplier must be at least 100 (1.0x)")

        event = Event(
            organizer_address=caller,
            name=name,
            description=description,
            location=location,
            date=date,
            total_tickets=total_tickets,
            tickets_sold=0,
            ticket_price=ticket_price,
            royalty_percent=royalty_percent,
            max_resale_multiplier=max_resale_multiplier,
            is_active=True,
        )
        db.session.add(event)
        db.session.flush()

        emit("EventCreated", event_id=event.id, actor=caller)
        logger.info("Event %s (%s) created by %s", event.id, name, caller)
        return event.id

    def get(self, event_id):
        event = db.session.get(Event, event_id)
        if event is None or not event.organizer_address:
            raise NotFoundError(f"Event {event_id} does not exist")
        return event

    def get_event_info(self, event_id):
        return EventInfo.from_model(self.get(event_id))

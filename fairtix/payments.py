"""Money movement for primary and secondary sales.

State is committed before any payout leaves escrow: the primary sale mints
and counts the ticket before paying the organizer, the secondary sale moves
ownership before paying royalty and seller. The caller runs both inside one
unit of work so a failed payout undoes the commit as well.
"""
from collections import namedtuple
import logging

from .events import BASIS_POINTS

logger = logging.getLogger(__name__)

Split = namedtuple('Split', ['royalty', 'seller'])


def split_payment(value, royalty_percent):
    """Divide ``value`` into organizer royalty and seller proceeds.

    The royalty is rounded down; the seller receives the exact remainder, so
    the two parts always add back up to ``value``.
    """
    royalty = value * royalty_percent // BASIS_POINTS
    return Split(royalty=royalty, seller=value - royalty)


class PaymentDistributor:

    def __init__(self, rail, registry):
        self.rail = rail
        self.registry = registry

    def receive(self, payer, value, reference, ticket_id=None, memo=None):
        self.rail.collect(payer, value, reference, ticket_id=ticket_id, memo=memo)

    def settle_primary(self, event, ticket, value, reference):
        self.rail.pay(event.organizer_address, value, reference,
                      ticket_id=ticket.id, memo=event.name, kind="SALE")
        logger.info("Primary sale of ticket %s settled: %s to organizer %s",
                    ticket.id, value, event.organizer_address)

    def settle_secondary(self, event, ticket, seller, buyer, value, reference):
        split = split_payment(value, event.royalty_percent)

        self.registry.transfer(seller, buyer, ticket.id)

        if split.royalty > 0:
            self.rail.pay(event.organizer_address, split.royalty, reference,
                          ticket_id=ticket.id, memo=event.name, kind="ROYALTY")
        self.rail.pay(seller, split.seller, reference,
                      ticket_id=ticket.id, memo=event.name, kind="RESALE")

        logger.info("Resale of ticket %s settled: %s royalty, %s to seller %s",
                    ticket.id, split.royalty, split.seller, seller)
        return split

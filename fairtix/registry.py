"""Ownership registry: who currently holds each ticket.

The marketplace only talks to the abstract interface. ``LedgerRegistry``
keeps holdings in the same database so a rolled-back operation also rolls
back its mints and transfers.
"""
from abc import ABC, abstractmethod
import logging

from .errors import TransferError
from .models import db, Holding

logger = logging.getLogger(__name__)


class OwnershipRegistry(ABC):

    def __init__(self):
        self._hooks = []

    def add_transfer_hook(self, hook):
        """Register ``hook(ticket_id, sender, recipient)``; it runs before every mint and transfer."""
        self._hooks.append(hook)

    def _before_transfer(self, ticket_id, sender, recipient):
        for hook in self._hooks:
            hook(ticket_id, sender, recipient)

    @abstractmethod
    def owner_of(self, ticket_id):
        """Current holder of ``ticket_id`` or None if it was never minted."""

    @abstractmethod
    def mint(self, recipient, ticket_id):
        pass

    @abstractmethod
    def transfer(self, sender, recipient, ticket_id):
        pass


class LedgerRegistry(OwnershipRegistry):

    def owner_of(self, ticket_id):
        holding = db.session.get(Holding, ticket_id)
        return holding.owner_address if holding else None

    def mint(self, recipient, ticket_id):
        if not recipient:
            raise TransferError("Cannot mint to an empty address")
        if db.session.get(Holding, ticket_id) is not None:
            raise TransferError(f"Ticket {ticket_id} already minted")

        self._before_transfer(ticket_id, None, recipient)
        db.session.add(Holding(ticket_id=ticket_id, owner_address=recipient))
        logger.debug("Minted ticket %s to %s", ticket_id, recipient)

    def transfer(self, sender, recipient, ticket_id):
        holding = db.session.get(Holding, ticket_id)
        if holding is None:
            raise TransferError(f"Ticket {ticket_id} was never minted")
        if holding.owner_address != sender:
            raise TransferError(f"{sender} does not hold ticket {ticket_id}")
        if not recipient:
            raise TransferError("Cannot transfer to an empty address")

        self._before_transfer(ticket_id, sender, recipient)
        holding.owner_address = recipient
        logger.debug("Moved ticket %s from %s to %s", ticket_id, sender, recipient)

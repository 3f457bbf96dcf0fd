"""Value-transfer rail.

Money attached to a call is first collected from the caller into escrow and
later paid out of escrow to organizers and sellers. ``WalletRail`` moves
integer balances on ``User`` rows and writes a ``Transaction`` row per
movement, grouped by the operation's ``reference`` hash.
"""
from abc import ABC, abstractmethod
import logging

from .errors import TransferError
from .models import User, log_ledger

logger = logging.getLogger(__name__)

ESCROW_ADDRESS = "ESCROW"


class ValueRail(ABC):

    @abstractmethod
    def collect(self, payer, amount, reference, ticket_id=None, memo=None):
        """Take ``amount`` from ``payer`` into escrow."""

    @abstractmethod
    def pay(self, recipient, amount, reference, ticket_id=None, memo=None, kind='SALE'):
        """Release ``amount`` from escrow to ``recipient``."""


class WalletRail(ValueRail):

    def _account(self, address):
        user = User.query.filter_by(wallet_address=address).first()
        if user is None:
            raise TransferError(f"Unknown wallet {address}")
        if not user.is_active:
            raise TransferError(f"Wallet {address} is deactivated")
        return user

    def collect(self, payer, amount, reference, ticket_id=None, memo=None):
        if amount < 0:
            raise TransferError("Amount must not be negative")
        account = self._account(payer)
        if account.balance < amount:
            raise TransferError("Insufficient Funds")

        account.balance -= amount
        log_ledger(reference, ticket_id, memo, payer, ESCROW_ADDRESS, amount, "ESCROW")
        logger.debug("Collected %s from %s into escrow (%s)", amount, payer, reference)

    def pay(self, recipient, amount, reference, ticket_id=None, memo=None, kind='SALE'):
        if amount < 0:
            raise TransferError("Amount must not be negative")
        account = self._account(recipient)

        account.balance += amount
        log_ledger(reference, ticket_id, memo, ESCROW_ADDRESS, recipient, amount, kind)
        logger.debug("Paid %s to %s (%s, %s)", amount, recipient, kind, reference)

from contextlib import contextmanager
from functools import wraps
import logging

from .errors import ReentrancyError, StateError
from .models import db, Ticket

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Call-admission flag shared by every guarded operation of one marketplace.

    Entering while the flag is set raises ReentrancyError; leaving clears it
    whether the guarded body returned or raised.
    """

    def __init__(self):
        self._entered = False

    @property
    def entered(self):
        return self._entered

    def __enter__(self):
        if self._entered:
            logger.warning("Rejected reentrant call into a guarded operation")
            raise ReentrancyError("Reentrant call rejected")
        self._entered = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self._entered = False
        return False


def nonreentrant(method):
    @wraps(method)
    def decorated_function(self, *args, **kwargs):
        with self.reentrancy_guard:
            return method(self, *args, **kwargs)
    return decorated_function


class TransferGuard:
    """Pre-transfer hook: used tickets never change holder."""

    def __call__(self, ticket_id, sender, recipient):
        ticket = db.session.get(Ticket, ticket_id)
        if ticket is not None and ticket.is_used:
            logger.warning("Blocked transfer of used ticket %s from %s to %s", ticket_id, sender, recipient)
            raise StateError(f"Ticket {ticket_id} has been used and cannot be transferred")


@contextmanager
def atomic():
    """Run a block as one unit of work on the shared session.

    The outermost block starts from freshly loaded state, commits on success
    and rolls back everything on any exception. Blocks opened while another
    is running join it.
    """
    session = db.session()
    depth = session.info.get('atomic_depth', 0)
    session.info['atomic_depth'] = depth + 1
    if depth == 0:
        # Rows loaded before the caller was admitted may be stale.
        session.expire_all()
    try:
        yield session
        if depth == 0:
            session.commit()
    except Exception:
        if depth == 0:
            session.rollback()
            logger.warning("Operation failed; all changes rolled back")
        raise
    finally:
        session.info['atomic_depth'] = depth

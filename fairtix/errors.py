"""Error taxonomy for marketplace operations.

Every error carries the HTTP status the web layer answers with, so the
engine can raise them without knowing about Flask.
"""


class MarketError(Exception):
    """Base class for every failure surfaced by the marketplace."""

    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    @property
    def kind(self):
        return type(self).__name__

    def as_dict(self):
        return {'status': 'error', 'kind': self.kind, 'message': self.message}


class ValidationError(MarketError):
    """Bad input parameters: non-future date, zero capacity, price cap exceeded."""

    status_code = 400


class AuthorizationError(MarketError):
    """Caller is not the administrator, organizer or holder the operation needs."""

    status_code = 403


class NotFoundError(MarketError):
    status_code = 404


class StateError(MarketError):
    """Operation conflicts with current state: used ticket, sold out, underpayment."""

    status_code = 409


class TransferError(MarketError):
    """The value rail or ownership registry refused a movement."""

    status_code = 402


class ReentrancyError(MarketError):
    status_code = 423

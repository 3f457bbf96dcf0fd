"""FairTix: price-capped ticket marketplace with organizer royalties."""
from .app import create_app
from .errors import (
    MarketError, ValidationError, AuthorizationError, NotFoundError,
    StateError, TransferError, ReentrancyError,
)
from .market import Marketplace

__all__ = [
    'create_app', 'Marketplace',
    'MarketError', 'ValidationError', 'AuthorizationError', 'NotFoundError',
    'StateError', 'TransferError', 'ReentrancyError',
]

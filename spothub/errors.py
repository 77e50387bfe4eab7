"""
spothub/errors.py
─────────────────
Business error taxonomy for the voucher / wallet / order flow.

Services raise these; the app-level error handler renders them as
    {"error": <code>, "message": <text>}
with the matching HTTP status. Nothing here is retried automatically.
"""


class HubError(Exception):
    code        = 'error'
    http_status = 400

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self) -> dict:
        return {'error': self.code, 'message': self.message}


class ValidationError(HubError):
    """Invalid input."""
    code = 'validation_error'


class EmptyCart(HubError):
    """Cart is empty. Add items before creating an order."""
    code = 'empty_cart'


class PermissionDenied(HubError):
    """You are not allowed to perform this action."""
    code        = 'permission_denied'
    http_status = 403


class NotFound(HubError):
    """Not found."""
    code        = 'not_found'
    http_status = 404


class ConcurrencyConflict(HubError):
    """This action was already completed elsewhere."""
    code        = 'concurrency_conflict'
    http_status = 409


class AlreadyRedeemed(ConcurrencyConflict):
    """This voucher has already been used."""
    code = 'already_redeemed'


class AlreadyTerminal(ConcurrencyConflict):
    """This order has already been settled or cancelled."""
    code = 'already_terminal'


class InsufficientBalance(HubError):
    """Insufficient wallet balance."""
    code        = 'insufficient_balance'
    http_status = 402


class InsufficientStock(HubError):
    """Not enough stock for this order."""
    code        = 'insufficient_stock'
    http_status = 409


class PersistenceError(HubError):
    """The operation could not be saved. Please try again."""
    code        = 'persistence_error'
    http_status = 503

"""
Domain exceptions raised by the shop services.
Routers translate them into HTTP errors.
"""


class ShopError(Exception):
    """Base exception for shop operations"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ShopError):
    """Raised when a product, cart, cart line or order does not exist"""
    pass


class InsufficientStockError(ShopError):
    """Raised when the requested quantity exceeds available stock"""
    pass


class ForbiddenError(ShopError):
    """Raised when a customer touches an order that is not theirs"""
    pass


class InvalidStateError(ShopError):
    """Raised when an order cannot move to the requested state"""
    pass


class ValidationError(ShopError):
    """Raised when a request is well-formed but cannot be processed"""
    pass

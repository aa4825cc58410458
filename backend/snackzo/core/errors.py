"""
Domain exceptions raised by services and translated to HTTP by routers

Rule violations subclass ValueError, missing rows subclass LookupError.
"""
from fastapi import HTTPException


class NotFoundError(LookupError):
    """A referenced row does not exist (or is not visible to the caller)"""


class CheckoutError(ValueError):
    """Cart, pricing or order placement rule violated"""


class StoreClosedError(CheckoutError):
    """Order placed while the store is not accepting orders"""


class InsufficientStockError(CheckoutError):
    pass


class InsufficientBalanceError(CheckoutError):
    pass


class PromoCodeError(CheckoutError):
    pass


class PaymentSessionError(ValueError):
    """SnackzoPay session rule violated (bad amount, illegal transition...)"""


class SessionExpiredError(PaymentSessionError):
    pass


class GatewayDisabledError(PaymentSessionError):
    pass


class OrderStatusError(ValueError):
    """Illegal order status transition"""


class WalletError(ValueError):
    pass


class QueryRejectedError(ValueError):
    """Admin console query refused by the read-only guard"""


def to_http_exception(error: Exception) -> HTTPException:
    """Map a domain exception to the HTTPException a router should raise"""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    conflicts = (
        StoreClosedError, GatewayDisabledError, InsufficientStockError,
        SessionExpiredError, OrderStatusError,
    )
    if isinstance(error, conflicts):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, ValueError):
        return HTTPException(status_code=400, detail=str(error))
    return HTTPException(status_code=500, detail=f"Internal error: {str(error)}")

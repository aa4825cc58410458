"""
Checkout API Endpoints
Cart pricing and order placement
"""
import logging

from fastapi import APIRouter, HTTPException, Depends

from snackzo.core.auth import TokenUser, get_current_user
from snackzo.core.errors import to_http_exception
from snackzo.core.rate_limit import endpoint_rate_limit
from snackzo.domain.order import CheckoutRequest
from snackzo.services.checkout_service import CheckoutService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/quote")
async def quote_cart(
    request: CheckoutRequest,
    user: TokenUser = Depends(get_current_user)
):
    """
    Price the cart from current catalogue prices

    Validates stock, promo code and express eligibility without writing
    anything.
    """
    try:
        quote = CheckoutService().quote(request, user.id)
        return {
            "status": "success",
            "data": quote.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error quoting cart for {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error pricing cart: {str(e)}")


@router.post("/orders", status_code=201, dependencies=[Depends(endpoint_rate_limit(5, 30))])
async def place_order(
    request: CheckoutRequest,
    user: TokenUser = Depends(get_current_user)
):
    """
    Place an order

    Online methods (upi, card, netbanking) need payment_session_id of a
    successful SnackzoPay session for the exact total.
    """
    try:
        order = CheckoutService().place_order(request, user.id)
        return {
            "status": "success",
            "message": "Order placed",
            "data": order.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error placing order for {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error placing order: {str(e)}")

"""
Wallet API Endpoints
Balance, history and SnackzoPay top-ups
"""
import logging

from fastapi import APIRouter, HTTPException, Depends

from snackzo.core.auth import TokenUser, get_current_user
from snackzo.core.errors import to_http_exception
from snackzo.core.rate_limit import endpoint_rate_limit
from snackzo.domain.wallet import TopupRequest
from snackzo.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def get_wallet(user: TokenUser = Depends(get_current_user)):
    """Balance and the last 50 transactions"""
    try:
        summary = WalletService().get_summary(user.id)
        return {
            "status": "success",
            "data": summary.to_dict()
        }

    except Exception as e:
        logger.error(f"Error fetching wallet for {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching wallet: {str(e)}")


@router.post("/topup", dependencies=[Depends(endpoint_rate_limit(5, 60))])
async def topup_wallet(request: TopupRequest, user: TokenUser = Depends(get_current_user)):
    """Credit the wallet with a successful SnackzoPay payment"""
    try:
        summary = WalletService().topup(user.id, request.amount, request.payment_session_id)
        return {
            "status": "success",
            "message": f"₹{request.amount} added to wallet",
            "data": summary.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error topping up wallet for {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error topping up wallet: {str(e)}")

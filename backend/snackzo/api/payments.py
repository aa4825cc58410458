"""
SnackzoPay API Endpoints
Gateway sessions for the pay page and the confirm page (QR target)

The pay page is reachable without signing in, so these endpoints accept an
optional token. Session ids are random uuids and act as the capability to
view or resolve a session.
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Depends

from snackzo.core.auth import TokenUser, get_current_user_optional
from snackzo.core.errors import to_http_exception
from snackzo.core.rate_limit import endpoint_rate_limit
from snackzo.domain.payment import SessionCreate, SessionCompletion, SESSION_SUCCESS
from snackzo.services.payment_gateway_service import (
    PaymentGatewayService, build_confirm_url, build_qr_code_url, build_return_url, is_allowed_return_url,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_return_url(return_url: Optional[str]):
    """Reject foreign return URLs before any session state changes"""
    if not is_allowed_return_url(return_url or "/"):
        raise HTTPException(status_code=400, detail="Return URL must be a relative path or an allowed origin")


@router.get("/gateway")
async def get_gateway_status():
    """Whether SnackzoPay is accepting payments"""
    try:
        return {
            "status": "success",
            "data": {"enabled": PaymentGatewayService().is_enabled()}
        }

    except Exception as e:
        logger.error(f"Error reading gateway status: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error reading gateway status: {str(e)}")


@router.post("/sessions", status_code=201)
async def create_session(
    request: SessionCreate,
    user: Optional[TokenUser] = Depends(get_current_user_optional)
):
    """
    Open a payment session

    Returns the session with its countdown, the confirm URL and a QR code
    image URL pointing at it.
    """
    _check_return_url(request.return_url)
    return_url = request.return_url or "/"

    try:
        session = PaymentGatewayService().initiate_session(
            amount=request.amount,
            order_ref=request.order_ref,
            user_id=user.id if user else None,
            guest_name=request.guest_name,
        )
        confirm_url = build_confirm_url(session, return_url)

        return {
            "status": "success",
            "data": {
                **session.to_dict(),
                "confirm_url": confirm_url,
                "qr_code_url": build_qr_code_url(confirm_url),
            }
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error opening payment session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error opening payment session: {str(e)}")


@router.get("/sessions/{session_id}")
async def get_session(session_id: str):
    """Session status with remaining seconds (polled by the pay page)"""
    try:
        session = PaymentGatewayService().get_session(session_id)
        return {
            "status": "success",
            "data": session.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching payment session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching payment session: {str(e)}")


@router.post("/sessions/{session_id}/complete", dependencies=[Depends(endpoint_rate_limit(10, 60))])
async def complete_session(session_id: str, request: SessionCompletion):
    """
    Resolve a session (test mode)

    success=true issues a transaction id; success=false leaves the session
    retryable. The response carries the merchant redirect URL.
    """
    _check_return_url(request.return_url)

    try:
        session = PaymentGatewayService().complete_session(
            session_id, success=request.success, method=request.method
        )
        redirect_url = None
        if session.status == SESSION_SUCCESS:
            redirect_url = build_return_url(request.return_url, "success", session.transaction_id)

        return {
            "status": "success",
            "data": {
                **session.to_dict(),
                "redirect_url": redirect_url,
            }
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error completing payment session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error completing payment session: {str(e)}")


@router.post("/sessions/{session_id}/cancel")
async def cancel_session(
    session_id: str,
    return_url: Optional[str] = Query(None, description="Merchant page to go back to")
):
    """Customer gave up on the payment"""
    _check_return_url(return_url)

    try:
        session = PaymentGatewayService().cancel_session(session_id)
        return {
            "status": "success",
            "data": {
                **session.to_dict(),
                "redirect_url": build_return_url(return_url, "cancelled"),
            }
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error cancelling payment session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error cancelling payment session: {str(e)}")

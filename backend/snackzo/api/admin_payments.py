"""
Admin API - SnackzoPay management

Transaction list, stats, Excel export, the gateway switch and cleanup of
sessions whose countdown ran out.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Depends
from fastapi.responses import StreamingResponse

from snackzo.core.auth import TokenUser, require_admin
from snackzo.core.errors import to_http_exception
from snackzo.domain.payment import GatewayToggle, PaymentStatusFilter
from snackzo.services.payment_gateway_service import PaymentGatewayService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/sessions")
async def list_sessions(
    status: PaymentStatusFilter = Query("all", description="Filter by session status"),
    search: Optional[str] = Query(None, description="Order reference, transaction id or payer"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user: TokenUser = Depends(require_admin)
):
    try:
        sessions, total = PaymentGatewayService().list_sessions(
            status=status, search=search, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(sessions),
            "data": [session.to_dict() for session in sessions]
        }

    except Exception as e:
        logger.error(f"Error fetching payment sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching payment sessions: {str(e)}")


@router.get("/stats")
async def get_stats(user: TokenUser = Depends(require_admin)):
    """
    Gateway statistics

    Returns:
    - Total captured amount
    - Successful / failed / pending counts
    - Success rate over resolved sessions
    """
    try:
        service = PaymentGatewayService()
        return {
            "status": "success",
            "data": {
                **service.get_stats().to_dict(),
                "gateway_enabled": service.is_enabled(),
            }
        }

    except Exception as e:
        logger.error(f"Error computing payment stats: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error computing payment stats: {str(e)}")


@router.get("/export")
async def export_sessions(
    status: PaymentStatusFilter = Query("all"),
    search: Optional[str] = Query(None),
    user: TokenUser = Depends(require_admin)
):
    """Download the filtered transaction list as Excel"""
    try:
        excel_file = PaymentGatewayService().export_sessions(status=status, search=search)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"SnackzoPay_{timestamp}.xlsx"

        return StreamingResponse(
            excel_file,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={
                "Content-Disposition": f"attachment; filename={filename}"
            }
        )

    except Exception as e:
        logger.error(f"Error exporting payment sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error exporting payment sessions: {str(e)}")


@router.put("/gateway")
async def toggle_gateway(request: GatewayToggle, user: TokenUser = Depends(require_admin)):
    """Turn SnackzoPay on or off (off needs confirm_text "Disable")"""
    try:
        enabled = PaymentGatewayService().set_enabled(request.enabled, request.confirm_text)
        logger.warning(f"Gateway switched {'on' if enabled else 'off'} by {user.email or user.id}")
        return {
            "status": "success",
            "data": {"enabled": enabled}
        }

    except ValueError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error toggling gateway: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error toggling gateway: {str(e)}")


@router.post("/expire-stale")
async def expire_stale_sessions(user: TokenUser = Depends(require_admin)):
    """Mark pending/failed sessions past their countdown as expired"""
    try:
        expired = PaymentGatewayService().expire_stale_sessions()
        return {
            "status": "success",
            "data": {"expired": expired}
        }

    except Exception as e:
        logger.error(f"Error expiring payment sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error expiring payment sessions: {str(e)}")

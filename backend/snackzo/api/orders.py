"""
Orders API Endpoints
Customer order history, detail, cancellation and live tracking
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Depends

from snackzo.core.auth import TokenUser, get_current_user
from snackzo.core.errors import to_http_exception
from snackzo.domain.delivery import ETAFactors
from snackzo.domain.order import ALL_STATUSES
from snackzo.repositories.order_repository import OrderRepository
from snackzo.repositories.runner_repository import RunnerRepository
from snackzo.services.delivery_eta_service import DeliveryETAService, format_eta
from snackzo.services.order_status_service import OrderStatusService, next_status
from snackzo.services.store_status_service import StoreStatusService

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_own_order(order_id: str, user: TokenUser):
    order = OrderRepository().find_by_id(order_id)
    if not order or order.user_id != user.id:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return order


@router.get("/")
async def get_my_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: TokenUser = Depends(get_current_user)
):
    """Orders of the signed-in customer, newest first"""
    if status and status not in ALL_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    try:
        orders, total = OrderRepository().find_all(
            user_id=user.id, status=status, limit=limit, offset=offset
        )
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error fetching orders for {user.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.get("/{order_id}")
async def get_my_order(order_id: str, user: TokenUser = Depends(get_current_user)):
    """Order detail with items"""
    try:
        order = _load_own_order(order_id, user)
        return {
            "status": "success",
            "data": order.to_dict()
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching order {order_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching order: {str(e)}")


@router.post("/{order_id}/cancel")
async def cancel_my_order(order_id: str, user: TokenUser = Depends(get_current_user)):
    """Cancel an order that has not been packed yet"""
    try:
        order = OrderStatusService().cancel_by_customer(order_id, user.id)
        return {
            "status": "success",
            "message": "Order cancelled",
            "data": order.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error cancelling order {order_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error cancelling order: {str(e)}")


@router.get("/{order_id}/tracking")
async def track_order(order_id: str, user: TokenUser = Depends(get_current_user)):
    """
    Live tracking data

    Returns:
    - Current and next status
    - Runner contact (when assigned)
    - ETA while the order is still on its way
    """
    try:
        order = _load_own_order(order_id, user)

        runner = None
        if order.runner_id:
            runner = RunnerRepository().find_by_id(order.runner_id)

        eta = None
        if order.is_active:
            now = StoreStatusService().local_now()
            result = DeliveryETAService().estimate(
                ETAFactors(runner_id=order.runner_id, order_id=order.id, is_express=order.is_express),
                now=now,
            )
            eta = {**result.to_dict(), "display": format_eta(result.estimated_minutes)}

        return {
            "status": "success",
            "data": {
                "order_id": order.id,
                "status": order.status,
                "next_status": next_status(order.status),
                "is_express": order.is_express,
                "delivered_at": order.delivered_at.isoformat() if order.delivered_at else None,
                "runner": runner,
                "eta": eta,
            }
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error tracking order {order_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error tracking order: {str(e)}")

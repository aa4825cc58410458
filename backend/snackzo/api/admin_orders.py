"""
Admin API - Order management

Listing and assignment need the admin role. Status changes are open to
runners as well, who move orders along while delivering.
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Depends

from snackzo.core.auth import TokenUser, require_admin, require_runner
from snackzo.core.errors import to_http_exception
from snackzo.domain.order import OrderStatusUpdate, BulkStatusUpdate, RunnerAssignment, ALL_STATUSES
from snackzo.services.order_status_service import OrderStatusService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def list_orders(
    status: Optional[str] = Query(None, description="Filter by order status"),
    search: Optional[str] = Query(None, description="Order id prefix, customer name, phone or address"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: TokenUser = Depends(require_admin)
):
    """All orders, active ones first"""
    if status and status not in ALL_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")

    try:
        orders, total = OrderStatusService().list_orders(status=status, search=search, limit=limit, offset=offset)
        return {
            "status": "success",
            "total": total,
            "limit": limit,
            "offset": offset,
            "count": len(orders),
            "data": [order.to_dict() for order in orders]
        }

    except Exception as e:
        logger.error(f"Error fetching orders: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching orders: {str(e)}")


@router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str,
    update: OrderStatusUpdate,
    user: TokenUser = Depends(require_runner)
):
    """Move an order one step along its flow, or cancel it"""
    try:
        order = OrderStatusService().update_status(order_id, update.status)
        return {
            "status": "success",
            "message": f"Order status updated to {update.status.replace('_', ' ')}",
            "data": order.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating order {order_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating order: {str(e)}")


@router.post("/bulk-status")
async def bulk_update_status(request: BulkStatusUpdate, user: TokenUser = Depends(require_admin)):
    """Apply one status to many orders; reports per-order results"""
    try:
        result = OrderStatusService().bulk_update(request.order_ids, request.status)
        return {
            "status": "success",
            "data": result
        }

    except Exception as e:
        logger.error(f"Error in bulk status update: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating orders: {str(e)}")


@router.post("/{order_id}/assign")
async def assign_runner(
    order_id: str,
    request: RunnerAssignment,
    user: TokenUser = Depends(require_admin)
):
    try:
        order = OrderStatusService().assign_runner(order_id, request.runner_id)
        return {
            "status": "success",
            "message": "Runner assigned",
            "data": order.to_dict()
        }

    except (LookupError, ValueError) as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error assigning runner to {order_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error assigning runner: {str(e)}")

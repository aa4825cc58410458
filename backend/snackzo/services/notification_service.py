"""
Order notifications

Every order status change produces an in-app notification row and a call to
the notify-order-status edge function (email). Notifications are best
effort: a failure is logged and never undoes or fails the order change.
"""
import logging
from typing import Optional

from snackzo.core.database import get_supabase
from snackzo.repositories.notification_repository import NotificationRepository

logger = logging.getLogger(__name__)

EDGE_FUNCTION = "notify-order-status"

STATUS_MESSAGES = {
    "placed": {
        "subject": "Order Confirmed!",
        "message": "Your order has been placed successfully and is being prepared.",
    },
    "packed": {
        "subject": "Order Packed!",
        "message": "Great news! Your order has been packed and is ready for delivery.",
    },
    "out_for_delivery": {
        "subject": "Order on the Way!",
        "message": "Your order is out for delivery. Our runner is on the way!",
    },
    "delivered": {
        "subject": "Order Delivered!",
        "message": "Your order has been delivered. Enjoy your snacks!",
    },
    "cancelled": {
        "subject": "Order Cancelled",
        "message": "Your order has been cancelled. If you have questions, please contact us.",
    },
}


class NotificationService:

    def __init__(self, repository: Optional[NotificationRepository] = None, supabase_factory=get_supabase):
        self.repository = repository or NotificationRepository()
        self.supabase_factory = supabase_factory

    def notify_order_status(self, order_id: str, user_id: Optional[str], new_status: str) -> bool:
        """
        Tell the customer about an order status change

        Returns:
            True when at least one channel went out
        """
        info = STATUS_MESSAGES.get(new_status)
        if not info:
            logger.info(f"Unknown status '{new_status}' for order {order_id}, skipping notification")
            return False

        delivered = False

        if user_id:
            try:
                self.repository.create(
                    user_id=user_id,
                    title=info["subject"],
                    message=info["message"],
                    notification_type="order",
                    order_id=order_id,
                )
                delivered = True
            except Exception as e:
                logger.error(f"Could not store notification for order {order_id}: {e}", exc_info=True)

        try:
            self.supabase_factory().functions.invoke(
                EDGE_FUNCTION,
                invoke_options={"body": {"orderId": order_id, "newStatus": new_status}},
            )
            delivered = True
        except Exception as e:
            logger.warning(f"{EDGE_FUNCTION} failed for order {order_id}: {e}")

        return delivered

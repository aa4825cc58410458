"""
Order Domain Models

Represents carts, price quotes, orders and order items.
These are the single source of truth for order data structure.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal


# Order lifecycle
STATUS_PLACED = "placed"
STATUS_PACKED = "packed"
STATUS_OUT_FOR_DELIVERY = "out_for_delivery"
STATUS_DELIVERED = "delivered"
STATUS_CANCELLED = "cancelled"

STATUS_FLOW = [STATUS_PLACED, STATUS_PACKED, STATUS_OUT_FOR_DELIVERY, STATUS_DELIVERED]
ALL_STATUSES = STATUS_FLOW + [STATUS_CANCELLED]
FINAL_STATUSES = {STATUS_DELIVERED, STATUS_CANCELLED}

DeliveryMode = Literal["room", "common_area"]
PaymentMethod = Literal["upi", "card", "netbanking", "cod", "wallet"]

ONLINE_PAYMENT_METHODS = {"upi", "card", "netbanking"}


class CartItem(BaseModel):
    """A line of the client-held cart"""
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1, le=50)


class QuoteLine(BaseModel):
    """Cart line repriced from the catalogue"""
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class PriceQuote(BaseModel):
    """
    Checkout price breakdown

    total = subtotal + delivery_fee - discount_amount - wallet_amount
    """

    lines: List[QuoteLine] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    wallet_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    promo_code: Optional[str] = None
    promo_code_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = self.model_dump()
        for field in ["subtotal", "delivery_fee", "discount_amount", "wallet_amount", "total"]:
            data[field] = float(data[field])
        for line in data["lines"]:
            line["unit_price"] = float(line["unit_price"])
            line["line_total"] = float(line["line_total"])
        return data


class CheckoutRequest(BaseModel):
    """Schema for quoting or placing an order"""
    items: List[CartItem] = Field(..., min_length=1)
    delivery_mode: DeliveryMode = "room"
    payment_method: PaymentMethod = "upi"
    notes: Optional[str] = Field(None, max_length=2000)
    promo_code: Optional[str] = Field(None, max_length=50)
    use_wallet: bool = False
    is_express: bool = False
    scheduled_for: Optional[datetime] = None
    payment_session_id: Optional[str] = Field(None, description="Successful SnackzoPay session")

    @field_validator("promo_code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class OrderItem(BaseModel):
    """Order line stored in order_items"""

    id: Optional[str] = Field(None, description="Order item ID")
    order_id: str = Field(..., description="Parent order ID")
    product_id: Optional[str] = Field(None, description="Product ID")
    product_name: str = Field(..., description="Product name at order time")
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., description="Unit price at order time", ge=0)

    model_config = ConfigDict(from_attributes=True)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["price"] = float(self.price)
        data["line_total"] = float(self.line_total)
        return data


class Order(BaseModel):
    """
    Order domain model - a customer order

    Fields:
        id: Order ID (uuid)
        user_id: Customer (auth user id)
        status: placed, packed, out_for_delivery, delivered, cancelled
        payment_method: upi, card, netbanking, cod, wallet
        payment_status: pending, paid, failed, refunded
        delivery_mode: room or common_area
        delivery_address: "<hostel block>, <room>"

        subtotal / delivery_fee / discount_amount / wallet_amount / total: money breakdown

        is_express: Express delivery requested
        scheduled_for: Requested delivery time, None for ASAP
        runner_id: Assigned runner
        transaction_id: Gateway transaction id
    """

    id: str = Field(..., description="Order ID")
    user_id: str = Field(..., description="Customer ID")
    status: str = Field(STATUS_PLACED, description="Order status")
    payment_method: Optional[str] = Field(None, description="Payment method")
    payment_status: Optional[str] = Field(None, description="Payment status")
    delivery_mode: Optional[str] = Field(None, description="room / common_area")
    delivery_address: Optional[str] = Field(None, description="Delivery address")

    subtotal: Decimal = Field(Decimal("0"), ge=0)
    delivery_fee: Decimal = Field(Decimal("0"), ge=0)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    wallet_amount: Decimal = Field(Decimal("0"), ge=0)
    total: Decimal = Field(Decimal("0"), ge=0)

    notes: Optional[str] = None
    is_express: bool = False
    scheduled_for: Optional[datetime] = None
    runner_id: Optional[str] = None
    transaction_id: Optional[str] = None
    payment_session_id: Optional[str] = None
    promo_code_id: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    # From JOINs (optional)
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    items: List[OrderItem] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_active(self) -> bool:
        return self.status not in FINAL_STATUSES

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["is_active"] = self.is_active
        data["item_count"] = self.item_count

        for field in ["subtotal", "delivery_fee", "discount_amount", "wallet_amount", "total"]:
            data[field] = float(data[field])

        for field in ["scheduled_for", "created_at", "updated_at", "delivered_at"]:
            if data.get(field):
                data[field] = data[field].isoformat()

        data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderStatusUpdate(BaseModel):
    status: Literal["placed", "packed", "out_for_delivery", "delivered", "cancelled"]


class BulkStatusUpdate(BaseModel):
    order_ids: List[str] = Field(..., min_length=1, max_length=100)
    status: Literal["placed", "packed", "out_for_delivery", "delivered", "cancelled"]


class RunnerAssignment(BaseModel):
    runner_id: str = Field(..., min_length=1)

"""
SnackzoPay Domain Models

A payment session is the unit of the simulated gateway: it is created when
the customer lands on the gateway page, counts down while the customer picks
a method, and is resolved by the test-mode outcome chooser.

State machine:

    pending --success--> success
    pending --failure--> failed --retry success--> success
    pending/failed --cancel--> cancelled
    pending/failed --timeout--> expired

success, cancelled and expired are terminal.
"""
import secrets
import string
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal
from datetime import datetime, timezone
from decimal import Decimal


SESSION_PENDING = "pending"
SESSION_SUCCESS = "success"
SESSION_FAILED = "failed"
SESSION_CANCELLED = "cancelled"
SESSION_EXPIRED = "expired"

TERMINAL_STATES = {SESSION_SUCCESS, SESSION_CANCELLED, SESSION_EXPIRED}

ALLOWED_TRANSITIONS = {
    SESSION_PENDING: {SESSION_SUCCESS, SESSION_FAILED, SESSION_CANCELLED, SESSION_EXPIRED},
    SESSION_FAILED: {SESSION_SUCCESS, SESSION_FAILED, SESSION_CANCELLED, SESSION_EXPIRED},
    SESSION_SUCCESS: set(),
    SESSION_CANCELLED: set(),
    SESSION_EXPIRED: set(),
}

PAYMENT_METHODS = {"upi", "card", "wallet", "netbanking"}
# The gateway page labels cards as "cards"
METHOD_ALIASES = {"cards": "card"}

TXN_ALPHABET = string.ascii_uppercase + string.digits


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def normalize_method(method: str) -> str:
    """Map gateway method labels onto stored payment_method_type values"""
    value = (method or "").strip().lower()
    value = METHOD_ALIASES.get(value, value)
    if value not in PAYMENT_METHODS:
        raise ValueError(f"Unsupported payment method: {method}")
    return value


def generate_transaction_id(prefix: str = "pay_", length: int = 14) -> str:
    """Gateway transaction id, e.g. pay_7QK2M9XZ0A1B3C"""
    return prefix + "".join(secrets.choice(TXN_ALPHABET) for _ in range(length))


def format_countdown(seconds: int) -> str:
    """Render remaining seconds as m:ss"""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


class PaymentSession(BaseModel):
    """
    Payment session row (payment_sessions table)

    Fields:
        id: Session ID (uuid)
        order_ref: Merchant order reference shown on the gateway page
        order_id: Linked order (only when order_ref is a uuid)
        amount: Amount to collect (INR)
        status: pending, success, failed, cancelled, expired
        payment_method_type: Method chosen when the session was resolved
        transaction_id: Issued on success
        user_id / guest_name: Payer
        expires_at: End of the countdown
        consumed_at: When a checkout or top-up used this payment
    """

    id: str
    order_ref: Optional[str] = None
    order_id: Optional[str] = None
    amount: Decimal = Field(..., gt=0)
    status: str = SESSION_PENDING
    payment_method_type: Optional[str] = None
    transaction_id: Optional[str] = None
    user_id: Optional[str] = None
    guest_name: Optional[str] = None
    customer_name: Optional[str] = None
    expires_at: Optional[datetime] = None
    consumed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def payer_name(self) -> str:
        return self.customer_name or self.guest_name or "Guest"

    def remaining_seconds(self, now: Optional[datetime] = None) -> int:
        if not self.expires_at:
            return 0
        now = now or datetime.now(timezone.utc)
        return max(0, int((self.expires_at - now).total_seconds()))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.is_terminal or not self.expires_at:
            return self.status == SESSION_EXPIRED
        return self.remaining_seconds(now) <= 0

    def to_dict(self, now: Optional[datetime] = None) -> dict:
        data = self.model_dump()
        data["amount"] = float(self.amount)
        data["payer_name"] = self.payer_name
        remaining = 0 if self.is_terminal else self.remaining_seconds(now)
        data["remaining_seconds"] = remaining
        data["countdown"] = format_countdown(remaining)
        for field in ["expires_at", "consumed_at", "created_at", "updated_at"]:
            if data.get(field):
                data[field] = data[field].isoformat()
        return data


class SessionCreate(BaseModel):
    """Schema for opening a gateway session"""
    amount: Decimal = Field(..., gt=0, le=Decimal("100000"))
    order_ref: Optional[str] = Field(None, max_length=100)
    guest_name: Optional[str] = Field(None, max_length=100)
    return_url: Optional[str] = Field(None, max_length=500)


class SessionCompletion(BaseModel):
    """Test-mode outcome chosen on the gateway/confirm page"""
    success: bool
    method: str = "upi"
    return_url: Optional[str] = Field(None, max_length=500)


class GatewayToggle(BaseModel):
    enabled: bool
    confirm_text: Optional[str] = None


class PaymentStats(BaseModel):
    total_captured: Decimal = Decimal("0")
    successful: int = 0
    failed: int = 0
    pending: int = 0
    count: int = 0
    success_rate: int = 0

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["total_captured"] = float(self.total_captured)
        return data


PaymentStatusFilter = Literal["all", "success", "failed", "pending", "cancelled", "expired"]

"""
Checkout Service

Reprices the client-held cart from the catalogue and places orders.

Pricing:
    subtotal        sum of database price x quantity
    delivery_fee    store delivery fee for room delivery, 0 for common area,
                    +20 for express (needs a subtotal of at least 100)
    discount        promo code: percentage rounded half-up to whole rupees,
                    flat amount capped at the subtotal
    wallet          min(balance, subtotal + fee - discount) when requested
    total           what is left to pay

place_order() runs every write (stock, promo usage, wallet, payment
consumption, order rows) in a single database transaction.
"""
import logging
import re
from datetime import datetime, timezone, date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Any

from snackzo.core.database import transaction
from snackzo.core.errors import (
    CheckoutError, StoreClosedError, InsufficientStockError,
    InsufficientBalanceError, PromoCodeError,
)
from snackzo.domain.order import (
    CheckoutRequest, PriceQuote, QuoteLine, Order, ONLINE_PAYMENT_METHODS, STATUS_PLACED,
)
from snackzo.domain.product import Product
from snackzo.domain.wallet import TXN_DEBIT
from snackzo.repositories.order_repository import OrderRepository
from snackzo.repositories.product_repository import ProductRepository
from snackzo.repositories.profile_repository import ProfileRepository
from snackzo.repositories.promo_repository import PromoRepository
from snackzo.repositories.wallet_repository import WalletRepository
from snackzo.services.notification_service import NotificationService
from snackzo.services.payment_gateway_service import PaymentGatewayService
from snackzo.services.store_status_service import StoreStatusService

logger = logging.getLogger(__name__)

EXPRESS_FEE = Decimal("20")
EXPRESS_MIN_SUBTOTAL = Decimal("100")
MAX_NOTES_LENGTH = 200

SCRIPT_BLOCK_RE = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
TAG_RE = re.compile(r"<[^>]*>")


def sanitize_notes(notes: Optional[str]) -> Optional[str]:
    """Strip script blocks and HTML tags, cap the length; empty becomes None"""
    if not notes:
        return None
    cleaned = SCRIPT_BLOCK_RE.sub("", notes)
    cleaned = TAG_RE.sub("", cleaned).strip()
    return cleaned[:MAX_NOTES_LENGTH] or None


def _as_datetime(value, end_of_day: bool = False) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        clock = datetime.max.time() if end_of_day else datetime.min.time()
        return datetime.combine(value, clock, tzinfo=timezone.utc)
    return None


def validate_promo(promo: Optional[Dict[str, Any]], subtotal: Decimal, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Check a promo_codes row against the cart

    Raises:
        PromoCodeError: unknown, inactive, outside its dates, used up or below minimum
    """
    if not promo or not promo.get("is_active"):
        raise PromoCodeError("Invalid or expired discount code")

    now = now or datetime.now(timezone.utc)

    start = _as_datetime(promo.get("start_date"))
    if start and now < start:
        raise PromoCodeError("This discount code is not active yet")

    end = _as_datetime(promo.get("end_date"), end_of_day=True)
    if end and now > end:
        raise PromoCodeError("This discount code has expired")

    usage_limit = promo.get("usage_limit")
    # Zero or negative limits mean uncapped
    if usage_limit is not None and usage_limit > 0 and (promo.get("usage_count") or 0) >= usage_limit:
        raise PromoCodeError("This discount code has reached its usage limit")

    min_order = Decimal(str(promo.get("min_order_amount") or 0))
    if subtotal < min_order:
        raise PromoCodeError(f"Minimum order of ₹{min_order} required for this code")

    return promo


def calculate_discount(promo: Optional[Dict[str, Any]], subtotal: Decimal) -> Decimal:
    if not promo:
        return Decimal("0")
    value = Decimal(str(promo.get("discount_value") or 0))
    if promo.get("discount_type") == "percentage":
        return (subtotal * value / Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(value, subtotal)


def build_lines(items, products: Dict[str, Product]) -> List[QuoteLine]:
    """
    Reprice cart items from catalogue rows

    Duplicate product ids are merged into one line.

    Raises:
        CheckoutError: unknown or unavailable product
        InsufficientStockError: not enough stock for a line
    """
    quantities: Dict[str, int] = {}
    for item in items:
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

    lines = []
    for product_id, quantity in quantities.items():
        product = products.get(product_id)
        if product is None:
            raise CheckoutError(f"Product {product_id} not found")
        if not product.is_available:
            raise CheckoutError(f"{product.name} is currently unavailable")
        if product.stock < quantity:
            raise InsufficientStockError(f"Only {product.stock} left of {product.name}")

        lines.append(QuoteLine(
            product_id=product_id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.price,
            line_total=product.price * quantity,
        ))
    return lines


def calculate_quote(
    lines: List[QuoteLine],
    delivery_mode: str,
    base_delivery_fee: Decimal,
    is_express: bool = False,
    promo: Optional[Dict[str, Any]] = None,
    wallet_balance: Decimal = Decimal("0"),
    use_wallet: bool = False
) -> PriceQuote:
    """Pure price breakdown for already repriced lines"""
    subtotal = sum((line.line_total for line in lines), Decimal("0"))

    if is_express and subtotal < EXPRESS_MIN_SUBTOTAL:
        raise CheckoutError(f"Express delivery needs a minimum order of ₹{EXPRESS_MIN_SUBTOTAL}")

    delivery_fee = base_delivery_fee if delivery_mode == "room" else Decimal("0")
    if is_express:
        delivery_fee += EXPRESS_FEE

    discount = calculate_discount(promo, subtotal)
    payable = subtotal + delivery_fee - discount

    wallet_amount = min(max(wallet_balance, Decimal("0")), payable) if use_wallet else Decimal("0")

    return PriceQuote(
        lines=lines,
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        discount_amount=discount,
        wallet_amount=wallet_amount,
        total=payable - wallet_amount,
        promo_code=promo.get("code") if promo else None,
        promo_code_id=str(promo["id"]) if promo else None,
    )


class CheckoutService:
    """
    Cart pricing and order placement

    Usage:
        checkout = CheckoutService()
        quote = checkout.quote(request, user_id)
        order = checkout.place_order(request, user_id)
    """

    def __init__(
        self,
        store_service: Optional[StoreStatusService] = None,
        gateway: Optional[PaymentGatewayService] = None,
        notifications: Optional[NotificationService] = None,
        product_repository: Optional[ProductRepository] = None,
        order_repository: Optional[OrderRepository] = None,
        profile_repository: Optional[ProfileRepository] = None,
        promo_repository: Optional[PromoRepository] = None,
        wallet_repository: Optional[WalletRepository] = None
    ):
        self.store_service = store_service or StoreStatusService()
        self.gateway = gateway or PaymentGatewayService()
        self.notifications = notifications or NotificationService()
        self.products = product_repository or ProductRepository()
        self.orders = order_repository or OrderRepository()
        self.profiles = profile_repository or ProfileRepository()
        self.promos = promo_repository or PromoRepository()
        self.wallet = wallet_repository or WalletRepository()

    def _price(self, cursor, request: CheckoutRequest, user_id: str, base_fee: Decimal) -> PriceQuote:
        products = self.products.find_by_ids(cursor, [item.product_id for item in request.items])
        lines = build_lines(request.items, products)
        subtotal = sum((line.line_total for line in lines), Decimal("0"))

        promo = None
        if request.promo_code:
            promo = validate_promo(self.promos.find_by_code(request.promo_code, cursor=cursor), subtotal)

        needs_balance = request.use_wallet or request.payment_method == "wallet"
        balance = self.wallet.get_balance(user_id, cursor=cursor) if needs_balance else Decimal("0")

        quote = calculate_quote(
            lines,
            delivery_mode=request.delivery_mode,
            base_delivery_fee=base_fee,
            is_express=request.is_express,
            promo=promo,
            wallet_balance=balance,
            use_wallet=request.use_wallet or request.payment_method == "wallet",
        )

        if request.payment_method == "wallet" and quote.total > 0:
            raise InsufficientBalanceError("Insufficient wallet balance")
        return quote

    def quote(self, request: CheckoutRequest, user_id: str) -> PriceQuote:
        base_fee = self.store_service.get_config().delivery_fee
        with transaction() as (conn, cursor):
            return self._price(cursor, request, user_id, base_fee)

    def _check_delivery_time(self, request: CheckoutRequest, now: Optional[datetime]) -> None:
        now = self.store_service.local_now(now)

        if request.scheduled_for is not None:
            if request.is_express:
                raise CheckoutError("Express delivery cannot be scheduled")
            at = self.store_service.local_now(request.scheduled_for)
            if at <= now:
                raise CheckoutError("Scheduled time must be in the future")
            if not self.store_service.is_accepting_orders(at):
                raise StoreClosedError("The store is closed at the scheduled time")
            return

        if not self.store_service.is_accepting_orders(now):
            raise StoreClosedError("The store is currently closed")

    def place_order(self, request: CheckoutRequest, user_id: str, now: Optional[datetime] = None) -> Order:
        """
        Place an order for the cart

        Args:
            request: Cart, delivery and payment choices
            user_id: Authenticated customer
            now: Clock override

        Returns:
            The stored order with its items

        Raises:
            StoreClosedError, CheckoutError, InsufficientStockError,
            InsufficientBalanceError, PromoCodeError, PaymentSessionError
        """
        self._check_delivery_time(request, now)
        notes = sanitize_notes(request.notes)
        base_fee = self.store_service.get_config().delivery_fee

        with transaction() as (conn, cursor):
            profile = self.profiles.find_by_id(user_id, cursor=cursor)
            if not profile:
                raise CheckoutError("Profile not found")
            if not profile.get("hostel_block") or not profile.get("room_number"):
                raise CheckoutError("Add your hostel block and room number before ordering")

            quote = self._price(cursor, request, user_id, base_fee)

            transaction_id = None
            method = request.payment_method
            if method == "cod":
                payment_status = "pending"
            else:
                payment_status = "paid"
                if method in ONLINE_PAYMENT_METHODS and quote.total > 0:
                    transaction_id = self.gateway.consume_success_session(
                        cursor, request.payment_session_id, quote.total, user_id
                    )

            for line in quote.lines:
                if not self.products.decrement_stock(cursor, line.product_id, line.quantity):
                    raise InsufficientStockError(f"{line.product_name} just went out of stock")

            if quote.promo_code_id and not self.promos.increment_usage(cursor, quote.promo_code_id):
                raise PromoCodeError("This discount code has reached its usage limit")

            if quote.wallet_amount > 0 and not self.wallet.debit(cursor, user_id, quote.wallet_amount):
                raise InsufficientBalanceError("Insufficient wallet balance")

            if request.delivery_mode == "room":
                address = f"{profile['hostel_block']}, Room {profile['room_number']}"
            else:
                address = f"{profile['hostel_block']}, Common Area"

            order_id = self.orders.create(cursor, {
                "user_id": user_id,
                "status": STATUS_PLACED,
                "payment_method": method,
                "payment_status": payment_status,
                "delivery_mode": request.delivery_mode,
                "delivery_address": address,
                "subtotal": quote.subtotal,
                "delivery_fee": quote.delivery_fee,
                "discount_amount": quote.discount_amount,
                "wallet_amount": quote.wallet_amount,
                "total": quote.total,
                "notes": notes,
                "is_express": request.is_express,
                "scheduled_for": request.scheduled_for,
                "transaction_id": transaction_id,
                "payment_session_id": request.payment_session_id if transaction_id else None,
                "promo_code_id": quote.promo_code_id,
            })
            self.orders.add_items(cursor, order_id, quote.lines)

            if quote.wallet_amount > 0:
                self.wallet.add_transaction(
                    cursor, user_id, quote.wallet_amount, TXN_DEBIT,
                    description=f"Order #{order_id[:8].upper()}", order_id=order_id,
                )

            if transaction_id:
                self.orders.record_payment_transaction(cursor, {
                    "order_id": order_id,
                    "user_id": user_id,
                    "amount": quote.total,
                    "payment_method": method,
                    "payment_status": "completed",
                    "transaction_id": transaction_id,
                    "provider_order_id": request.payment_session_id,
                })

        logger.info(
            f"Order {order_id} placed by {user_id}: total={quote.total} "
            f"method={method} items={len(quote.lines)}"
        )

        self.notifications.notify_order_status(order_id, user_id, STATUS_PLACED)
        return self.orders.find_by_id(order_id)

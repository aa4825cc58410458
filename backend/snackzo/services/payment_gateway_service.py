"""
SnackzoPay Gateway Service

Simulated payment gateway used by checkout and wallet top-ups. A session is
opened for an amount, the customer gets a confirm URL (also rendered as a QR
code) and a countdown, and the test-mode outcome chooser resolves it.

Nothing is ever settled with a real provider: a "success" only means the
session may be consumed once by a checkout or a top-up for the same amount.
"""
import io
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, List, Tuple
from urllib.parse import urlencode, urlparse, urlsplit, urlunsplit, parse_qsl

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from snackzo.core.config import settings
from snackzo.core.errors import (
    NotFoundError, PaymentSessionError, SessionExpiredError, GatewayDisabledError,
)
from snackzo.domain.payment import (
    PaymentSession, PaymentStats,
    SESSION_PENDING, SESSION_SUCCESS, SESSION_FAILED, SESSION_CANCELLED, SESSION_EXPIRED,
    can_transition, normalize_method, generate_transaction_id,
)
from snackzo.domain.ids import is_uuid
from snackzo.repositories.payment_session_repository import PaymentSessionRepository
from snackzo.repositories.store_repository import StoreRepository

logger = logging.getLogger(__name__)

GATEWAY_FEATURE = "snackzopay_gateway"
DISABLE_CONFIRMATION = "Disable"
QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"


# ============================================================================
# URL builders
# ============================================================================

def build_confirm_url(session: PaymentSession, return_url: str = "/") -> str:
    """Page the customer (or the scanned QR code) lands on to approve the payment"""
    query = urlencode({
        "amount": str(session.amount),
        "orderId": session.order_ref or "",
        "sessionId": session.id,
        "returnUrl": return_url,
    })
    return f"{settings.PUBLIC_APP_URL.rstrip('/')}/pay/confirm?{query}"


def build_qr_code_url(confirm_url: str, size: int = 180) -> str:
    query = urlencode({
        "size": f"{size}x{size}",
        "data": confirm_url,
        "format": "png",
        "margin": 8,
    })
    return f"{QR_SERVICE_URL}?{query}"


def is_allowed_return_url(return_url: str) -> bool:
    """Relative paths and the app's own origins only"""
    if not return_url:
        return False
    if return_url.startswith("/") and not return_url.startswith("//"):
        return True

    parsed = urlparse(return_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    origin = f"{parsed.scheme}://{parsed.netloc}"
    allowed = set(settings.get_allowed_origins()) | {settings.PUBLIC_APP_URL.rstrip("/")}
    return origin in allowed


def build_return_url(return_url: Optional[str], status: str, transaction_id: Optional[str] = None) -> str:
    """
    Merchant redirect after the gateway finishes

    Adds status (and transaction_id on success) to the query string.

    Raises:
        PaymentSessionError: return_url points outside the app
    """
    return_url = return_url or "/"
    if not is_allowed_return_url(return_url):
        raise PaymentSessionError("Return URL must be a relative path or an allowed origin")

    parts = urlsplit(return_url)
    params = [(k, v) for k, v in parse_qsl(parts.query) if k not in ("status", "transaction_id")]
    params.append(("status", status))
    if transaction_id:
        params.append(("transaction_id", transaction_id))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))


# ============================================================================
# Service
# ============================================================================

class PaymentGatewayService:
    """
    SnackzoPay session lifecycle and admin operations

    Usage:
        gateway = PaymentGatewayService()
        session = gateway.initiate_session(Decimal("149"), order_ref="ORD-1", user_id=uid)
        gateway.complete_session(session.id, success=True, method="upi")
    """

    def __init__(
        self,
        repository: Optional[PaymentSessionRepository] = None,
        store_repository: Optional[StoreRepository] = None
    ):
        self.repository = repository or PaymentSessionRepository()
        self.store_repository = store_repository or StoreRepository()

    # ------------------------------------------------------------------
    # Gateway switch
    # ------------------------------------------------------------------

    def is_enabled(self) -> bool:
        return self.store_repository.is_feature_enabled(GATEWAY_FEATURE, default=True)

    def set_enabled(self, enabled: bool, confirm_text: Optional[str] = None) -> bool:
        """
        Turn the gateway on or off

        Turning it off needs the admin to type the confirmation word.
        """
        if not enabled and (confirm_text or "").strip() != DISABLE_CONFIRMATION:
            raise PaymentSessionError(f"Type '{DISABLE_CONFIRMATION}' to turn off the gateway")

        self.store_repository.set_feature_enabled(GATEWAY_FEATURE, enabled)
        logger.warning(f"SnackzoPay gateway {'enabled' if enabled else 'disabled'}")
        return enabled

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def initiate_session(
        self,
        amount: Decimal,
        order_ref: Optional[str] = None,
        user_id: Optional[str] = None,
        guest_name: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> PaymentSession:
        """
        Open a pending session that expires after the configured TTL

        Raises:
            PaymentSessionError: amount is not positive
            GatewayDisabledError: the gateway is switched off
        """
        if amount is None or Decimal(str(amount)) <= 0:
            raise PaymentSessionError("Amount must be greater than zero")

        if not self.is_enabled():
            raise GatewayDisabledError("SnackzoPay is currently unavailable")

        now = now or datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=settings.PAYMENT_SESSION_TTL_SECONDS)

        session = self.repository.create(
            amount=Decimal(str(amount)),
            expires_at=expires_at,
            order_ref=order_ref,
            order_id=order_ref if is_uuid(order_ref) else None,
            user_id=user_id,
            guest_name=None if user_id else guest_name,
        )
        logger.info(f"Payment session {session.id} opened for {session.amount} (ref={order_ref})")
        return session

    def get_session(self, session_id: str) -> PaymentSession:
        session = self.repository.find_by_id(session_id)
        if not session:
            raise NotFoundError(f"Payment session {session_id} not found")
        return session

    def complete_session(
        self,
        session_id: str,
        success: bool,
        method: str = "upi",
        now: Optional[datetime] = None
    ) -> PaymentSession:
        """
        Resolve a session with the outcome picked in test mode

        A failed session can be retried. Repeating a success on an already
        successful session returns it unchanged.

        Raises:
            NotFoundError: unknown session
            SessionExpiredError: countdown ran out (the session is marked expired)
            PaymentSessionError: unsupported method or terminal session
        """
        method_type = normalize_method(method)
        session = self.get_session(session_id)

        if session.status == SESSION_SUCCESS and success:
            return session

        target = SESSION_SUCCESS if success else SESSION_FAILED
        if not can_transition(session.status, target):
            raise PaymentSessionError(f"Payment session is already {session.status}")

        if session.is_expired(now):
            self.repository.transition(session_id, SESSION_EXPIRED, [SESSION_PENDING, SESSION_FAILED])
            raise SessionExpiredError("Payment session has expired")

        transaction_id = generate_transaction_id() if success else None
        updated = self.repository.transition(
            session_id,
            target,
            [SESSION_PENDING, SESSION_FAILED],
            payment_method_type=method_type,
            transaction_id=transaction_id,
        )
        if not updated:
            # Someone else resolved it first
            current = self.get_session(session_id)
            if current.status == SESSION_SUCCESS and success:
                return current
            raise PaymentSessionError(f"Payment session is already {current.status}")

        logger.info(f"Payment session {session_id} -> {target} via {method_type}")
        return self.get_session(session_id)

    def cancel_session(self, session_id: str) -> PaymentSession:
        session = self.get_session(session_id)
        if session.status == SESSION_CANCELLED:
            return session
        if not can_transition(session.status, SESSION_CANCELLED):
            raise PaymentSessionError(f"Payment session is already {session.status}")

        if not self.repository.transition(session_id, SESSION_CANCELLED, [SESSION_PENDING, SESSION_FAILED]):
            current = self.get_session(session_id)
            raise PaymentSessionError(f"Payment session is already {current.status}")

        logger.info(f"Payment session {session_id} cancelled")
        return self.get_session(session_id)

    def consume_success_session(
        self,
        cursor,
        session_id: Optional[str],
        amount: Decimal,
        user_id: Optional[str] = None
    ) -> str:
        """
        Use a successful session to pay for something, inside the caller's transaction

        Returns:
            Gateway transaction id

        Raises:
            PaymentSessionError: missing, not successful, wrong amount or already used
        """
        if not session_id:
            raise PaymentSessionError("A completed SnackzoPay payment is required")

        transaction_id = self.repository.consume(cursor, session_id, Decimal(str(amount)), user_id)
        if not transaction_id:
            raise PaymentSessionError(
                "Payment was not completed, does not match the amount or was already used"
            )
        return transaction_id

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def expire_stale_sessions(self, now: Optional[datetime] = None) -> int:
        return self.repository.expire_stale(now or datetime.now(timezone.utc))

    def list_sessions(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Tuple[List[PaymentSession], int]:
        return self.repository.find_all(status=status, search=search, limit=limit, offset=offset)

    def get_stats(self) -> PaymentStats:
        return self.repository.get_stats()

    def export_sessions(self, status: Optional[str] = None, search: Optional[str] = None) -> io.BytesIO:
        """Excel export of the admin transaction list"""
        sessions, _ = self.repository.find_all(status=status, search=search, limit=10000, offset=0)

        wb = Workbook()
        ws = wb.active
        ws.title = "SnackzoPay"

        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True, size=12)
        border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        headers = ["Session", "Order Ref", "Payer", "Amount (INR)", "Status", "Method", "Transaction", "Created"]
        for col_num, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_num, value=header)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal='center', vertical='center')
            cell.border = border

        for row_num, session in enumerate(sessions, 2):
            data = [
                session.id,
                session.order_ref or "",
                session.payer_name,
                float(session.amount),
                session.status,
                session.payment_method_type or "",
                session.transaction_id or "",
                # Excel cannot store tz-aware datetimes
                session.created_at.strftime("%Y-%m-%d %H:%M:%S") if session.created_at else "",
            ]

            for col_num, value in enumerate(data, 1):
                cell = ws.cell(row=row_num, column=col_num, value=value)
                cell.border = border
                cell.alignment = Alignment(horizontal='left', vertical='center')

                if col_num == 4:
                    cell.alignment = Alignment(horizontal='right', vertical='center')
                    cell.number_format = '#,##0.00'

        for column, width in zip("ABCDEFGH", [38, 20, 24, 15, 12, 12, 20, 20]):
            ws.column_dimensions[column].width = width

        ws.freeze_panes = 'A2'

        excel_file = io.BytesIO()
        wb.save(excel_file)
        excel_file.seek(0)

        return excel_file

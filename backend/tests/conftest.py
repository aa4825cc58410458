"""
Pytest fixtures and configuration for Snackzo Backend tests

This file provides shared fixtures that can be used across all test modules.
Settings are read at import time, so test defaults are put in the
environment before anything from snackzo is imported.
"""
import os
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

# Load environment variables for tests
load_dotenv()

os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("PUBLIC_APP_URL", "https://snackzo.test")
os.environ.setdefault("ALLOWED_ORIGINS", "https://snackzo.test,http://localhost:5173")
os.environ.setdefault("STORE_TIMEZONE", "Asia/Kolkata")


@pytest.fixture(scope="session")
def database_url():
    """
    Provides the database URL for integration tests

    Scope: session (created once per test session)
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not configured")
    return url


@pytest.fixture
def mock_db():
    """
    Mocked psycopg2 connection and cursor

    Returns:
        (mock_conn, mock_cursor) with conn.cursor() returning the cursor
    """
    mock_conn = MagicMock()
    mock_cursor = MagicMock()
    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


@pytest.fixture
def now_utc():
    return datetime(2025, 11, 20, 15, 30, tzinfo=timezone.utc)


@pytest.fixture
def sample_product_row():
    """
    Provides a products row as returned by RealDictCursor
    """
    return {
        "id": "11111111-1111-1111-1111-111111111111",
        "name": "Maggi Masala",
        "description": "2-minute noodles",
        "price": Decimal("25.00"),
        "stock": 40,
        "is_available": True,
        "category_id": "cat-1",
        "image_url": None,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "category_name": "Noodles",
    }


@pytest.fixture
def sample_session_row(now_utc):
    """
    Provides a payment_sessions row as returned by RealDictCursor
    """
    return {
        "id": "22222222-2222-2222-2222-222222222222",
        "order_ref": "ORD-1700000000-42",
        "order_id": None,
        "amount": Decimal("149.00"),
        "status": "pending",
        "payment_method_type": None,
        "transaction_id": None,
        "user_id": "user-1",
        "guest_name": None,
        "expires_at": now_utc + timedelta(minutes=10),
        "consumed_at": None,
        "created_at": now_utc,
        "updated_at": now_utc,
        "customer_name": "Asha",
    }


@pytest.fixture
def sample_order_row():
    """
    Provides an orders row (with profile join) as returned by RealDictCursor
    """
    return {
        "id": "33333333-3333-3333-3333-333333333333",
        "user_id": "user-1",
        "status": "placed",
        "payment_method": "upi",
        "payment_status": "paid",
        "delivery_mode": "room",
        "delivery_address": "Block A, Room 101",
        "subtotal": Decimal("100.00"),
        "delivery_fee": Decimal("10.00"),
        "discount_amount": Decimal("0"),
        "wallet_amount": Decimal("0"),
        "total": Decimal("110.00"),
        "notes": None,
        "is_express": False,
        "scheduled_for": None,
        "runner_id": None,
        "transaction_id": "pay_ABCDEFGHIJKLMN",
        "payment_session_id": "22222222-2222-2222-2222-222222222222",
        "promo_code_id": None,
        "created_at": datetime(2025, 11, 20, 15, 0, tzinfo=timezone.utc),
        "updated_at": None,
        "delivered_at": None,
        "customer_name": "Asha",
        "customer_phone": "9876543210",
    }

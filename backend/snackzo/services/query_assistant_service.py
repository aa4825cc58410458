"""
Admin Query Assistant

Turns short natural-language requests ("low stock products", "find user
with phone 9876543210") into SQL for the admin database console, and runs
read-only queries on behalf of admins.

This is a keyword/regex dispatcher, not a parser: the first matching rule
wins, in the order they appear in generate_query. Table names only ever come
from TABLE_KEYWORDS; values lifted from the user's text are returned as bound
parameters.

Features:
- generate_query(): text -> QuerySuggestion
- run_query(): single SELECT/WITH in a READ ONLY transaction with a timeout
- TEMPLATES: one-click prompts for the console
"""
import logging
import re
import time
from typing import List, Dict, Any, Optional, Sequence

from pydantic import BaseModel, Field

from snackzo.core.config import settings
from snackzo.core.database import get_db_connection_dict_with_retry
from snackzo.core.errors import QueryRejectedError

logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

# Keyword -> table, checked in this order (substring match)
TABLE_KEYWORDS = [
    ("order", "orders"), ("orders", "orders"),
    ("product", "products"), ("products", "products"), ("item", "products"), ("items", "products"),
    ("user", "profiles"), ("users", "profiles"), ("customer", "profiles"), ("customers", "profiles"),
    ("profile", "profiles"), ("profiles", "profiles"), ("member", "profiles"),
    ("category", "categories"), ("categories", "categories"),
    ("runner", "runners"), ("runners", "runners"), ("delivery", "runners"), ("driver", "runners"),
    ("review", "reviews"), ("reviews", "reviews"), ("rating", "reviews"), ("ratings", "reviews"),
    ("feedback", "reviews"),
    ("coupon", "promo_codes"), ("coupons", "promo_codes"), ("discount", "promo_codes"),
    ("promo", "promo_codes"),
    ("notification", "notifications"), ("notifications", "notifications"), ("alert", "notifications"),
    ("session", "active_sessions"), ("sessions", "active_sessions"), ("device", "active_sessions"),
    ("feature", "feature_toggles"), ("features", "feature_toggles"), ("toggle", "feature_toggles"),
    ("payment", "payment_sessions"), ("payments", "payment_sessions"),
    ("wallet", "wallet_transactions"),
]
DEFAULT_TABLE = "profiles"
DEFAULT_LIMIT = 10

# Words people use for order states -> stored status
STATUS_WORDS = {
    "pending": "placed",
    "placed": "placed",
    "processing": "placed",
    "packing": "packed",
    "packed": "packed",
    "delivering": "out_for_delivery",
    "delivered": "delivered",
    "completed": "delivered",
    "cancelled": "cancelled",
}

FALLBACK_RESPONSE = (
    "**I need more context**\n\nTry:\n"
    "- \"Show all emails\"\n"
    "- \"Find user with phone 9876543210\"\n"
    "- \"Today's orders\"\n"
    "- \"Low stock products\"\n"
    "- \"Count total users\"\n"
    "- \"Revenue this week\""
)

TEMPLATES = [
    {"name": "All Emails", "prompt": "Show all emails"},
    {"name": "Today's Orders", "prompt": "Today's orders"},
    {"name": "Low Stock", "prompt": "Low stock products"},
    {"name": "Revenue", "prompt": "Today's revenue"},
    {"name": "Top Products", "prompt": "Top selling products"},
    {"name": "User Count", "prompt": "Count total users"},
]

FORBIDDEN_KEYWORDS = re.compile(
    r"\b(insert|update|delete|drop|alter|create|truncate|grant|revoke|copy|merge|call|"
    r"vacuum|reindex|cluster|lock|listen|notify|prepare|execute|into)\b",
    re.IGNORECASE,
)

EMAIL_RE = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
PHONE_RE = re.compile(r"\d{10,}")
NAME_RE = re.compile(r"(?:named?|called?|name is|name =)\s+['\"]?(\w+)['\"]?", re.IGNORECASE)
ID_RE = re.compile(r"[a-f0-9-]{36}|[a-f0-9]{32}", re.IGNORECASE)


class QuerySuggestion(BaseModel):
    """Assistant reply: explanation plus (optionally) a parameterized query"""
    response: str
    query: Optional[str] = None
    params: List[Any] = Field(default_factory=list)
    confidence: int = 0
    table: Optional[str] = None


def detect_table(text: str) -> str:
    lower = text.lower()
    for keyword, table in TABLE_KEYWORDS:
        if keyword in lower:
            return table
    return DEFAULT_TABLE


def _has(pattern: str, text: str) -> bool:
    return re.search(pattern, text) is not None


def generate_query(text: str) -> QuerySuggestion:
    """
    Map an admin's request onto a SQL query

    Args:
        text: Free text typed in the console

    Returns:
        QuerySuggestion. query is None (confidence 0) when nothing matched.
    """
    lower = (text or "").lower().strip()
    words = lower.split()
    table = detect_table(lower)

    number = re.search(r"\d+", lower)
    limit = int(number.group(0)) if number else DEFAULT_LIMIT
    limit = max(1, min(limit, settings.QUERY_MAX_ROWS))

    def suggest(response: str, query: str, confidence: int, params: Optional[list] = None, on: Optional[str] = None):
        return QuerySuggestion(
            response=response, query=query, params=params or [],
            confidence=confidence, table=on or table,
        )

    # Field lookups (email, phone, name, id)
    if _has(r"email|mail|e-mail", lower):
        if _has(r"where|find|search|get|show|with", lower):
            email = EMAIL_RE.search(lower)
            if email:
                return suggest("**Finding user by email**",
                               "SELECT * FROM profiles WHERE email = %s", 98, [email.group(0)], "profiles")
            return suggest("**All emails in database**",
                           "SELECT id, full_name, email, phone, created_at FROM profiles "
                           "WHERE email IS NOT NULL ORDER BY created_at DESC LIMIT 50", 95, on="profiles")
        return suggest("**Email addresses**",
                       "SELECT id, full_name, email FROM profiles ORDER BY created_at DESC LIMIT 50", 94, on="profiles")

    if _has(r"phone|mobile|contact|number", lower):
        if _has(r"where|find|search|get|with", lower):
            phone = PHONE_RE.search(lower)
            if phone:
                return suggest("**Finding user by phone**",
                               "SELECT * FROM profiles WHERE phone LIKE %s", 97, [f"%{phone.group(0)}%"], "profiles")
        return suggest("**Phone numbers**",
                       "SELECT id, full_name, phone, email FROM profiles "
                       "WHERE phone IS NOT NULL ORDER BY created_at DESC LIMIT 50", 94, on="profiles")

    if _has(r"name|full_name|fullname", lower):
        name = NAME_RE.search(lower)
        if name:
            return suggest("**Finding user by name**",
                           "SELECT * FROM profiles WHERE full_name ILIKE %s", 96, [f"%{name.group(1)}%"], "profiles")
        return suggest("**User names**",
                       "SELECT id, full_name, email, phone FROM profiles ORDER BY full_name LIMIT 50", 93, on="profiles")

    if _has(r"\b(id|uuid)\b", lower):
        found = ID_RE.search(lower)
        if found:
            return suggest("**Finding by ID**", f"SELECT * FROM {table} WHERE id = %s", 99, [found.group(0)])

    # Counts and listings
    if _has(r"how many|count|total|number of", lower):
        return suggest(f"**Counting {table}**", f"SELECT COUNT(*) as total FROM {table}", 96)

    if _has(r"show all|list all|get all|fetch all|display all|select \*|all records|everything", lower):
        return suggest(f"**All {table}**", f"SELECT * FROM {table} ORDER BY created_at DESC LIMIT 50", 95)

    if _has(r"recent|latest|newest|last|first", lower):
        direction = "ASC" if _has(r"first|oldest", lower) else "DESC"
        return suggest(f"**Recent {table}**",
                       f"SELECT * FROM {table} ORDER BY created_at {direction} LIMIT %s", 94, [limit])

    # Time windows
    if _has(r"today|today's", lower):
        return suggest(f"**Today's {table}**",
                       f"SELECT * FROM {table} WHERE created_at >= CURRENT_DATE ORDER BY created_at DESC", 96)
    if _has(r"yesterday", lower):
        return suggest(f"**Yesterday's {table}**",
                       f"SELECT * FROM {table} WHERE created_at >= CURRENT_DATE - INTERVAL '1 day' "
                       f"AND created_at < CURRENT_DATE ORDER BY created_at", 95)
    if _has(r"this week|weekly|last 7|past week", lower):
        return suggest(f"**This week's {table}**",
                       f"SELECT * FROM {table} WHERE created_at >= CURRENT_DATE - INTERVAL '7 days' "
                       f"ORDER BY created_at DESC", 94)
    if _has(r"this month|monthly|last 30", lower):
        return suggest(f"**This month's {table}**",
                       f"SELECT * FROM {table} WHERE created_at >= CURRENT_DATE - INTERVAL '30 days' "
                       f"ORDER BY created_at DESC", 93)
    if _has(r"this year|yearly", lower):
        return suggest(f"**This year's {table}**",
                       f"SELECT * FROM {table} WHERE created_at >= DATE_TRUNC('year', CURRENT_DATE) "
                       f"ORDER BY created_at DESC", 92)

    # Order status
    status_word = re.search(r"pending|placed|packing|packed|delivering|delivered|cancelled|completed|processing", lower)
    if status_word:
        status = STATUS_WORDS[status_word.group(0)]
        return suggest(f"**{status} orders**",
                       "SELECT * FROM orders WHERE status = %s ORDER BY created_at DESC", 97, [status], "orders")

    # Revenue
    if _has(r"revenue|sales|earnings|income|money|profit", lower):
        if _has(r"today", lower):
            return suggest("**Today's revenue**",
                           "SELECT SUM(total) as revenue, COUNT(*) as orders FROM orders "
                           "WHERE created_at >= CURRENT_DATE AND status != 'cancelled'", 96, on="orders")
        if _has(r"week", lower):
            return suggest("**Weekly revenue**",
                           "SELECT DATE(created_at) as date, SUM(total) as revenue, COUNT(*) as orders FROM orders "
                           "WHERE created_at >= CURRENT_DATE - INTERVAL '7 days' "
                           "GROUP BY DATE(created_at) ORDER BY date", 95, on="orders")
        return suggest("**Total revenue**",
                       "SELECT SUM(total) as total_revenue, COUNT(*) as total_orders, AVG(total) as avg_order "
                       "FROM orders WHERE status != 'cancelled'", 94, on="orders")

    # Rankings
    if _has(r"top|best|popular|most|highest|maximum", lower):
        if _has(r"product|selling|ordered", lower):
            return suggest("**Top products**",
                           "SELECT product_name, COUNT(*) as orders, SUM(quantity) as qty FROM order_items "
                           "GROUP BY product_name ORDER BY orders DESC LIMIT %s", 94, [limit], "order_items")
        if _has(r"customer|user|buyer", lower):
            return suggest("**Top customers**",
                           "SELECT user_id, COUNT(*) as orders, SUM(total) as spent FROM orders "
                           "GROUP BY user_id ORDER BY spent DESC LIMIT %s", 93, [limit], "orders")

    # Stock
    if _has(r"low stock|running low|almost out|stock alert", lower):
        return suggest("**Low stock alert**",
                       "SELECT name, stock, price FROM products WHERE stock < 10 AND is_available = true "
                       "ORDER BY stock ASC", 96, on="products")
    if _has(r"out of stock|no stock|zero stock|unavailable", lower):
        return suggest("**Out of stock**",
                       "SELECT name, price FROM products WHERE stock = 0 OR is_available = false", 97, on="products")

    # Activity
    if _has(r"active|online|logged in|current", lower):
        if _has(r"user|session|device", lower):
            return suggest("**Active sessions**",
                           "SELECT device_info, ip_address, location, last_active FROM active_sessions "
                           "WHERE last_active >= NOW() - INTERVAL '30 minutes' ORDER BY last_active DESC",
                           93, on="active_sessions")
        if _has(r"runner", lower):
            return suggest("**Active runners**",
                           "SELECT id, name, phone FROM runners WHERE is_active = true", 95, on="runners")

    # Averages
    if _has(r"average|avg|mean", lower):
        if _has(r"rating|review", lower):
            return suggest("**Average rating**",
                           "SELECT ROUND(AVG(rating)::numeric, 2) as avg_rating, COUNT(*) as reviews FROM reviews",
                           94, on="reviews")
        if _has(r"order|price|value", lower):
            return suggest("**Average order**",
                           "SELECT ROUND(AVG(total)::numeric, 2) as avg_order FROM orders WHERE status != 'cancelled'",
                           93, on="orders")

    # Breakdowns
    if _has(r"group|breakdown|by status|by category|distribution|statistics|stats", lower):
        if _has(r"status", lower) or table == "orders":
            return suggest("**Status breakdown**",
                           "SELECT status, COUNT(*) as count, SUM(total) as value FROM orders "
                           "GROUP BY status ORDER BY count DESC", 95, on="orders")
        if _has(r"category", lower):
            return suggest("**Category breakdown**",
                           "SELECT category_id, COUNT(*) as products FROM products "
                           "GROUP BY category_id ORDER BY products DESC", 93, on="products")

    if _has(r"search|find|where|look for|locate", lower):
        return suggest(f"**Search {table}**\n\nModify the query with your search term:",
                       f"SELECT * FROM {table} WHERE id IS NOT NULL ORDER BY created_at DESC LIMIT 20", 80)

    if _has(r"runner|delivery|driver", lower):
        if _has(r"performance|stats", lower):
            return suggest("**Runner stats**",
                           "SELECT r.name, r.phone, COUNT(o.id) as deliveries FROM runners r "
                           "LEFT JOIN orders o ON r.id = o.runner_id GROUP BY r.id ORDER BY deliveries DESC",
                           93, on="runners")
        return suggest("**All runners**",
                       "SELECT id, name, phone, is_active FROM runners ORDER BY is_active DESC, name", 92, on="runners")

    if _has(r"review|feedback|rating", lower):
        if _has(r"bad|low|negative|poor|1|2", lower):
            return suggest("**Low ratings**",
                           "SELECT rating, comment, created_at FROM reviews WHERE rating <= 2 ORDER BY created_at DESC",
                           94, on="reviews")
        if _has(r"good|high|positive|great|5|4", lower):
            return suggest("**Good reviews**",
                           "SELECT rating, comment, created_at FROM reviews WHERE rating >= 4 ORDER BY created_at DESC",
                           94, on="reviews")
        return suggest("**All reviews**",
                       "SELECT rating, comment, created_at FROM reviews ORDER BY created_at DESC LIMIT 20",
                       92, on="reviews")

    if _has(r"feature|toggle|setting|config|enabled|disabled", lower):
        if _has(r"enabled|on|active", lower):
            return suggest("**Enabled features**",
                           "SELECT feature_name, display_name FROM feature_toggles WHERE is_enabled = true",
                           95, on="feature_toggles")
        if _has(r"disabled|off", lower):
            return suggest("**Disabled features**",
                           "SELECT feature_name, display_name FROM feature_toggles WHERE is_enabled = false",
                           95, on="feature_toggles")
        return suggest("**All features**",
                       "SELECT feature_name, display_name, is_enabled FROM feature_toggles ORDER BY feature_name",
                       94, on="feature_toggles")

    # Bare table names ("orders", "show products")
    if len(words) <= 3 and any(keyword in lower for keyword, _ in TABLE_KEYWORDS):
        return suggest(f"**{table} data**", f"SELECT * FROM {table} ORDER BY created_at DESC LIMIT 50", 88)

    return QuerySuggestion(response=FALLBACK_RESPONSE, query=None, confidence=0)


def validate_read_only(sql: str) -> str:
    """
    Check that sql is a single read-only statement

    Returns:
        The statement without a trailing semicolon

    Raises:
        QueryRejectedError
    """
    statement = (sql or "").strip().rstrip(";").strip()
    if not statement:
        raise QueryRejectedError("Query is empty")
    if ";" in statement:
        raise QueryRejectedError("Only a single statement is allowed")
    if "--" in statement or "/*" in statement:
        raise QueryRejectedError("Comments are not allowed in console queries")
    if not re.match(r"^(select|with)\b", statement, re.IGNORECASE):
        raise QueryRejectedError("Only SELECT queries can be run from the console")

    forbidden = FORBIDDEN_KEYWORDS.search(statement)
    if forbidden:
        raise QueryRejectedError(f"'{forbidden.group(0).upper()}' is not allowed in console queries")
    return statement


class QueryAssistantService:
    """
    Query generation plus guarded execution for the admin console

    Usage:
        assistant = get_query_assistant()
        suggestion = assistant.generate("low stock products")
        result = assistant.run_query(suggestion.query, suggestion.params)
    """

    def __init__(self, max_rows: Optional[int] = None, timeout_ms: Optional[int] = None):
        self.max_rows = max_rows or settings.QUERY_MAX_ROWS
        self.timeout_ms = timeout_ms or settings.QUERY_TIMEOUT_MS

    def generate(self, text: str) -> QuerySuggestion:
        suggestion = generate_query(text)
        logger.info(f"Query assistant: '{text[:80]}' -> table={suggestion.table} confidence={suggestion.confidence}")
        return suggestion

    def templates(self) -> List[Dict[str, str]]:
        return TEMPLATES

    def run_query(self, sql: str, params: Optional[Sequence[Any]] = None, max_rows: Optional[int] = None) -> Dict[str, Any]:
        """
        Execute a console query read-only

        Args:
            sql: Single SELECT/WITH statement (%s placeholders for params)
            params: Bound parameters
            max_rows: Row cap (defaults to QUERY_MAX_ROWS)

        Returns:
            {"rows": [...], "row_count": n, "truncated": bool, "elapsed_ms": int}
        """
        statement = validate_read_only(sql)
        limit = min(max_rows or self.max_rows, self.max_rows)

        conn = get_db_connection_dict_with_retry()
        cursor = None

        try:
            # The retry check opened a transaction; end it before switching mode
            conn.rollback()
            conn.set_session(readonly=True)
            cursor = conn.cursor()
            cursor.execute("SET LOCAL statement_timeout = %s", (int(self.timeout_ms),))

            start = time.monotonic()
            cursor.execute(statement, list(params) if params else None)
            rows = cursor.fetchmany(limit + 1)
            elapsed_ms = int((time.monotonic() - start) * 1000)

            truncated = len(rows) > limit
            rows = [dict(row) for row in rows[:limit]]

            logger.info(f"Console query returned {len(rows)} rows in {elapsed_ms}ms")
            return {
                "rows": rows,
                "row_count": len(rows),
                "truncated": truncated,
                "elapsed_ms": elapsed_ms,
            }

        finally:
            conn.rollback()
            if cursor is not None:
                cursor.close()
            conn.close()


# ============================================================================
# SINGLETON
# ============================================================================

_service_instance: Optional[QueryAssistantService] = None


def get_query_assistant() -> QueryAssistantService:
    """
    Get the singleton query assistant instance.

    Returns:
        QueryAssistantService instance
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = QueryAssistantService()
    return _service_instance

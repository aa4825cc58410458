"""
PostgreSQL (Supabase) connection helpers

Two ways of talking to the hosted backend live here:
- psycopg2 direct connections (all table reads/writes go through these)
- Supabase client (edge functions)

Connections are short-lived: repositories open one per call and close it
in a finally block. Multi-step writes share a single connection and commit
or roll back as a unit.
"""
import logging
import time
from contextlib import contextmanager
from functools import lru_cache

import psycopg2
from psycopg2.extras import RealDictCursor
from supabase import Client, create_client

from .config import settings

logger = logging.getLogger(__name__)

CONNECTION_TIMEOUT = 10


# ============================================================================
# psycopg2 Direct Connections
# ============================================================================

def get_db_connection_dict_with_retry(max_retries=3, retry_delay=1.0):
    """
    Get a psycopg2 connection with RealDictCursor and automatic retry

    Handles intermittent Supabase pooler failures (SSL drops, timeouts) by
    retrying with exponential backoff.

    Args:
        max_retries: Maximum number of connection attempts (default: 3)
        retry_delay: Initial delay between retries in seconds (default: 1.0)

    Returns:
        psycopg2 connection with RealDictCursor

    Raises:
        psycopg2.OperationalError: If all retry attempts fail

    Example:
        conn = get_db_connection_dict_with_retry()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM products WHERE is_available")
        rows = cursor.fetchall()  # list of dicts
        cursor.close()
        conn.close()
    """
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")

    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(
                database_url,
                cursor_factory=RealDictCursor,
                connect_timeout=CONNECTION_TIMEOUT,
            )

            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            error_msg = str(e)

            if "SSL connection has been closed unexpectedly" in error_msg:
                logger.warning(f"SSL connection error on attempt {attempt}/{max_retries}: {error_msg}")
            else:
                logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {error_msg}")

            if attempt < max_retries:
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise last_error

        except Exception as e:
            logger.error(f"Unexpected error during connection: {e}")
            raise

    raise last_error if last_error else Exception("Connection failed after all retries")


@contextmanager
def transaction():
    """
    Context manager yielding (conn, cursor) for a multi-statement write.

    Commits on normal exit, rolls back on any exception and always closes.

    Usage:
        with transaction() as (conn, cursor):
            cursor.execute("UPDATE products SET stock = stock - 1 WHERE id = %s", (pid,))
            cursor.execute("INSERT INTO orders ...")
    """
    conn = get_db_connection_dict_with_retry()
    cursor = conn.cursor()
    try:
        yield conn, cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
        conn.close()


# ============================================================================
# Supabase Client (edge functions)
# ============================================================================

@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Lazily build the service-role Supabase client.

    Only edge-function calls go through it; table access uses psycopg2.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise Exception("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)

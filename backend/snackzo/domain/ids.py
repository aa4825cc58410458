"""
Row identifiers

Every table keys on a Postgres uuid. Ids that arrive from URLs or request
bodies are checked here before they reach a query, since Postgres rejects a
malformed uuid with a DataError instead of matching nothing.
"""
import re
from typing import Optional

UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(UUID_RE.match(str(value)))

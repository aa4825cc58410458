"""
Store Status Service

Decides whether the storefront is open right now and how long until that
changes. Hours are wall-clock times in the store's time zone; a closing time
earlier than the opening time is an overnight window (20:00 to 03:00 is the
default).

Evaluation order:
1. Master switch off -> "Temporarily Closed"
2. Otherwise the operating hours window decides. Equal open and close
   times make an empty day window, so the store stays closed
"""
import logging
from datetime import datetime, timedelta, time
from typing import Optional
from zoneinfo import ZoneInfo

from snackzo.core.config import settings
from snackzo.domain.store import (
    StoreConfig, StoreConfigUpdate, StoreStatus,
    DEFAULT_OPEN_TIME, DEFAULT_CLOSE_TIME,
)
from snackzo.repositories.store_repository import StoreRepository

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: Optional[str], default: str) -> time:
    """
    Parse "HH:MM" (or Postgres "HH:MM:SS") into a time

    Empty values fall back to default. Anything else that is not a valid
    24h clock time raises ValueError.
    """
    raw = (value or "").strip() or default
    parts = raw.split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time '{raw}', expected HH:MM")

    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time '{raw}', expected HH:MM")
    return time(hours, minutes)


def _minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def _next_occurrence(now: datetime, target: time) -> datetime:
    """First moment strictly after now whose wall clock reads target"""
    candidate = now.replace(hour=target.hour, minute=target.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def _format_duration(minutes: int) -> str:
    hours, mins = divmod(max(0, minutes), 60)
    return f"{hours}h {mins}m"


def evaluate_store_status(config: StoreConfig, now: datetime) -> StoreStatus:
    """
    Evaluate the store status at a given local time

    Args:
        config: Store configuration
        now: Current time, already in the store time zone

    Returns:
        StoreStatus with the storefront text and the next change
    """
    open_at = parse_hhmm(config.operating_hours_open, DEFAULT_OPEN_TIME)
    close_at = parse_hhmm(config.operating_hours_close, DEFAULT_CLOSE_TIME)

    base = {
        "evaluated_at": now,
        "operating_hours_open": open_at.strftime("%H:%M"),
        "operating_hours_close": close_at.strftime("%H:%M"),
    }

    if config.is_open is False:
        return StoreStatus(is_open=False, status_text="Temporarily Closed", reason="manual", **base)

    open_min = _minutes(open_at)
    close_min = _minutes(close_at)
    now_min = now.hour * 60 + now.minute

    if close_min < open_min:
        # Overnight window
        is_open = now_min >= open_min or now_min < close_min
    else:
        is_open = open_min <= now_min < close_min

    next_change = _next_occurrence(now, close_at if is_open else open_at)
    minutes_left = int((next_change - now).total_seconds() // 60)

    if is_open:
        status_text = f"Closes in {_format_duration(minutes_left)}"
    else:
        status_text = f"Opens in {_format_duration(minutes_left)}"

    return StoreStatus(
        is_open=is_open,
        status_text=status_text,
        reason="schedule",
        next_change_at=next_change,
        minutes_until_change=minutes_left,
        **base,
    )


class StoreStatusService:
    """
    Store status and settings backed by store_config

    Usage:
        service = StoreStatusService()
        status = service.get_status()
        if not service.is_accepting_orders():
            ...
    """

    def __init__(self, repository: Optional[StoreRepository] = None):
        self.repository = repository or StoreRepository()
        self.tz = ZoneInfo(settings.STORE_TIMEZONE)

    def get_config(self) -> StoreConfig:
        """Stored configuration, or defaults with the master switch on"""
        config = self.repository.get_config()
        if config is None:
            logger.warning("store_config is empty, using default hours")
            return StoreConfig()
        return config

    def local_now(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.now(self.tz)
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def get_status(self, now: Optional[datetime] = None) -> StoreStatus:
        return evaluate_store_status(self.get_config(), self.local_now(now))

    def is_accepting_orders(self, at: Optional[datetime] = None) -> bool:
        return self.get_status(at).is_open

    def update_settings(self, update: StoreConfigUpdate) -> StoreConfig:
        """
        Validate and store admin changes to the store settings

        Raises:
            ValueError: malformed operating hours, or open equal to close
        """
        if update.operating_hours_open is not None:
            update.operating_hours_open = parse_hhmm(update.operating_hours_open, DEFAULT_OPEN_TIME).strftime("%H:%M")
        if update.operating_hours_close is not None:
            update.operating_hours_close = parse_hhmm(update.operating_hours_close, DEFAULT_CLOSE_TIME).strftime("%H:%M")
        if update.operating_hours_open and update.operating_hours_open == update.operating_hours_close:
            raise ValueError("Opening and closing times must differ")

        config = self.repository.update_config(update)
        logger.info(
            f"Store settings saved: open={config.is_open} "
            f"hours={config.operating_hours_open}-{config.operating_hours_close}"
        )
        return config

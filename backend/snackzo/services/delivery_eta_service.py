"""
Delivery ETA Service

Estimates minutes until delivery from a handful of factors:

    base            15 min (express 10)
    queue           +4 min per order the runner still carries
    traffic         low 0 / medium 2 / high 5, +3 more for high in the evening
    distance        +1 min per 0.5 km
    express bonus   -2 min
    runner          faster-than-base runners shave 30% of the difference

The result never drops below 10 minutes (8 for express).
"""
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict

from snackzo.domain.delivery import ETAFactors, ETAResult
from snackzo.repositories.runner_repository import RunnerRepository

logger = logging.getLogger(__name__)

DEFAULT_DISTANCE_KM = 0.5
QUEUE_MINUTES_PER_ORDER = 4
TRAFFIC_DELAY = {"low": 0, "medium": 2, "high": 5}
EVENING_RUSH_EXTRA = 3


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def time_of_day(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def traffic_level(hour: int) -> str:
    """Simulated traffic: peaks 8-10 and 17-20, moderate during the day"""
    if 8 <= hour < 10 or 17 <= hour < 20:
        return "high"
    if 10 <= hour < 17:
        return "medium"
    return "low"


def traffic_delay(traffic: str, period: str) -> int:
    if period == "evening" and traffic == "high":
        return TRAFFIC_DELAY["high"] + EVENING_RUSH_EXTRA
    return TRAFFIC_DELAY[traffic]


def distance_delay(distance_km: float) -> int:
    return _round_half_up(distance_km * 2)


def confidence_level(runner_id: Optional[str], queue: Optional[int], traffic: Optional[str]) -> str:
    score = 0
    if runner_id:
        score += 2
    if queue is not None and queue <= 1:
        score += 1
    if traffic == "low":
        score += 1

    if score >= 3:
        return "high"
    if score >= 2:
        return "medium"
    return "low"


def average_delivery_minutes(windows: List[Dict[str, datetime]]) -> Optional[int]:
    """Mean of created->delivered durations, ignoring anything outside (0, 60) minutes"""
    durations = []
    for window in windows:
        created, delivered = window.get("created_at"), window.get("delivered_at")
        if not created or not delivered:
            continue
        minutes = (delivered - created).total_seconds() / 60
        if 0 < minutes < 60:
            durations.append(minutes)

    if not durations:
        return None
    return _round_half_up(sum(durations) / len(durations))


def calculate_eta(factors: ETAFactors, now: datetime) -> ETAResult:
    """
    Pure ETA calculation

    Missing queue defaults to 0, missing distance to 0.5 km, missing time of
    day and traffic are derived from now.hour.
    """
    base_time = 10 if factors.is_express else 15

    period = factors.time_of_day or time_of_day(now.hour)
    queue = factors.order_queue if factors.order_queue is not None else 0
    distance = factors.distance_km if factors.distance_km is not None else DEFAULT_DISTANCE_KM
    traffic = factors.traffic_level or traffic_level(now.hour)

    queue_delay = queue * QUEUE_MINUTES_PER_ORDER
    t_delay = traffic_delay(traffic, period)
    d_delay = distance_delay(distance)
    express_bonus = -2 if factors.is_express else 0

    runner_adjustment = 0.0
    if factors.runner_id and factors.runner_avg_minutes is not None:
        if factors.runner_avg_minutes < base_time:
            runner_adjustment = -(base_time - factors.runner_avg_minutes) * 0.3

    minimum = 8 if factors.is_express else 10
    total = max(
        minimum,
        _round_half_up(base_time + queue_delay + t_delay + d_delay + express_bonus + runner_adjustment),
    )

    return ETAResult(
        estimated_minutes=total,
        estimated_seconds=total * 60,
        estimated_time=now + timedelta(minutes=total),
        confidence=confidence_level(factors.runner_id, queue, traffic),
        factors={
            "base_time": base_time,
            "queue_delay": queue_delay,
            "traffic_delay": t_delay,
            "distance_delay": d_delay,
            "express_bonus": express_bonus,
        },
    )


def format_eta(minutes: int) -> str:
    if minutes < 1:
        return "Less than 1 minute"
    if minutes < 60:
        return f"{minutes} min"
    return f"{minutes // 60}h {minutes % 60}m"


def countdown_seconds(estimated_time: datetime, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return max(0, int((estimated_time - now).total_seconds()))


class DeliveryETAService:
    """Fills ETA factors from the database, then calculates"""

    def __init__(self, repository: Optional[RunnerRepository] = None):
        self.repository = repository or RunnerRepository()

    def estimate(self, factors: ETAFactors, now: Optional[datetime] = None) -> ETAResult:
        now = now or datetime.now(timezone.utc)
        filled = factors.model_copy()

        if filled.order_queue is None:
            filled.order_queue = self.repository.count_queue(filled.runner_id) if filled.runner_id else 0

        if filled.distance_km is None:
            distance = self.repository.get_distance_km(filled.order_id) if filled.order_id else None
            filled.distance_km = distance or DEFAULT_DISTANCE_KM

        if filled.runner_id and filled.runner_avg_minutes is None:
            filled.runner_avg_minutes = average_delivery_minutes(
                self.repository.recent_delivery_windows(filled.runner_id)
            )

        return calculate_eta(filled, now)

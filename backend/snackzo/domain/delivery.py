"""
Delivery ETA Domain Models
"""
from pydantic import BaseModel
from typing import Optional, Literal, Dict
from datetime import datetime


TrafficLevel = Literal["low", "medium", "high"]
Confidence = Literal["high", "medium", "low"]


class ETAFactors(BaseModel):
    """
    Inputs of an ETA estimate

    Fields left as None are looked up (queue, distance, runner average) or
    derived from the clock (time of day, traffic).
    """

    runner_id: Optional[str] = None
    order_id: Optional[str] = None
    is_express: bool = False
    time_of_day: Optional[str] = None
    order_queue: Optional[int] = None
    distance_km: Optional[float] = None
    traffic_level: Optional[TrafficLevel] = None
    runner_avg_minutes: Optional[int] = None


class ETAResult(BaseModel):
    estimated_minutes: int
    estimated_seconds: int
    estimated_time: datetime
    confidence: Confidence
    factors: Dict[str, float]

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["estimated_time"] = self.estimated_time.isoformat()
        return data

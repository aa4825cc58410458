"""
Store Domain Models

Store configuration (master switch, operating hours, fees) and the
evaluated open/closed status shown on the storefront.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from decimal import Decimal


DEFAULT_OPEN_TIME = "20:00"
DEFAULT_CLOSE_TIME = "03:00"
DEFAULT_DELIVERY_FEE = Decimal("10")


class StoreConfig(BaseModel):
    """
    Store configuration - single row of the store_config table

    Fields:
        is_open: Master switch. Only False closes the store regardless of hours
        operating_hours_open: Opening time "HH:MM" (store local time)
        operating_hours_close: Closing time "HH:MM"; earlier than open means overnight
        delivery_fee: Fee charged for room delivery
        announcement: Optional banner text
    """

    id: Optional[str] = Field(None, description="Row ID")
    is_open: Optional[bool] = Field(True, description="Master switch; NULL follows the hours")
    operating_hours_open: Optional[str] = Field(DEFAULT_OPEN_TIME, description="Opening time HH:MM")
    operating_hours_close: Optional[str] = Field(DEFAULT_CLOSE_TIME, description="Closing time HH:MM")
    delivery_fee: Decimal = Field(DEFAULT_DELIVERY_FEE, description="Room delivery fee", ge=0)
    announcement: Optional[str] = Field(None, description="Storefront announcement")
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["delivery_fee"] = float(self.delivery_fee)
        if self.updated_at:
            data["updated_at"] = self.updated_at.isoformat()
        return data


class StoreConfigUpdate(BaseModel):
    """Schema for admin updates to the store configuration"""
    is_open: Optional[bool] = None
    operating_hours_open: Optional[str] = None
    operating_hours_close: Optional[str] = None
    delivery_fee: Optional[Decimal] = Field(None, ge=0)
    announcement: Optional[str] = Field(None, max_length=500)


class StoreStatus(BaseModel):
    """
    Evaluated store status at a point in time

    reason is one of:
        manual    - master switch is off
        schedule  - decided by the operating hours window
    """

    is_open: bool
    status_text: str
    reason: str
    evaluated_at: datetime
    next_change_at: Optional[datetime] = None
    minutes_until_change: Optional[int] = None
    operating_hours_open: str
    operating_hours_close: str

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["evaluated_at"] = self.evaluated_at.isoformat()
        if self.next_change_at:
            data["next_change_at"] = self.next_change_at.isoformat()
        return data

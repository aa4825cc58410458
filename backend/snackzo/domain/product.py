"""
Product Domain Models

Represents catalogue entities (products, categories) of the Snackzo store.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class Category(BaseModel):
    """Product category shown as a storefront section"""

    id: str = Field(..., description="Category ID")
    name: str = Field(..., description="Category name")
    emoji: Optional[str] = Field(None, description="Display emoji")
    display_order: int = Field(0, description="Sort order on the storefront")

    model_config = ConfigDict(from_attributes=True)


class Product(BaseModel):
    """
    Product domain model - a sellable item of the store catalogue

    Fields:
        id: Product ID (uuid)
        name: Product name
        description: Product description (optional)
        price: Unit price in INR
        stock: Units on hand
        is_available: Whether the product can be ordered
        category_id: Reference to categories
        category_name: Category name (from JOIN)
        image_url: Main image
        images: Gallery images (detail view only)
    """

    id: str = Field(..., description="Product ID")
    name: str = Field(..., description="Product name")
    description: Optional[str] = Field(None, description="Product description")
    price: Decimal = Field(..., description="Unit price", ge=0)
    stock: int = Field(0, description="Units on hand")
    is_available: bool = Field(True, description="Orderable flag")
    category_id: Optional[str] = Field(None, description="Category ID")
    category_name: Optional[str] = Field(None, description="Category name (from JOIN)")
    image_url: Optional[str] = Field(None, description="Main image URL")
    images: List[str] = Field(default_factory=list, description="Gallery image URLs")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def in_stock(self) -> bool:
        return self.is_available and self.stock > 0

    @property
    def is_low_stock(self) -> bool:
        """Low stock threshold used by the admin console"""
        return 0 < self.stock < 10

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["price"] = float(self.price)
        data["in_stock"] = self.in_stock
        data["is_low_stock"] = self.is_low_stock
        if self.created_at:
            data["created_at"] = self.created_at.isoformat()
        return data

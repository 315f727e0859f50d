from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProductStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    OUT_OF_STOCK = "out_of_stock"
    DISCONTINUED = "discontinued"


class CreateProductRequest(BaseModel):
    """POST /products"""

    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=1, max_length=200)
    brand: Optional[str] = Field(None, max_length=100)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)

    # Supplier
    supplier: Optional[str] = Field(None, max_length=200)
    supplier_email: Optional[str] = Field(None, max_length=200)

    # Pricing
    price: float = Field(..., gt=0)
    cost: Optional[float] = Field(None, ge=0)

    # Inventory
    stock: int = Field(0, ge=0)
    stock_minimum: int = Field(0, ge=0)
    location: Optional[str] = Field(None, max_length=100)
    status: Optional[ProductStatusEnum] = None


class UpdateProductRequest(BaseModel):
    """PUT /products/{id}"""

    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    brand: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    supplier: Optional[str] = Field(None, max_length=200)
    supplier_email: Optional[str] = Field(None, max_length=200)
    price: Optional[float] = Field(None, gt=0)
    cost: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    stock_minimum: Optional[int] = Field(None, ge=0)
    location: Optional[str] = Field(None, max_length=100)
    status: Optional[ProductStatusEnum] = None


class StockAdjustmentRequest(BaseModel):
    """POST /products/{id}/stock"""

    delta: int = Field(..., description="Units to add (positive) or remove (negative)")
    reason: Optional[str] = Field(None, max_length=200)

"""
Sale schemas: POS checkout payloads.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class SaleStatusEnum(str, Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class SaleItem(BaseModel):
    """A product line (``product_id``) or a service line (``name`` + ``unit_price``)."""

    product_id: Optional[str] = None
    name: Optional[str] = Field(None, max_length=200)
    quantity: int = Field(1, ge=1)
    unit_price: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_line(self):
        if not self.product_id and (not self.name or self.unit_price is None):
            raise ValueError("service lines need a name and a unit_price")
        return self


class CustomerInfo(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)


class CreateSaleRequest(BaseModel):
    """POST /sales"""

    items: list[SaleItem] = Field(..., min_length=1)
    member_id: Optional[str] = None
    customer: Optional[CustomerInfo] = None
    payment_method: str = Field(..., min_length=1, max_length=50)
    payment_details: Optional[dict] = None
    discount: float = Field(0, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


class UpdateSaleRequest(BaseModel):
    """PUT /sales/{id}"""

    model_config = ConfigDict(use_enum_values=True)

    status: Optional[SaleStatusEnum] = None
    notes: Optional[str] = Field(None, max_length=1000)

"""
Payment schemas.

``payment_reference`` is the id the payment gateway echoes back in its
webhooks; it is generated when not supplied.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentStatusEnum(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentTypeEnum(str, Enum):
    MEMBERSHIP = "membership"
    RENEWAL = "renewal"
    LATE_FEE = "late_fee"
    PENALTY = "penalty"
    PRODUCT = "product"
    SERVICE = "service"
    OTHER = "other"


class CreatePaymentRequest(BaseModel):
    """POST /payments"""

    model_config = ConfigDict(use_enum_values=True)

    member_id: str = Field(..., min_length=1)
    contract_id: Optional[str] = None
    amount: float = Field(..., gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payment_type: PaymentTypeEnum = PaymentTypeEnum.MEMBERSHIP
    status: PaymentStatusEnum = PaymentStatusEnum.PENDING
    due_date: date
    paid_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_reference: Optional[str] = Field(None, min_length=4, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class UpdatePaymentRequest(BaseModel):
    """PUT /payments/{id}"""

    model_config = ConfigDict(use_enum_values=True)

    amount: Optional[float] = Field(None, gt=0)
    payment_type: Optional[PaymentTypeEnum] = None
    status: Optional[PaymentStatusEnum] = None
    due_date: Optional[date] = None
    paid_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=500)


class GeneratePaymentRequest(BaseModel):
    """POST /payments/generate: a pending charge for a contract."""

    model_config = ConfigDict(use_enum_values=True)

    contract_id: str = Field(..., min_length=1)
    amount: Optional[float] = Field(None, gt=0, description="Defaults to the contract's monthly fee")
    payment_type: PaymentTypeEnum = PaymentTypeEnum.MEMBERSHIP
    due_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=500)

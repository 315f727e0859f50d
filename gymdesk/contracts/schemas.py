from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContractStatusEnum(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"


class CreateContractRequest(BaseModel):
    """POST /contracts"""

    model_config = ConfigDict(use_enum_values=True)

    member_id: str = Field(..., min_length=1)
    contract_type: str = Field("standard", min_length=1, max_length=100)
    start_date: date
    end_date: date
    monthly_fee: float = Field(..., ge=0)
    status: ContractStatusEnum = ContractStatusEnum.ACTIVE
    payment_method: Optional[str] = Field(None, max_length=50)
    auto_renewal: bool = False
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class UpdateContractRequest(BaseModel):
    """PUT /contracts/{id}"""

    model_config = ConfigDict(use_enum_values=True)

    contract_type: Optional[str] = Field(None, min_length=1, max_length=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    monthly_fee: Optional[float] = Field(None, ge=0)
    status: Optional[ContractStatusEnum] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    auto_renewal: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=2000)

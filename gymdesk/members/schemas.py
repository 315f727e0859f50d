"""
Member schemas.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class MemberStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class CreateMemberRequest(BaseModel):
    """POST /members"""

    model_config = ConfigDict(use_enum_values=True)

    # Identity
    first_name: str = Field(..., min_length=1, max_length=100)
    paternal_last_name: str = Field(..., min_length=1, max_length=100)
    maternal_last_name: Optional[str] = Field(None, max_length=100)
    email: EmailStr
    primary_phone: str = Field(..., min_length=7, max_length=20)
    secondary_phone: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None

    # Address
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)

    # Membership
    status: MemberStatusEnum = MemberStatusEnum.ACTIVE
    selected_plan: Optional[str] = Field(None, max_length=100)
    monthly_amount: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    direct_debit: Optional[str] = Field(None, max_length=50)
    employee: Optional[str] = Field(None, max_length=200, description="Employee who signed the member up")

    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.expiration_date and self.expiration_date < self.start_date:
            raise ValueError("expiration_date must not be before start_date")
        return self


class UpdateMemberRequest(BaseModel):
    """PUT /members/{id}: all fields optional."""

    model_config = ConfigDict(use_enum_values=True)

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    paternal_last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    maternal_last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    primary_phone: Optional[str] = Field(None, min_length=7, max_length=20)
    secondary_phone: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    status: Optional[MemberStatusEnum] = None
    selected_plan: Optional[str] = Field(None, max_length=100)
    monthly_amount: Optional[float] = Field(None, ge=0)
    start_date: Optional[date] = None
    expiration_date: Optional[date] = None
    direct_debit: Optional[str] = Field(None, max_length=50)
    employee: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)

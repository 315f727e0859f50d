"""
Employee schemas.

``access_level`` accepts legacy spellings (``admin``, ``manager``...); the
service stores the canonical level.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class EmployeeStatusEnum(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"


class CreateEmployeeRequest(BaseModel):
    """POST /employees"""

    model_config = ConfigDict(use_enum_values=True)

    first_name: str = Field(..., min_length=1, max_length=100)
    paternal_last_name: str = Field(..., min_length=1, max_length=100)
    maternal_last_name: Optional[str] = Field(None, max_length=100)
    email: EmailStr
    primary_phone: str = Field(..., min_length=7, max_length=20)
    secondary_phone: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)

    # Job
    employee_code: Optional[str] = Field(None, max_length=50)
    position: str = Field(..., min_length=1, max_length=100)
    department: str = Field(..., min_length=1, max_length=100)
    hire_date: date
    status: EmployeeStatusEnum = EmployeeStatusEnum.ACTIVE
    access_level: str = Field("entrenador", max_length=50)
    salary: Optional[float] = Field(None, ge=0)


class UpdateEmployeeRequest(BaseModel):
    """PUT /employees/{id}"""

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
    employee_code: Optional[str] = Field(None, max_length=50)
    position: Optional[str] = Field(None, min_length=1, max_length=100)
    department: Optional[str] = Field(None, min_length=1, max_length=100)
    hire_date: Optional[date] = None
    status: Optional[EmployeeStatusEnum] = None
    access_level: Optional[str] = Field(None, max_length=50)
    salary: Optional[float] = Field(None, ge=0)

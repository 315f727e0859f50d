from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ClassStatusEnum(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CreateClassRequest(BaseModel):
    """POST /schedule"""

    model_config = ConfigDict(use_enum_values=True)

    class_name: str = Field(..., min_length=1, max_length=200)
    class_type: str = Field(..., min_length=1, max_length=100)
    employee_id: Optional[str] = Field(None, description="Instructor's employee id")
    instructor: Optional[str] = Field(None, max_length=200)
    start_time: datetime
    end_time: datetime
    max_capacity: int = Field(..., ge=1, le=500)
    location: Optional[str] = Field(None, max_length=100)
    status: ClassStatusEnum = ClassStatusEnum.SCHEDULED
    description: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class UpdateClassRequest(BaseModel):
    """PUT /schedule/{id}"""

    model_config = ConfigDict(use_enum_values=True)

    class_name: Optional[str] = Field(None, min_length=1, max_length=200)
    class_type: Optional[str] = Field(None, min_length=1, max_length=100)
    employee_id: Optional[str] = None
    instructor: Optional[str] = Field(None, max_length=200)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_capacity: Optional[int] = Field(None, ge=1, le=500)
    location: Optional[str] = Field(None, max_length=100)
    status: Optional[ClassStatusEnum] = None
    description: Optional[str] = Field(None, max_length=2000)


class BookingRequest(BaseModel):
    member_id: str = Field(..., min_length=1)

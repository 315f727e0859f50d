from pydantic import BaseModel, EmailStr, Field, field_validator

from gymdesk.config import settings


def _check_password_length(value: str) -> str:
    if len(value) < settings.min_password_length:
        raise ValueError(
            f"Password must be at least {settings.min_password_length} characters"
        )
    return value


class LoginRequest(BaseModel):
    """POST /auth/login"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class DevLoginRequest(BaseModel):
    """POST /auth/dev-login"""
    email: EmailStr


class CreateCredentialsRequest(BaseModel):
    """POST /auth/credentials"""
    employee_id: str = Field(..., min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def check_password_length(cls, v):
        return _check_password_length(v)


class ResetPasswordRequest(BaseModel):
    """POST /auth/credentials/reset"""
    employee_id: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password_length(cls, v):
        return _check_password_length(v)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_password_length(cls, v):
        return _check_password_length(v)

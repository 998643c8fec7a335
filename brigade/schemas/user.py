from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

RoleName = Literal["staff", "chef", "admin", "super_admin"]


class UserRead(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    phone: str | None = None
    role: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: RoleName
    full_name: str = Field(..., min_length=1)
    phone: str | None = Field(None, max_length=32)

    @field_validator("username", "full_name")
    def strip_required(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=50)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8)
    role: RoleName | None = None
    full_name: str | None = Field(None, min_length=1)
    phone: str | None = Field(None, max_length=32)
    is_active: bool | None = None

    @field_validator("username", "email", "password", "role", "full_name", "is_active", mode="before")
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value

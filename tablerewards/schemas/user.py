"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from tablerewards.models.user import UserRole


class UserCreate(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserResponse(BaseModel):
    id: int
    email: str
    name: Optional[str]
    role: str
    points: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    # Role and points balance so clients need no second round trip
    user: UserResponse

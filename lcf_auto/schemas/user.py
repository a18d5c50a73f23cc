"""
Pydantic schemas for User and Authentication.
"""
from pydantic import BaseModel, EmailStr, ConfigDict, Field
from datetime import datetime
from typing import Optional
from lcf_auto.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    first_name: str = ""
    last_name: str = ""


class UserCreate(UserBase):
    """Schema for registering a user."""
    password: str = Field(min_length=8, max_length=72)


class User(UserBase):
    """Schema for user responses."""
    id: int
    role: UserRole
    is_active: bool = True
    loyalty_points: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Schema for authentication token."""
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    """Schema for login request."""
    email: EmailStr
    password: str

from pydantic import BaseModel, EmailStr, Field, validator
from datetime import datetime
from typing import Optional, List
from crowdlend.core.permissions import UserRole


class SignupRequest(BaseModel):
    """Self-service registration; ADMIN cannot be requested"""
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    roles: List[UserRole] = Field(..., min_length=1)

    @validator("roles")
    def validate_roles(cls, v):
        """Admin role is granted by operators, never at signup"""
        if UserRole.ADMIN in v:
            raise ValueError("ADMIN role cannot be requested at signup")
        return list(dict.fromkeys(v))


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=8)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=100)
    last_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    avatar: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = Field(None, max_length=20)


class UserSummary(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    roles: List[str]

    class Config:
        from_attributes = True


class UserProfileResponse(UserSummary):
    phone: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    credit_score: int
    is_active: bool
    is_blocked: bool
    blocked_reason: Optional[str] = None
    email_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime


class AuthResponse(BaseModel):
    user: UserSummary
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

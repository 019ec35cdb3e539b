"""Schemas for accounts, profiles and the admin panel."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class CredentialsRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    avatar_data_url: Optional[str] = None
    role: str = "user"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    user: UserOut
    token: Optional[str] = None


class MeResponse(BaseModel):
    user: Optional[UserOut]


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    avatar_data_url: Optional[str] = None


class ProfileResponse(BaseModel):
    profile: UserOut


class AdminLoginRequest(BaseModel):
    password: Optional[str] = None


class UserListResponse(BaseModel):
    users: List[UserOut]


class UserResponse(BaseModel):
    user: UserOut

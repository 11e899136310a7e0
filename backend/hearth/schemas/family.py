"""
Hearth Butler Backend — Auth and Family Schemas
=================================================

What:  Request/response models for accounts, families and members.
How:   Range rules (height 30–250 cm, weight 2–300 kg, names 1–50 chars) are
       declared on the fields so they appear in the OpenAPI docs.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from hearth.models.enums import FamilyRole, Gender


# ══════════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════════

class RegisterRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=128)
    name: str = Field(min_length=1, max_length=50)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    name: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register and login. The token goes in `Authorization: Bearer`."""
    token: str = Field(description="Opaque session token")
    user: UserResponse


# ══════════════════════════════════════════════════════════════════════════
# Families and members
# ══════════════════════════════════════════════════════════════════════════

class MemberProfile(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    height: Optional[float] = Field(default=None, ge=30, le=250, description="cm")
    weight: Optional[float] = Field(default=None, ge=2, le=300, description="kg")
    avatar: Optional[str] = Field(default=None, max_length=500)


class MemberCreate(MemberProfile):
    role: FamilyRole = FamilyRole.MEMBER
    user_id: Optional[uuid.UUID] = Field(
        default=None, description="Link the member to an existing account"
    )


class MemberUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    gender: Optional[Gender] = None
    birth_date: Optional[date] = None
    height: Optional[float] = Field(default=None, ge=30, le=250)
    weight: Optional[float] = Field(default=None, ge=2, le=300)
    avatar: Optional[str] = Field(default=None, max_length=500)
    role: Optional[FamilyRole] = None


class MemberResponse(BaseModel):
    id: uuid.UUID
    family_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    name: str
    gender: Optional[str] = None
    birth_date: Optional[date] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    bmi: Optional[float] = None
    age_group: Optional[str] = None
    avatar: Optional[str] = None
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FamilyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    creator_profile: Optional[MemberProfile] = Field(
        default=None,
        description="Profile for the creator's own member record (defaults to the account name)",
    )


class FamilyJoin(BaseModel):
    invite_code: str = Field(min_length=4, max_length=16)
    profile: Optional[MemberProfile] = None


class FamilyResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    invite_code: str
    creator_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class FamilyDetailResponse(FamilyResponse):
    members: List[MemberResponse] = Field(default_factory=list)

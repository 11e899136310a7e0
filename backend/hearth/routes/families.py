"""
Hearth Butler Backend — Family Routes
=======================================

What:  Families, invite codes and member profiles.

    POST   /api/families                               create (caller becomes ADMIN)
    GET    /api/families                               families the caller belongs to
    POST   /api/families/join                          join with an invite code
    GET    /api/families/{id}                          family with its members
    GET    /api/families/{id}/members                  member list
    POST   /api/families/{id}/members                  add a member (admin)
    GET    /api/families/{id}/members/{member_id}      member profile
    PATCH  /api/families/{id}/members/{member_id}      update profile
    DELETE /api/families/{id}/members/{member_id}      soft-remove (admin)
"""

import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.exceptions import NotFoundError
from hearth.models.family import FamilyMember
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import MessageResponse
from hearth.schemas.family import (
    FamilyCreate,
    FamilyDetailResponse,
    FamilyJoin,
    FamilyResponse,
    MemberCreate,
    MemberResponse,
    MemberUpdate,
)
from hearth.services.family_service import family_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/families", tags=["Families"], responses=AUTH_RESPONSES)


def _detail(family, members: List[FamilyMember]) -> FamilyDetailResponse:
    return FamilyDetailResponse(
        **FamilyResponse.model_validate(family).model_dump(),
        members=[MemberResponse.model_validate(m) for m in members],
    )


async def _member_of(
    db: AsyncSession, user: User, family_id: uuid.UUID, member_id: uuid.UUID
) -> FamilyMember:
    member = await family_service.get_member(db, user, member_id)
    if member.family_id != family_id:
        raise NotFoundError(resource="member", resource_id=str(member_id))
    return member


@router.post("", status_code=201, response_model=FamilyDetailResponse, summary="Create a family")
async def create_family(
    body: FamilyCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FamilyDetailResponse:
    family, member = await family_service.create_family(
        db, user, body.name, body.description, body.creator_profile
    )
    return _detail(family, [member])


@router.get("", response_model=List[FamilyResponse], summary="List my families")
async def list_families(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[FamilyResponse]:
    families = await family_service.list_families(db, user)
    return [FamilyResponse.model_validate(f) for f in families]


@router.post("/join", response_model=FamilyDetailResponse, summary="Join a family by invite code")
async def join_family(
    body: FamilyJoin,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FamilyDetailResponse:
    family, member = await family_service.join_family(db, user, body.invite_code, body.profile)
    return _detail(family, [member])


@router.get("/{family_id}", response_model=FamilyDetailResponse, summary="Family detail")
async def get_family(
    family_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FamilyDetailResponse:
    family, members = await family_service.get_family(db, user, family_id)
    return _detail(family, members)


@router.get("/{family_id}/members", response_model=List[MemberResponse], summary="List members")
async def list_members(
    family_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[MemberResponse]:
    _, members = await family_service.get_family(db, user, family_id)
    return [MemberResponse.model_validate(m) for m in members]


@router.post(
    "/{family_id}/members",
    status_code=201,
    response_model=MemberResponse,
    summary="Add a member (family admin only)",
)
async def add_member(
    family_id: uuid.UUID,
    body: MemberCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemberResponse:
    member = await family_service.add_member(db, user, family_id, body)
    return MemberResponse.model_validate(member)


@router.get("/{family_id}/members/{member_id}", response_model=MemberResponse, summary="Member profile")
async def get_member(
    family_id: uuid.UUID,
    member_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemberResponse:
    member = await _member_of(db, user, family_id, member_id)
    return MemberResponse.model_validate(member)


@router.patch("/{family_id}/members/{member_id}", response_model=MemberResponse, summary="Update a member")
async def update_member(
    family_id: uuid.UUID,
    member_id: uuid.UUID,
    body: MemberUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MemberResponse:
    await _member_of(db, user, family_id, member_id)
    member = await family_service.update_member(db, user, member_id, body)
    return MemberResponse.model_validate(member)


@router.delete(
    "/{family_id}/members/{member_id}",
    response_model=MessageResponse,
    summary="Remove a member (family admin only)",
)
async def remove_member(
    family_id: uuid.UUID,
    member_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _member_of(db, user, family_id, member_id)
    await family_service.remove_member(db, user, member_id)
    return MessageResponse(message="Member removed")

"""
Hearth Butler Backend — Family Service
========================================

What:  Families, members and the access checks every member-scoped
       endpoint goes through.
Why:   A family is the privacy boundary: users only see members of
       families they created or belong to.
How:   require_member_access() resolves a member, then checks the caller
       is the family creator or an active member of the same family.
       GUEST members are read-only.
Who:   Called by family routes and by every member-scoped service.

Derived fields:
    bmi = weight / (height / 100)^2, rounded to 1 decimal
    age_group: CHILD < 12 <= TEENAGER < 18 <= ADULT < 65 <= ELDERLY
"""

import logging
import secrets
import string
import uuid
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.exceptions import (
    DatabaseError,
    HearthError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from hearth.models.enums import AgeGroup, FamilyRole
from hearth.models.family import Family, FamilyMember
from hearth.models.mixins import utcnow
from hearth.models.user import User
from hearth.schemas.family import MemberCreate, MemberProfile, MemberUpdate
from hearth.services.auth_service import sanitize_name

logger = logging.getLogger(__name__)

INVITE_CODE_LENGTH = 8
_INVITE_ALPHABET = string.ascii_uppercase + string.digits


# ── Derived values ────────────────────────────────────────────────────────

def calculate_bmi(height_cm: Optional[float], weight_kg: Optional[float]) -> Optional[float]:
    if not height_cm or not weight_kg:
        return None
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def age_group_for(birth_date: Optional[date], today: Optional[date] = None) -> Optional[str]:
    if birth_date is None:
        return None
    age = calculate_age(birth_date, today)
    if age < 12:
        return AgeGroup.CHILD.value
    if age < 18:
        return AgeGroup.TEENAGER.value
    if age < 65:
        return AgeGroup.ADULT.value
    return AgeGroup.ELDERLY.value


def generate_invite_code() -> str:
    return "".join(secrets.choice(_INVITE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def _apply_profile(member: FamilyMember, profile: MemberProfile | MemberUpdate) -> None:
    data = profile.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is not None:
        member.name = sanitize_name(data["name"])
    for field in ("gender", "birth_date", "height", "weight", "avatar"):
        if field in data:
            value = data[field]
            setattr(member, field, value.value if hasattr(value, "value") else value)
    member.bmi = calculate_bmi(member.height, member.weight)
    member.age_group = age_group_for(member.birth_date)


class FamilyService:
    """
    Family and member management plus the shared access checks.

    Error Handling:
        Unknown or soft-deleted family/member → NotFoundError (404)
        Caller outside the family, or not ADMIN for admin ops → PermissionDeniedError (403)
    """

    # ══════════════════════════════════════════════════════════════════════
    # Access checks
    # ══════════════════════════════════════════════════════════════════════

    async def get_membership(
        self, db: AsyncSession, user: User, family_id: uuid.UUID
    ) -> Optional[FamilyMember]:
        result = await db.execute(
            select(FamilyMember).where(
                FamilyMember.family_id == family_id,
                FamilyMember.user_id == user.id,
                FamilyMember.deleted_at.is_(None),
            )
        )
        return result.scalars().first()

    async def require_family_access(
        self,
        db: AsyncSession,
        user: User,
        family_id: uuid.UUID,
        admin: bool = False,
        write: bool = False,
    ) -> Family:
        """
        Returns the family if the caller may access it.

        write=True rejects GUEST members; admin=True additionally requires the
        family creator or an ADMIN member.
        """
        result = await db.execute(
            select(Family).where(Family.id == family_id, Family.deleted_at.is_(None))
        )
        family = result.scalar_one_or_none()
        if family is None:
            raise NotFoundError(resource="family", resource_id=str(family_id))

        if family.creator_id == user.id:
            return family

        membership = await self.get_membership(db, user, family_id)
        if membership is None:
            raise PermissionDeniedError(message="You are not a member of this family")
        if write and membership.role == FamilyRole.GUEST.value:
            raise PermissionDeniedError(message="Guests have read-only access")
        if admin and membership.role != FamilyRole.ADMIN.value:
            raise PermissionDeniedError(message="Only family admins can perform this action")
        return family

    async def require_member_access(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        write: bool = False,
    ) -> FamilyMember:
        """
        Resolves a member the caller may read (or write, when write=True).

        Allowed:
            - the family creator
            - any active member of the same family
        GUEST callers, including on their own record, only when write=False.
        """
        result = await db.execute(
            select(FamilyMember).where(
                FamilyMember.id == member_id,
                FamilyMember.deleted_at.is_(None),
            )
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise NotFoundError(resource="family member", resource_id=str(member_id))

        result = await db.execute(
            select(Family).where(Family.id == member.family_id, Family.deleted_at.is_(None))
        )
        family = result.scalar_one_or_none()
        if family is None:
            raise NotFoundError(resource="family", resource_id=str(member.family_id))
        if family.creator_id == user.id:
            return member
        if member.user_id == user.id:
            if write and member.role == FamilyRole.GUEST.value:
                raise PermissionDeniedError(message="Guests have read-only access")
            return member

        membership = await self.get_membership(db, user, member.family_id)
        if membership is None:
            raise PermissionDeniedError()
        if write and membership.role == FamilyRole.GUEST.value:
            raise PermissionDeniedError(message="Guests have read-only access")
        return member

    async def accessible_member_ids(
        self, db: AsyncSession, user: User, write: bool = False
    ) -> List[uuid.UUID]:
        """Ids of every live member in every family the caller belongs to or created."""
        families = await self.list_families(db, user, write=write)
        if not families:
            return []
        result = await db.execute(
            select(FamilyMember.id).where(
                FamilyMember.family_id.in_([f.id for f in families]),
                FamilyMember.deleted_at.is_(None),
            )
        )
        return list(result.scalars().all())

    async def linked_member_ids(self, db: AsyncSession, user: User) -> List[uuid.UUID]:
        """Ids of the member records that represent the caller themself."""
        result = await db.execute(
            select(FamilyMember.id).where(
                FamilyMember.user_id == user.id,
                FamilyMember.deleted_at.is_(None),
            )
        )
        return list(result.scalars().all())

    # ══════════════════════════════════════════════════════════════════════
    # Families
    # ══════════════════════════════════════════════════════════════════════

    async def create_family(
        self,
        db: AsyncSession,
        user: User,
        name: str,
        description: Optional[str] = None,
        creator_profile: Optional[MemberProfile] = None,
    ) -> Tuple[Family, FamilyMember]:
        """Creates a family; the creator becomes its first ADMIN member."""
        try:
            family = Family(
                name=sanitize_name(name),
                description=description.strip() if description else None,
                invite_code=generate_invite_code(),
                creator_id=user.id,
            )
            db.add(family)
            await db.flush()

            member = FamilyMember(
                family_id=family.id,
                user_id=user.id,
                name=user.name,
                role=FamilyRole.ADMIN.value,
            )
            if creator_profile is not None:
                _apply_profile(member, creator_profile)
            db.add(member)
            await db.flush()

            logger.info("Family %s created by user %s", family.id, user.id)
            return family, member

        except HearthError:
            raise
        except Exception as e:
            logger.error("Database error creating family: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not create the family. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_families(self, db: AsyncSession, user: User, write: bool = False) -> List[Family]:
        """Families the caller created or belongs to; write=True leaves out GUEST memberships."""
        membership_subq = select(FamilyMember.family_id).where(
            FamilyMember.user_id == user.id,
            FamilyMember.deleted_at.is_(None),
        )
        if write:
            membership_subq = membership_subq.where(FamilyMember.role != FamilyRole.GUEST.value)
        result = await db.execute(
            select(Family)
            .where(
                Family.deleted_at.is_(None),
                or_(Family.creator_id == user.id, Family.id.in_(membership_subq)),
            )
            .order_by(Family.created_at)
        )
        return list(result.scalars().all())

    async def get_family(
        self, db: AsyncSession, user: User, family_id: uuid.UUID
    ) -> Tuple[Family, List[FamilyMember]]:
        family = await self.require_family_access(db, user, family_id)
        result = await db.execute(
            select(FamilyMember)
            .where(FamilyMember.family_id == family_id, FamilyMember.deleted_at.is_(None))
            .order_by(FamilyMember.created_at)
        )
        return family, list(result.scalars().all())

    async def join_family(
        self,
        db: AsyncSession,
        user: User,
        invite_code: str,
        profile: Optional[MemberProfile] = None,
    ) -> Tuple[Family, FamilyMember]:
        result = await db.execute(
            select(Family).where(
                Family.invite_code == invite_code.strip().upper(),
                Family.deleted_at.is_(None),
            )
        )
        family = result.scalar_one_or_none()
        if family is None:
            raise NotFoundError(resource="family invite", resource_id=invite_code)

        if family.creator_id == user.id or await self.get_membership(db, user, family.id):
            raise ValidationError(message="You are already a member of this family")

        member = FamilyMember(
            family_id=family.id,
            user_id=user.id,
            name=user.name,
            role=FamilyRole.MEMBER.value,
        )
        if profile is not None:
            _apply_profile(member, profile)
        db.add(member)
        await db.flush()
        logger.info("User %s joined family %s", user.id, family.id)
        return family, member

    # ══════════════════════════════════════════════════════════════════════
    # Members
    # ══════════════════════════════════════════════════════════════════════

    async def add_member(
        self,
        db: AsyncSession,
        user: User,
        family_id: uuid.UUID,
        data: MemberCreate,
    ) -> FamilyMember:
        await self.require_family_access(db, user, family_id, admin=True)
        member = FamilyMember(
            family_id=family_id,
            user_id=data.user_id,
            name=data.name,
            role=data.role.value,
        )
        _apply_profile(member, data)
        db.add(member)
        await db.flush()
        logger.info("Member %s added to family %s", member.id, family_id)
        return member

    async def get_member(self, db: AsyncSession, user: User, member_id: uuid.UUID) -> FamilyMember:
        return await self.require_member_access(db, user, member_id)

    async def update_member(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        data: MemberUpdate,
    ) -> FamilyMember:
        """
        Members may edit their own profile; editing others (or any role
        change) needs family admin rights.
        """
        member = await self.require_member_access(db, user, member_id, write=True)
        if member.user_id != user.id or data.role is not None:
            await self.require_family_access(db, user, member.family_id, admin=True)

        _apply_profile(member, data)
        if data.role is not None:
            member.role = data.role.value
        member.updated_at = utcnow()
        await db.flush()
        return member

    async def remove_member(self, db: AsyncSession, user: User, member_id: uuid.UUID) -> None:
        member = await self.require_member_access(db, user, member_id, write=True)
        family = await self.require_family_access(db, user, member.family_id, admin=True)
        if member.user_id is not None and member.user_id == family.creator_id:
            raise ValidationError(message="The family creator cannot be removed")
        member.deleted_at = utcnow()
        await db.flush()
        logger.info("Member %s removed from family %s", member_id, member.family_id)


family_service = FamilyService()

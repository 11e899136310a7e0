"""
Hearth Butler Backend — Family Service Unit Tests
===================================================

What we test:
    ✅ BMI, age and age group derivation
    ✅ Invite codes: 8 characters from A-Z0-9
    ✅ Access checks: creator, member, outsider, guest writes
    ✅ Family creation makes the creator an ADMIN member
"""

import uuid
from datetime import date

import pytest

from hearth.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from hearth.models.enums import FamilyRole
from hearth.models.family import Family, FamilyMember
from hearth.schemas.family import MemberProfile
from hearth.services.family_service import (
    FamilyService,
    age_group_for,
    calculate_age,
    calculate_bmi,
    generate_invite_code,
)

TODAY = date(2024, 6, 1)


def family_of(creator_id) -> Family:
    return Family(id=uuid.uuid4(), name="Smiths", creator_id=creator_id, invite_code="ABCD1234")


def member_of(family: Family, user_id=None, role=FamilyRole.MEMBER.value) -> FamilyMember:
    return FamilyMember(id=uuid.uuid4(), family_id=family.id, user_id=user_id, name="Kid", role=role)


class TestDerivedValues:

    def test_bmi(self):
        assert calculate_bmi(175, 70) == 22.9
        assert calculate_bmi(None, 70) is None
        assert calculate_bmi(175, 0) is None

    def test_age_counts_birthdays(self):
        assert calculate_age(date(2000, 6, 1), TODAY) == 24
        assert calculate_age(date(2000, 6, 2), TODAY) == 23

    @pytest.mark.parametrize("birth,group", [
        (date(2013, 6, 2), "CHILD"),
        (date(2012, 6, 1), "TEENAGER"),
        (date(2006, 6, 1), "ADULT"),
        (date(1959, 6, 1), "ELDERLY"),
        (None, None),
    ])
    def test_age_group(self, birth, group):
        assert age_group_for(birth, TODAY) == group

    def test_invite_code(self):
        code = generate_invite_code()
        assert len(code) == 8
        assert code.isalnum() and code == code.upper()


class TestAccessChecks:

    def setup_method(self):
        self.service = FamilyService()

    @pytest.mark.asyncio
    async def test_creator_has_family_access(self, mock_db_session, make_result, user):
        family = family_of(user.id)
        mock_db_session.execute.side_effect = [make_result(value=family)]
        assert await self.service.require_family_access(mock_db_session, user, family.id) is family

    @pytest.mark.asyncio
    async def test_outsider_denied(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        mock_db_session.execute.side_effect = [make_result(value=family), make_result(values=[])]
        with pytest.raises(PermissionDeniedError):
            await self.service.require_family_access(mock_db_session, user, family.id)

    @pytest.mark.asyncio
    async def test_admin_operations_need_admin_role(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        membership = member_of(family, user.id)
        mock_db_session.execute.side_effect = [make_result(value=family), make_result(values=[membership])]
        with pytest.raises(PermissionDeniedError, match="admins"):
            await self.service.require_family_access(mock_db_session, user, family.id, admin=True)

    @pytest.mark.asyncio
    async def test_unknown_family(self, mock_db_session, make_result, user):
        mock_db_session.execute.side_effect = [make_result(value=None)]
        with pytest.raises(NotFoundError):
            await self.service.require_family_access(mock_db_session, user, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_member_readable_by_family_member(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        target = member_of(family)
        mine = member_of(family, user.id, role=FamilyRole.GUEST.value)
        mock_db_session.execute.side_effect = [
            make_result(value=target),
            make_result(value=family),
            make_result(values=[mine]),
        ]
        assert await self.service.require_member_access(mock_db_session, user, target.id) is target

    @pytest.mark.asyncio
    async def test_guest_cannot_write(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        target = member_of(family)
        mine = member_of(family, user.id, role=FamilyRole.GUEST.value)
        mock_db_session.execute.side_effect = [
            make_result(value=target),
            make_result(value=family),
            make_result(values=[mine]),
        ]
        with pytest.raises(PermissionDeniedError, match="read-only"):
            await self.service.require_member_access(mock_db_session, user, target.id, write=True)

    @pytest.mark.asyncio
    async def test_own_member_record_skips_membership_query(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        me = member_of(family, user.id)
        mock_db_session.execute.side_effect = [make_result(value=me), make_result(value=family)]
        assert await self.service.require_member_access(mock_db_session, user, me.id, write=True) is me
        assert mock_db_session.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_guest_cannot_write_own_record(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        me = member_of(family, user.id, role=FamilyRole.GUEST.value)
        mock_db_session.execute.side_effect = [make_result(value=me), make_result(value=family)]
        with pytest.raises(PermissionDeniedError, match="read-only"):
            await self.service.require_member_access(mock_db_session, user, me.id, write=True)

    @pytest.mark.asyncio
    async def test_guest_can_read_own_record(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        me = member_of(family, user.id, role=FamilyRole.GUEST.value)
        mock_db_session.execute.side_effect = [make_result(value=me), make_result(value=family)]
        assert await self.service.require_member_access(mock_db_session, user, me.id) is me

    @pytest.mark.asyncio
    async def test_guest_family_write_denied(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        membership = member_of(family, user.id, role=FamilyRole.GUEST.value)
        mock_db_session.execute.side_effect = [make_result(value=family), make_result(values=[membership])]
        with pytest.raises(PermissionDeniedError, match="read-only"):
            await self.service.require_family_access(mock_db_session, user, family.id, write=True)

    @pytest.mark.asyncio
    async def test_guest_family_read_allowed(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        membership = member_of(family, user.id, role=FamilyRole.GUEST.value)
        mock_db_session.execute.side_effect = [make_result(value=family), make_result(values=[membership])]
        assert await self.service.require_family_access(mock_db_session, user, family.id) is family


class TestFamilies:

    def setup_method(self):
        self.service = FamilyService()

    @pytest.mark.asyncio
    async def test_create_family(self, mock_db_session, user):
        profile = MemberProfile(name="Alice", height=170, weight=65, birth_date=date(1990, 1, 1))

        family, member = await self.service.create_family(
            mock_db_session, user, "  The <Smiths> ", "Our family", profile
        )

        assert family.name == "The Smiths"
        assert family.creator_id == user.id
        assert len(family.invite_code) == 8
        assert member.family_id == family.id
        assert member.role == FamilyRole.ADMIN.value
        assert member.bmi == 22.5
        assert member.age_group == "ADULT"

    @pytest.mark.asyncio
    async def test_join_twice_rejected(self, mock_db_session, make_result, user, other_user):
        family = family_of(other_user.id)
        mock_db_session.execute.side_effect = [
            make_result(value=family),
            make_result(values=[member_of(family, user.id)]),
        ]
        with pytest.raises(ValidationError, match="already a member"):
            await self.service.join_family(mock_db_session, user, "abcd1234")

    @pytest.mark.asyncio
    async def test_creator_cannot_be_removed(self, mock_db_session, make_result, user):
        family = family_of(user.id)
        me = member_of(family, user.id, role=FamilyRole.ADMIN.value)
        mock_db_session.execute.side_effect = [
            make_result(value=me),
            make_result(value=family),
            make_result(value=family),
        ]
        with pytest.raises(ValidationError, match="creator"):
            await self.service.remove_member(mock_db_session, user, me.id)

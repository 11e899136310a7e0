"""
Hearth Butler Backend — Share Service Unit Tests
==================================================

What we test:
    ✅ Share URLs and health report summaries
    ✅ Viewing counts a VIEW and records tracking
    ✅ Private shares look missing to outsiders; expired links are 410
    ✅ Only counter events can be tracked
    ✅ Goal and achievement share cards
"""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from hearth.exceptions import NotFoundError, ShareExpiredError, ValidationError
from hearth.models.enums import ShareEventType
from hearth.models.family import FamilyMember
from hearth.models.health import HealthGoal
from hearth.models.mixins import utcnow
from hearth.models.social import Achievement, SharedContent, ShareTracking
from hearth.services.share_service import (
    ShareService,
    health_report_text,
    new_share_token,
    share_url_for,
)


def make_share(privacy="PUBLIC", status="ACTIVE", expires_in=timedelta(days=3)) -> SharedContent:
    token = new_share_token()
    return SharedContent(
        id=uuid.uuid4(),
        member_id=uuid.uuid4(),
        content_type="HEALTH_REPORT",
        title="My health report",
        description="Health score 85.",
        share_token=token,
        share_url=share_url_for(token),
        privacy_level=privacy,
        status=status,
        expires_at=utcnow() + expires_in,
        created_at=utcnow(),
        view_count=4,
        like_count=1,
        comment_count=0,
        share_count=2,
        click_count=0,
        download_count=0,
    )


class TestHelpers:

    def test_share_url(self):
        assert share_url_for("abc") == "http://localhost:3000/share/abc"

    def test_tokens_are_unique_and_url_safe(self):
        tokens = {new_share_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(len(t) >= 16 and "/" not in t for t in tokens)

    @pytest.mark.parametrize("change,expected", [
        (1.5, "Health score 85, lost 1.5 kg in 30 days, 12 health records."),
        (-0.5, "Health score 85, gained 0.5 kg in 30 days, 12 health records."),
        (0.0, "Health score 85, 12 health records."),
    ])
    def test_health_report_text(self, change, expected):
        assert health_report_text(85, change, 12) == expected


class TestViewing:

    def setup_method(self):
        self.service = ShareService()

    @pytest.mark.asyncio
    async def test_public_view_counts(self, mock_db_session, make_result):
        share = make_share()
        member = FamilyMember(id=share.member_id, family_id=uuid.uuid4(), name="Mum", role="MEMBER")
        mock_db_session.execute.side_effect = [make_result(value=share), make_result(value=member)]

        response = await self.service.get_shared_content(
            mock_db_session, share.share_token, user_agent="Mozilla/5.0", ip_address="203.0.113.7"
        )

        assert response.view_count == 5
        assert response.member_name == "Mum"
        (event,) = [o for o in mock_db_session.added if isinstance(o, ShareTracking)]
        assert event.event_type == "VIEW"
        assert event.ip_address == "203.0.113.7"

    @pytest.mark.asyncio
    async def test_private_share_hidden_from_anonymous(self, mock_db_session, make_result):
        share = make_share(privacy="PRIVATE")
        mock_db_session.execute.side_effect = [make_result(value=share)]
        with pytest.raises(NotFoundError):
            await self.service.get_shared_content(mock_db_session, share.share_token)
        assert share.view_count == 4

    @pytest.mark.asyncio
    async def test_expired_share(self, mock_db_session, make_result):
        share = make_share(expires_in=timedelta(minutes=-1))
        mock_db_session.execute.side_effect = [make_result(value=share)]
        with pytest.raises(ShareExpiredError):
            await self.service.get_shared_content(mock_db_session, share.share_token)

    @pytest.mark.asyncio
    async def test_revoked_share_is_not_found(self, mock_db_session, make_result):
        share = make_share(status="REVOKED")
        mock_db_session.execute.side_effect = [make_result(value=share)]
        with pytest.raises(NotFoundError):
            await self.service.get_shared_content(mock_db_session, share.share_token)


class TestEvents:

    def setup_method(self):
        self.service = ShareService()

    @pytest.mark.asyncio
    async def test_like_increments_counter(self, mock_db_session, make_result):
        share = make_share()
        mock_db_session.execute.side_effect = [make_result(value=share)]

        response = await self.service.track_event(
            mock_db_session, share.share_token, ShareEventType.LIKE, platform="wechat"
        )

        assert response.count == 2
        assert share.like_count == 2

    @pytest.mark.asyncio
    async def test_view_cannot_be_posted(self, mock_db_session):
        with pytest.raises(ValidationError, match="cannot be tracked"):
            await self.service.track_event(mock_db_session, "abcdefgh", ShareEventType.VIEW)
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_revoke_requires_write_access(self, mock_db_session, make_result, user):
        share = make_share()
        mock_db_session.execute.side_effect = [make_result(value=share)]

        with patch("hearth.services.share_service.family_service") as mock_family:
            mock_family.require_member_access = AsyncMock()
            await self.service.revoke_share(mock_db_session, user, share.share_token)

        mock_family.require_member_access.assert_awaited_once_with(
            mock_db_session, user, share.member_id, write=True
        )
        assert share.status == "REVOKED"


class TestCardContent:

    def setup_method(self):
        self.service = ShareService()
        self.member = FamilyMember(id=uuid.uuid4(), family_id=uuid.uuid4(), name="Alice")

    @pytest.mark.asyncio
    async def test_goal_card_in_progress(self, mock_db_session, make_result):
        goal = HealthGoal(
            id=uuid.uuid4(), member_id=self.member.id, goal_type="LOSE_WEIGHT",
            start_weight=80.0, current_weight=77.0, target_weight=70.0,
            progress=30, status="ACTIVE",
        )
        mock_db_session.execute.side_effect = [make_result(value=goal)]

        title, description, metadata = await self.service._generate_content(
            mock_db_session, self.member, "GOAL_ACHIEVEMENT", goal.id
        )

        assert title == "30% of my goal"
        assert description == "From 80.0 kg towards 70.0 kg, 3.0 kg lost so far"
        assert metadata == {"target_id": str(goal.id), "goal_type": "LOSE_WEIGHT", "progress": 30}

    @pytest.mark.asyncio
    async def test_achievement_card(self, mock_db_session, make_result):
        achievement = Achievement(
            id=uuid.uuid4(), member_id=self.member.id, achievement_type="SEVEN_DAY_STREAK",
            title="One week strong", description="Checked in seven days in a row",
            rarity="UNCOMMON", points=50,
        )
        mock_db_session.execute.side_effect = [make_result(value=achievement)]

        title, description, metadata = await self.service._generate_content(
            mock_db_session, self.member, "ACHIEVEMENT", achievement.id
        )

        assert title == "Unlocked: One week strong"
        assert description == "Checked in seven days in a row"
        assert metadata["rarity"] == "UNCOMMON"
        assert metadata["points"] == 50

    @pytest.mark.asyncio
    async def test_someone_elses_achievement_is_not_found(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(value=None)]

        with pytest.raises(NotFoundError):
            await self.service._generate_content(
                mock_db_session, self.member, "ACHIEVEMENT", uuid.uuid4()
            )

"""
Hearth Butler Backend — Notification Service Unit Tests
=========================================================

What we test:
    ✅ notify() stores an in-app notification
    ✅ An unread notification with the same dedup key suppresses a repeat
    ✅ Read marking is limited to the caller's own member records
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from hearth.exceptions import NotFoundError, PermissionDeniedError
from hearth.models.notification import Notification
from hearth.services.notification_service import NotificationService


def make_notification(member_id, **overrides) -> Notification:
    values = dict(
        id=uuid.uuid4(),
        member_id=member_id,
        type="BUDGET_ALERT",
        title="Budget at 80%",
        content="Groceries has used 80% of its budget",
        priority="MEDIUM",
        status="SENT",
    )
    values.update(overrides)
    return Notification(**values)


class TestNotify:

    def setup_method(self):
        self.service = NotificationService()
        self.member_id = uuid.uuid4()

    @pytest.mark.asyncio
    async def test_stores_notification(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(values=[])]

        notification = await self.service.notify(
            mock_db_session, self.member_id, "BUDGET_ALERT", "Budget at 80%",
            "Groceries has used 80% of its budget", dedup_key="budget:1:WARNING_80",
        )

        assert notification is not None
        assert notification.status == "SENT"
        assert notification.channels == ["IN_APP"]
        assert notification.sent_at is not None
        assert mock_db_session.added == [notification]

    @pytest.mark.asyncio
    async def test_unread_duplicate_is_dropped(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(values=[uuid.uuid4()])]

        notification = await self.service.notify(
            mock_db_session, self.member_id, "BUDGET_ALERT", "Budget at 80%",
            "Groceries has used 80% of its budget", dedup_key="budget:1:WARNING_80",
        )

        assert notification is None
        assert mock_db_session.added == []

    @pytest.mark.asyncio
    async def test_without_dedup_key_skips_lookup(self, mock_db_session):
        notification = await self.service.notify(
            mock_db_session, self.member_id, "SYSTEM", "Welcome", "Hello"
        )

        assert notification.dedup_key is None
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_long_title_is_truncated(self, mock_db_session):
        notification = await self.service.notify(
            mock_db_session, self.member_id, "SYSTEM", "x" * 300, "Hello"
        )
        assert len(notification.title) == 200


class TestReadState:

    def setup_method(self):
        self.service = NotificationService()
        self.member_id = uuid.uuid4()

    @pytest.mark.asyncio
    @patch("hearth.services.notification_service.family_service")
    async def test_mark_read(self, mock_family, mock_db_session, make_result, user):
        mock_family.linked_member_ids = AsyncMock(return_value=[self.member_id])
        notification = make_notification(self.member_id)
        mock_db_session.execute.side_effect = [make_result(value=notification)]

        result = await self.service.mark_read(mock_db_session, user, notification.id)

        assert result.status == "READ"
        assert result.read_at is not None
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("hearth.services.notification_service.family_service")
    async def test_mark_read_twice_keeps_first_timestamp(
        self, mock_family, mock_db_session, make_result, user
    ):
        mock_family.linked_member_ids = AsyncMock(return_value=[self.member_id])
        notification = make_notification(self.member_id, status="READ")
        mock_db_session.execute.side_effect = [make_result(value=notification)]

        await self.service.mark_read(mock_db_session, user, notification.id)

        assert notification.read_at is None
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("hearth.services.notification_service.family_service")
    async def test_someone_elses_notification_is_denied(
        self, mock_family, mock_db_session, make_result, user
    ):
        mock_family.linked_member_ids = AsyncMock(return_value=[uuid.uuid4()])
        notification = make_notification(self.member_id)
        mock_db_session.execute.side_effect = [make_result(value=notification)]

        with pytest.raises(PermissionDeniedError):
            await self.service.mark_read(mock_db_session, user, notification.id)
        assert notification.status == "SENT"

    @pytest.mark.asyncio
    async def test_missing_notification(self, mock_db_session, make_result, user):
        mock_db_session.execute.side_effect = [make_result(value=None)]

        with pytest.raises(NotFoundError):
            await self.service.mark_read(mock_db_session, user, uuid.uuid4())

    @pytest.mark.asyncio
    @patch("hearth.services.notification_service.family_service")
    async def test_mark_all_read_returns_count(
        self, mock_family, mock_db_session, make_result, user
    ):
        mock_family.linked_member_ids = AsyncMock(return_value=[self.member_id])
        result = make_result()
        result.rowcount = 3
        mock_db_session.execute.side_effect = [result]

        assert await self.service.mark_all_read(mock_db_session, user) == 3

    @pytest.mark.asyncio
    @patch("hearth.services.notification_service.family_service")
    async def test_mark_all_read_without_members(self, mock_family, mock_db_session, user):
        mock_family.linked_member_ids = AsyncMock(return_value=[])

        assert await self.service.mark_all_read(mock_db_session, user) == 0
        mock_db_session.execute.assert_not_awaited()

"""
Hearth Butler Backend — Shopping List Service Unit Tests
==========================================================

What we test:
    ✅ Price estimates from the latest price per kg
    ✅ List status follows purchases: PENDING → IN_PROGRESS → COMPLETED
    ✅ Completing a list books the actual cost under its dominant category
    ✅ A completed list cannot be completed twice
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from hearth.exceptions import ValidationError
from hearth.models.budget import Spending
from hearth.models.shopping import ShoppingItem, ShoppingList
from hearth.services.shopping_service import ShoppingService, estimate_price, list_status_for

CREATED = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def make_list(**overrides) -> ShoppingList:
    values = dict(
        id=uuid.uuid4(),
        family_id=uuid.uuid4(),
        created_by=uuid.uuid4(),
        name="Weekly shop",
        estimated_cost=0.0,
        status="PENDING",
        created_at=CREATED,
    )
    values.update(overrides)
    return ShoppingList(**values)


def make_item(shopping_list: ShoppingList, **overrides) -> ShoppingItem:
    values = dict(
        id=uuid.uuid4(),
        list_id=shopping_list.id,
        food_id=uuid.uuid4(),
        amount=500.0,
        category="VEGETABLES",
        estimated_price=2.5,
        purchased=False,
        created_at=CREATED,
    )
    values.update(overrides)
    return ShoppingItem(**values)


class TestHelpers:

    def test_estimate_price_per_kg(self):
        assert estimate_price(8.0, 250) == 2.0

    def test_estimate_price_without_price(self):
        assert estimate_price(None, 250) is None

    def test_empty_list_is_pending(self):
        assert list_status_for([]) == "PENDING"


class TestSetPurchased:

    def setup_method(self):
        self.service = ShoppingService()
        self.shopping_list = make_list()
        self.first = make_item(self.shopping_list)
        self.second = make_item(self.shopping_list, category="DAIRY")

    def queue(self, mock_db_session, make_result, item):
        mock_db_session.execute.side_effect = [
            make_result(value=item),
            make_result(value=self.shopping_list),
            make_result(values=[self.first, self.second]),
        ]

    @pytest.mark.asyncio
    @patch("hearth.services.shopping_service.family_service")
    async def test_first_purchase_moves_list_in_progress(
        self, mock_family, mock_db_session, make_result, user
    ):
        mock_family.require_family_access = AsyncMock()
        self.queue(mock_db_session, make_result, self.first)

        response = await self.service.set_purchased(mock_db_session, user, self.first.id)

        assert response.status == "IN_PROGRESS"
        assert self.first.purchased is True
        assert self.first.purchased_by == user.id
        assert self.first.purchased_at is not None
        mock_family.require_family_access.assert_awaited_once_with(
            mock_db_session, user, self.shopping_list.family_id, write=True
        )

    @pytest.mark.asyncio
    @patch("hearth.services.shopping_service.family_service")
    async def test_last_purchase_completes_list(
        self, mock_family, mock_db_session, make_result, user
    ):
        mock_family.require_family_access = AsyncMock()
        self.first.purchased = True
        self.shopping_list.status = "IN_PROGRESS"
        self.queue(mock_db_session, make_result, self.second)

        response = await self.service.set_purchased(mock_db_session, user, self.second.id)

        assert response.status == "COMPLETED"
        assert all(item.purchased for item in response.items)

    @pytest.mark.asyncio
    @patch("hearth.services.shopping_service.family_service")
    async def test_unpurchasing_reopens_list(
        self, mock_family, mock_db_session, make_result, user
    ):
        mock_family.require_family_access = AsyncMock()
        self.first.purchased = True
        self.first.purchased_by = user.id
        self.shopping_list.status = "IN_PROGRESS"
        self.queue(mock_db_session, make_result, self.first)

        response = await self.service.set_purchased(
            mock_db_session, user, self.first.id, purchased=False
        )

        assert response.status == "PENDING"
        assert self.first.purchased_by is None


class TestCompleteList:

    def setup_method(self):
        self.service = ShoppingService()
        self.shopping_list = make_list()
        self.items = [
            make_item(self.shopping_list, category="VEGETABLES", estimated_price=3.0),
            make_item(self.shopping_list, category="SEAFOOD", estimated_price=12.0),
        ]

    @pytest.mark.asyncio
    @patch("hearth.services.shopping_service.budget_tracker")
    @patch("hearth.services.shopping_service.family_service")
    async def test_books_spending_against_budget(
        self, mock_family, mock_tracker, mock_db_session, make_result, user
    ):
        mock_family.require_family_access = AsyncMock()
        budget_id = uuid.uuid4()
        spending = Spending(
            id=uuid.uuid4(), budget_id=budget_id, amount=14.2, category="SEAFOOD",
            purchase_date=CREATED, created_at=CREATED,
        )
        mock_tracker.record_spending = AsyncMock(return_value=(spending, None, []))
        mock_db_session.execute.side_effect = [
            make_result(value=self.shopping_list),
            make_result(values=self.items),
        ]

        response = await self.service.complete_list(
            mock_db_session, user, self.shopping_list.id, 14.2, budget_id=budget_id
        )

        assert response.shopping_list.status == "COMPLETED"
        assert response.shopping_list.actual_cost == 14.2
        assert response.spending.amount == 14.2
        _, _, called_budget, spending_in = mock_tracker.record_spending.await_args.args
        assert called_budget == budget_id
        assert spending_in.category.value == "SEAFOOD"
        assert spending_in.description == "Shopping list: Weekly shop"

    @pytest.mark.asyncio
    @patch("hearth.services.shopping_service.budget_tracker")
    @patch("hearth.services.shopping_service.family_service")
    async def test_without_budget_records_no_spending(
        self, mock_family, mock_tracker, mock_db_session, make_result, user
    ):
        mock_family.require_family_access = AsyncMock()
        mock_tracker.record_spending = AsyncMock()
        mock_db_session.execute.side_effect = [
            make_result(value=self.shopping_list),
            make_result(values=self.items),
        ]

        response = await self.service.complete_list(
            mock_db_session, user, self.shopping_list.id, 9.0
        )

        assert response.spending is None
        assert response.new_alerts == []
        mock_tracker.record_spending.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("hearth.services.shopping_service.budget_tracker")
    @patch("hearth.services.shopping_service.family_service")
    async def test_already_completed_list_is_rejected(
        self, mock_family, mock_tracker, mock_db_session, make_result, user
    ):
        mock_family.require_family_access = AsyncMock()
        mock_tracker.record_spending = AsyncMock()
        self.shopping_list.status = "COMPLETED"
        self.shopping_list.actual_cost = 20.0
        mock_db_session.execute.side_effect = [
            make_result(value=self.shopping_list),
            make_result(values=self.items),
        ]

        with pytest.raises(ValidationError, match="already completed"):
            await self.service.complete_list(
                mock_db_session, user, self.shopping_list.id, 14.2, budget_id=uuid.uuid4()
            )

        assert self.shopping_list.actual_cost == 20.0
        mock_tracker.record_spending.assert_not_awaited()

"""
Hearth Butler Backend — Shopping List Routes
==============================================

    POST /api/families/{id}/shopping-lists     create a list with optional items (201)
    GET  /api/families/{id}/shopping-lists     lists of a family, optional status filter
    GET  /api/shopping-lists/{id}              list with items
    POST /api/shopping-lists/{id}/items        add an item (201)
    POST /api/shopping-items/{id}/purchase     tick or untick an item
    POST /api/shopping-lists/{id}/complete     close the list, optionally booking spending
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.enums import ListStatus
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import ErrorResponse
from hearth.schemas.shopping import (
    CompleteListRequest,
    CompleteListResponse,
    PurchaseUpdate,
    ShoppingItemCreate,
    ShoppingListCreate,
    ShoppingListResponse,
)
from hearth.services.shopping_service import shopping_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Shopping"], responses=AUTH_RESPONSES)


@router.post(
    "/families/{family_id}/shopping-lists",
    status_code=201,
    response_model=ShoppingListResponse,
    responses={400: {"description": "Unknown food or unit", "model": ErrorResponse}},
    summary="Create a shopping list",
)
async def create_list(
    family_id: uuid.UUID,
    body: ShoppingListCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShoppingListResponse:
    return await shopping_service.create_list(db, user, family_id, body)


@router.get(
    "/families/{family_id}/shopping-lists",
    response_model=List[ShoppingListResponse],
    summary="Shopping lists of a family",
)
async def list_lists(
    family_id: uuid.UUID,
    status: Optional[ListStatus] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[ShoppingListResponse]:
    lists = await shopping_service.list_lists(db, user, family_id, status.value if status else None)
    return [ShoppingListResponse.model_validate(s) for s in lists]


@router.get("/shopping-lists/{list_id}", response_model=ShoppingListResponse, summary="Shopping list detail")
async def get_list(
    list_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShoppingListResponse:
    return await shopping_service.get_list(db, user, list_id)


@router.post(
    "/shopping-lists/{list_id}/items",
    status_code=201,
    response_model=ShoppingListResponse,
    responses={400: {"description": "List completed or unknown food", "model": ErrorResponse}},
    summary="Add an item",
)
async def add_item(
    list_id: uuid.UUID,
    body: ShoppingItemCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShoppingListResponse:
    return await shopping_service.add_item(db, user, list_id, body)


@router.post(
    "/shopping-items/{item_id}/purchase",
    response_model=ShoppingListResponse,
    summary="Mark an item purchased",
)
async def set_purchased(
    item_id: uuid.UUID,
    body: PurchaseUpdate = PurchaseUpdate(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ShoppingListResponse:
    return await shopping_service.set_purchased(db, user, item_id, body.purchased)


@router.post(
    "/shopping-lists/{list_id}/complete",
    response_model=CompleteListResponse,
    responses={400: {"description": "List already completed or budget inactive", "model": ErrorResponse}},
    summary="Complete a shopping list",
)
async def complete_list(
    list_id: uuid.UUID,
    body: CompleteListRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CompleteListResponse:
    return await shopping_service.complete_list(db, user, list_id, body.actual_cost, body.budget_id)

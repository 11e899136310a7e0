"""
Hearth Butler Backend — Health Goal Routes
============================================

    POST   /api/members/{id}/goals              create a weight goal (201)
    GET    /api/members/{id}/goals              newest first, optional status filter
    GET    /api/members/{id}/goals/{goal_id}    one goal
    PATCH  /api/members/{id}/goals/{goal_id}    update weights, duration, macros or status
    DELETE /api/members/{id}/goals/{goal_id}    soft delete

Only the member themselves or a family admin may see or change goals.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.database import get_db_session
from hearth.models.enums import GoalStatus
from hearth.models.user import User
from hearth.routes.deps import AUTH_RESPONSES, get_current_user
from hearth.schemas.common import ErrorResponse, MessageResponse
from hearth.schemas.health import HealthGoalCreate, HealthGoalResponse, HealthGoalUpdate
from hearth.services.goal_service import goal_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/members", tags=["Health Goals"], responses=AUTH_RESPONSES)

_INVALID = {400: {"description": "Target direction or macro split invalid", "model": ErrorResponse}}


@router.post(
    "/{member_id}/goals",
    status_code=201,
    response_model=HealthGoalResponse,
    responses=_INVALID,
    summary="Create a health goal",
)
async def create_goal(
    member_id: uuid.UUID,
    body: HealthGoalCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HealthGoalResponse:
    goal = await goal_service.create_goal(db, user, member_id, body)
    return HealthGoalResponse.model_validate(goal)


@router.get("/{member_id}/goals", response_model=List[HealthGoalResponse], summary="List health goals")
async def list_goals(
    member_id: uuid.UUID,
    status: Optional[GoalStatus] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[HealthGoalResponse]:
    goals = await goal_service.list_goals(db, user, member_id, status.value if status else None)
    return [HealthGoalResponse.model_validate(g) for g in goals]


@router.get("/{member_id}/goals/{goal_id}", response_model=HealthGoalResponse, summary="Get a health goal")
async def get_goal(
    member_id: uuid.UUID,
    goal_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HealthGoalResponse:
    goal = await goal_service.get_goal(db, user, member_id, goal_id)
    return HealthGoalResponse.model_validate(goal)


@router.patch(
    "/{member_id}/goals/{goal_id}",
    response_model=HealthGoalResponse,
    responses=_INVALID,
    summary="Update a health goal",
    description="Progress is recomputed from the weights; reaching 100 completes an active goal.",
)
async def update_goal(
    member_id: uuid.UUID,
    goal_id: uuid.UUID,
    body: HealthGoalUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HealthGoalResponse:
    goal = await goal_service.update_goal(db, user, member_id, goal_id, body)
    return HealthGoalResponse.model_validate(goal)


@router.delete("/{member_id}/goals/{goal_id}", response_model=MessageResponse, summary="Delete a health goal")
async def delete_goal(
    member_id: uuid.UUID,
    goal_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await goal_service.delete_goal(db, user, member_id, goal_id)
    return MessageResponse(message="Health goal deleted")

"""
Hearth Butler Backend — Family Leaderboard
============================================

What:  Ranks the members of one family on health score, check-in streak,
       weight loss, exercise minutes and calorie management.
How:   One aggregate query per board, pure scoring functions, a descending
       sort and a rank-change lookup against the last saved snapshot.
       Results are cached in process per (family, type, timeframe).

Scoring:
    HEALTH_SCORE          50 base, +15 weight 40–100 kg, +12.5 heart rate 60–100,
                          +12.5 blood pressure 90–120 / 60–80, +10 at 7 records,
                          +10 more at 15; capped at 100
    CHECK_IN_STREAK       consecutive days ending today with a meal log or
                          health record
    WEIGHT_LOSS           first − last weight; the window opens 30 days early
    EXERCISE_MINUTES      30 per record whose notes mention exercise
    CALORIES_MANAGEMENT   % of logged days within 20% of the calorie goal
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hearth.config import settings
from hearth.models.enums import LeaderboardTimeframe, LeaderboardType
from hearth.models.family import FamilyMember
from hearth.models.health import HealthData
from hearth.models.mixins import ensure_utc, utcnow
from hearth.models.nutrition import MealLog
from hearth.models.social import LeaderboardEntry
from hearth.models.user import User
from hearth.schemas.social import LeaderboardItem, LeaderboardResponse
from hearth.services.family_service import family_service

logger = logging.getLogger(__name__)

ALL_TIME_START = datetime(2020, 1, 1, tzinfo=timezone.utc)
RANK_CHANGE_WINDOW = timedelta(days=7)
WEIGHT_LOOKBACK = timedelta(days=30)
STREAK_LOOKBACK_DAYS = 365
EXERCISE_KEYWORDS = ("exercise", "运动", "锻炼")
MINUTES_PER_EXERCISE = 30
DEFAULT_CALORIE_GOAL = 2000
CALORIE_TOLERANCE = 0.2


@dataclass(frozen=True)
class BoardConfig:
    title: str
    description: str
    unit: str


BOARD_CONFIGS: Dict[str, BoardConfig] = {
    LeaderboardType.HEALTH_SCORE.value: BoardConfig("Health score", "Overall health indicator score", "分"),
    LeaderboardType.CHECK_IN_STREAK.value: BoardConfig("Check-in streak", "Consecutive days with a record", "天"),
    LeaderboardType.WEIGHT_LOSS.value: BoardConfig("Weight loss", "Weight lost over the period", "kg"),
    LeaderboardType.EXERCISE_MINUTES.value: BoardConfig("Exercise minutes", "Total exercise time", "分钟"),
    LeaderboardType.CALORIES_MANAGEMENT.value: BoardConfig(
        "Calorie management", "Share of days within 20% of the calorie goal", "%"
    ),
}


# ══════════════════════════════════════════════════════════════════════════
# Pure scoring
# ══════════════════════════════════════════════════════════════════════════

def timeframe_window(timeframe: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    now = now or utcnow()
    if timeframe == LeaderboardTimeframe.DAILY.value:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif timeframe == LeaderboardTimeframe.MONTHLY.value:
        start = now - timedelta(days=30)
    elif timeframe == LeaderboardTimeframe.ALL_TIME.value:
        start = ALL_TIME_START
    else:
        start = now - timedelta(days=7)
    return start, now


def health_score(
    avg_weight: Optional[float],
    avg_heart_rate: Optional[float],
    avg_systolic: Optional[float],
    avg_diastolic: Optional[float],
    record_count: int,
) -> int:
    score = 50.0
    if avg_weight is not None and 40 < avg_weight < 100:
        score += 15
    if avg_heart_rate is not None and 60 < avg_heart_rate < 100:
        score += 12.5
    if (
        avg_systolic is not None and avg_diastolic is not None
        and 90 <= avg_systolic <= 120 and 60 <= avg_diastolic <= 80
    ):
        score += 12.5
    if record_count >= 7:
        score += 10
    if record_count >= 15:
        score += 10
    return min(int(score + 0.5), 100)


def streak_days(active_days: Iterable[date], today: date) -> int:
    days = set(active_days)
    streak = 0
    while today - timedelta(days=streak) in days:
        streak += 1
    return streak


def weight_loss(weights: Sequence[float]) -> float:
    """`weights` in chronological order; 0 with fewer than two points."""
    values = [w for w in weights if w and w > 0]
    if len(values) < 2:
        return 0.0
    return round(values[0] - values[-1], 1)


def exercise_minutes(record_count: int) -> int:
    return record_count * MINUTES_PER_EXERCISE


def calorie_accuracy(daily_calories: Iterable[float], goal: float = DEFAULT_CALORIE_GOAL) -> float:
    days = list(daily_calories)
    if not days:
        return 0.0
    accurate = sum(1 for c in days if abs(c - goal) <= goal * CALORIE_TOLERANCE)
    return round(accurate / len(days) * 100, 1)


def display_value(board_type: str, value: float) -> str:
    unit = BOARD_CONFIGS[board_type].unit
    if float(value).is_integer():
        value = int(value)
    return f"{value}{unit}"


def rank_change(previous_rank: Optional[int], rank: int) -> Tuple[str, Optional[int]]:
    if previous_rank is None:
        return "new", None
    diff = previous_rank - rank
    if diff > 0:
        return "up", diff
    if diff < 0:
        return "down", -diff
    return "same", None


def rank_members(
    board_type: str,
    members: Sequence[FamilyMember],
    scores: Mapping[uuid.UUID, float],
    previous_ranks: Mapping[uuid.UUID, int],
) -> List[LeaderboardItem]:
    ordered = sorted(members, key=lambda m: (-scores.get(m.id, 0), m.name))
    items = []
    for index, member in enumerate(ordered):
        rank = index + 1
        value = scores.get(member.id, 0)
        change, change_value = rank_change(previous_ranks.get(member.id), rank)
        items.append(LeaderboardItem(
            rank=rank,
            member_id=member.id,
            member_name=member.name,
            avatar=member.avatar,
            value=value,
            display_value=display_value(board_type, value),
            change=change,
            change_value=change_value,
        ))
    return items


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class LeaderboardService:

    def __init__(self):
        self._cache: Dict[Tuple[uuid.UUID, str, str], Tuple[float, LeaderboardResponse]] = {}

    def clear_cache(self, family_id: Optional[uuid.UUID] = None) -> None:
        if family_id is None:
            self._cache.clear()
            return
        for key in [k for k in self._cache if k[0] == family_id]:
            del self._cache[key]

    def _remember(self, key: Tuple[uuid.UUID, str, str], board: LeaderboardResponse) -> None:
        """Caches a board and drops every entry that has already expired."""
        now = time.monotonic()
        for stale in [k for k, (expires, _) in self._cache.items() if expires <= now]:
            del self._cache[stale]
        self._cache[key] = (now + settings.leaderboard_cache_ttl, board)

    # ── Per-board aggregates ──────────────────────────────────────────────

    async def health_scores(
        self, db: AsyncSession, member_ids: List[uuid.UUID], start: datetime, end: datetime
    ) -> Dict[uuid.UUID, float]:
        result = await db.execute(
            select(
                HealthData.member_id,
                func.avg(HealthData.weight),
                func.avg(HealthData.heart_rate),
                func.avg(HealthData.blood_pressure_systolic),
                func.avg(HealthData.blood_pressure_diastolic),
                func.count(HealthData.id),
            )
            .where(
                HealthData.member_id.in_(member_ids),
                HealthData.measured_at >= start,
                HealthData.measured_at <= end,
                HealthData.deleted_at.is_(None),
            )
            .group_by(HealthData.member_id)
        )
        return {
            member_id: health_score(
                _float(weight), _float(heart_rate), _float(systolic), _float(diastolic), count
            )
            for member_id, weight, heart_rate, systolic, diastolic, count in result.all()
        }

    async def streaks(
        self, db: AsyncSession, member_ids: List[uuid.UUID], today: date
    ) -> Dict[uuid.UUID, float]:
        since = today - timedelta(days=STREAK_LOOKBACK_DAYS)
        active: Dict[uuid.UUID, Set[date]] = {}

        result = await db.execute(
            select(HealthData.member_id, HealthData.measured_at).where(
                HealthData.member_id.in_(member_ids),
                HealthData.measured_at >= datetime.combine(since, datetime.min.time(), tzinfo=timezone.utc),
                HealthData.deleted_at.is_(None),
            )
        )
        for member_id, measured_at in result.all():
            active.setdefault(member_id, set()).add(ensure_utc(measured_at).date())

        result = await db.execute(
            select(MealLog.member_id, MealLog.date).where(
                MealLog.member_id.in_(member_ids),
                MealLog.date >= since,
                MealLog.deleted_at.is_(None),
            )
        )
        for member_id, meal_date in result.all():
            active.setdefault(member_id, set()).add(meal_date)

        return {member_id: streak_days(days, today) for member_id, days in active.items()}

    async def weight_losses(
        self, db: AsyncSession, member_ids: List[uuid.UUID], start: datetime, end: datetime
    ) -> Dict[uuid.UUID, float]:
        result = await db.execute(
            select(HealthData.member_id, HealthData.weight)
            .where(
                HealthData.member_id.in_(member_ids),
                HealthData.weight.is_not(None),
                HealthData.measured_at >= start - WEIGHT_LOOKBACK,
                HealthData.measured_at <= end,
                HealthData.deleted_at.is_(None),
            )
            .order_by(HealthData.measured_at.asc())
        )
        series: Dict[uuid.UUID, List[float]] = {}
        for member_id, weight in result.all():
            series.setdefault(member_id, []).append(weight)
        return {member_id: weight_loss(weights) for member_id, weights in series.items()}

    async def exercise(
        self, db: AsyncSession, member_ids: List[uuid.UUID], start: datetime, end: datetime
    ) -> Dict[uuid.UUID, float]:
        result = await db.execute(
            select(HealthData.member_id, func.count(HealthData.id))
            .where(
                HealthData.member_id.in_(member_ids),
                HealthData.measured_at >= start,
                HealthData.measured_at <= end,
                HealthData.deleted_at.is_(None),
                or_(*(HealthData.notes.ilike(f"%{k}%") for k in EXERCISE_KEYWORDS)),
            )
            .group_by(HealthData.member_id)
        )
        return {member_id: exercise_minutes(count) for member_id, count in result.all()}

    async def calorie_management(
        self, db: AsyncSession, member_ids: List[uuid.UUID], start: datetime, end: datetime
    ) -> Dict[uuid.UUID, float]:
        result = await db.execute(
            select(MealLog.member_id, MealLog.date, func.sum(MealLog.calories))
            .where(
                MealLog.member_id.in_(member_ids),
                MealLog.date >= start.date(),
                MealLog.date <= end.date(),
                MealLog.deleted_at.is_(None),
            )
            .group_by(MealLog.member_id, MealLog.date)
        )
        daily: Dict[uuid.UUID, List[float]] = {}
        for member_id, _, calories in result.all():
            daily.setdefault(member_id, []).append(calories or 0)
        return {member_id: calorie_accuracy(days) for member_id, days in daily.items()}

    async def _scores(
        self,
        db: AsyncSession,
        board_type: str,
        member_ids: List[uuid.UUID],
        start: datetime,
        end: datetime,
    ) -> Dict[uuid.UUID, float]:
        if board_type == LeaderboardType.HEALTH_SCORE.value:
            return await self.health_scores(db, member_ids, start, end)
        if board_type == LeaderboardType.CHECK_IN_STREAK.value:
            return await self.streaks(db, member_ids, end.date())
        if board_type == LeaderboardType.WEIGHT_LOSS.value:
            return await self.weight_losses(db, member_ids, start, end)
        if board_type == LeaderboardType.EXERCISE_MINUTES.value:
            return await self.exercise(db, member_ids, start, end)
        return await self.calorie_management(db, member_ids, start, end)

    async def previous_ranks(
        self,
        db: AsyncSession,
        board_type: str,
        timeframe: str,
        member_ids: List[uuid.UUID],
        now: datetime,
    ) -> Dict[uuid.UUID, int]:
        """Rank from each member's latest snapshot in the last 7 days."""
        result = await db.execute(
            select(LeaderboardEntry)
            .where(
                LeaderboardEntry.member_id.in_(member_ids),
                LeaderboardEntry.leaderboard_type == board_type,
                LeaderboardEntry.period == timeframe,
                LeaderboardEntry.calculated_at >= now - RANK_CHANGE_WINDOW,
            )
            .order_by(LeaderboardEntry.calculated_at.desc())
        )
        ranks: Dict[uuid.UUID, int] = {}
        for entry in result.scalars().all():
            ranks.setdefault(entry.member_id, entry.rank)
        return ranks

    # ── Public operations ─────────────────────────────────────────────────

    async def _compute(
        self, db: AsyncSession, family_id: uuid.UUID, board_type: str, timeframe: str
    ) -> LeaderboardResponse:
        now = utcnow()
        start, end = timeframe_window(timeframe, now)

        result = await db.execute(
            select(FamilyMember).where(
                FamilyMember.family_id == family_id, FamilyMember.deleted_at.is_(None)
            )
        )
        members = list(result.scalars().all())
        member_ids = [m.id for m in members]
        scores: Dict[uuid.UUID, float] = {}
        previous: Dict[uuid.UUID, int] = {}
        if member_ids:
            scores = await self._scores(db, board_type, member_ids, start, end)
            previous = await self.previous_ranks(db, board_type, timeframe, member_ids, now)

        config = BOARD_CONFIGS[board_type]
        items = rank_members(board_type, members, scores, previous)
        return LeaderboardResponse(
            family_id=family_id,
            type=board_type,
            title=config.title,
            description=config.description,
            unit=config.unit,
            timeframe=timeframe,
            period_start=start,
            period_end=end,
            total_participants=len(items),
            items=items,
            last_updated=now,
        )

    async def get_leaderboard(
        self,
        db: AsyncSession,
        user: User,
        family_id: uuid.UUID,
        board_type: LeaderboardType,
        timeframe: LeaderboardTimeframe = LeaderboardTimeframe.WEEKLY,
        limit: int = 50,
    ) -> LeaderboardResponse:
        await family_service.require_family_access(db, user, family_id)

        key = (family_id, board_type.value, timeframe.value)
        cached = self._cache.get(key)
        if cached is not None and cached[0] > time.monotonic():
            board = cached[1]
            logger.debug("Leaderboard cache hit for %s", key)
        else:
            board = await self._compute(db, family_id, board_type.value, timeframe.value)
            if settings.leaderboard_cache_ttl > 0:
                self._remember(key, board)

        own_ids = set(await family_service.linked_member_ids(db, user))
        my_rank = next((item for item in board.items if item.member_id in own_ids), None)
        return board.model_copy(update={"items": board.items[:limit], "my_rank": my_rank})

    async def save_leaderboard_entries(
        self,
        db: AsyncSession,
        user: User,
        family_id: uuid.UUID,
        board_type: LeaderboardType,
        timeframe: LeaderboardTimeframe = LeaderboardTimeframe.WEEKLY,
    ) -> List[LeaderboardEntry]:
        """Persists a fresh snapshot; later boards compare against it for rank changes."""
        await family_service.require_family_access(db, user, family_id, write=True)
        board = await self._compute(db, family_id, board_type.value, timeframe.value)

        entries = []
        for item in board.items:
            previous_rank = None if item.change == "new" else item.rank + _signed_change(item)
            entry = LeaderboardEntry(
                member_id=item.member_id,
                leaderboard_type=board.type,
                period=board.timeframe,
                period_start=board.period_start,
                period_end=board.period_end,
                score=item.value,
                rank=item.rank,
                previous_rank=previous_rank,
                rank_change=None if previous_rank is None else previous_rank - item.rank,
                total_participants=board.total_participants,
                calculated_at=board.last_updated,
            )
            db.add(entry)
            entries.append(entry)
        await db.flush()

        self.clear_cache(family_id)
        logger.info(
            "Saved %s/%s leaderboard snapshot for family %s (%d members)",
            board.type, board.timeframe, family_id, len(entries),
        )
        return entries

    async def get_ranking_history(
        self,
        db: AsyncSession,
        user: User,
        member_id: uuid.UUID,
        board_type: LeaderboardType,
        days: int = 30,
    ) -> List[LeaderboardEntry]:
        await family_service.require_member_access(db, user, member_id)
        result = await db.execute(
            select(LeaderboardEntry)
            .where(
                LeaderboardEntry.member_id == member_id,
                LeaderboardEntry.leaderboard_type == board_type.value,
                LeaderboardEntry.calculated_at >= utcnow() - timedelta(days=days),
            )
            .order_by(LeaderboardEntry.calculated_at.desc())
            .limit(days)
        )
        return list(result.scalars().all())


def _float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _signed_change(item: LeaderboardItem) -> int:
    """Positions moved since the previous snapshot; positive = moved up."""
    if item.change == "up":
        return item.change_value or 0
    if item.change == "down":
        return -(item.change_value or 0)
    return 0


leaderboard_service = LeaderboardService()

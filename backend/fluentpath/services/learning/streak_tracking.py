"""
Streak Tracking Service

Maintains each learner's consecutive-day activity streak.

Responsibilities:
- Apply the day-delta transition when a learner completes a lesson
- Create the streak row on first activity

Day-delta rule (calendar days in UTC):
    0 days   → same day: only last_active is refreshed
    1 day    → consecutive: current += 1, longest = max(longest, current)
    other    → gap (or clock skew): current = 1, longest untouched

Usage:
    from fluentpath.services.learning.streak_tracking import StreakTrackingService

    service = StreakTrackingService(store)
    streak = await service.record_activity(user_id)
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional
import logging

from fluentpath.db.models_learning import Streak
from fluentpath.db.store import LearningStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    """Result of applying one day of activity to a streak."""

    current: int
    longest: int
    last_active: datetime


def _utc_date(moment: datetime) -> date:
    """Truncate a timestamp to its UTC calendar day."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date()


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole calendar days from `earlier` to `later` (negative if reversed)."""
    return (_utc_date(later) - _utc_date(earlier)).days


def advance_streak(
    current: int,
    longest: int,
    last_active: datetime,
    now: datetime,
) -> StreakUpdate:
    """
    Apply activity at `now` to an existing streak.

    Args:
        current: Current consecutive-day count
        longest: Longest streak ever observed
        last_active: Timestamp of the previous activity
        now: Timestamp of this activity

    Returns:
        StreakUpdate with the new counters; last_active is always `now`
    """
    days_diff = days_between(last_active, now)

    if days_diff == 1:
        current += 1
        return StreakUpdate(current=current, longest=max(longest, current), last_active=now)

    if days_diff == 0:
        # Several completions in one day don't inflate the streak
        return StreakUpdate(current=current, longest=longest, last_active=now)

    return StreakUpdate(current=1, longest=longest, last_active=now)


class StreakTrackingService:
    """Persists streak transitions through a LearningStore."""

    def __init__(self, store: LearningStore):
        """
        Initialize the streak tracking service.

        Args:
            store: Persistence interface for learner state.
        """
        self.store = store

    async def get_current_streak(self, user_id: str) -> int:
        """Current streak length, 0 when the learner has never been active."""
        streak = await self.store.get_streak(user_id)
        return streak.current if streak else 0

    async def record_activity(
        self, user_id: str, now: Optional[datetime] = None
    ) -> Streak:
        """
        Record a day of activity for a learner.

        Creates the streak (1/1) on first activity; otherwise applies the
        day-delta rule to the stored row.

        Args:
            user_id: Learner id
            now: Activity time (defaults to current UTC time)

        Returns:
            The persisted Streak row
        """
        now = now or datetime.now(timezone.utc)
        streak = await self.store.get_streak(user_id)

        if streak is None:
            new_streak = Streak(user_id=user_id, current=1, longest=1, last_active=now)
            created = await self.store.create_streak(new_streak)
            if created is new_streak:
                logger.info(f"Started streak for user {user_id}")
                return created
            # A concurrent request created the row first; apply today to it
            streak = created

        update = advance_streak(streak.current, streak.longest, streak.last_active, now)
        streak.current = update.current
        streak.longest = update.longest
        streak.last_active = update.last_active
        await self.store.save(streak)

        logger.debug(
            f"Streak for user {user_id}: current={streak.current} longest={streak.longest}"
        )
        return streak

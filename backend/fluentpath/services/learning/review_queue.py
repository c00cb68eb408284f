"""
Review Queue Service

Service layer that integrates SM-2 scheduling with the learner's review
queue. Owns one ReviewQueueEntry per (learner, exercise), feeds attempt
outcomes through the scheduler and answers "what is due?" queries.

Usage:
    from fluentpath.services.learning import ReviewQueueService

    service = ReviewQueueService(store)

    # Get due exercises
    due = await service.due_exercises(user_id, limit=10)

    # Feed a graded attempt into the schedule
    entry = await service.record_attempt_outcome(user_id, exercise_id, quality=4)
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional
import logging

from fluentpath.config import settings
from fluentpath.db.models_learning import ReviewQueueEntry
from fluentpath.db.store import LearningStore
from fluentpath.models.learning import QueueStatsResponse
from fluentpath.services.learning.scheduler import compute_next_review

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ReviewQueueService:
    """
    Service for managing per-learner SM-2 review queues.

    Provides:
    - Idempotent enqueueing (single exercise, batch, whole lesson)
    - Attempt outcome processing with SM-2
    - Due exercise queries, globally and per lesson
    - Queue statistics and soft retirement
    """

    def __init__(
        self,
        store: LearningStore,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the review queue service.

        Args:
            store: Persistence interface for learner state
            clock: Returns the current UTC time (overridable in tests)
        """
        self.store = store
        self.clock = clock

    async def enqueue(self, user_id: str, exercise_id: str) -> ReviewQueueEntry:
        """
        Add an exercise to a learner's review queue.

        Idempotent: an existing entry is returned unchanged, never
        re-initialized.

        Returns:
            The new or existing queue entry
        """
        existing = await self.store.get_queue_entry(user_id, exercise_id)
        if existing is not None:
            return existing

        now = self.clock()
        entry = ReviewQueueEntry(
            user_id=user_id,
            exercise_id=exercise_id,
            interval=settings.SM2_INITIAL_INTERVAL_DAYS,
            ease_factor=settings.SM2_INITIAL_EASE_FACTOR,
            repetitions=0,
            next_review=now + timedelta(days=settings.SM2_INITIAL_INTERVAL_DAYS),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        entry = await self.store.create_queue_entry(entry)

        logger.info(f"Enqueued exercise {exercise_id} for user {user_id}")
        return entry

    async def enqueue_all(
        self, user_id: str, exercise_ids: Iterable[str]
    ) -> list[ReviewQueueEntry]:
        """
        Enqueue several exercises; already-queued ones are left untouched.

        Entries are keyed independently, so order does not matter.
        """
        return [await self.enqueue(user_id, exercise_id) for exercise_id in exercise_ids]

    async def enqueue_lesson_exercises(
        self, user_id: str, lesson_id: str
    ) -> list[ReviewQueueEntry]:
        """Enqueue every exercise belonging to a lesson."""
        exercises = await self.store.list_lesson_exercises(lesson_id)
        return await self.enqueue_all(user_id, [exercise.id for exercise in exercises])

    async def record_attempt_outcome(
        self, user_id: str, exercise_id: str, quality: int
    ) -> ReviewQueueEntry:
        """
        Apply a graded attempt to the exercise's schedule.

        A first attempt creates the entry and immediately advances it, so the
        default state is never left behind.

        Args:
            user_id: Learner id
            exercise_id: Attempted exercise
            quality: SM-2 recall quality (0-5)

        Returns:
            The updated queue entry
        """
        entry = await self.enqueue(user_id, exercise_id)
        now = self.clock()

        result = compute_next_review(
            current_interval=entry.interval,
            repetitions=entry.repetitions,
            ease_factor=entry.ease_factor,
            quality=quality,
            now=now,
        )

        entry.interval = result.interval
        entry.ease_factor = result.ease_factor
        entry.repetitions = result.repetitions
        entry.next_review = result.next_review
        entry.updated_at = now
        await self.store.save(entry)

        logger.debug(
            f"Rescheduled exercise {exercise_id} for user {user_id}: "
            f"q={quality} interval={result.interval}d reps={result.repetitions} "
            f"ef={result.ease_factor:.2f}"
        )
        return entry

    async def due_exercises(
        self, user_id: str, limit: Optional[int] = None
    ) -> list[ReviewQueueEntry]:
        """
        Active entries due now, oldest first.

        Args:
            user_id: Learner id
            limit: Maximum entries to return (defaults to DUE_EXERCISES_DEFAULT_LIMIT)
        """
        if limit is None:
            limit = settings.DUE_EXERCISES_DEFAULT_LIMIT
        return await self.store.list_due_entries(user_id, self.clock(), limit=limit)

    async def due_exercises_for_lesson(
        self, user_id: str, lesson_id: str
    ) -> list[ReviewQueueEntry]:
        """All active entries due now for one lesson's exercises, oldest first."""
        exercises = await self.store.list_lesson_exercises(lesson_id)
        return await self.store.list_due_entries(
            user_id,
            self.clock(),
            exercise_ids=[exercise.id for exercise in exercises],
        )

    async def queue_stats(self, user_id: str) -> QueueStatsResponse:
        """
        Summarize a learner's active queue.

        Returns:
            QueueStatsResponse with total, due, learning (repetitions == 0)
            and review (repetitions > 0) counts
        """
        counts = await self.store.queue_counts(user_id, self.clock())
        return QueueStatsResponse(**counts)

    async def deactivate(self, user_id: str, exercise_id: str) -> int:
        """
        Retire an exercise from a learner's queue.

        Entries are flagged inactive rather than deleted.

        Returns:
            Number of entries deactivated
        """
        count = await self.store.deactivate_entries(user_id, exercise_id)
        logger.info(f"Deactivated {count} queue entries for exercise {exercise_id}")
        return count

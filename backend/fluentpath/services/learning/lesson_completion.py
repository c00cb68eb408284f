"""
Lesson Completion Service

Orchestrates everything that happens when a learner finishes a lesson:

1. Resolve lesson → module → course
2. Require an enrollment in the course
3. Reject a second completion of the same lesson
4. Compute base XP from the lesson's exercise points and the score
5. Apply the streak bonus from the learner's current streak
6. Persist the progress snapshot and its XP transaction atomically
7. Enqueue the lesson's exercises for spaced repetition
8. Recompute course progress
9. Record the day's activity on the streak

Steps 7-9 run only after step 6 has committed, and each one runs even if
an earlier one failed. A failure there does not undo the completion; it is
logged and surfaced as InfrastructureError naming the failed steps. A
retry then hits the exactly-once check, which re-runs the follow-ups
before rejecting the duplicate. On retry the streak is only advanced when
it hasn't recorded the completion's day yet.

Usage:
    from fluentpath.services.learning import LessonCompletionService

    service = LessonCompletionService(store, review_queue, progress, streaks)
    result = await service.complete_lesson(user_id, lesson_id, time_spent=300, score=85)
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional
import logging

from fluentpath.db.models_learning import Lesson, ProgressSnapshot, XpTransaction
from fluentpath.db.store import LearningStore
from fluentpath.enums.learning import XpReason, XpSourceType
from fluentpath.middleware.error_handling import (
    AlreadyCompletedError,
    InfrastructureError,
    InvalidInputError,
    NotFoundError,
)
from fluentpath.models.learning import LessonCompletionResponse
from fluentpath.services.learning.progress_service import ProgressService
from fluentpath.services.learning.review_queue import ReviewQueueService
from fluentpath.services.learning.rewards import apply_streak_bonus, lesson_base_xp
from fluentpath.services.learning.streak_tracking import (
    StreakTrackingService,
    days_between,
)

logger = logging.getLogger(__name__)

FollowUp = tuple[str, Callable[[], Awaitable[Any]]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LessonCompletionService:
    """
    Service for the lesson completion workflow.
    """

    def __init__(
        self,
        store: LearningStore,
        review_queue: ReviewQueueService,
        progress: ProgressService,
        streaks: StreakTrackingService,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the lesson completion service.

        Args:
            store: Persistence interface for content and learner state
            review_queue: Review queue the lesson's exercises are added to
            progress: Progress aggregator for enrollment and course progress
            streaks: Streak tracker updated after each completion
            clock: Returns the current UTC time (overridable in tests)
        """
        self.store = store
        self.review_queue = review_queue
        self.progress = progress
        self.streaks = streaks
        self.clock = clock

    async def complete_lesson(
        self,
        user_id: str,
        lesson_id: str,
        time_spent: int,
        score: float,
    ) -> LessonCompletionResponse:
        """
        Complete a lesson for a learner.

        Args:
            user_id: Learner id
            lesson_id: Lesson being completed
            time_spent: Seconds spent on the lesson (>= 0)
            score: Lesson score (0-100)

        Returns:
            LessonCompletionResponse with the XP earned and whether the
            streak bonus applied

        Raises:
            InvalidInputError: If time_spent or score is out of range
            NotFoundError: If the lesson (or its module/course) doesn't exist
            NotEnrolledError: If the learner isn't enrolled in the course
            AlreadyCompletedError: If the lesson was already completed
            InfrastructureError: If persistence fails
        """
        self._validate(time_spent, score)

        lesson = await self.store.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found", details={"lesson_id": lesson_id})
        course_id = await self._resolve_course_id(lesson)

        await self.progress.require_enrollment(user_id, course_id)

        existing = await self.store.get_snapshot(user_id, lesson_id)
        if existing is not None:
            logger.info(
                f"Lesson {lesson_id} already completed by user {user_id}; reconciling"
            )
            await self._reconcile(user_id, lesson_id, course_id, existing)
            raise AlreadyCompletedError(
                "Lesson already completed", details={"lesson_id": lesson_id}
            )

        exercises = await self.store.list_lesson_exercises(lesson_id)
        total_points = sum(exercise.points or 0 for exercise in exercises)
        base_xp = lesson_base_xp(score, total_points)

        current_streak = await self.streaks.get_current_streak(user_id)
        xp_earned, streak_bonus = apply_streak_bonus(base_xp, current_streak)

        now = self.clock()
        snapshot = ProgressSnapshot(
            user_id=user_id,
            course_id=course_id,
            lesson_id=lesson_id,
            completed_at=now,
            time_spent=time_spent,
            score=score,
            xp_earned=xp_earned,
            streak_bonus=streak_bonus,
        )
        xp = XpTransaction(
            user_id=user_id,
            amount=xp_earned,
            reason=XpReason.LESSON_COMPLETED.value,
            source_id=lesson_id,
            source_type=XpSourceType.LESSON.value,
            created_at=now,
        )
        await self.store.record_lesson_completion(snapshot, xp)

        logger.info(
            f"User {user_id} completed lesson {lesson_id}: "
            f"xp={xp_earned} streak_bonus={streak_bonus}"
        )

        await self._run_follow_ups(
            user_id,
            lesson_id,
            [
                (
                    "enqueue_exercises",
                    lambda: self.review_queue.enqueue_all(
                        user_id, [exercise.id for exercise in exercises]
                    ),
                ),
                (
                    "update_course_progress",
                    lambda: self.progress.update_course_progress(user_id, course_id),
                ),
                ("record_streak", lambda: self.streaks.record_activity(user_id, now)),
            ],
        )

        return LessonCompletionResponse(
            lesson_id=lesson_id,
            xp_earned=xp_earned,
            streak_bonus=streak_bonus,
            completed_at=now,
        )

    # ===========================================
    # Helpers
    # ===========================================

    @staticmethod
    def _validate(time_spent: int, score: float) -> None:
        if time_spent is None or time_spent < 0:
            raise InvalidInputError(
                "time_spent must be zero or positive", details={"time_spent": time_spent}
            )
        if score is None or not 0 <= score <= 100:
            raise InvalidInputError(
                "score must be between 0 and 100", details={"score": score}
            )

    async def _resolve_course_id(self, lesson: Lesson) -> str:
        module = await self.store.get_module(lesson.module_id)
        if module is None:
            raise NotFoundError("Module not found", details={"module_id": lesson.module_id})

        course = await self.store.get_course(module.course_id)
        if course is None:
            raise NotFoundError("Course not found", details={"course_id": module.course_id})
        return course.id

    async def _reconcile(
        self,
        user_id: str,
        lesson_id: str,
        course_id: str,
        snapshot: ProgressSnapshot,
    ) -> None:
        """Re-run the idempotent follow-ups of an earlier completion."""
        await self._run_follow_ups(
            user_id,
            lesson_id,
            [
                (
                    "enqueue_exercises",
                    lambda: self.review_queue.enqueue_lesson_exercises(user_id, lesson_id),
                ),
                (
                    "update_course_progress",
                    lambda: self.progress.update_course_progress(user_id, course_id),
                ),
                (
                    "record_streak",
                    lambda: self._reconcile_streak(user_id, snapshot.completed_at),
                ),
            ],
        )

    async def _reconcile_streak(self, user_id: str, completed_at: datetime) -> None:
        # Never move a streak that already saw the completion's day (or a later one)
        streak = await self.store.get_streak(user_id)
        if streak is None or days_between(streak.last_active, completed_at) > 0:
            await self.streaks.record_activity(user_id, completed_at)

    async def _run_follow_ups(
        self, user_id: str, lesson_id: str, steps: list[FollowUp]
    ) -> None:
        """
        Run the post-commit steps.

        Every step runs even when an earlier one fails. The completion itself
        is already durable, so failures are reported together as one
        InfrastructureError and a retry reconciles the remaining steps.
        """
        failed: list[str] = []
        first_error: Optional[Exception] = None

        for step, action in steps:
            try:
                await action()
            except Exception as e:
                logger.error(
                    f"Post-completion step {step} failed for lesson {lesson_id}, "
                    f"user {user_id}: {e}",
                    exc_info=not isinstance(e, InfrastructureError),
                )
                failed.append(step)
                if first_error is None:
                    first_error = e

        if failed:
            raise InfrastructureError(
                f"Lesson completed but {', '.join(failed)} failed",
                details={"lesson_id": lesson_id, "failed_steps": failed},
            ) from first_error

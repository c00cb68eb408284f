"""
Exercise Attempt Service

Grades a learner's answer and feeds the outcome into the review queue.

Grading is exact: the answer is trimmed and lower-cased, then compared
with the lower-cased canonical answer and each lower-cased alternative.
No fuzzy matching.

Quality mapping for the scheduler:
    correct   → QUALITY_CORRECT (4)
    incorrect → QUALITY_INCORRECT (2), which always resets the entry
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, Optional
import logging

from fluentpath.config import settings
from fluentpath.db.models_learning import ExerciseAttempt, XpTransaction
from fluentpath.db.store import LearningStore
from fluentpath.enums.learning import XpReason, XpSourceType
from fluentpath.middleware.error_handling import InvalidInputError, NotFoundError
from fluentpath.models.learning import ExerciseAttemptResponse
from fluentpath.services.learning.review_queue import ReviewQueueService

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def grade_answer(
    answer: str, correct_answer: str, alternatives: Optional[Iterable[str]] = None
) -> bool:
    """Whether `answer` matches the canonical answer or an accepted alternative."""
    normalized = answer.strip().lower()
    accepted = {correct_answer.lower()}
    accepted.update(alt.lower() for alt in alternatives or [])
    return normalized in accepted


class ExerciseAttemptService:
    """Records graded attempts, reschedules reviews and awards XP."""

    def __init__(
        self,
        store: LearningStore,
        review_queue: ReviewQueueService,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.review_queue = review_queue
        self.clock = clock

    async def attempt_exercise(
        self,
        user_id: str,
        exercise_id: str,
        answer: Optional[str],
        time_spent: int,
    ) -> ExerciseAttemptResponse:
        """
        Grade and record an exercise attempt.

        Args:
            user_id: Learner id
            exercise_id: Attempted exercise
            answer: Learner's answer
            time_spent: Seconds spent (>= 0)

        Returns:
            ExerciseAttemptResponse; correct_answer is only set when wrong

        Raises:
            InvalidInputError: If the answer is blank or time_spent is negative
            NotFoundError: If the exercise doesn't exist
        """
        if answer is None or not answer.strip():
            raise InvalidInputError("answer is required")
        if time_spent is None or time_spent < 0:
            raise InvalidInputError(
                "time_spent must be zero or positive", details={"time_spent": time_spent}
            )

        exercise = await self.store.get_exercise(exercise_id)
        if exercise is None:
            raise NotFoundError("Exercise not found", details={"exercise_id": exercise_id})

        is_correct = grade_answer(answer, exercise.correct_answer, exercise.alternatives)
        score = exercise.points if is_correct else 0
        now = self.clock()

        attempt = await self.store.add_attempt(
            ExerciseAttempt(
                user_id=user_id,
                exercise_id=exercise_id,
                answer=answer,
                is_correct=is_correct,
                score=score,
                time_spent=time_spent,
                attempted_at=now,
            )
        )

        quality = settings.QUALITY_CORRECT if is_correct else settings.QUALITY_INCORRECT
        await self.review_queue.record_attempt_outcome(user_id, exercise_id, quality)

        if is_correct:
            await self.store.add_xp_transaction(
                XpTransaction(
                    user_id=user_id,
                    amount=score,
                    reason=XpReason.EXERCISE_COMPLETED.value,
                    source_id=exercise_id,
                    source_type=XpSourceType.EXERCISE.value,
                    created_at=now,
                )
            )

        logger.info(
            f"User {user_id} attempted exercise {exercise_id}: correct={is_correct}"
        )

        return ExerciseAttemptResponse(
            attempt_id=attempt.id,
            is_correct=is_correct,
            score=score,
            correct_answer=None if is_correct else exercise.correct_answer,
        )

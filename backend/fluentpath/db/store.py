"""
Learning Store

Persistence interface used by the learning services, plus its SQLAlchemy
implementation.

Services never touch a session directly; they receive a LearningStore so
they can be exercised against an in-memory fake in unit tests and against
PostgreSQL in production.

Usage:
    from fluentpath.db.store import SqlAlchemyLearningStore

    async with async_session_maker() as session:
        store = SqlAlchemyLearningStore(session)
        lesson = await store.get_lesson(lesson_id)

Consistency:
    Uniqueness is enforced by database constraints, not in-process locks.
    - create_enrollment / create_queue_entry / create_streak return the
      existing row when a concurrent request inserted it first.
    - record_lesson_completion writes the snapshot and its XP transaction
      in one transaction and raises AlreadyCompletedError if the
      (user, lesson) snapshot already exists.
    Any other SQLAlchemyError is rolled back and re-raised as
    InfrastructureError.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Protocol, Sequence
import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fluentpath.db.models_learning import (
    Course,
    CourseEnrollment,
    Exercise,
    ExerciseAttempt,
    Lesson,
    Module,
    ProgressSnapshot,
    ReviewQueueEntry,
    Streak,
    XpTransaction,
)
from fluentpath.middleware.error_handling import (
    AlreadyCompletedError,
    InfrastructureError,
)

logger = logging.getLogger(__name__)


class LearningStore(Protocol):
    """Repository interface for the learning core."""

    # Content
    async def get_course(self, course_id: str) -> Optional[Course]: ...

    async def get_module(self, module_id: str) -> Optional[Module]: ...

    async def get_lesson(self, lesson_id: str) -> Optional[Lesson]: ...

    async def get_exercise(self, exercise_id: str) -> Optional[Exercise]: ...

    async def list_lesson_exercises(self, lesson_id: str) -> list[Exercise]: ...

    async def list_published_modules(self, course_id: str) -> list[Module]: ...

    async def list_published_lessons(self, module_id: str) -> list[Lesson]: ...

    async def published_lesson_ids(self, course_id: str) -> set[str]: ...

    # Enrollments
    async def get_enrollment(
        self, user_id: str, course_id: str
    ) -> Optional[CourseEnrollment]: ...

    async def create_enrollment(
        self, enrollment: CourseEnrollment
    ) -> CourseEnrollment: ...

    async def list_enrollments(self, user_id: str) -> list[CourseEnrollment]: ...

    # Lesson completion
    async def get_snapshot(
        self, user_id: str, lesson_id: str
    ) -> Optional[ProgressSnapshot]: ...

    async def completed_lesson_ids(self, user_id: str, course_id: str) -> set[str]: ...

    async def record_lesson_completion(
        self, snapshot: ProgressSnapshot, xp: XpTransaction
    ) -> None: ...

    # Streaks and XP
    async def get_streak(self, user_id: str) -> Optional[Streak]: ...

    async def create_streak(self, streak: Streak) -> Streak: ...

    async def add_xp_transaction(self, xp: XpTransaction) -> XpTransaction: ...

    async def total_xp(self, user_id: str) -> int: ...

    # Exercise attempts
    async def add_attempt(self, attempt: ExerciseAttempt) -> ExerciseAttempt: ...

    async def attempt_counts(
        self, user_id: str, course_id: Optional[str] = None
    ) -> tuple[int, int]: ...

    async def total_time_spent(
        self, user_id: str, course_id: Optional[str] = None
    ) -> int: ...

    # Review queue
    async def get_queue_entry(
        self, user_id: str, exercise_id: str
    ) -> Optional[ReviewQueueEntry]: ...

    async def create_queue_entry(self, entry: ReviewQueueEntry) -> ReviewQueueEntry: ...

    async def list_due_entries(
        self,
        user_id: str,
        now: datetime,
        limit: Optional[int] = None,
        exercise_ids: Optional[Sequence[str]] = None,
    ) -> list[ReviewQueueEntry]: ...

    async def queue_counts(self, user_id: str, now: datetime) -> dict[str, int]: ...

    async def deactivate_entries(self, user_id: str, exercise_id: str) -> int: ...

    # Generic
    async def save(self, entity) -> None: ...


class SqlAlchemyLearningStore:
    """LearningStore backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the store.

        Args:
            db: Async database session. The store commits after each write.
        """
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        """Roll back and convert driver/ORM failures into InfrastructureError."""
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Persistence failure during {operation}: {e}")
            raise InfrastructureError(
                f"Persistence failure during {operation}",
                details={"operation": operation},
            ) from e

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def get_course(self, course_id: str) -> Optional[Course]:
        async with self._guard("get_course"):
            return await self.db.get(Course, course_id)

    async def get_module(self, module_id: str) -> Optional[Module]:
        async with self._guard("get_module"):
            return await self.db.get(Module, module_id)

    async def get_lesson(self, lesson_id: str) -> Optional[Lesson]:
        async with self._guard("get_lesson"):
            return await self.db.get(Lesson, lesson_id)

    async def get_exercise(self, exercise_id: str) -> Optional[Exercise]:
        async with self._guard("get_exercise"):
            return await self.db.get(Exercise, exercise_id)

    async def list_lesson_exercises(self, lesson_id: str) -> list[Exercise]:
        async with self._guard("list_lesson_exercises"):
            result = await self.db.execute(
                select(Exercise).where(Exercise.lesson_id == lesson_id)
            )
            return list(result.scalars().all())

    async def list_published_modules(self, course_id: str) -> list[Module]:
        async with self._guard("list_published_modules"):
            result = await self.db.execute(
                select(Module)
                .where(Module.course_id == course_id, Module.is_published.is_(True))
                .order_by(Module.sort_order.asc())
            )
            return list(result.scalars().all())

    async def list_published_lessons(self, module_id: str) -> list[Lesson]:
        async with self._guard("list_published_lessons"):
            result = await self.db.execute(
                select(Lesson)
                .where(Lesson.module_id == module_id, Lesson.is_published.is_(True))
                .order_by(Lesson.sort_order.asc())
            )
            return list(result.scalars().all())

    async def published_lesson_ids(self, course_id: str) -> set[str]:
        # Published lessons in every module of the course, published or not
        async with self._guard("published_lesson_ids"):
            result = await self.db.execute(
                select(Lesson.id)
                .join(Module, Lesson.module_id == Module.id)
                .where(Module.course_id == course_id, Lesson.is_published.is_(True))
            )
            return {row[0] for row in result.fetchall()}

    # ------------------------------------------------------------------
    # Enrollments
    # ------------------------------------------------------------------

    async def get_enrollment(
        self, user_id: str, course_id: str
    ) -> Optional[CourseEnrollment]:
        async with self._guard("get_enrollment"):
            result = await self.db.execute(
                select(CourseEnrollment).where(
                    CourseEnrollment.user_id == user_id,
                    CourseEnrollment.course_id == course_id,
                )
            )
            return result.scalar_one_or_none()

    async def create_enrollment(self, enrollment: CourseEnrollment) -> CourseEnrollment:
        async with self._guard("create_enrollment"):
            if await self._insert_unique(enrollment):
                return enrollment
            existing = await self.get_enrollment(enrollment.user_id, enrollment.course_id)
            return existing

    async def list_enrollments(self, user_id: str) -> list[CourseEnrollment]:
        async with self._guard("list_enrollments"):
            result = await self.db.execute(
                select(CourseEnrollment)
                .where(CourseEnrollment.user_id == user_id)
                .order_by(CourseEnrollment.last_accessed_at.desc().nulls_last())
            )
            return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Lesson completion
    # ------------------------------------------------------------------

    async def get_snapshot(
        self, user_id: str, lesson_id: str
    ) -> Optional[ProgressSnapshot]:
        async with self._guard("get_snapshot"):
            result = await self.db.execute(
                select(ProgressSnapshot).where(
                    ProgressSnapshot.user_id == user_id,
                    ProgressSnapshot.lesson_id == lesson_id,
                )
            )
            return result.scalar_one_or_none()

    async def completed_lesson_ids(self, user_id: str, course_id: str) -> set[str]:
        async with self._guard("completed_lesson_ids"):
            result = await self.db.execute(
                select(ProgressSnapshot.lesson_id)
                .where(
                    ProgressSnapshot.user_id == user_id,
                    ProgressSnapshot.course_id == course_id,
                )
                .distinct()
            )
            return {row[0] for row in result.fetchall()}

    async def record_lesson_completion(
        self, snapshot: ProgressSnapshot, xp: XpTransaction
    ) -> None:
        """Insert the snapshot and its XP transaction atomically."""
        async with self._guard("record_lesson_completion"):
            self.db.add_all([snapshot, xp])
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                raise AlreadyCompletedError(
                    "Lesson already completed",
                    details={"lesson_id": snapshot.lesson_id},
                ) from e

    # ------------------------------------------------------------------
    # Streaks and XP
    # ------------------------------------------------------------------

    async def get_streak(self, user_id: str) -> Optional[Streak]:
        async with self._guard("get_streak"):
            result = await self.db.execute(
                select(Streak).where(Streak.user_id == user_id)
            )
            return result.scalar_one_or_none()

    async def create_streak(self, streak: Streak) -> Streak:
        async with self._guard("create_streak"):
            if await self._insert_unique(streak):
                return streak
            return await self.get_streak(streak.user_id)

    async def add_xp_transaction(self, xp: XpTransaction) -> XpTransaction:
        async with self._guard("add_xp_transaction"):
            self.db.add(xp)
            await self.db.commit()
            return xp

    async def total_xp(self, user_id: str) -> int:
        async with self._guard("total_xp"):
            result = await self.db.execute(
                select(func.coalesce(func.sum(XpTransaction.amount), 0)).where(
                    XpTransaction.user_id == user_id
                )
            )
            return int(result.scalar() or 0)

    # ------------------------------------------------------------------
    # Exercise attempts
    # ------------------------------------------------------------------

    async def add_attempt(self, attempt: ExerciseAttempt) -> ExerciseAttempt:
        async with self._guard("add_attempt"):
            self.db.add(attempt)
            await self.db.commit()
            await self.db.refresh(attempt)
            return attempt

    async def attempt_counts(
        self, user_id: str, course_id: Optional[str] = None
    ) -> tuple[int, int]:
        """Return (total attempts, correct attempts)."""
        query = select(
            func.count(ExerciseAttempt.id),
            func.coalesce(
                func.sum(case((ExerciseAttempt.is_correct.is_(True), 1), else_=0)), 0
            ),
        ).where(ExerciseAttempt.user_id == user_id)

        if course_id:
            query = (
                query.join(Exercise, ExerciseAttempt.exercise_id == Exercise.id)
                .join(Lesson, Exercise.lesson_id == Lesson.id)
                .join(Module, Lesson.module_id == Module.id)
                .where(Module.course_id == course_id)
            )

        async with self._guard("attempt_counts"):
            result = await self.db.execute(query)
            total, correct = result.one()
            return int(total or 0), int(correct or 0)

    async def total_time_spent(
        self, user_id: str, course_id: Optional[str] = None
    ) -> int:
        query = select(func.coalesce(func.sum(ProgressSnapshot.time_spent), 0)).where(
            ProgressSnapshot.user_id == user_id
        )
        if course_id:
            query = query.where(ProgressSnapshot.course_id == course_id)

        async with self._guard("total_time_spent"):
            result = await self.db.execute(query)
            return int(result.scalar() or 0)

    # ------------------------------------------------------------------
    # Review queue
    # ------------------------------------------------------------------

    async def get_queue_entry(
        self, user_id: str, exercise_id: str
    ) -> Optional[ReviewQueueEntry]:
        async with self._guard("get_queue_entry"):
            result = await self.db.execute(
                select(ReviewQueueEntry).where(
                    ReviewQueueEntry.user_id == user_id,
                    ReviewQueueEntry.exercise_id == exercise_id,
                )
            )
            return result.scalar_one_or_none()

    async def create_queue_entry(self, entry: ReviewQueueEntry) -> ReviewQueueEntry:
        async with self._guard("create_queue_entry"):
            if await self._insert_unique(entry):
                return entry
            return await self.get_queue_entry(entry.user_id, entry.exercise_id)

    async def list_due_entries(
        self,
        user_id: str,
        now: datetime,
        limit: Optional[int] = None,
        exercise_ids: Optional[Sequence[str]] = None,
    ) -> list[ReviewQueueEntry]:
        query = select(ReviewQueueEntry).where(
            ReviewQueueEntry.user_id == user_id,
            ReviewQueueEntry.is_active.is_(True),
            ReviewQueueEntry.next_review <= now,
        )
        if exercise_ids is not None:
            if not exercise_ids:
                return []
            query = query.where(ReviewQueueEntry.exercise_id.in_(list(exercise_ids)))

        query = query.order_by(ReviewQueueEntry.next_review.asc())
        if limit is not None:
            query = query.limit(limit)

        async with self._guard("list_due_entries"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def queue_counts(self, user_id: str, now: datetime) -> dict[str, int]:
        """Count active entries: total, due now, learning and review."""
        query = select(
            func.count(ReviewQueueEntry.id),
            func.coalesce(
                func.sum(case((ReviewQueueEntry.next_review <= now, 1), else_=0)), 0
            ),
            func.coalesce(
                func.sum(case((ReviewQueueEntry.repetitions == 0, 1), else_=0)), 0
            ),
            func.coalesce(
                func.sum(case((ReviewQueueEntry.repetitions > 0, 1), else_=0)), 0
            ),
        ).where(
            ReviewQueueEntry.user_id == user_id,
            ReviewQueueEntry.is_active.is_(True),
        )

        async with self._guard("queue_counts"):
            result = await self.db.execute(query)
            total, due, learning, review = result.one()
            return {
                "total": int(total or 0),
                "due": int(due or 0),
                "learning": int(learning or 0),
                "review": int(review or 0),
            }

    async def deactivate_entries(self, user_id: str, exercise_id: str) -> int:
        async with self._guard("deactivate_entries"):
            result = await self.db.execute(
                update(ReviewQueueEntry)
                .where(
                    ReviewQueueEntry.user_id == user_id,
                    ReviewQueueEntry.exercise_id == exercise_id,
                )
                .values(is_active=False)
            )
            await self.db.commit()
            return result.rowcount or 0

    # ------------------------------------------------------------------
    # Generic
    # ------------------------------------------------------------------

    async def save(self, entity) -> None:
        async with self._guard(f"save {type(entity).__name__}"):
            self.db.add(entity)
            await self.db.commit()

    async def _insert_unique(self, entity) -> bool:
        """
        Insert inside a savepoint.

        Returns False (and leaves the outer transaction usable) if a unique
        constraint rejected the row.
        """
        try:
            async with self.db.begin_nested():
                self.db.add(entity)
                await self.db.flush()
        except IntegrityError:
            logger.debug(
                f"{type(entity).__name__} already exists; using the existing row"
            )
            return False
        await self.db.commit()
        return True

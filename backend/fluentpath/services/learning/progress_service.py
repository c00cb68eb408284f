"""
Progress Service

Aggregates a learner's progress through a course.

Responsibilities:
- Course enrollment (idempotent)
- Skill tree projection with sequential lock state
- Course completion percentage after each lesson completion
- Progress summary (XP, streak, accuracy, time spent)

Skill tree locking is a strictly linear chain:
    - the first module is unlocked; module N+1 unlocks when module N is complete
    - the first lesson of a module unlocks with its module
    - lesson K+1 unlocks when lesson K of the same module is complete

The tree is recomputed on every call; nothing is cached because completion
state changes with every lesson completion.

Usage:
    from fluentpath.services.learning import ProgressService

    service = ProgressService(store)
    tree = await service.skill_tree(user_id, course_id)
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import logging

from fluentpath.db.models_learning import CourseEnrollment
from fluentpath.db.store import LearningStore
from fluentpath.enums.learning import SkillNodeType
from fluentpath.middleware.error_handling import (
    InvalidInputError,
    NotEnrolledError,
    NotFoundError,
)
from fluentpath.models.learning import ProgressSummaryResponse, SkillTreeNode

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def completion_percentage(completed: int, total: int) -> float:
    """Percentage of `total` that is `completed`; 0 for an empty total."""
    if total <= 0:
        return 0.0
    return completed / total * 100


class ProgressService:
    """
    Service for enrollment, skill tree and course progress aggregation.
    """

    def __init__(
        self,
        store: LearningStore,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the progress service.

        Args:
            store: Persistence interface for content and learner state
            clock: Returns the current UTC time (overridable in tests)
        """
        self.store = store
        self.clock = clock

    # ===========================================
    # Enrollment
    # ===========================================

    async def enroll(self, user_id: str, course_id: str) -> CourseEnrollment:
        """
        Enroll a learner in a published course.

        Re-enrolling returns the existing enrollment.

        Raises:
            NotFoundError: If the course doesn't exist
            InvalidInputError: If the course is not published
        """
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", details={"course_id": course_id})
        if not course.is_published:
            raise InvalidInputError(
                "Course is not published", details={"course_id": course_id}
            )

        existing = await self.store.get_enrollment(user_id, course_id)
        if existing is not None:
            return existing

        enrollment = await self.store.create_enrollment(
            CourseEnrollment(
                user_id=user_id,
                course_id=course_id,
                enrolled_at=self.clock(),
                progress=0.0,
            )
        )
        logger.info(f"User {user_id} enrolled in course {course_id}")
        return enrollment

    async def list_enrollments(self, user_id: str) -> list[CourseEnrollment]:
        """Learner's enrollments, most recently accessed first."""
        return await self.store.list_enrollments(user_id)

    async def require_enrollment(self, user_id: str, course_id: str) -> CourseEnrollment:
        """
        Fetch the learner's enrollment in a course.

        Raises:
            NotEnrolledError: If the learner is not enrolled
        """
        enrollment = await self.store.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError(
                "Not enrolled in this course", details={"course_id": course_id}
            )
        return enrollment

    # ===========================================
    # Skill Tree
    # ===========================================

    async def skill_tree(self, user_id: str, course_id: str) -> list[SkillTreeNode]:
        """
        Build the course skill tree for a learner.

        Args:
            user_id: Learner id
            course_id: Course to project

        Returns:
            Published modules in sort order, each with its published lessons

        Raises:
            NotEnrolledError: If the learner is not enrolled in the course
        """
        await self.require_enrollment(user_id, course_id)

        modules = await self.store.list_published_modules(course_id)
        completed_ids = await self.store.completed_lesson_ids(user_id, course_id)

        tree: list[SkillTreeNode] = []
        previous_module_completed = True

        for module in modules:
            lessons = await self.store.list_published_lessons(module.id)
            completed_count = sum(1 for lesson in lessons if lesson.id in completed_ids)
            module_progress = completion_percentage(completed_count, len(lessons))
            module_completed = module_progress == 100

            lesson_nodes: list[SkillTreeNode] = []
            previous_lesson_completed = previous_module_completed

            for lesson in lessons:
                is_completed = lesson.id in completed_ids
                lesson_nodes.append(
                    SkillTreeNode(
                        id=lesson.id,
                        title=lesson.title,
                        type=SkillNodeType.LESSON,
                        is_locked=not previous_lesson_completed,
                        is_completed=is_completed,
                        progress=100 if is_completed else 0,
                        sort_order=lesson.sort_order,
                    )
                )
                previous_lesson_completed = is_completed

            tree.append(
                SkillTreeNode(
                    id=module.id,
                    title=module.title,
                    type=SkillNodeType.MODULE,
                    is_locked=not previous_module_completed,
                    is_completed=module_completed,
                    progress=module_progress,
                    sort_order=module.sort_order,
                    children=lesson_nodes,
                )
            )
            previous_module_completed = module_completed

        return tree

    # ===========================================
    # Course Progress
    # ===========================================

    async def update_course_progress(
        self, user_id: str, course_id: str
    ) -> Optional[CourseEnrollment]:
        """
        Recompute and persist the enrollment's completion percentage.

        completed_at is set when progress reaches 100 and cleared otherwise;
        last_accessed_at is always refreshed. Courses without published
        lessons are left untouched.

        Returns:
            The updated enrollment, or None if there was nothing to update
        """
        published = await self.store.published_lesson_ids(course_id)
        if not published:
            return None

        enrollment = await self.store.get_enrollment(user_id, course_id)
        if enrollment is None:
            return None

        # Lessons unpublished after completion no longer count
        completed = await self.store.completed_lesson_ids(user_id, course_id) & published
        now = self.clock()

        enrollment.progress = completion_percentage(len(completed), len(published))
        enrollment.last_accessed_at = now
        enrollment.completed_at = now if enrollment.progress == 100 else None
        await self.store.save(enrollment)

        logger.debug(
            f"Course {course_id} progress for user {user_id}: {enrollment.progress:.1f}%"
        )
        return enrollment

    # ===========================================
    # Summary
    # ===========================================

    async def progress_summary(
        self, user_id: str, course_id: Optional[str] = None
    ) -> ProgressSummaryResponse:
        """
        Aggregate learner progress, optionally scoped to one course.

        Total XP always spans the whole ledger; lessons, attempts and time
        spent are scoped to the course when one is given.
        """
        streak = await self.store.get_streak(user_id)
        total_xp = await self.store.total_xp(user_id)
        total_attempts, correct_attempts = await self.store.attempt_counts(
            user_id, course_id
        )
        time_spent = await self.store.total_time_spent(user_id, course_id)

        lessons_completed = 0
        completion = 0.0
        if course_id:
            lessons_completed = len(
                await self.store.completed_lesson_ids(user_id, course_id)
            )
            enrollment = await self.store.get_enrollment(user_id, course_id)
            completion = enrollment.progress if enrollment else 0.0
        else:
            for enrollment in await self.store.list_enrollments(user_id):
                lessons_completed += len(
                    await self.store.completed_lesson_ids(user_id, enrollment.course_id)
                )

        return ProgressSummaryResponse(
            user_id=user_id,
            course_id=course_id,
            streak=streak.current if streak else 0,
            accuracy=round(completion_percentage(correct_attempts, total_attempts), 1),
            completion_percentage=round(completion, 1),
            total_xp=total_xp,
            lessons_completed=lessons_completed,
            exercises_completed=total_attempts,
            time_spent=time_spent,
        )

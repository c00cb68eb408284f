"""
Learning Core API Models (Pydantic)

Request/response schemas for the learner API:
- Lesson completion and exercise attempts
- Review queue entries and statistics
- Skill tree, enrollments and progress summary

ARCHITECTURE NOTE:
    This file contains PYDANTIC models for API validation.
    There is a corresponding SQLAlchemy file: fluentpath/db/models_learning.py

    Data flows: API Request → Pydantic → Service → LearningStore → Database

API Contract:
    Request models use StrictRequest (extra="forbid") to reject unknown fields.
    Request bodies accept both `time_spent` and the camelCase `timeSpent`.
    Scheduling internals (ease factor, interval) never appear in the attempt
    response.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field, computed_field

from fluentpath.enums.learning import ReviewBucket, SkillNodeType
from fluentpath.models.base import StrictRequest, StrictResponse


# ===========================================
# Lesson Completion
# ===========================================


class LessonCompleteRequest(StrictRequest):
    """Body of POST /lessons/{id}/complete."""

    time_spent: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("time_spent", "timeSpent"),
        description="Seconds spent on the lesson",
    )
    score: float = Field(..., ge=0, le=100, description="Lesson score (0-100)")


class LessonCompletionResponse(StrictResponse):
    """
    Outcome of completing a lesson.

    xp_earned already includes the streak bonus when streak_bonus is true.
    """

    lesson_id: str
    xp_earned: int
    streak_bonus: bool
    completed_at: datetime


# ===========================================
# Exercise Attempts
# ===========================================


class ExerciseAttemptRequest(StrictRequest):
    """Body of POST /exercises/{id}/attempt."""

    answer: str = Field(..., min_length=1, description="Learner's answer")
    time_spent: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("time_spent", "timeSpent"),
        description="Seconds spent on the attempt",
    )


class ExerciseAttemptResponse(StrictResponse):
    """
    Grading result.

    correct_answer is only populated for wrong attempts; accepted
    alternatives are never returned.
    """

    attempt_id: str
    is_correct: bool
    score: int
    correct_answer: Optional[str] = None


# ===========================================
# Review Queue
# ===========================================


class ReviewQueueEntryResponse(StrictResponse):
    """A scheduled review of one exercise."""

    id: str
    exercise_id: str
    interval: int
    ease_factor: float
    repetitions: int
    next_review: datetime
    is_active: bool = True

    @computed_field
    @property
    def bucket(self) -> ReviewBucket:
        """Learning until the first successful review, review afterwards."""
        return ReviewBucket.LEARNING if self.repetitions == 0 else ReviewBucket.REVIEW


class QueueStatsResponse(StrictResponse):
    """Counts over a learner's active review queue entries."""

    total: int = 0
    due: int = 0
    learning: int = 0
    review: int = 0


# ===========================================
# Skill Tree & Enrollment
# ===========================================


class SkillTreeNode(StrictResponse):
    """
    Module or lesson node in a course skill tree.

    Modules carry their lessons in `children`; lesson nodes have no children.
    progress is 0-100 (lessons are either 0 or 100).
    """

    id: str
    title: str
    type: SkillNodeType
    is_locked: bool
    is_completed: bool
    progress: float
    sort_order: int
    children: Optional[list[SkillTreeNode]] = None


class EnrollmentResponse(StrictResponse):
    """A learner's course enrollment."""

    id: str
    course_id: str
    enrolled_at: datetime
    progress: float = 0.0
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ProgressSummaryResponse(StrictResponse):
    """
    Aggregated learner progress, optionally scoped to one course.

    accuracy and completion_percentage are rounded to one decimal place.
    """

    user_id: str
    course_id: Optional[str] = None
    streak: int = 0
    accuracy: float = 0.0
    completion_percentage: float = 0.0
    total_xp: int = 0
    lessons_completed: int = 0
    exercises_completed: int = 0
    time_spent: int = 0


SkillTreeNode.model_rebuild()

"""
SQLAlchemy Database Models for the Learning Core

These models back the SM-2 review queue, lesson completion and the
XP / streak gamification features.

Tables:
- courses, modules, lessons, exercises: Published course content (read-only here)
- course_enrollments: One row per (learner, course) with completion progress
- progress_snapshots: Immutable lesson completion events
- exercise_attempts: Immutable grading events
- review_queue_entries: SM-2 scheduling state per (learner, exercise)
- streaks: Consecutive-day activity counter per learner
- xp_transactions: Append-only XP ledger

ARCHITECTURE NOTE:
    This file contains SQLALCHEMY models for database persistence.
    There is a corresponding Pydantic file: fluentpath/models/learning.py

    Data flows: Service Layer → LearningStore → SQLAlchemy → Database

    Learner ids are opaque strings issued by the auth service; there is no
    users table in this schema.
"""

from datetime import datetime, timezone
from typing import List, Optional
import uuid

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fluentpath.db.base import Base


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ===========================================
# Course Content
# ===========================================


class Course(Base):
    """
    A language course.

    Attributes:
        id: UUID primary key.
        title: Display title.
        description: Optional long description.
        language_code: ISO code of the language being taught (e.g. "es").
        is_published: Unpublished courses cannot be enrolled in.
        created_at: Creation timestamp.
        modules: Ordered course modules.
    """

    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text)
    language_code: Mapped[str] = mapped_column(String(10), default="en")
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

    modules: Mapped[List["Module"]] = relationship(back_populates="course")


class Module(Base):
    """
    A group of lessons within a course, unlocked sequentially.

    Attributes:
        id: UUID primary key.
        course_id: Parent course.
        title: Display title.
        sort_order: Position within the course (ascending).
        is_published: Unpublished modules are hidden from the skill tree.
    """

    __tablename__ = "modules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    course_id: Mapped[str] = mapped_column(ForeignKey("courses.id"), index=True)
    title: Mapped[str] = mapped_column(String(200))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)

    course: Mapped["Course"] = relationship(back_populates="modules")
    lessons: Mapped[List["Lesson"]] = relationship(back_populates="module")


class Lesson(Base):
    """
    A single lesson; completing it awards XP and enqueues its exercises.

    Attributes:
        id: UUID primary key.
        module_id: Parent module.
        title: Display title.
        sort_order: Position within the module (ascending).
        is_published: Only published lessons count toward course progress.
    """

    __tablename__ = "lessons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    module_id: Mapped[str] = mapped_column(ForeignKey("modules.id"), index=True)
    title: Mapped[str] = mapped_column(String(200))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False)

    module: Mapped["Module"] = relationship(back_populates="lessons")
    exercises: Mapped[List["Exercise"]] = relationship(back_populates="lesson")


class Exercise(Base):
    """
    A gradable exercise belonging to a lesson.

    Attributes:
        id: UUID primary key.
        lesson_id: Parent lesson.
        exercise_type: Presentation type (translation, multiple_choice, ...).
        prompt: Question shown to the learner.
        correct_answer: Canonical answer, revealed only after a wrong attempt.
        alternatives: Other accepted answers (never revealed).
        points: XP awarded for a correct attempt; also feeds lesson XP.
    """

    __tablename__ = "exercises"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    lesson_id: Mapped[str] = mapped_column(ForeignKey("lessons.id"), index=True)
    exercise_type: Mapped[str] = mapped_column(String(50), default="translation")
    prompt: Mapped[str] = mapped_column(Text)
    correct_answer: Mapped[str] = mapped_column(Text)
    alternatives: Mapped[list] = mapped_column(JSON, default=list)
    points: Mapped[int] = mapped_column(Integer, default=10)

    lesson: Mapped["Lesson"] = relationship(back_populates="exercises")


# ===========================================
# Learner Progress
# ===========================================


class CourseEnrollment(Base):
    """
    A learner's enrollment in a course.

    Attributes:
        user_id: Learner id.
        course_id: Enrolled course.
        enrolled_at: When the learner enrolled.
        progress: Percentage (0-100) of published lessons completed.
        last_accessed_at: Last lesson completion in this course.
        completed_at: Set exactly when progress reaches 100, null otherwise.
    """

    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    course_id: Mapped[str] = mapped_column(ForeignKey("courses.id"), index=True)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    progress: Mapped[float] = mapped_column(Float, default=0.0)
    last_accessed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class ProgressSnapshot(Base):
    """
    Immutable record of one lesson completion.

    The (user_id, lesson_id) unique constraint is what makes completion
    exactly-once under concurrent requests.
    """

    __tablename__ = "progress_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_snapshot_user_lesson"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    course_id: Mapped[str] = mapped_column(ForeignKey("courses.id"), index=True)
    lesson_id: Mapped[str] = mapped_column(ForeignKey("lessons.id"), index=True)
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    time_spent: Mapped[int] = mapped_column(Integer, default=0)  # seconds
    score: Mapped[float] = mapped_column(Float, default=0.0)  # 0-100
    xp_earned: Mapped[int] = mapped_column(Integer, default=0)
    streak_bonus: Mapped[bool] = mapped_column(Boolean, default=False)


class ExerciseAttempt(Base):
    """Immutable record of one graded exercise attempt."""

    __tablename__ = "exercise_attempts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    exercise_id: Mapped[str] = mapped_column(ForeignKey("exercises.id"), index=True)
    answer: Mapped[str] = mapped_column(Text)
    is_correct: Mapped[bool] = mapped_column(Boolean)
    score: Mapped[int] = mapped_column(Integer, default=0)
    time_spent: Mapped[int] = mapped_column(Integer, default=0)  # seconds
    attempted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )


class ReviewQueueEntry(Base):
    """
    SM-2 scheduling state for one (learner, exercise) pair.

    Attributes:
        interval: Days between the last review and the next one (>= 1).
        ease_factor: SM-2 easiness factor (>= 1.3).
        repetitions: Consecutive successful reviews (0 = learning).
        next_review: When the exercise is next due.
        is_active: False once the entry is retired; entries are never deleted.

    interval, ease_factor and repetitions are only written together, from a
    SchedulingResult.
    """

    __tablename__ = "review_queue_entries"
    __table_args__ = (
        UniqueConstraint("user_id", "exercise_id", name="uq_review_queue_user_exercise"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    exercise_id: Mapped[str] = mapped_column(ForeignKey("exercises.id"), index=True)
    interval: Mapped[int] = mapped_column(Integer, default=1)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    next_review: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


class Streak(Base):
    """Consecutive-day activity streak, one row per learner."""

    __tablename__ = "streaks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), unique=True)
    current: Mapped[int] = mapped_column(Integer, default=0)
    longest: Mapped[int] = mapped_column(Integer, default=0)
    last_active: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class XpTransaction(Base):
    """
    Append-only XP ledger entry.

    reason is one of XpReason; source_id/source_type point at the lesson or
    exercise that earned the XP.
    """

    __tablename__ = "xp_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), index=True)
    amount: Mapped[int] = mapped_column(Integer)
    reason: Mapped[str] = mapped_column(String(50))
    source_id: Mapped[Optional[str]] = mapped_column(String(36))
    source_type: Mapped[Optional[str]] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now
    )

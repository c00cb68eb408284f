"""Learning core schema

Creates the course content tables (courses, modules, lessons, exercises)
and the learner progress tables (enrollments, progress snapshots,
exercise attempts, review queue, streaks, XP ledger).

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ===========================================
    # Course content
    # ===========================================
    op.create_table(
        "courses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("language_code", sa.String(10), nullable=False, server_default="en"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "modules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=False
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default="false"),
    )
    op.create_index("ix_modules_course_id", "modules", ["course_id"])

    op.create_table(
        "lessons",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "module_id", sa.String(36), sa.ForeignKey("modules.id"), nullable=False
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default="false"),
    )
    op.create_index("ix_lessons_module_id", "lessons", ["module_id"])

    op.create_table(
        "exercises",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "lesson_id", sa.String(36), sa.ForeignKey("lessons.id"), nullable=False
        ),
        sa.Column(
            "exercise_type", sa.String(50), nullable=False, server_default="translation"
        ),
        sa.Column("prompt", sa.Text(), nullable=False),
        # Canonical answer plus accepted alternatives (JSON list of strings)
        sa.Column("correct_answer", sa.Text(), nullable=False),
        sa.Column("alternatives", sa.JSON(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=False, server_default="10"),
    )
    op.create_index("ix_exercises_lesson_id", "exercises", ["lesson_id"])

    # ===========================================
    # Enrollments and lesson completions
    # ===========================================
    op.create_table(
        "course_enrollments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=False
        ),
        sa.Column(
            "enrolled_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("progress", sa.Float(), nullable=False, server_default="0"),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )
    op.create_index("ix_course_enrollments_user_id", "course_enrollments", ["user_id"])
    op.create_index(
        "ix_course_enrollments_course_id", "course_enrollments", ["course_id"]
    )

    op.create_table(
        "progress_snapshots",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "course_id", sa.String(36), sa.ForeignKey("courses.id"), nullable=False
        ),
        sa.Column(
            "lesson_id", sa.String(36), sa.ForeignKey("lessons.id"), nullable=False
        ),
        sa.Column(
            "completed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("xp_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak_bonus", sa.Boolean(), nullable=False, server_default="false"),
        # A lesson can be completed once per learner
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_snapshot_user_lesson"),
    )
    op.create_index("ix_progress_snapshots_user_id", "progress_snapshots", ["user_id"])
    op.create_index(
        "ix_progress_snapshots_course_id", "progress_snapshots", ["course_id"]
    )
    op.create_index(
        "ix_progress_snapshots_lesson_id", "progress_snapshots", ["lesson_id"]
    )

    # ===========================================
    # Exercise attempts and review queue
    # ===========================================
    op.create_table(
        "exercise_attempts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "exercise_id", sa.String(36), sa.ForeignKey("exercises.id"), nullable=False
        ),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_spent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "attempted_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_exercise_attempts_user_id", "exercise_attempts", ["user_id"])
    op.create_index(
        "ix_exercise_attempts_exercise_id", "exercise_attempts", ["exercise_id"]
    )

    op.create_table(
        "review_queue_entries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "exercise_id", sa.String(36), sa.ForeignKey("exercises.id"), nullable=False
        ),
        # SM-2 scheduling state
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("ease_factor", sa.Float(), nullable=False, server_default="2.5"),
        sa.Column("repetitions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_review", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        # Timestamps
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "user_id", "exercise_id", name="uq_review_queue_user_exercise"
        ),
    )
    op.create_index(
        "ix_review_queue_entries_user_id", "review_queue_entries", ["user_id"]
    )
    op.create_index(
        "ix_review_queue_entries_exercise_id", "review_queue_entries", ["exercise_id"]
    )
    op.create_index(
        "ix_review_queue_entries_next_review", "review_queue_entries", ["next_review"]
    )
    op.create_index(
        "ix_review_queue_entries_is_active", "review_queue_entries", ["is_active"]
    )

    # ===========================================
    # Streaks and XP ledger
    # ===========================================
    op.create_table(
        "streaks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False, unique=True),
        sa.Column("current", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_active", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "xp_transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        # lesson_completed, exercise_completed, streak_bonus
        sa.Column("reason", sa.String(50), nullable=False),
        sa.Column("source_id", sa.String(36), nullable=True),
        sa.Column("source_type", sa.String(20), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_xp_transactions_user_id", "xp_transactions", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_xp_transactions_user_id")
    op.drop_table("xp_transactions")
    op.drop_table("streaks")

    op.drop_index("ix_review_queue_entries_is_active")
    op.drop_index("ix_review_queue_entries_next_review")
    op.drop_index("ix_review_queue_entries_exercise_id")
    op.drop_index("ix_review_queue_entries_user_id")
    op.drop_table("review_queue_entries")

    op.drop_index("ix_exercise_attempts_exercise_id")
    op.drop_index("ix_exercise_attempts_user_id")
    op.drop_table("exercise_attempts")

    op.drop_index("ix_progress_snapshots_lesson_id")
    op.drop_index("ix_progress_snapshots_course_id")
    op.drop_index("ix_progress_snapshots_user_id")
    op.drop_table("progress_snapshots")

    op.drop_index("ix_course_enrollments_course_id")
    op.drop_index("ix_course_enrollments_user_id")
    op.drop_table("course_enrollments")

    op.drop_index("ix_exercises_lesson_id")
    op.drop_table("exercises")
    op.drop_index("ix_lessons_module_id")
    op.drop_table("lessons")
    op.drop_index("ix_modules_course_id")
    op.drop_table("modules")
    op.drop_table("courses")

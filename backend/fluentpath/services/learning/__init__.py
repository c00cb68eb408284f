"""
Learning Core Services

Spaced repetition, progress aggregation and the learner workflows.

Modules:
- scheduler: SM-2 interval computation (pure)
- rewards: Lesson XP and streak bonus calculations (pure)
- streak_tracking: Consecutive-day streak transitions
- review_queue: Per-learner review queue on top of the scheduler
- progress_service: Enrollment, skill tree and course progress
- lesson_completion: Lesson completion workflow
- exercise_attempts: Answer grading and exercise attempt workflow

Usage:
    from fluentpath.services.learning import (
        ReviewQueueService,
        ProgressService,
        LessonCompletionService,
        ExerciseAttemptService,
    )
"""

from fluentpath.services.learning.scheduler import (
    SchedulingResult,
    compute_next_review,
    round_half_up,
)
from fluentpath.services.learning.rewards import (
    apply_streak_bonus,
    lesson_base_xp,
    qualifies_for_streak_bonus,
)
from fluentpath.services.learning.streak_tracking import (
    StreakTrackingService,
    StreakUpdate,
    advance_streak,
)
from fluentpath.services.learning.review_queue import ReviewQueueService
from fluentpath.services.learning.progress_service import ProgressService
from fluentpath.services.learning.lesson_completion import LessonCompletionService
from fluentpath.services.learning.exercise_attempts import (
    ExerciseAttemptService,
    grade_answer,
)

__all__ = [
    # Pure functions
    "SchedulingResult",
    "compute_next_review",
    "round_half_up",
    "apply_streak_bonus",
    "lesson_base_xp",
    "qualifies_for_streak_bonus",
    "StreakUpdate",
    "advance_streak",
    "grade_answer",
    # Services
    "StreakTrackingService",
    "ReviewQueueService",
    "ProgressService",
    "LessonCompletionService",
    "ExerciseAttemptService",
]

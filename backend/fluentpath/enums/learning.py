"""
Learning System Enums

Defines enums for XP ledger entries, skill-tree nodes and review queue
buckets.
"""

from enum import Enum


class XpReason(str, Enum):
    """
    Why an XP transaction was recorded.

    The XP ledger is append-only; a learner's total XP is the sum of
    all transaction amounts.
    """

    LESSON_COMPLETED = "lesson_completed"
    EXERCISE_COMPLETED = "exercise_completed"
    STREAK_BONUS = "streak_bonus"


class XpSourceType(str, Enum):
    """Kind of entity an XP transaction points back to."""

    LESSON = "lesson"
    EXERCISE = "exercise"


class SkillNodeType(str, Enum):
    """Node kinds in the course skill tree."""

    MODULE = "module"
    LESSON = "lesson"


class ReviewBucket(str, Enum):
    """
    Review queue buckets derived from an entry's repetition count.

    - LEARNING: repetitions == 0 (new or recently failed)
    - REVIEW: repetitions > 0 (at least one successful review in a row)
    """

    LEARNING = "learning"
    REVIEW = "review"

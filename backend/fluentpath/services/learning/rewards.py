"""
XP reward calculations.

Pure functions; persistence of the resulting XP transactions happens in
the lesson completion and exercise attempt workflows.
"""

from fluentpath.config import settings
from fluentpath.services.learning.scheduler import round_half_up


def lesson_base_xp(score: float, total_points: int) -> int:
    """
    Base XP for completing a lesson.

    Scales the lesson's total exercise points by the score percentage.
    Lessons without exercise points are worth LESSON_DEFAULT_POINTS, and
    every completion earns at least LESSON_MIN_XP.

    Args:
        score: Lesson score (0-100)
        total_points: Sum of the lesson's exercise points

    Returns:
        Base XP before any streak bonus
    """
    points = total_points or settings.LESSON_DEFAULT_POINTS
    return max(settings.LESSON_MIN_XP, round_half_up(score / 100 * points))


def qualifies_for_streak_bonus(current_streak: int) -> bool:
    """Whether a streak is long enough to multiply lesson XP."""
    return current_streak >= settings.STREAK_BONUS_THRESHOLD_DAYS


def apply_streak_bonus(base_xp: int, current_streak: int) -> tuple[int, bool]:
    """
    Apply the streak multiplier to lesson XP.

    Returns:
        Tuple of (xp_earned, streak_bonus_applied)
    """
    if qualifies_for_streak_bonus(current_streak):
        return round_half_up(base_xp * settings.STREAK_BONUS_MULTIPLIER), True
    return base_xp, False

"""
SM-2 Spaced Repetition Scheduler

Pure implementation of the SuperMemo-2 interval algorithm used by the
review queue. No persistence, no global state: given the current
scheduling triple and a recall quality it returns the next one.

Key Concepts:
- Quality (q): Recall grade 0-5. q >= 3 is a pass.
- Repetitions (n): Consecutive passes. A failure resets it to 0.
- Interval (I): Days until the next review.
- Ease factor (EF): Interval multiplier, never below 1.3.

Algorithm:
    pass:  n += 1
           I = 1 if n == 1, 6 if n == 2, else round(I_prev × EF_prev)
           EF = EF + (0.1 − (5−q) × (0.08 + (5−q) × 0.02))
    fail:  n = 0, I = 1, EF unchanged
    EF = max(EF, 1.3)

Usage:
    from fluentpath.services.learning.scheduler import compute_next_review

    result = compute_next_review(current_interval=6, repetitions=2, ease_factor=2.5, quality=4)
    result.interval  # 15
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from fluentpath.config import settings
from fluentpath.middleware.error_handling import InvalidInputError

MIN_QUALITY = 0
MAX_QUALITY = 5


@dataclass(frozen=True)
class SchedulingResult:
    """Next scheduling state for a review queue entry."""

    interval: int  # days
    ease_factor: float
    repetitions: int
    next_review: datetime


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_next_review(
    current_interval: int,
    repetitions: int,
    ease_factor: float,
    quality: int,
    now: Optional[datetime] = None,
) -> SchedulingResult:
    """
    Compute the next review parameters with SM-2.

    The interval multiplier is the ease factor passed in, not the one
    updated by this review.

    Args:
        current_interval: Current interval in days (>= 1)
        repetitions: Consecutive successful reviews so far (>= 0)
        ease_factor: Current ease factor (>= 1.3)
        quality: Recall quality on the 0-5 scale
        now: Reference time (defaults to current UTC time)

    Returns:
        SchedulingResult with the new interval, ease factor, repetitions
        and next review timestamp (now + interval days)

    Raises:
        InvalidInputError: If quality is not an integer in 0-5
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidInputError(f"Quality must be an integer, got {quality!r}")
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidInputError(
            f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}"
        )

    now = now or datetime.now(timezone.utc)
    new_ease_factor = ease_factor

    if quality >= settings.SM2_PASSING_QUALITY:
        new_repetitions = repetitions + 1

        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            new_interval = round_half_up(current_interval * ease_factor)

        miss = MAX_QUALITY - quality
        new_ease_factor = ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    else:
        new_repetitions = 0
        new_interval = 1

    new_ease_factor = max(new_ease_factor, settings.SM2_MIN_EASE_FACTOR)

    return SchedulingResult(
        interval=new_interval,
        ease_factor=new_ease_factor,
        repetitions=new_repetitions,
        next_review=now + timedelta(days=new_interval),
    )

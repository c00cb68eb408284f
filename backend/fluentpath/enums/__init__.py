"""
Centralized enum definitions for the application.

Usage:
    from fluentpath.enums import XpReason, SkillNodeType
"""

from fluentpath.enums.learning import (
    ReviewBucket,
    SkillNodeType,
    XpReason,
    XpSourceType,
)

__all__ = [
    "ReviewBucket",
    "SkillNodeType",
    "XpReason",
    "XpSourceType",
]

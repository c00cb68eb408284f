"""API models package (Pydantic)."""

from fluentpath.models.base import DataResponse, ErrorDetail, StrictRequest, StrictResponse
from fluentpath.models.learning import (
    EnrollmentResponse,
    ExerciseAttemptRequest,
    ExerciseAttemptResponse,
    LessonCompleteRequest,
    LessonCompletionResponse,
    ProgressSummaryResponse,
    QueueStatsResponse,
    ReviewQueueEntryResponse,
    SkillTreeNode,
)

__all__ = [
    "DataResponse",
    "ErrorDetail",
    "StrictRequest",
    "StrictResponse",
    "EnrollmentResponse",
    "ExerciseAttemptRequest",
    "ExerciseAttemptResponse",
    "LessonCompleteRequest",
    "LessonCompletionResponse",
    "ProgressSummaryResponse",
    "QueueStatsResponse",
    "ReviewQueueEntryResponse",
    "SkillTreeNode",
]

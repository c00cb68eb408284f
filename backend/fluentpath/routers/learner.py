"""
Learner API Router

Endpoints for lesson completion, exercise attempts, the review queue and
course progress. Every endpoint acts on behalf of the learner identified
by the X-Learner-Id header; successful responses are wrapped as
{"data": ...}.

Endpoints:
- POST /api/lessons/{id}/complete - Complete a lesson
- POST /api/exercises/{id}/attempt - Submit an exercise attempt
- GET /api/spaced-repetition/next - Exercises due for review
- GET /api/spaced-repetition/stats - Review queue statistics
- GET /api/courses/{id}/skill-tree - Course skill tree with lock state
- POST /api/courses/{id}/enroll - Enroll in a course
- GET /api/enrollments - Learner's enrollments
- GET /api/progress - Progress summary, optionally per course

Business errors (not found, not enrolled, already completed, invalid
input) are raised by the services and rendered by ErrorHandlingMiddleware.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from fluentpath.config import settings
from fluentpath.db.store import LearningStore
from fluentpath.dependencies import CurrentLearner, get_learning_store
from fluentpath.models.base import DataResponse, ErrorDetail
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
from fluentpath.services.learning import (
    ExerciseAttemptService,
    LessonCompletionService,
    ProgressService,
    ReviewQueueService,
    StreakTrackingService,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["learner"])

ERROR_RESPONSES = {
    status.HTTP_403_FORBIDDEN: {"model": ErrorDetail},
    status.HTTP_404_NOT_FOUND: {"model": ErrorDetail},
    status.HTTP_409_CONFLICT: {"model": ErrorDetail},
    422: {"model": ErrorDetail},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorDetail},
}


# ===========================================
# Dependency Injection
# ===========================================


async def get_review_queue_service(
    store: LearningStore = Depends(get_learning_store),
) -> ReviewQueueService:
    """Get review queue service."""
    return ReviewQueueService(store)


async def get_progress_service(
    store: LearningStore = Depends(get_learning_store),
) -> ProgressService:
    """Get progress service."""
    return ProgressService(store)


async def get_lesson_completion_service(
    store: LearningStore = Depends(get_learning_store),
    review_queue: ReviewQueueService = Depends(get_review_queue_service),
    progress: ProgressService = Depends(get_progress_service),
) -> LessonCompletionService:
    """Get lesson completion service with dependencies."""
    return LessonCompletionService(
        store, review_queue, progress, StreakTrackingService(store)
    )


async def get_exercise_attempt_service(
    store: LearningStore = Depends(get_learning_store),
    review_queue: ReviewQueueService = Depends(get_review_queue_service),
) -> ExerciseAttemptService:
    """Get exercise attempt service with dependencies."""
    return ExerciseAttemptService(store, review_queue)


# ===========================================
# Workflow Endpoints
# ===========================================


@router.post(
    "/lessons/{lesson_id}/complete",
    response_model=DataResponse[LessonCompletionResponse],
    responses=ERROR_RESPONSES,
)
async def complete_lesson(
    lesson_id: str,
    request: LessonCompleteRequest,
    learner_id: str = CurrentLearner,
    service: LessonCompletionService = Depends(get_lesson_completion_service),
) -> DataResponse[LessonCompletionResponse]:
    """
    Complete a lesson.

    Awards XP (with the streak bonus after 7 consecutive days), queues the
    lesson's exercises for review and updates course progress and streak.
    A lesson can only be completed once per learner.
    """
    result = await service.complete_lesson(
        user_id=learner_id,
        lesson_id=lesson_id,
        time_spent=request.time_spent,
        score=request.score,
    )
    return DataResponse(data=result)


@router.post(
    "/exercises/{exercise_id}/attempt",
    response_model=DataResponse[ExerciseAttemptResponse],
    responses=ERROR_RESPONSES,
)
async def attempt_exercise(
    exercise_id: str,
    request: ExerciseAttemptRequest,
    learner_id: str = CurrentLearner,
    service: ExerciseAttemptService = Depends(get_exercise_attempt_service),
) -> DataResponse[ExerciseAttemptResponse]:
    """
    Submit an answer to an exercise.

    The canonical answer is only returned when the attempt is wrong.
    """
    result = await service.attempt_exercise(
        user_id=learner_id,
        exercise_id=exercise_id,
        answer=request.answer,
        time_spent=request.time_spent,
    )
    return DataResponse(data=result)


# ===========================================
# Spaced Repetition Endpoints
# ===========================================


@router.get(
    "/spaced-repetition/next",
    response_model=DataResponse[list[ReviewQueueEntryResponse]],
)
async def get_due_exercises(
    limit: int = Query(
        settings.DUE_EXERCISES_DEFAULT_LIMIT,
        ge=1,
        le=settings.DUE_EXERCISES_MAX_LIMIT,
        description="Maximum entries to return",
    ),
    learner_id: str = CurrentLearner,
    service: ReviewQueueService = Depends(get_review_queue_service),
) -> DataResponse[list[ReviewQueueEntryResponse]]:
    """Get exercises due for review, oldest first."""
    entries = await service.due_exercises(learner_id, limit=limit)
    return DataResponse(
        data=[ReviewQueueEntryResponse.model_validate(entry) for entry in entries]
    )


@router.get(
    "/spaced-repetition/stats",
    response_model=DataResponse[QueueStatsResponse],
)
async def get_queue_stats(
    learner_id: str = CurrentLearner,
    service: ReviewQueueService = Depends(get_review_queue_service),
) -> DataResponse[QueueStatsResponse]:
    """Get counts of total, due, learning and review entries."""
    return DataResponse(data=await service.queue_stats(learner_id))


# ===========================================
# Course Progress Endpoints
# ===========================================


@router.get(
    "/courses/{course_id}/skill-tree",
    response_model=DataResponse[list[SkillTreeNode]],
    responses=ERROR_RESPONSES,
)
async def get_skill_tree(
    course_id: str,
    learner_id: str = CurrentLearner,
    service: ProgressService = Depends(get_progress_service),
) -> DataResponse[list[SkillTreeNode]]:
    """
    Get the course skill tree.

    Modules and lessons unlock one after another as the previous one is
    completed.
    """
    return DataResponse(data=await service.skill_tree(learner_id, course_id))


@router.post(
    "/courses/{course_id}/enroll",
    response_model=DataResponse[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def enroll_in_course(
    course_id: str,
    learner_id: str = CurrentLearner,
    service: ProgressService = Depends(get_progress_service),
) -> DataResponse[EnrollmentResponse]:
    """Enroll in a published course. Re-enrolling returns the existing enrollment."""
    enrollment = await service.enroll(learner_id, course_id)
    return DataResponse(data=EnrollmentResponse.model_validate(enrollment))


@router.get("/enrollments", response_model=DataResponse[list[EnrollmentResponse]])
async def list_enrollments(
    learner_id: str = CurrentLearner,
    service: ProgressService = Depends(get_progress_service),
) -> DataResponse[list[EnrollmentResponse]]:
    """List the learner's enrollments, most recently accessed first."""
    enrollments = await service.list_enrollments(learner_id)
    return DataResponse(
        data=[EnrollmentResponse.model_validate(e) for e in enrollments]
    )


@router.get("/progress", response_model=DataResponse[ProgressSummaryResponse])
async def get_progress_summary(
    course_id: Optional[str] = Query(None, description="Scope the summary to one course"),
    learner_id: str = CurrentLearner,
    service: ProgressService = Depends(get_progress_service),
) -> DataResponse[ProgressSummaryResponse]:
    """Get XP, streak, accuracy and completion for the learner."""
    return DataResponse(data=await service.progress_summary(learner_id, course_id))

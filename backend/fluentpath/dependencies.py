"""
FastAPI Dependencies

Learner identity and database-backed persistence for the learner API.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from fluentpath.config import settings
from fluentpath.db.base import get_db
from fluentpath.db.store import LearningStore, SqlAlchemyLearningStore

# The learner is authenticated upstream; the gateway forwards the id
learner_id_header = APIKeyHeader(name=settings.LEARNER_ID_HEADER, auto_error=False)


async def get_current_learner_id(
    learner_id: str | None = Depends(learner_id_header),
) -> str:
    """
    Resolve the learner id forwarded by the gateway.

    Returns:
        str: The learner id

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if not learner_id or not learner_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing learner identity. Provide {settings.LEARNER_ID_HEADER} header.",
        )
    return learner_id.strip()


async def get_learning_store(db: AsyncSession = Depends(get_db)) -> LearningStore:
    """Get the SQLAlchemy-backed learning store for this request."""
    return SqlAlchemyLearningStore(db)


# Dependency that can be used in routers
CurrentLearner = Depends(get_current_learner_id)

"""API Routers package."""

from fluentpath.routers import health as health_router
from fluentpath.routers import learner as learner_router

__all__ = ["health_router", "learner_router"]

"""
API routes module.
"""

from readyq.api.routes.health import router as health_router
from readyq.api.routes.tasks import router as tasks_router

__all__ = ["health_router", "tasks_router"]

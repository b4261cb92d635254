"""Public schema exports shared across API route modules."""

from tasksync.schemas.auth import AuthStatusResponse
from tasksync.schemas.errors import ErrorResponse
from tasksync.schemas.health import HealthStatusResponse
from tasksync.schemas.tasks import SaveTasksResponse, TaskBoardRead

__all__ = [
    "AuthStatusResponse",
    "ErrorResponse",
    "HealthStatusResponse",
    "SaveTasksResponse",
    "TaskBoardRead",
]

"""Domain model exports."""

from tasksync.models.tasks import Task

__all__ = ["Task"]

"""Models package."""
from .task import Task, TaskStatus, TaskPriority
from .user import User, RefreshToken

__all__ = ["Task", "TaskStatus", "TaskPriority", "User", "RefreshToken"]

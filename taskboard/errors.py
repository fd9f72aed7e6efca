"""
Exceptions raised by the task board, its stores and the auth layer.
"""

from __future__ import annotations


class TaskBoardError(Exception):
    """Base class for task board errors."""


class NotAuthenticatedError(TaskBoardError):
    """Raised when an operation needs an identity and none is resolved."""


class UnknownTaskError(TaskBoardError, LookupError):
    """Raised when a task id is not part of the board's in-memory list."""

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} is not on the board")
        self.task_id = task_id


class BoardBusyError(TaskBoardError):
    """Raised when an identical action is already in flight."""

    def __init__(self, action: str):
        super().__init__(f"Action already in progress: {action}")
        self.action = action


class TaskStoreError(TaskBoardError):
    """A remote task store call failed."""


class TaskNotFoundError(TaskStoreError):
    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvalidCredentialsError(TaskBoardError):
    """The identity provider rejected a sign-in credential."""

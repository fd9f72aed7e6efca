"""
Pydantic schemas for the task board API.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from shared.types import Priority, Task
from taskboard.board import TaskBoard, TaskForm


class SessionRequest(BaseModel):
    id_token: str = Field(..., min_length=1)


class SessionResponse(BaseModel):
    identity: str


class LogoutResponse(BaseModel):
    redirect: str


class TaskPayload(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(default="", max_length=5000)
    priority: Priority = Priority.LOW


class FormPayload(BaseModel):
    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    priority: Optional[Priority] = None


class TaskResponse(BaseModel):
    id: str
    title: str
    description: str
    priority: Priority
    completed: bool
    owner_identity: str

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            completed=task.completed,
            owner_identity=task.owner_identity,
        )


class FormResponse(BaseModel):
    title: str
    description: str
    priority: Priority
    editing_id: Optional[str] = None

    @classmethod
    def from_form(cls, form: TaskForm) -> "FormResponse":
        return cls(
            title=form.title,
            description=form.description,
            priority=form.priority,
            editing_id=form.editing_id,
        )


class BoardResponse(BaseModel):
    identity: Optional[str]
    state: Literal["UNAUTHENTICATED", "LOADING", "READY"]
    tasks: list[TaskResponse]
    form: FormResponse

    @classmethod
    def from_board(cls, board: TaskBoard) -> "BoardResponse":
        return cls(
            identity=board.identity,
            state=board.state.value,
            tasks=[TaskResponse.from_task(task) for task in board.tasks],
            form=FormResponse.from_form(board.form),
        )


class DeleteResponse(BaseModel):
    id: str
    deleted: bool


class HealthResponse(BaseModel):
    status: Literal["ok"]

# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Any, Mapping

from shared.firebase_constants import (
    FIELD_COMPLETED,
    FIELD_DESCRIPTION,
    FIELD_OWNER_IDENTITY,
    FIELD_PRIORITY,
    FIELD_TITLE,
)


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        """Returns the matching priority, falling back to LOW for unknown values."""
        if isinstance(value, Priority):
            return value
        for priority in cls:
            if str(value).lower() == priority.value.lower():
                return priority
        return cls.LOW


@dataclass
class Task:
    """A single to-do record owned by one identity."""

    id: str
    title: str
    owner_identity: str
    description: str = ""
    priority: Priority = Priority.LOW
    completed: bool = False

    def to_document(self) -> dict:
        """Stored fields of the task, without the id."""
        return {
            FIELD_TITLE: self.title,
            FIELD_DESCRIPTION: self.description,
            FIELD_PRIORITY: self.priority.value,
            FIELD_COMPLETED: self.completed,
            FIELD_OWNER_IDENTITY: self.owner_identity,
        }

    @classmethod
    def from_document(cls, task_id: str, data: Mapping[str, Any]) -> "Task":
        return cls(
            id=task_id,
            title=data.get(FIELD_TITLE, ""),
            description=data.get(FIELD_DESCRIPTION) or "",
            priority=Priority.parse(data.get(FIELD_PRIORITY)),
            completed=bool(data.get(FIELD_COMPLETED, False)),
            owner_identity=data.get(FIELD_OWNER_IDENTITY, ""),
        )

    def with_fields(self, fields: Mapping[str, Any]) -> "Task":
        """Returns a copy with a partial document update applied.

        The id and owner are never taken from `fields`.
        """
        changes: dict[str, Any] = {}
        if FIELD_TITLE in fields:
            changes["title"] = fields[FIELD_TITLE]
        if FIELD_DESCRIPTION in fields:
            changes["description"] = fields[FIELD_DESCRIPTION] or ""
        if FIELD_PRIORITY in fields:
            changes["priority"] = Priority.parse(fields[FIELD_PRIORITY])
        if FIELD_COMPLETED in fields:
            changes["completed"] = bool(fields[FIELD_COMPLETED])
        return replace(self, **changes)

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic import field_validator


_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _parse_dt_utc(value: object) -> object:
  if value is None:
    return None
  if isinstance(value, datetime):
    dt = value
  elif isinstance(value, str):
    s = value.strip()
    if not s:
      return None
    if _DATE_ONLY_RE.fullmatch(s):
      dt = datetime.fromisoformat(s)
    else:
      dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
  else:
    return value

  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


class LoginIn(BaseModel):
  email: str
  password: str


class UserOut(BaseModel):
  id: str
  orgId: str | None
  email: str
  firstName: str
  lastName: str
  photoUrl: str | None
  role: Literal["admin", "member"]


class AssigneeInfoOut(BaseModel):
  id: str
  firstName: str
  lastName: str
  email: str
  photoUrl: str | None


class ProjectCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=200)
  description: str = ""
  assignee: list[str] = []


class ProjectUpdateIn(BaseModel):
  name: str | None = Field(default=None, min_length=1, max_length=200)
  description: str | None = None
  assignee: list[str] | None = None


class ProjectOut(BaseModel):
  id: str
  orgId: str | None
  name: str
  description: str
  assignee: list[str]
  assigneeInfo: list[AssigneeInfoOut] = []
  createdBy: str | None
  createdAt: datetime
  updatedAt: datetime


class SectionCreateIn(BaseModel):
  name: str = ""


class SectionUpdateIn(BaseModel):
  name: str | None = None
  order: int | None = Field(default=None, ge=0)


class SectionOut(BaseModel):
  id: str
  projectId: str
  name: str
  order: int
  isDefault: bool
  createdBy: str | None = None
  createdAt: datetime
  updatedAt: datetime


class StatusHistoryEntryOut(BaseModel):
  status: str
  timestamp: datetime
  changedBy: str | None


class TaskOut(BaseModel):
  id: str
  projectId: str
  sectionId: str | None
  title: str
  description: str
  assignee: list[str]
  assigneeInfo: list[AssigneeInfoOut] = []
  status: str
  statusHistory: list[StatusHistoryEntryOut]
  order: int
  priority: str
  dueDate: datetime | None
  attachments: list[Any]
  subtasks: list[Any]
  createdBy: str | None
  createdAt: datetime
  updatedAt: datetime


class BoardSectionOut(SectionOut):
  tasks: list[TaskOut]


class BoardOut(BaseModel):
  sections: list[BoardSectionOut]


class TaskCreateIn(BaseModel):
  title: str = ""
  description: str = ""
  sectionId: str | None = None
  status: str | None = None
  assignee: list[str] | str | None = None
  priority: str | None = Field(default=None, max_length=64)
  dueDate: datetime | None = None
  attachments: list[Any] = []
  subtasks: list[Any] = []

  @field_validator("dueDate", mode="before")
  @classmethod
  def _due_date_to_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class TaskUpdateIn(BaseModel):
  taskId: str
  title: str | None = None
  description: str | None = None
  status: str | None = None
  assignee: list[str] | str | None = None
  priority: str | None = Field(default=None, min_length=1, max_length=64)
  dueDate: datetime | None = None
  attachments: list[Any] | None = None
  subtasks: list[Any] | None = None

  @field_validator("dueDate", mode="before")
  @classmethod
  def _due_date_to_utc(cls, v: object) -> object:
    return _parse_dt_utc(v)


class TaskMoveIn(BaseModel):
  sectionId: str | None
  order: int = Field(ge=0)
  projectId: str | None = None


class PaginationOut(BaseModel):
  page: int
  limit: int
  total: int
  totalPages: int


class TaskListOut(BaseModel):
  tasks: list[TaskOut]
  pagination: PaginationOut


class AllTasksOut(BaseModel):
  tasks: list[TaskOut]


class TaskStatusOut(BaseModel):
  value: str
  label: str
  order: int
  color: str


class SystemStatusOut(BaseModel):
  generatedAt: datetime
  version: str
  buildSha: str
  startedAt: datetime
  runtime: dict[str, Any]
  counts: dict[str, int]

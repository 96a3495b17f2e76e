from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def _uuid() -> str:
  return str(uuid.uuid4())


def normalize_assignee(value: Any) -> list[str]:
  """Coerce stored assignee values into a de-duplicated list of user ids.

  Older rows hold a bare id string instead of a list; both shapes read back
  as a list so callers only ever see one representation.
  """
  if value is None:
    return []
  if isinstance(value, str):
    value = [value]
  out: list[str] = []
  for item in value:
    if item is None:
      continue
    s = str(item).strip()
    if s and s not in out:
      out.append(s)
  return out


class AssigneeList(TypeDecorator):
  impl = JSON
  cache_ok = True

  def process_bind_param(self, value: Any, dialect) -> list[str]:
    return normalize_assignee(value)

  def process_result_value(self, value: Any, dialect) -> list[str]:
    return normalize_assignee(value)


class UtcDateTime(TypeDecorator):
  # SQLite hands back naive values even for timezone-aware columns.
  impl = DateTime(timezone=True)
  cache_ok = True

  def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
    if value is not None and value.tzinfo is None:
      return value.replace(tzinfo=timezone.utc)
    return value


class Base(DeclarativeBase):
  pass


class User(Base):
  __tablename__ = "users"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  org_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
  email: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
  first_name: Mapped[str] = mapped_column(String, nullable=False, default="")
  last_name: Mapped[str] = mapped_column(String, nullable=False, default="")
  photo_url: Mapped[str | None] = mapped_column(String, nullable=True)
  role: Mapped[str] = mapped_column(String, nullable=False)
  password_hash: Mapped[str] = mapped_column(String, nullable=False)
  active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Session(Base):
  __tablename__ = "sessions"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
  created_ip: Mapped[str | None] = mapped_column(String, nullable=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False)
  expires_at: Mapped[datetime] = mapped_column(UtcDateTime, nullable=False)


class Project(Base):
  __tablename__ = "projects"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  org_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  assignee: Mapped[list[str]] = mapped_column(AssigneeList, nullable=False, default=list)
  # set once by whichever request creates the default sections
  sections_seeded_at: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
  created_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Section(Base):
  __tablename__ = "task_sections"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  name: Mapped[str] = mapped_column(String, nullable=False)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
  created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Task(Base):
  __tablename__ = "tasks"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  project_id: Mapped[str] = mapped_column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
  # no FK: a section id may dangle after out-of-band deletes and is folded on read
  section_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
  title: Mapped[str] = mapped_column(String, nullable=False)
  description: Mapped[str] = mapped_column(Text, nullable=False, default="")
  assignee: Mapped[list[str]] = mapped_column(AssigneeList, nullable=False, default=list)
  status: Mapped[str] = mapped_column(String, nullable=False)
  status_history: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
  order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  priority: Mapped[str] = mapped_column(String, nullable=False, default="Medium")
  due_date: Mapped[datetime | None] = mapped_column(UtcDateTime, nullable=True)
  attachments: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
  subtasks: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
  created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False)
  updated_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AuditEvent(Base):
  __tablename__ = "audit_events"

  id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
  project_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
  task_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
  actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
  event_type: Mapped[str] = mapped_column(String, nullable=False)
  entity_type: Mapped[str] = mapped_column(String, nullable=False)
  entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
  created_at: Mapped[datetime] = mapped_column(UtcDateTime, default=utcnow, nullable=False)

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.audit import write_audit
from tasktrack.board.assignees import validate_assignees
from tasktrack.board.history import initial_history
from tasktrack.board.sections import first_section, get_section, list_sections
from tasktrack.config import settings
from tasktrack.errors import NotFound, ValidationError
from tasktrack.models import Section, Task
from tasktrack.statuses import task_statuses

logger = logging.getLogger(__name__)


async def next_order(db: AsyncSession, project_id: str, section_id: str | None) -> int:
  # the null bucket is scoped to one project
  stmt = select(func.max(Task.order_index)).where(Task.project_id == project_id)
  if section_id is None:
    stmt = stmt.where(Task.section_id.is_(None))
  else:
    stmt = stmt.where(Task.section_id == section_id)
  res = await db.execute(stmt)
  max_pos = res.scalar_one()
  return (max_pos + 1) if max_pos is not None else 0


async def resolve_target_section(db: AsyncSession, project_id: str, section_id: str | None, *, actor_id: str | None) -> Section:
  if section_id:
    s = await get_section(db, section_id, lock=True)
    if s.project_id != project_id:
      raise NotFound("Section not found")
    return s
  s = await first_section(db, project_id)
  if s is None:
    await list_sections(db, project_id, actor_id=actor_id)
    s = await first_section(db, project_id)
  if s is None:
    raise NotFound("Project has no sections")
  # lock by id so concurrent creates in this section serialize on it
  return await get_section(db, s.id, lock=True)


def _required(value: str | None, field: str) -> str:
  cleaned = (value or "").strip()
  if not cleaned:
    raise ValidationError("Title and description are required", field=field)
  return cleaned


async def create_task(
  db: AsyncSession,
  project_id: str,
  *,
  title: str | None,
  description: str | None,
  actor_id: str,
  section_id: str | None = None,
  status: str | None = None,
  assignee: object = None,
  priority: str | None = None,
  due_date: datetime | None = None,
  attachments: list[Any] | None = None,
  subtasks: list[Any] | None = None,
) -> Task:
  """Create a task at the end of its target section."""
  clean_title = _required(title, "title")
  clean_description = _required(description, "description")
  assignee_ids = await validate_assignees(db, assignee)

  section = await resolve_target_section(db, project_id, section_id, actor_id=actor_id)
  order = await next_order(db, project_id, section.id)
  initial_status = task_statuses.normalize(status)

  t = Task(
    project_id=project_id,
    section_id=section.id,
    title=clean_title,
    description=clean_description,
    assignee=assignee_ids,
    status=initial_status,
    status_history=initial_history(initial_status, actor_id),
    order_index=order,
    priority=(priority or "").strip() or settings.default_task_priority,
    due_date=due_date,
    attachments=list(attachments or []),
    subtasks=list(subtasks or []),
    created_by=actor_id,
  )
  db.add(t)
  await db.flush()
  await write_audit(
    db,
    event_type="task.created",
    entity_type="Task",
    entity_id=t.id,
    project_id=project_id,
    task_id=t.id,
    actor_id=actor_id,
    payload={"title": t.title, "sectionId": t.section_id, "order": t.order_index, "status": t.status},
  )
  logger.debug("task %s placed in section %s at %d", t.id, t.section_id, t.order_index)
  return t

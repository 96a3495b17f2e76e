from __future__ import annotations

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.audit import write_audit
from tasktrack.board.assignees import validate_assignees
from tasktrack.board.history import record_status_change
from tasktrack.board.ordering import close_gap, get_task
from tasktrack.errors import NotFound, ValidationError
from tasktrack.models import Task, utcnow
from tasktrack.schemas import TaskUpdateIn


async def get_project_task(db: AsyncSession, project_id: str, task_id: str, *, lock: bool = False) -> Task:
  t = await get_task(db, task_id, lock=lock)
  if t.project_id != project_id:
    raise NotFound("Task not found")
  return t


async def update_task(db: AsyncSession, project_id: str, payload: TaskUpdateIn, *, actor_id: str) -> Task:
  t = await get_project_task(db, project_id, payload.taskId)
  fields = payload.model_fields_set
  changed: dict[str, object] = {}

  if "title" in fields and payload.title is not None:
    title = payload.title.strip()
    if not title:
      raise ValidationError("Title cannot be empty", field="title")
    t.title = title
    changed["title"] = title
  if "description" in fields and payload.description is not None:
    description = payload.description.strip()
    if not description:
      raise ValidationError("Description cannot be empty", field="description")
    t.description = description
    changed["description"] = description
  if "assignee" in fields:
    t.assignee = await validate_assignees(db, payload.assignee)
    changed["assignee"] = t.assignee
  if "priority" in fields and payload.priority is not None:
    t.priority = payload.priority
    changed["priority"] = t.priority
  if "dueDate" in fields:
    t.due_date = payload.dueDate
    changed["dueDate"] = t.due_date
  if "attachments" in fields and payload.attachments is not None:
    t.attachments = list(payload.attachments)
    changed["attachments"] = len(t.attachments)
  if "subtasks" in fields and payload.subtasks is not None:
    t.subtasks = list(payload.subtasks)
    changed["subtasks"] = len(t.subtasks)

  prev_status = t.status
  if "status" in fields and record_status_change(t, payload.status, actor_id):
    changed["status"] = {"from": prev_status, "to": t.status}

  t.updated_at = utcnow()
  await db.flush()
  await write_audit(
    db,
    event_type="task.updated",
    entity_type="Task",
    entity_id=t.id,
    project_id=project_id,
    task_id=t.id,
    actor_id=actor_id,
    payload=changed,
  )
  return t


async def delete_task(db: AsyncSession, project_id: str, task_id: str, *, actor_id: str) -> None:
  t = await get_project_task(db, project_id, task_id, lock=True)
  await close_gap(db, t)
  await db.execute(delete(Task).where(Task.id == t.id))
  await write_audit(
    db,
    event_type="task.deleted",
    entity_type="Task",
    entity_id=t.id,
    project_id=project_id,
    task_id=t.id,
    actor_id=actor_id,
    payload={"title": t.title, "sectionId": t.section_id, "order": t.order_index},
  )

from __future__ import annotations

import math
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.board import placement
from tasktrack.board.assignees import resolve_identities
from tasktrack.board.ordering import get_task, move_task as move_task_in_board
from tasktrack.board.tasks import delete_task as delete_project_task, update_task as update_project_task
from tasktrack.board.views import task_out
from tasktrack.config import settings
from tasktrack.deps import can_access_project, get_current_user, get_db, get_project_for_user, parse_id
from tasktrack.models import Project, Task, User
from tasktrack.schemas import AllTasksOut, PaginationOut, TaskCreateIn, TaskListOut, TaskMoveIn, TaskStatusOut, TaskUpdateIn
from tasktrack.statuses import task_statuses

router = APIRouter(tags=["tasks"])

_SORT_COLUMNS = {
  "createdAt": Task.created_at,
  "status": Task.status,
  "title": Task.title,
}


async def _task_response(db: AsyncSession, t: Task) -> dict:
  return {"task": task_out(t, await resolve_identities(db, t.assignee))}


@router.get("/projects/{project_id}/tasks", response_model=TaskListOut)
async def list_tasks(
  project_id: str,
  page: int = Query(default=1, ge=1),
  limit: int = Query(default=10, ge=1),
  search: str | None = None,
  sortBy: Literal["createdAt", "status", "title"] = "createdAt",
  sortOrder: Literal["asc", "desc"] = "desc",
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> TaskListOut:
  p = await get_project_for_user(db, project_id, user)
  limit = min(limit, int(settings.tasks_page_limit_max))

  filters = [Task.project_id == p.id]
  q = (search or "").strip()
  if q:
    like = f"%{q}%"
    filters.append(or_(Task.title.ilike(like), Task.description.ilike(like)))

  total = (await db.execute(select(func.count()).select_from(Task).where(*filters))).scalar_one() or 0
  col = _SORT_COLUMNS[sortBy]
  res = await db.execute(
    select(Task)
    .where(*filters)
    .order_by(col.asc() if sortOrder == "asc" else col.desc(), Task.id.asc())
    .offset((page - 1) * limit)
    .limit(limit)
  )
  tasks = list(res.scalars().all())
  identities = await resolve_identities(db, (uid for t in tasks for uid in t.assignee))
  return TaskListOut(
    tasks=[task_out(t, identities) for t in tasks],
    pagination=PaginationOut(page=page, limit=limit, total=total, totalPages=math.ceil(total / limit)),
  )


@router.get("/tasks", response_model=AllTasksOut)
async def list_all_tasks(
  limit: int = Query(default=1000, ge=1),
  mine: bool = False,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> AllTasksOut:
  """Tasks across every project the caller can see, newest first.

  A task is visible when its project is accessible or the caller is one of
  its assignees. ``mine`` keeps only the latter.
  """
  limit = min(limit, int(settings.all_tasks_limit_max))
  stmt = select(Project)
  if user.org_id is not None:
    stmt = stmt.where(Project.org_id == user.org_id)
  projects = list((await db.execute(stmt)).scalars().all())
  if not projects:
    return AllTasksOut(tasks=[])
  accessible = {p.id for p in projects if can_access_project(user, p)}

  res = await db.execute(
    select(Task)
    .where(Task.project_id.in_([p.id for p in projects]))
    .order_by(Task.created_at.desc(), Task.id.asc())
  )
  tasks = []
  # assignee is a JSON list, so membership is checked after loading
  for t in res.scalars():
    assigned = user.id in (t.assignee or [])
    if assigned or (not mine and t.project_id in accessible):
      tasks.append(t)
      if len(tasks) >= limit:
        break
  identities = await resolve_identities(db, (uid for t in tasks for uid in t.assignee))
  return AllTasksOut(tasks=[task_out(t, identities) for t in tasks])


@router.post("/projects/{project_id}/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(
  project_id: str,
  payload: TaskCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  p = await get_project_for_user(db, project_id, user)
  t = await placement.create_task(
    db,
    p.id,
    title=payload.title,
    description=payload.description,
    actor_id=user.id,
    section_id=payload.sectionId,
    status=payload.status,
    assignee=payload.assignee,
    priority=payload.priority,
    due_date=payload.dueDate,
    attachments=payload.attachments,
    subtasks=payload.subtasks,
  )
  await db.commit()
  return await _task_response(db, t)


@router.patch("/projects/{project_id}/tasks")
async def update_task(
  project_id: str,
  payload: TaskUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  p = await get_project_for_user(db, project_id, user)
  t = await update_project_task(db, p.id, payload, actor_id=user.id)
  await db.commit()
  return await _task_response(db, t)


@router.delete("/projects/{project_id}/tasks")
async def delete_task(
  project_id: str,
  taskId: str = Query(...),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  p = await get_project_for_user(db, project_id, user)
  await delete_project_task(db, p.id, parse_id(taskId, "task"), actor_id=user.id)
  await db.commit()
  return {"message": "Task deleted successfully"}


@router.patch("/tasks/{task_id}/move")
async def move_task(
  task_id: str,
  payload: TaskMoveIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  t = await get_task(db, task_id)
  await get_project_for_user(db, t.project_id, user)
  t = await move_task_in_board(
    db,
    t,
    target_section_id=payload.sectionId,
    target_order=payload.order,
    project_id=payload.projectId,
    actor_id=user.id,
  )
  await db.commit()
  return await _task_response(db, t)


@router.get("/config/task-statuses")
async def list_task_statuses(_: User = Depends(get_current_user)) -> dict:
  return {"statuses": [TaskStatusOut(value=s.value, label=s.label, order=s.order, color=s.color) for s in task_statuses]}

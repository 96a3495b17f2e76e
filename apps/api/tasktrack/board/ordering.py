from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.audit import write_audit
from tasktrack.board.sections import get_section
from tasktrack.deps import parse_id
from tasktrack.errors import InvalidOperation, NotFound
from tasktrack.models import Project, Section, Task, utcnow

logger = logging.getLogger(__name__)


def _bucket(project_id: str, section_id: str | None) -> list:
  conds = [Task.project_id == project_id]
  if section_id is None:
    conds.append(Task.section_id.is_(None))
  else:
    conds.append(Task.section_id == section_id)
  return conds


async def _shift(db: AsyncSession, conds: list, delta: int) -> int:
  # Siblings keep their own updated_at; only the moved task is touched.
  res = await db.execute(
    update(Task)
    .where(*conds)
    .values(order_index=Task.order_index + delta, updated_at=Task.updated_at)
    .execution_options(synchronize_session=False)
  )
  return res.rowcount or 0


async def _bucket_size(db: AsyncSession, project_id: str, section_id: str | None) -> int:
  res = await db.execute(select(func.count()).select_from(Task).where(*_bucket(project_id, section_id)))
  return res.scalar_one() or 0


async def lock_buckets(db: AsyncSession, project_id: str, section_ids: set[str | None]) -> None:
  """Take row locks guarding every bucket a write will shift.

  Section rows are locked in id order; the null bucket is guarded by the
  project row. No-ops on backends without ``FOR UPDATE`` support.
  """
  real = sorted(s for s in section_ids if s is not None)
  if real:
    await db.execute(select(Section.id).where(Section.id.in_(real)).order_by(Section.id).with_for_update())
  if None in section_ids:
    await db.execute(select(Project.id).where(Project.id == project_id).with_for_update())


async def get_task(db: AsyncSession, task_id: str, *, lock: bool = False) -> Task:
  tid = parse_id(task_id, "task")
  stmt = select(Task).where(Task.id == tid)
  if lock:
    stmt = stmt.with_for_update().execution_options(populate_existing=True)
  res = await db.execute(stmt)
  t = res.scalar_one_or_none()
  if not t:
    raise NotFound("Task not found")
  return t


async def move_task(
  db: AsyncSession,
  task: Task,
  *,
  target_section_id: str | None,
  target_order: int,
  project_id: str | None = None,
  actor_id: str | None = None,
) -> Task:
  """Place ``task`` at ``target_order`` in the target section and re-sequence siblings.

  Orders in the source and destination sections stay dense (0..n-1). A
  position past the end appends. All checks run before the first shift, and
  the caller's transaction covers every write made here.
  """
  if project_id is not None and parse_id(project_id, "project") != task.project_id:
    raise InvalidOperation("Task does not belong to this project")

  target_id: str | None = None
  if target_section_id is not None:
    target = await get_section(db, target_section_id)
    if project_id is not None and target.project_id != parse_id(project_id, "project"):
      raise InvalidOperation("Section does not belong to this project")
    if target.project_id != task.project_id:
      raise InvalidOperation("Section does not belong to the task's project")
    target_id = target.id

  # Re-read under lock so the old position is current.
  task = await get_task(db, task.id, lock=True)
  await lock_buckets(db, task.project_id, {task.section_id, target_id})

  old_section_id = task.section_id
  old_order = task.order_index
  same_bucket = old_section_id == target_id

  size = await _bucket_size(db, task.project_id, target_id)
  max_order = size - 1 if same_bucket else size
  new_order = max(0, min(int(target_order), max_order))

  if same_bucket and new_order == old_order:
    task.updated_at = utcnow()
    await db.flush()
    return task

  others = Task.id != task.id
  if not same_bucket:
    await _shift(db, [*_bucket(task.project_id, old_section_id), others, Task.order_index > old_order], -1)
    await _shift(db, [*_bucket(task.project_id, target_id), others, Task.order_index >= new_order], 1)
  elif new_order > old_order:
    await _shift(
      db,
      [*_bucket(task.project_id, target_id), others, Task.order_index > old_order, Task.order_index <= new_order],
      -1,
    )
  else:
    await _shift(
      db,
      [*_bucket(task.project_id, target_id), others, Task.order_index >= new_order, Task.order_index < old_order],
      1,
    )

  task.section_id = target_id
  task.order_index = new_order
  task.updated_at = utcnow()
  await db.flush()
  await write_audit(
    db,
    event_type="task.moved",
    entity_type="Task",
    entity_id=task.id,
    project_id=task.project_id,
    task_id=task.id,
    actor_id=actor_id,
    payload={
      "fromSectionId": old_section_id,
      "fromOrder": old_order,
      "toSectionId": target_id,
      "toOrder": new_order,
    },
  )
  logger.info(
    "moved task %s from %s[%d] to %s[%d]", task.id, old_section_id, old_order, target_id, new_order
  )
  return task


async def close_gap(db: AsyncSession, task: Task) -> int:
  """Pull up the siblings after ``task`` so its bucket stays dense once it is gone."""
  await lock_buckets(db, task.project_id, {task.section_id})
  return await _shift(
    db,
    [*_bucket(task.project_id, task.section_id), Task.id != task.id, Task.order_index > task.order_index],
    -1,
  )

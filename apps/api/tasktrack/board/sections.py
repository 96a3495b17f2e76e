from __future__ import annotations

import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.audit import write_audit
from tasktrack.deps import parse_id
from tasktrack.errors import Conflict, InvalidOperation, NotFound, ValidationError
from tasktrack.models import Project, Section, Task, utcnow

logger = logging.getLogger(__name__)

DEFAULT_SECTIONS = ("To Do", "In Progress", "Completed")


async def _read_sections(db: AsyncSession, project_id: str) -> list[Section]:
  res = await db.execute(
    select(Section)
    .where(Section.project_id == project_id)
    .order_by(Section.order_index.asc(), Section.created_at.asc())
  )
  return list(res.scalars().all())


async def list_sections(db: AsyncSession, project_id: str, *, actor_id: str | None = None) -> list[Section]:
  """Return the project's sections by order, creating the defaults on first use.

  Only the request that flips ``sections_seeded_at`` from NULL inserts the
  defaults; a concurrent first read waits on that row and then re-reads.
  A project that was seeded but has since lost every section is seeded
  again under the project row lock.
  """
  sections = await _read_sections(db, project_id)
  if sections:
    return sections

  now = utcnow()
  claim = await db.execute(
    update(Project)
    .where(Project.id == project_id, Project.sections_seeded_at.is_(None))
    .values(sections_seeded_at=now, updated_at=Project.updated_at)
    .execution_options(synchronize_session=False)
  )
  reseed = claim.rowcount != 1
  if reseed:
    sections = await _read_sections(db, project_id)
    if sections:
      return sections
    await db.execute(select(Project.id).where(Project.id == project_id).with_for_update())
    sections = await _read_sections(db, project_id)
    if sections:
      return sections

  db.add_all(
    [
      Section(
        project_id=project_id,
        name=name,
        order_index=idx,
        is_default=True,
        created_by=actor_id,
        created_at=now,
        updated_at=now,
      )
      for idx, name in enumerate(DEFAULT_SECTIONS)
    ]
  )
  await db.flush()
  await write_audit(
    db,
    event_type="sections.bootstrapped",
    entity_type="Project",
    entity_id=project_id,
    project_id=project_id,
    actor_id=actor_id,
    payload={"names": list(DEFAULT_SECTIONS), "reseeded": reseed},
  )
  if reseed:
    logger.warning("project %s had no sections left; recreated the defaults", project_id)
  else:
    logger.info("created default sections for project %s", project_id)
  return await _read_sections(db, project_id)


async def first_section(db: AsyncSession, project_id: str) -> Section | None:
  res = await db.execute(
    select(Section)
    .where(Section.project_id == project_id)
    .order_by(Section.order_index.asc(), Section.created_at.asc())
    .limit(1)
  )
  return res.scalar_one_or_none()


async def get_section(db: AsyncSession, section_id: str, *, lock: bool = False) -> Section:
  sid = parse_id(section_id, "section")
  stmt = select(Section).where(Section.id == sid)
  if lock:
    stmt = stmt.with_for_update()
  res = await db.execute(stmt)
  s = res.scalar_one_or_none()
  if not s:
    raise NotFound("Section not found")
  return s


def _clean_name(name: str | None) -> str:
  cleaned = (name or "").strip()
  if not cleaned:
    raise ValidationError("Section name is required", field="name")
  return cleaned


async def create_section(db: AsyncSession, project_id: str, name: str | None, *, actor_id: str | None) -> Section:
  cleaned = _clean_name(name)
  res = await db.execute(select(func.max(Section.order_index)).where(Section.project_id == project_id))
  max_pos = res.scalar_one()
  s = Section(
    project_id=project_id,
    name=cleaned,
    order_index=(max_pos + 1) if max_pos is not None else 0,
    is_default=False,
    created_by=actor_id,
  )
  db.add(s)
  await db.flush()
  await write_audit(
    db,
    event_type="section.created",
    entity_type="Section",
    entity_id=s.id,
    project_id=project_id,
    actor_id=actor_id,
    payload={"name": s.name, "order": s.order_index},
  )
  return s


async def update_section(
  db: AsyncSession,
  section: Section,
  *,
  name: str | None = None,
  order: int | None = None,
  actor_id: str | None,
) -> Section:
  # Plain field update: sibling orders are left as they are.
  if name is not None:
    section.name = _clean_name(name)
  if order is not None:
    section.order_index = order
  await db.flush()
  await write_audit(
    db,
    event_type="section.updated",
    entity_type="Section",
    entity_id=section.id,
    project_id=section.project_id,
    actor_id=actor_id,
    payload={"name": section.name, "order": section.order_index},
  )
  return section


async def count_section_tasks(db: AsyncSession, section_id: str) -> int:
  res = await db.execute(select(func.count()).select_from(Task).where(Task.section_id == section_id))
  return res.scalar_one() or 0


async def delete_section(db: AsyncSession, section: Section, *, actor_id: str | None) -> None:
  if section.is_default:
    raise InvalidOperation("Cannot delete default sections")
  n = await count_section_tasks(db, section.id)
  if n > 0:
    raise Conflict(f"Cannot delete section with {n} task(s). Please move tasks first.", status_code=400, taskCount=n)

  await db.execute(delete(Section).where(Section.id == section.id))
  await write_audit(
    db,
    event_type="section.deleted",
    entity_type="Section",
    entity_id=section.id,
    project_id=section.project_id,
    actor_id=actor_id,
    payload={"name": section.name},
  )

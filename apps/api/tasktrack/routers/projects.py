from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.audit import write_audit
from tasktrack.board.assignees import resolve_identities, validate_assignees
from tasktrack.board.views import project_out
from tasktrack.deps import can_access_project, get_current_user, get_db, get_project_for_user, require_admin
from tasktrack.models import Project, Section, Task, User
from tasktrack.schemas import ProjectCreateIn, ProjectOut, ProjectUpdateIn

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=list[ProjectOut])
async def list_projects(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ProjectOut]:
  stmt = select(Project).order_by(Project.created_at.desc())
  if user.org_id is not None:
    stmt = stmt.where(Project.org_id == user.org_id)
  res = await db.execute(stmt)
  # assignee is a JSON list, so membership is checked after loading
  projects = [p for p in res.scalars().all() if can_access_project(user, p)]
  identities = await resolve_identities(db, (uid for p in projects for uid in p.assignee))
  return [project_out(p, identities) for p in projects]


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def create_project(
  payload: ProjectCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ProjectOut:
  require_admin(user)
  assignee = await validate_assignees(db, [user.id, *payload.assignee])
  p = Project(
    org_id=user.org_id,
    name=payload.name.strip(),
    description=payload.description,
    assignee=assignee,
    created_by=user.id,
  )
  db.add(p)
  await db.flush()
  await write_audit(
    db,
    event_type="project.created",
    entity_type="Project",
    entity_id=p.id,
    project_id=p.id,
    actor_id=user.id,
    payload={"name": p.name, "assignee": p.assignee},
  )
  await db.commit()
  return project_out(p, await resolve_identities(db, p.assignee))


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> ProjectOut:
  p = await get_project_for_user(db, project_id, user)
  return project_out(p, await resolve_identities(db, p.assignee))


@router.patch("/{project_id}", response_model=ProjectOut)
async def update_project(
  project_id: str,
  payload: ProjectUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ProjectOut:
  p = await get_project_for_user(db, project_id, user)
  require_admin(user)
  if payload.name is not None:
    p.name = payload.name.strip()
  if payload.description is not None:
    p.description = payload.description
  if payload.assignee is not None:
    p.assignee = await validate_assignees(db, payload.assignee)
  await db.flush()
  await write_audit(
    db,
    event_type="project.updated",
    entity_type="Project",
    entity_id=p.id,
    project_id=p.id,
    actor_id=user.id,
    payload={"name": p.name, "assignee": p.assignee},
  )
  await db.commit()
  return project_out(p, await resolve_identities(db, p.assignee))


@router.delete("/{project_id}")
async def delete_project(project_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  p = await get_project_for_user(db, project_id, user)
  require_admin(user)
  await db.execute(delete(Task).where(Task.project_id == p.id))
  await db.execute(delete(Section).where(Section.project_id == p.id))
  await db.execute(delete(Project).where(Project.id == p.id))
  await write_audit(
    db,
    event_type="project.deleted",
    entity_type="Project",
    entity_id=p.id,
    project_id=p.id,
    actor_id=user.id,
    payload={"name": p.name},
  )
  await db.commit()
  return {"message": "Project deleted successfully"}

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import Cookie, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.db import SessionLocal
from tasktrack.errors import Forbidden, NotFound, ValidationError
from tasktrack.models import Project, Session as DbSession, User
from tasktrack.security import SESSION_COOKIE_NAME


async def get_db() -> AsyncSession:
  async with SessionLocal() as session:
    yield session


async def get_current_user(
  db: AsyncSession = Depends(get_db),
  session_id: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> User:
  if not session_id:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

  res = await db.execute(select(DbSession).where(DbSession.id == session_id))
  s = res.scalar_one_or_none()
  if not s:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session")
  if s.expires_at < datetime.now(timezone.utc):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired")

  ures = await db.execute(select(User).where(User.id == s.user_id))
  u = ures.scalar_one_or_none()
  if not u:
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
  if not u.active:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User disabled")
  return u


def require_admin(user: User) -> None:
  if user.role != "admin":
    raise Forbidden("Admin access required")


def parse_id(value: str | None, what: str) -> str:
  """Validate an identifier from a path, query or body and return it in canonical form."""
  try:
    return str(uuid.UUID(str(value)))
  except (TypeError, ValueError, AttributeError):
    raise ValidationError(f"Invalid {what} ID", field=what) from None


def in_org_scope(user: User, org_id: str | None) -> bool:
  # unscoped principals see everything; scoped ones only their organization
  return user.org_id is None or user.org_id == org_id


def can_access_project(user: User, project: Project) -> bool:
  if not in_org_scope(user, project.org_id):
    return False
  return user.role == "admin" or user.id in project.assignee


async def get_project_for_user(db: AsyncSession, project_id: str, user: User, *, lock: bool = False) -> Project:
  pid = parse_id(project_id, "project")
  stmt = select(Project).where(Project.id == pid)
  if lock:
    stmt = stmt.with_for_update()
  res = await db.execute(stmt)
  p = res.scalar_one_or_none()
  if not p or not in_org_scope(user, p.org_id):
    raise NotFound("Project not found")
  if not can_access_project(user, p):
    raise Forbidden("You do not have access to this project")
  return p

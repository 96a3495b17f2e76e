from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.board import sections as section_store
from tasktrack.board.views import section_out
from tasktrack.deps import get_current_user, get_db, get_project_for_user, require_admin
from tasktrack.models import User
from tasktrack.schemas import SectionCreateIn, SectionUpdateIn

router = APIRouter(tags=["sections"])


@router.get("/projects/{project_id}/sections")
async def list_sections(project_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  p = await get_project_for_user(db, project_id, user)
  sections = await section_store.list_sections(db, p.id, actor_id=user.id)
  await db.commit()
  return {"sections": [section_out(s) for s in sections]}


@router.post("/projects/{project_id}/sections", status_code=status.HTTP_201_CREATED)
async def create_section(
  project_id: str,
  payload: SectionCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  p = await get_project_for_user(db, project_id, user)
  require_admin(user)
  s = await section_store.create_section(db, p.id, payload.name, actor_id=user.id)
  await db.commit()
  return {"section": section_out(s)}


@router.patch("/sections/{section_id}")
async def update_section(
  section_id: str,
  payload: SectionUpdateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  s = await section_store.get_section(db, section_id)
  await get_project_for_user(db, s.project_id, user)
  require_admin(user)
  s = await section_store.update_section(db, s, name=payload.name, order=payload.order, actor_id=user.id)
  await db.commit()
  return {"section": section_out(s)}


@router.delete("/sections/{section_id}")
async def delete_section(section_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  s = await section_store.get_section(db, section_id)
  await get_project_for_user(db, s.project_id, user)
  require_admin(user)
  await section_store.delete_section(db, s, actor_id=user.id)
  await db.commit()
  return {"message": "Section deleted successfully"}

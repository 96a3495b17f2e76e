from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.config import settings
from tasktrack.deps import get_current_user, get_db, require_admin
from tasktrack.metrics import runtime_metrics
from tasktrack.models import AuditEvent, Project, Section, Task, User
from tasktrack.schemas import SystemStatusOut

router = APIRouter(prefix="/admin/system-status", tags=["admin"])


async def _count(db: AsyncSession, model) -> int:
  res = await db.execute(select(func.count()).select_from(model))
  return int(res.scalar_one() or 0)


@router.get("", response_model=SystemStatusOut)
async def get_system_status(actor: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> SystemStatusOut:
  require_admin(actor)
  orphaned = await db.execute(select(func.count()).select_from(Task).where(Task.section_id.is_(None)))
  return SystemStatusOut(
    generatedAt=datetime.now(timezone.utc),
    version=settings.app_version,
    buildSha=settings.build_sha,
    startedAt=runtime_metrics.started_at,
    runtime=runtime_metrics.snapshot(),
    counts={
      "users": await _count(db, User),
      "projects": await _count(db, Project),
      "sections": await _count(db, Section),
      "tasks": await _count(db, Task),
      "unsectionedTasks": int(orphaned.scalar_one() or 0),
      "auditEvents": await _count(db, AuditEvent),
    },
  )

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.board.aggregate import build_board
from tasktrack.deps import get_current_user, get_db, get_project_for_user
from tasktrack.models import User
from tasktrack.schemas import BoardOut

router = APIRouter(tags=["board"])


@router.get("/projects/{project_id}/board", response_model=BoardOut)
async def get_board(project_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardOut:
  p = await get_project_for_user(db, project_id, user)
  board = await build_board(db, p.id, actor_id=user.id)
  # persists default sections when this read created them
  await db.commit()
  return board

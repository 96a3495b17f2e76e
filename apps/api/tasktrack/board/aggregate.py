from __future__ import annotations

import logging
from collections import defaultdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.board.assignees import resolve_identities
from tasktrack.board.sections import list_sections
from tasktrack.board.views import section_out, task_out
from tasktrack.models import Task
from tasktrack.schemas import BoardOut, BoardSectionOut

logger = logging.getLogger(__name__)


def _by_order(t: Task) -> tuple:
  # orders only tie once unsectioned tasks are folded into the first section; newest first then
  return (t.order_index, -t.created_at.timestamp())


async def build_board(db: AsyncSession, project_id: str, *, actor_id: str | None = None) -> BoardOut:
  sections = await list_sections(db, project_id, actor_id=actor_id)

  res = await db.execute(
    select(Task)
    .where(Task.project_id == project_id)
    .order_by(Task.order_index.asc(), Task.created_at.desc())
  )
  tasks = list(res.scalars().all())

  identities = await resolve_identities(db, (uid for t in tasks for uid in (t.assignee or [])))

  known = {s.id for s in sections}
  grouped: dict[str | None, list[Task]] = defaultdict(list)
  folded: list[Task] = []
  for t in tasks:
    if t.section_id in known:
      grouped[t.section_id].append(t)
    else:
      # no section, or one that no longer exists in this project
      folded.append(t)

  if folded and sections:
    logger.debug("folding %d unsectioned task(s) into first section of project %s", len(folded), project_id)
    grouped[sections[0].id].extend(folded)

  out: list[BoardSectionOut] = []
  for s in sections:
    bucket = sorted(grouped.get(s.id, []), key=_by_order)
    out.append(
      BoardSectionOut(
        **section_out(s).model_dump(),
        tasks=[task_out(t, identities) for t in bucket],
      )
    )
  return BoardOut(sections=out)

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.deps import parse_id
from tasktrack.errors import NotFound
from tasktrack.models import User, normalize_assignee

logger = logging.getLogger(__name__)


async def validate_assignees(db: AsyncSession, raw: object) -> list[str]:
  ids = [parse_id(v, "assignee") for v in normalize_assignee(raw)]
  ids = normalize_assignee(ids)
  if not ids:
    return []
  res = await db.execute(select(User.id).where(User.id.in_(ids)))
  found = set(res.scalars().all())
  missing = [i for i in ids if i not in found]
  if missing:
    raise NotFound("Assignee not found", assigneeIds=missing)
  return ids


async def resolve_identities(db: AsyncSession, ids: Iterable[str]) -> dict[str, dict]:
  """Look up display identities for a set of user ids in one query.

  Used only to decorate read responses, so a store failure degrades to no
  identities instead of failing the whole read.
  """
  wanted = sorted({i for i in ids if i})
  if not wanted:
    return {}
  try:
    res = await db.execute(select(User).where(User.id.in_(wanted)))
    users = res.scalars().all()
  except SQLAlchemyError:
    logger.warning("assignee lookup failed for %d ids", len(wanted), exc_info=True)
    return {}
  return {
    u.id: {
      "id": u.id,
      "firstName": u.first_name,
      "lastName": u.last_name,
      "email": u.email,
      "photoUrl": u.photo_url,
    }
    for u in users
  }

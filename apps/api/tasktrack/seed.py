from __future__ import annotations

import asyncio
import logging
import os
import secrets

from sqlalchemy import select

from tasktrack.board.placement import create_task
from tasktrack.board.sections import list_sections
from tasktrack.db import SessionLocal
from tasktrack.models import Project, User
from tasktrack.security import hash_password

logger = logging.getLogger(__name__)


def _bootstrap_password(env_key: str) -> tuple[str, bool]:
  configured = (os.getenv(env_key) or "").strip()
  if configured:
    return configured, False
  return secrets.token_urlsafe(14), True


async def _ensure_user(db, *, email: str, first_name: str, role: str, env_key: str, boot_lines: list[str]) -> User:
  res = await db.execute(select(User).where(User.email == email))
  u = res.scalar_one_or_none()
  if u:
    return u
  password, generated = _bootstrap_password(env_key)
  u = User(email=email, first_name=first_name, last_name="", role=role, password_hash=hash_password(password))
  db.add(u)
  boot_lines.append(f"{email}={password} (generated={str(generated).lower()})")
  return u


async def seed() -> None:
  async with SessionLocal() as db:
    boot_lines: list[str] = []
    admin = await _ensure_user(
      db, email="admin@tasktrack.local", first_name="Admin", role="admin", env_key="SEED_ADMIN_PASSWORD", boot_lines=boot_lines
    )
    member = await _ensure_user(
      db, email="member@tasktrack.local", first_name="Member", role="member", env_key="SEED_MEMBER_PASSWORD", boot_lines=boot_lines
    )
    await db.flush()

    if os.getenv("SEED_DEMO_PROJECT", "").strip().lower() in ("1", "true", "yes", "y"):
      name = "TaskTrack Demo"
      pres = await db.execute(select(Project).where(Project.name == name, Project.created_by == admin.id))
      project = pres.scalar_one_or_none()
      if not project:
        project = Project(name=name, description="Sample project", assignee=[admin.id, member.id], created_by=admin.id)
        db.add(project)
        await db.flush()
        sections = await list_sections(db, project.id, actor_id=admin.id)
        for idx, title in enumerate(["Write the brief", "Review the draft", "Ship it"]):
          await create_task(
            db,
            project.id,
            title=title,
            description=f"Demo task {idx + 1}",
            actor_id=admin.id,
            section_id=sections[min(idx, len(sections) - 1)].id,
            assignee=[member.id],
          )

    await db.commit()

  if boot_lines:
    print("TaskTrack seed credentials created:")
    for ln in boot_lines:
      print(f"  {ln}")
  logger.info("seed complete")


def main() -> None:
  logging.basicConfig(level=logging.INFO)
  asyncio.run(seed())


if __name__ == "__main__":
  main()

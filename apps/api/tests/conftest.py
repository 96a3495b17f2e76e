from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

_DB_DIR = Path(tempfile.mkdtemp(prefix="tasktrack-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR / 'tasktrack_test.db'}")

from tasktrack.config import settings
from tasktrack.db import SessionLocal, engine
from tasktrack.main import app
from tasktrack.models import Base, User
from tasktrack.rate_limit import limiter
from tasktrack.security import hash_password

ORG_ID = "0f000000-0000-4000-8000-000000000001"
OTHER_ORG_ID = "0f000000-0000-4000-8000-000000000002"

ADMIN_ID = "00000000-0000-4000-8000-000000000001"
MEMBER_ID = "00000000-0000-4000-8000-000000000002"
OUTSIDER_ID = "00000000-0000-4000-8000-000000000003"
OTHER_ADMIN_ID = "00000000-0000-4000-8000-000000000004"

ADMIN = ("admin@tasktrack.local", "admin1234")
MEMBER = ("member@tasktrack.local", "member1234")
OUTSIDER = ("outsider@tasktrack.local", "outsider1234")
OTHER_ADMIN = ("admin@other.local", "other1234")

_SEED_USERS = [
  (ADMIN_ID, ORG_ID, ADMIN, "Ada", "Admin", "admin"),
  (MEMBER_ID, ORG_ID, MEMBER, "Max", "Member", "member"),
  (OUTSIDER_ID, ORG_ID, OUTSIDER, "Oli", "Outsider", "member"),
  (OTHER_ADMIN_ID, OTHER_ORG_ID, OTHER_ADMIN, "Olga", "Other", "admin"),
]
# hashing is slow on purpose; do it once per run
_PASSWORD_HASHES = {email: hash_password(pw) for _, _, (email, pw), _, _, _ in _SEED_USERS}


@pytest.fixture(scope="session")
def anyio_backend() -> str:
  return "asyncio"


async def _reset_db() -> None:
  limiter.reset_prefix("auth:")
  async with engine.begin() as conn:
    await conn.run_sync(Base.metadata.drop_all)
    await conn.run_sync(Base.metadata.create_all)
  async with SessionLocal() as db:
    for uid, org_id, (email, _), first, last, role in _SEED_USERS:
      db.add(
        User(
          id=uid,
          org_id=org_id,
          email=email,
          first_name=first,
          last_name=last,
          role=role,
          password_hash=_PASSWORD_HASHES[email],
        )
      )
    await db.commit()
  await engine.dispose()


@pytest.fixture
async def clean_db() -> None:
  db_name = settings.database_url.rsplit("/", 1)[-1]
  if "test" not in db_name:
    raise RuntimeError(
      "Refusing to run destructive tests against non-test DB. "
      "Set DATABASE_URL to a *_test database (e.g. tasktrack_test)."
    )
  await _reset_db()
  yield
  await engine.dispose()


@pytest.fixture
async def client(clean_db) -> AsyncClient:
  transport = ASGITransport(app=app)
  async with AsyncClient(transport=transport, base_url="http://localhost") as c:
    yield c


@pytest.fixture
async def db(clean_db):
  async with SessionLocal() as session:
    yield session


async def login(client: AsyncClient, email: str, password: str) -> dict:
  res = await client.post("/auth/login", json={"email": email, "password": password})
  assert res.status_code == 200, res.text
  cookie = res.headers.get("set-cookie")
  assert cookie and "tt_session=" in cookie
  return res.json()


async def create_project(client: AsyncClient, name: str = "Launch", assignee: list[str] | None = None) -> dict:
  res = await client.post("/projects", json={"name": name, "assignee": assignee or []})
  assert res.status_code == 201, res.text
  return res.json()


async def get_sections(client: AsyncClient, project_id: str) -> list[dict]:
  res = await client.get(f"/projects/{project_id}/sections")
  assert res.status_code == 200, res.text
  return res.json()["sections"]


async def create_task(client: AsyncClient, project_id: str, title: str, **extra) -> dict:
  body = {"title": title, "description": f"{title} description", **extra}
  res = await client.post(f"/projects/{project_id}/tasks", json=body)
  assert res.status_code == 201, res.text
  return res.json()["task"]


async def get_board(client: AsyncClient, project_id: str) -> list[dict]:
  res = await client.get(f"/projects/{project_id}/board")
  assert res.status_code == 200, res.text
  return res.json()["sections"]


def titles_by_section(sections: list[dict]) -> dict[str, list[tuple[str, int]]]:
  return {s["name"]: [(t["title"], t["order"]) for t in s["tasks"]] for s in sections}

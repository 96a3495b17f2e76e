from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import delete, func, select

from conftest import ADMIN, MEMBER, MEMBER_ID, create_project, create_task, get_board, get_sections, login
from tasktrack.board.sections import list_sections
from tasktrack.models import Project, Section


@pytest.mark.anyio
async def test_first_read_creates_default_sections_once(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)

  first = await get_sections(client, p["id"])
  assert [(s["name"], s["order"], s["isDefault"]) for s in first] == [
    ("To Do", 0, True),
    ("In Progress", 1, True),
    ("Completed", 2, True),
  ]
  assert all(s["projectId"] == p["id"] for s in first)

  second = await get_sections(client, p["id"])
  assert [s["id"] for s in second] == [s["id"] for s in first]


@pytest.mark.anyio
async def test_seeded_project_that_lost_all_sections_gets_defaults_again(client: AsyncClient, db) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  await get_sections(client, p["id"])

  await db.execute(delete(Section).where(Section.project_id == p["id"]))
  await db.commit()
  seeded = (await db.execute(select(Project.sections_seeded_at).where(Project.id == p["id"]))).scalar_one()
  assert seeded is not None

  board = await get_board(client, p["id"])
  assert [s["name"] for s in board] == ["To Do", "In Progress", "Completed"]

  t = await create_task(client, p["id"], "After wipe")
  assert t["sectionId"] == board[0]["id"]
  assert t["order"] == 0
  assert len(await get_sections(client, p["id"])) == 3


@pytest.mark.anyio
async def test_create_after_wipe_without_reading_first(client: AsyncClient, db) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  await get_sections(client, p["id"])

  await db.execute(delete(Section).where(Section.project_id == p["id"]))
  await db.commit()

  t = await create_task(client, p["id"], "Straight in")
  sections = await get_sections(client, p["id"])
  assert [s["name"] for s in sections] == ["To Do", "In Progress", "Completed"]
  assert t["sectionId"] == sections[0]["id"]


@pytest.mark.anyio
async def test_repeated_bootstrap_calls_do_not_duplicate(client: AsyncClient, db) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)

  first = await list_sections(db, p["id"])
  second = await list_sections(db, p["id"])
  await db.commit()

  assert [s.id for s in first] == [s.id for s in second]
  n = (await db.execute(select(func.count()).select_from(Section).where(Section.project_id == p["id"]))).scalar_one()
  assert n == 3


@pytest.mark.anyio
async def test_create_section_appends_after_highest_order(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  await get_sections(client, p["id"])

  res = await client.post(f"/projects/{p['id']}/sections", json={"name": "  Backlog  "})
  assert res.status_code == 201, res.text
  s = res.json()["section"]
  assert s["name"] == "Backlog"
  assert s["order"] == 3
  assert s["isDefault"] is False

  names = [x["name"] for x in await get_sections(client, p["id"])]
  assert names == ["To Do", "In Progress", "Completed", "Backlog"]


@pytest.mark.anyio
async def test_section_names_need_not_be_unique(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  await get_sections(client, p["id"])

  res = await client.post(f"/projects/{p['id']}/sections", json={"name": "To Do"})
  assert res.status_code == 201, res.text
  assert [s["name"] for s in await get_sections(client, p["id"])].count("To Do") == 2


@pytest.mark.anyio
async def test_create_section_rejects_blank_name(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)

  res = await client.post(f"/projects/{p['id']}/sections", json={"name": "   "})
  assert res.status_code == 422, res.text
  assert res.json()["detail"]["kind"] == "ValidationError"


@pytest.mark.anyio
async def test_member_cannot_manage_sections(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client, assignee=[MEMBER_ID])
  sections = await get_sections(client, p["id"])

  await login(client, *MEMBER)
  assert (await client.post(f"/projects/{p['id']}/sections", json={"name": "Mine"})).status_code == 403
  assert (await client.patch(f"/sections/{sections[0]['id']}", json={"name": "Renamed"})).status_code == 403
  assert (await client.delete(f"/sections/{sections[1]['id']}")).status_code == 403


@pytest.mark.anyio
async def test_update_default_section_is_a_plain_field_update(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  todo, doing, done = await get_sections(client, p["id"])

  res = await client.patch(f"/sections/{todo['id']}", json={"name": "Inbox", "order": 5})
  assert res.status_code == 200, res.text
  s = res.json()["section"]
  assert s["name"] == "Inbox"
  assert s["order"] == 5
  assert s["isDefault"] is True

  after = {x["id"]: x for x in await get_sections(client, p["id"])}
  assert after[doing["id"]]["order"] == 1
  assert after[done["id"]]["order"] == 2
  assert [x["name"] for x in await get_sections(client, p["id"])] == ["In Progress", "Completed", "Inbox"]


@pytest.mark.anyio
async def test_update_section_rejects_blank_rename(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  todo = (await get_sections(client, p["id"]))[0]

  res = await client.patch(f"/sections/{todo['id']}", json={"name": " "})
  assert res.status_code == 422, res.text


@pytest.mark.anyio
async def test_default_section_cannot_be_deleted(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  todo = (await get_sections(client, p["id"]))[0]

  res = await client.delete(f"/sections/{todo['id']}")
  assert res.status_code == 400, res.text
  assert res.json()["detail"]["kind"] == "InvalidOperation"
  assert todo["id"] in [s["id"] for s in await get_sections(client, p["id"])]


@pytest.mark.anyio
async def test_non_empty_section_cannot_be_deleted(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  await get_sections(client, p["id"])
  extra = (await client.post(f"/projects/{p['id']}/sections", json={"name": "QA"})).json()["section"]
  await create_task(client, p["id"], "One", sectionId=extra["id"])
  await create_task(client, p["id"], "Two", sectionId=extra["id"])

  res = await client.delete(f"/sections/{extra['id']}")
  assert res.status_code == 400, res.text
  detail = res.json()["detail"]
  assert detail["kind"] == "Conflict"
  assert detail["taskCount"] == 2
  assert detail["message"] == "Cannot delete section with 2 task(s). Please move tasks first."
  assert extra["id"] in [s["id"] for s in await get_sections(client, p["id"])]


@pytest.mark.anyio
async def test_empty_custom_section_is_deleted(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  await get_sections(client, p["id"])
  extra = (await client.post(f"/projects/{p['id']}/sections", json={"name": "QA"})).json()["section"]

  res = await client.delete(f"/sections/{extra['id']}")
  assert res.status_code == 200, res.text
  assert res.json() == {"message": "Section deleted successfully"}
  assert extra["id"] not in [s["id"] for s in await get_sections(client, p["id"])]


@pytest.mark.anyio
async def test_unknown_and_malformed_section_ids(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  res = await client.patch("/sections/9a1d6a8e-0000-4000-8000-00000000abcd", json={"name": "X"})
  assert res.status_code == 404
  res = await client.delete("/sections/not-an-id")
  assert res.status_code == 422
  assert res.json()["detail"]["kind"] == "ValidationError"

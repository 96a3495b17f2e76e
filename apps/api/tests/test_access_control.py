from __future__ import annotations

import pytest
from httpx import AsyncClient

from conftest import (
  ADMIN,
  ADMIN_ID,
  MEMBER,
  MEMBER_ID,
  OTHER_ADMIN,
  OUTSIDER,
  create_project,
  create_task,
  get_sections,
  login,
)


@pytest.mark.anyio
async def test_requests_without_session_are_rejected(client: AsyncClient) -> None:
  assert (await client.get("/projects")).status_code == 401
  assert (await client.get("/config/task-statuses")).status_code == 401
  res = await client.patch("/tasks/5b0e8a1c-0000-4000-8000-0000000000ff/move", json={"sectionId": None, "order": 0})
  assert res.status_code == 401


@pytest.mark.anyio
async def test_login_rejects_bad_password_and_logout_ends_session(client: AsyncClient) -> None:
  res = await client.post("/auth/login", json={"email": ADMIN[0], "password": "wrong"})
  assert res.status_code == 401

  me = await login(client, *ADMIN)
  assert me["id"] == ADMIN_ID
  assert (await client.get("/auth/me")).json()["email"] == ADMIN[0]

  assert (await client.post("/auth/logout")).status_code == 200
  assert (await client.get("/auth/me")).status_code == 401


@pytest.mark.anyio
async def test_project_creator_is_always_an_assignee(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client, assignee=[MEMBER_ID, ADMIN_ID])
  assert p["assignee"] == [ADMIN_ID, MEMBER_ID]
  assert {i["id"] for i in p["assigneeInfo"]} == {ADMIN_ID, MEMBER_ID}


@pytest.mark.anyio
async def test_members_cannot_create_projects(client: AsyncClient) -> None:
  await login(client, *MEMBER)
  res = await client.post("/projects", json={"name": "Nope"})
  assert res.status_code == 403
  assert res.json()["detail"]["kind"] == "Forbidden"


@pytest.mark.anyio
async def test_project_visibility(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  shared = await create_project(client, "Shared", assignee=[MEMBER_ID])
  private = await create_project(client, "Private")

  await login(client, *MEMBER)
  assert [p["name"] for p in (await client.get("/projects")).json()] == ["Shared"]
  assert (await client.get(f"/projects/{shared['id']}/board")).status_code == 200
  res = await client.get(f"/projects/{private['id']}/board")
  assert res.status_code == 403
  assert res.json()["detail"]["kind"] == "Forbidden"

  await login(client, *OUTSIDER)
  assert (await client.get("/projects")).json() == []
  assert (await client.get(f"/projects/{shared['id']}/sections")).status_code == 403

  # admins of another organization do not see the project at all
  await login(client, *OTHER_ADMIN)
  assert (await client.get("/projects")).json() == []
  res = await client.get(f"/projects/{shared['id']}/board")
  assert res.status_code == 404
  assert res.json()["detail"]["kind"] == "NotFound"


@pytest.mark.anyio
async def test_unknown_and_malformed_project_ids(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  assert (await client.get("/projects/1b2c3d4e-0000-4000-8000-000000000000/board")).status_code == 404
  res = await client.get("/projects/not-a-uuid/board")
  assert res.status_code == 422
  assert res.json()["detail"]["kind"] == "ValidationError"


@pytest.mark.anyio
async def test_assigned_member_works_with_tasks(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client, assignee=[MEMBER_ID])
  await get_sections(client, p["id"])

  await login(client, *MEMBER)
  t = await create_task(client, p["id"], "Mine", assignee=[MEMBER_ID])
  assert t["createdBy"] == MEMBER_ID
  res = await client.patch(f"/projects/{p['id']}/tasks", json={"taskId": t["id"], "title": "Still mine"})
  assert res.status_code == 200, res.text
  res = await client.delete(f"/projects/{p['id']}/tasks", params={"taskId": t["id"]})
  assert res.status_code == 200, res.text


@pytest.mark.anyio
async def test_admin_updates_and_deletes_project(client: AsyncClient) -> None:
  await login(client, *ADMIN)
  p = await create_project(client)
  await create_task(client, p["id"], "A")

  res = await client.patch(f"/projects/{p['id']}", json={"name": "Renamed", "assignee": [ADMIN_ID, MEMBER_ID]})
  assert res.status_code == 200, res.text
  assert res.json()["name"] == "Renamed"
  assert res.json()["assignee"] == [ADMIN_ID, MEMBER_ID]

  res = await client.delete(f"/projects/{p['id']}")
  assert res.status_code == 200, res.text
  assert (await client.get(f"/projects/{p['id']}")).status_code == 404

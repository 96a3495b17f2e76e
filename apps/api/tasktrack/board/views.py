from __future__ import annotations

from tasktrack.models import Project, Section, Task
from tasktrack.schemas import AssigneeInfoOut, ProjectOut, SectionOut, StatusHistoryEntryOut, TaskOut


def _info(ids: list[str], identities: dict[str, dict] | None) -> list[AssigneeInfoOut]:
  if not identities:
    return []
  return [AssigneeInfoOut(**identities[i]) for i in ids if i in identities]


def section_out(s: Section) -> SectionOut:
  return SectionOut(
    id=s.id,
    projectId=s.project_id,
    name=s.name,
    order=s.order_index,
    isDefault=s.is_default,
    createdBy=s.created_by,
    createdAt=s.created_at,
    updatedAt=s.updated_at,
  )


def task_out(t: Task, identities: dict[str, dict] | None = None) -> TaskOut:
  return TaskOut(
    id=t.id,
    projectId=t.project_id,
    sectionId=t.section_id,
    title=t.title,
    description=t.description,
    assignee=list(t.assignee or []),
    assigneeInfo=_info(t.assignee or [], identities),
    status=t.status,
    statusHistory=[StatusHistoryEntryOut(**e) for e in (t.status_history or [])],
    order=t.order_index,
    priority=t.priority,
    dueDate=t.due_date,
    attachments=list(t.attachments or []),
    subtasks=list(t.subtasks or []),
    createdBy=t.created_by,
    createdAt=t.created_at,
    updatedAt=t.updated_at,
  )


def project_out(p: Project, identities: dict[str, dict] | None = None) -> ProjectOut:
  return ProjectOut(
    id=p.id,
    orgId=p.org_id,
    name=p.name,
    description=p.description,
    assignee=list(p.assignee or []),
    assigneeInfo=_info(p.assignee or [], identities),
    createdBy=p.created_by,
    createdAt=p.created_at,
    updatedAt=p.updated_at,
  )

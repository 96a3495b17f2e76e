from __future__ import annotations

from datetime import datetime, timezone

from tasktrack.errors import InvalidOperation
from tasktrack.models import Task
from tasktrack.statuses import task_statuses


def history_entry(status: str, actor_id: str | None, at: datetime | None = None) -> dict:
  ts = at or datetime.now(timezone.utc)
  return {"status": status, "timestamp": ts.isoformat(), "changedBy": actor_id}


def initial_history(status: str, actor_id: str | None) -> list[dict]:
  return [history_entry(status, actor_id)]


def record_status_change(task: Task, new_status: str | None, actor_id: str | None) -> bool:
  """Set a new status on the task and append it to the history.

  A status equal to the stored one is a no-op. Any transition between valid
  statuses is allowed; existing entries are never rewritten.
  """
  if new_status is None or new_status == task.status:
    return False
  if not task_statuses.is_valid(new_status):
    raise InvalidOperation(
      f"Invalid status. Must be one of: {', '.join(task_statuses.labels())}",
      field="status",
    )
  task.status = new_status
  # assign a fresh list so the JSON column is flagged dirty
  task.status_history = [*(task.status_history or []), history_entry(new_status, actor_id)]
  return True

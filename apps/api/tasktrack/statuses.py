from __future__ import annotations

from dataclasses import dataclass

from tasktrack.config import settings


@dataclass(frozen=True)
class TaskStatus:
  value: str
  label: str
  order: int
  color: str


class TaskStatusSet:
  def __init__(self, statuses: list[TaskStatus]) -> None:
    if not statuses:
      raise ValueError("at least one task status must be configured")
    values = [s.value for s in statuses]
    if len(set(values)) != len(values):
      raise ValueError(f"duplicate task status values: {values}")
    self._statuses = sorted(statuses, key=lambda s: s.order)
    self._by_value = {s.value: s for s in self._statuses}

  @classmethod
  def parse(cls, raw: str) -> "TaskStatusSet":
    out: list[TaskStatus] = []
    for idx, chunk in enumerate(c.strip() for c in (raw or "").split(",")):
      if not chunk:
        continue
      parts = [p.strip() for p in chunk.split(":")]
      value = parts[0]
      label = parts[1] if len(parts) > 1 and parts[1] else value
      color = parts[2] if len(parts) > 2 and parts[2] else "default"
      if not value:
        raise ValueError(f"task status entry without a value: {chunk!r}")
      out.append(TaskStatus(value=value, label=label, order=idx, color=color))
    return cls(out)

  def __iter__(self):
    return iter(self._statuses)

  @property
  def default(self) -> str:
    return self._statuses[0].value

  def is_valid(self, value: str | None) -> bool:
    return value is not None and value in self._by_value

  def labels(self) -> list[str]:
    return [s.label for s in self._statuses]

  def normalize(self, value: str | None) -> str:
    return value if self.is_valid(value) else self.default


task_statuses = TaskStatusSet.parse(settings.task_statuses)

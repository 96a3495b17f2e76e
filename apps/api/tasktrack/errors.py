from __future__ import annotations

from typing import Any


class TrackerError(Exception):
  """Domain failure raised by the board services and rendered by the app's exception handler."""

  status_code = 400
  kind = "Error"

  def __init__(self, message: str, *, status_code: int | None = None, **extra: Any) -> None:
    super().__init__(message)
    self.message = message
    self.extra = extra
    if status_code is not None:
      self.status_code = status_code

  def to_detail(self) -> dict[str, Any]:
    return {"kind": self.kind, "message": self.message, **self.extra}


class NotFound(TrackerError):
  status_code = 404
  kind = "NotFound"


class InvalidOperation(TrackerError):
  status_code = 400
  kind = "InvalidOperation"


class Conflict(TrackerError):
  status_code = 409
  kind = "Conflict"


class Forbidden(TrackerError):
  status_code = 403
  kind = "Forbidden"


class ValidationError(TrackerError):
  status_code = 422
  kind = "ValidationError"

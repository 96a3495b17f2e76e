from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock


@dataclass
class _Bucket:
  reset_at: float
  count: int


class RateLimiter:
  """
  In-memory fixed-window limiter for the login endpoint.

  State is per process; every replica counts on its own.
  """

  def __init__(self, clock=time.monotonic) -> None:
    self._clock = clock
    self._lock = Lock()
    self._buckets: dict[str, _Bucket] = {}

  def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    """
    Returns (allowed, retry_after_seconds).
    """
    now = self._clock()
    with self._lock:
      b = self._buckets.get(key)
      if b is None or now >= b.reset_at:
        self._buckets[key] = _Bucket(reset_at=now + window_seconds, count=1)
        return True, 0
      if b.count >= limit:
        return False, max(1, int(b.reset_at - now))
      b.count += 1
      return True, 0

  def reset_prefix(self, prefix: str) -> None:
    with self._lock:
      for k in [k for k in self._buckets if k.startswith(prefix)]:
        del self._buckets[k]


limiter = RateLimiter()

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from time import monotonic


@dataclass
class RequestSample:
  ts: datetime
  path: str
  status_code: int
  latency_ms: float


class RuntimeMetrics:
  """Rolling 24h window of request outcomes, kept in process memory."""

  def __init__(self, window: timedelta = timedelta(hours=24)) -> None:
    self._window = window
    self._started_monotonic = monotonic()
    self._started_at = datetime.now(timezone.utc)
    self._samples: deque[RequestSample] = deque()
    self._lock = Lock()

  @property
  def started_at(self) -> datetime:
    return self._started_at

  def uptime_seconds(self) -> int:
    return max(0, int(monotonic() - self._started_monotonic))

  def observe_request(self, path: str, status_code: int, latency_ms: float, *, now: datetime | None = None) -> None:
    ts = now or datetime.now(timezone.utc)
    with self._lock:
      self._samples.append(RequestSample(ts=ts, path=path, status_code=status_code, latency_ms=latency_ms))
      self._prune_locked(ts)

  def _prune_locked(self, now: datetime) -> None:
    cutoff = now - self._window
    while self._samples and self._samples[0].ts < cutoff:
      self._samples.popleft()

  def reset(self) -> None:
    with self._lock:
      self._samples.clear()

  def snapshot(self, *, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    with self._lock:
      self._prune_locked(now)
      samples = list(self._samples)

    recent_cutoff = now - timedelta(minutes=15)
    recent = [s for s in samples if s.ts >= recent_cutoff]
    errors_15 = sum(1 for s in recent if s.status_code >= 500)
    errors_24h = sum(1 for s in samples if s.status_code >= 500)
    # 4xx on board routes are business rejections (guards, conflicts); tracked apart from failures
    rejected_24h = sum(1 for s in samples if 400 <= s.status_code < 500)

    p95_ms = 0.0
    if samples:
      latencies = sorted(s.latency_ms for s in samples)
      p95_ms = latencies[max(0, int(len(latencies) * 0.95) - 1)]

    return {
      "uptimeSeconds": self.uptime_seconds(),
      "p95LatencyMs24h": round(p95_ms, 2),
      "requestCount15m": len(recent),
      "requestCount24h": len(samples),
      "errorCount15m": errors_15,
      "errorCount24h": errors_24h,
      "rejectedCount24h": rejected_24h,
      "errorRate15m": round((errors_15 / len(recent)) * 100, 2) if recent else 0.0,
      "errorRate24h": round((errors_24h / len(samples)) * 100, 2) if samples else 0.0,
    }


runtime_metrics = RuntimeMetrics()

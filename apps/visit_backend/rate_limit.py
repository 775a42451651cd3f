from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable

from fastapi import Request

from apps.visit_backend.errors import MSG_RATE_LIMITED, RateLimitError
from common_core.config import settings

log = logging.getLogger("windtrack.rate_limit")


@dataclass
class Window:
    hits: deque[float] = field(default_factory=deque)


class SlidingWindowLimiter:
    """At most `max_requests` admissions per `window_seconds` for each (ip, key).

    Rejected calls are not counted, so a client that keeps retrying is let in
    again as soon as its oldest admitted request leaves the window.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = int(max_requests)
        self.window_seconds = float(window_seconds)
        self._clock = clock
        self._lock = Lock()
        self._windows: dict[tuple[str, str], Window] = {}
        self._last_sweep = clock()

    def _expire(self, w: Window, now: float) -> None:
        cutoff = now - self.window_seconds
        while w.hits and w.hits[0] <= cutoff:
            w.hits.popleft()

    def _sweep(self, now: float) -> None:
        for k in list(self._windows):
            w = self._windows[k]
            self._expire(w, now)
            if not w.hits:
                del self._windows[k]
        self._last_sweep = now

    def allow(self, ip: str, key: str) -> bool:
        now = self._clock()
        k = (ip or "unknown", key or "unknown")
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            w = self._windows.get(k)
            if not w:
                w = Window()
                self._windows[k] = w

            self._expire(w, now)
            if len(w.hits) >= self.max_requests:
                return False
            w.hits.append(now)
            return True

    def retry_after(self, ip: str, key: str) -> float:
        now = self._clock()
        with self._lock:
            w = self._windows.get((ip or "unknown", key or "unknown"))
            if not w or len(w.hits) < self.max_requests:
                return 0.0
            return max(0.0, w.hits[0] + self.window_seconds - now)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)


def build_limiter() -> SlidingWindowLimiter:
    return SlidingWindowLimiter(settings.rate_limit_max, settings.rate_limit_window_sec)


def client_address(request: Request, trust_proxy: bool | None = None) -> str:
    if trust_proxy is None:
        trust_proxy = settings.trust_proxy
    if trust_proxy:
        xf = request.headers.get("X-Forwarded-For") or ""
        first = xf.split(",")[0].strip().replace("::ffff:", "")
        if first:
            return first
    host = request.client.host if request.client else ""
    return host.replace("::ffff:", "") or "unknown"


def enforce_rate_limit(request: Request) -> None:
    limiter: SlidingWindowLimiter = request.app.state.rate_guard
    ip = client_address(request)
    path = request.url.path
    if limiter.allow(ip, path):
        return
    wait = math.ceil(limiter.retry_after(ip, path))
    log.warning("rate_limited", extra={"client_ip": ip, "path": path})
    raise RateLimitError(MSG_RATE_LIMITED, headers={"Retry-After": str(max(wait, 1))})

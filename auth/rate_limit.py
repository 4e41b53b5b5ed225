"""Fixed-window request quota per API key (single-process)."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Optional

from config import ApiKeySettings, get_api_key_settings
from utils.exceptions import RateLimited


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    @property
    def reset_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc)

    def headers(self, *, now: Optional[float] = None) -> Dict[str, str]:
        values = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(math.ceil(self.reset_at))),
        }
        if not self.allowed:
            current = time.time() if now is None else now
            values["Retry-After"] = str(max(1, int(math.ceil(self.reset_at - current))))
        return values


class FixedWindowRateLimiter:
    """
    ``limit`` requests per ``window_s`` seconds per key.

    The first request after a window expires opens a new one. Expired windows
    are swept every ``sweep_every`` checks. State lives in this process only;
    several instances would each enforce their own quota.
    """

    def __init__(
        self,
        limit: Optional[int] = None,
        window_s: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.time,
        sweep_every: int = 100,
        settings: Optional[ApiKeySettings] = None,
    ) -> None:
        if limit is None or window_s is None:
            settings = settings or get_api_key_settings()
        self.limit = int(limit if limit is not None else settings.rate_limit)
        self.window_s = float(window_s if window_s is not None else settings.rate_window_s)
        self._clock = clock
        self._sweep_every = max(1, int(sweep_every))
        self._checks = 0
        self._windows: Dict[str, _Window] = {}
        self._lock = Lock()

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock()
        with self._lock:
            self._checks += 1
            if self._checks % self._sweep_every == 0:
                self._sweep(now)

            window = self._windows.get(key)
            if window is None or window.reset_at <= now:
                window = _Window(count=1, reset_at=now + self.window_s)
                self._windows[key] = window
                return RateLimitDecision(True, self.limit, self.limit - 1, window.reset_at)

            if window.count >= self.limit:
                return RateLimitDecision(False, self.limit, 0, window.reset_at)

            window.count += 1
            return RateLimitDecision(True, self.limit, self.limit - window.count, window.reset_at)

    def hit(self, key: str) -> RateLimitDecision:
        """Like ``check`` but raises RateLimited when the quota is exhausted."""
        decision = self.check(key)
        if not decision.allowed:
            raise RateLimited(limit=decision.limit, reset_at=decision.reset_at_datetime)
        return decision

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if window.reset_at <= now]
        for key in expired:
            del self._windows[key]

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

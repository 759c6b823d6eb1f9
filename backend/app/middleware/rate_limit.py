"""In-memory sliding-window rate limiter used by the login endpoint.

For multi-replica deployments, back this with a shared store.
"""

from __future__ import annotations

import time
from collections import defaultdict

from fastapi import HTTPException, status


class InMemoryRateLimiter:
    """Sliding-window limiter keyed by an arbitrary string (client IP)."""

    def __init__(self, window_seconds: int = 60, max_attempts: int = 10) -> None:
        self._window = window_seconds
        self._max = max_attempts
        self._attempts: dict[str, list[float]] = defaultdict(list)

    def check(self, key: str) -> None:
        """Raise HTTP 429 if *key* has exceeded the attempt budget in the window."""
        now = time.monotonic()
        recent = [t for t in self._attempts[key] if now - t < self._window]
        if len(recent) >= self._max:
            self._attempts[key] = recent
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=f"Too many login attempts. Try again in {self._window} seconds.",
            )
        recent.append(now)
        self._attempts[key] = recent

    def reset(self) -> None:
        self._attempts.clear()

"""
Redirect rate limiting.

Two implementations share the ``admit(identifier) -> RateLimitResult`` shape:

- ``NoopRateLimiter`` always admits. Used when no counter store is configured.
- ``RedisRateLimiter`` keeps a sliding-window counter per identifier in Redis.
  The current window's counter is incremented atomically on every call and the
  previous window's counter is weighted by how much of it still overlaps the
  rolling interval. Any backend error (connection refused, socket timeout,
  script error) is logged and answered with the always-admit result.
"""

import math
import time
from dataclasses import dataclass

from flask import current_app

DEFAULT_LIMIT = 100
DEFAULT_WINDOW_MS = 60_000
KEY_PREFIX = "qrlink:redirect"

# KEYS[1] current window, KEYS[2] previous window; ARGV[1] expiry in ms.
SLIDING_WINDOW_SCRIPT = """
local current = redis.call("INCR", KEYS[1])
if current == 1 then
  redis.call("PEXPIRE", KEYS[1], ARGV[1])
end
local previous = tonumber(redis.call("GET", KEYS[2]) or "0")
return {current, previous}
"""


@dataclass(frozen=True)
class RateLimitResult:
    admitted: bool
    limit: int
    remaining: int
    reset: int  # epoch ms

    def headers(self) -> dict:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }

    def retry_after(self, now_ms: int | None = None) -> int:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return max(0, math.ceil((self.reset - now_ms) / 1000))


class NoopRateLimiter:
    def __init__(self, limit: int = DEFAULT_LIMIT):
        self.limit = limit

    def admit(self, identifier: str) -> RateLimitResult:
        return RateLimitResult(admitted=True, limit=self.limit, remaining=self.limit, reset=0)


class RedisRateLimiter:
    def __init__(self, client, limit: int = DEFAULT_LIMIT, window_ms: int = DEFAULT_WINDOW_MS,
                 prefix: str = KEY_PREFIX, clock=time.time, logger=None):
        self.limit = limit
        self.window_ms = window_ms
        self.prefix = prefix
        self._clock = clock
        self._logger = logger
        self._fallback = NoopRateLimiter(limit)
        self._script = client.register_script(SLIDING_WINDOW_SCRIPT)

    def _key(self, identifier: str, window: int) -> str:
        # hash tag keeps both windows of an identifier in one cluster slot
        return f"{self.prefix}:{{{identifier}}}:{window}"

    def admit(self, identifier: str) -> RateLimitResult:
        now_ms = int(self._clock() * 1000)
        window = now_ms // self.window_ms

        try:
            current, previous = self._script(
                keys=[self._key(identifier, window), self._key(identifier, window - 1)],
                args=[self.window_ms * 2 + 1000],
            )
        except Exception as exc:
            self._log_failure(exc)
            return self._fallback.admit(identifier)

        overlap = 1 - (now_ms % self.window_ms) / self.window_ms
        used = int(current) + math.floor(int(previous) * overlap)

        return RateLimitResult(
            admitted=used <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - used),
            reset=(window + 1) * self.window_ms,
        )

    def _log_failure(self, exc):
        logger = self._logger or current_app.logger
        logger.warning(f"Rate limiter backend unavailable, admitting request: {exc}")


def build_rate_limiter(app, client):
    limit = app.config.get("REDIRECT_RATE_LIMIT", DEFAULT_LIMIT)
    if client is None:
        return NoopRateLimiter(limit)

    return RedisRateLimiter(
        client,
        limit=limit,
        window_ms=app.config.get("REDIRECT_RATE_WINDOW_MS", DEFAULT_WINDOW_MS),
        logger=app.logger,
    )

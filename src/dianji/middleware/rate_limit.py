"""Rate limiting — fixed window counters per client and action.

Learn: every guarded route names an action tag ("auth", "invite").
The counter key is "dianji:rl:{action}:{client}" and holds
{"count": n, "reset_at": unix-seconds}. The first hit in a window writes
count=1 with a TTL of the full window; later hits increment while keeping
reset_at; once count reaches the budget the request is rejected with the
seconds left until reset_at.

Fixed windows allow a burst of up to 2x the budget across a window edge.
Read-then-write without locking means concurrent hits can lose an
increment; the limit is then slightly generous, never wrong the other way.

Gracefully skips rate limiting if the counter store is unavailable.
"""

import math
import time
from dataclasses import dataclass
from typing import Callable

import structlog
from fastapi import Request

from dianji.config import RateLimitRule
from dianji.errors import RateLimitedError
from dianji.stores.base import CounterStore

logger = structlog.get_logger()

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int = 0
    retry_after: int = 0


def client_identity(request: Request, real_ip_header: str = "CF-Connecting-IP") -> str:
    """Real-IP header, else first X-Forwarded-For hop, else "unknown".

    Every client without either header shares the "unknown" bucket.
    """
    real_ip = (request.headers.get(real_ip_header) or "").strip()
    if real_ip:
        return real_ip
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return UNKNOWN_CLIENT


class FixedWindowRateLimiter:
    """Counts hits per (action, client) in a CounterStore."""

    def __init__(
        self,
        store: CounterStore,
        clock: Callable[[], float] = time.time,
        key_prefix: str = "dianji:rl",
    ):
        self.store = store
        self.clock = clock
        self.key_prefix = key_prefix

    def key(self, action: str, identity: str) -> str:
        return f"{self.key_prefix}:{action}:{identity}"

    async def hit(self, action: str, identity: str, rule: RateLimitRule) -> RateLimitDecision:
        """Record one request. Fails open if the store errors."""
        key = self.key(action, identity)
        try:
            now = self.clock()
            record = await self.store.get(key)

            if record and record["reset_at"] > now:
                remaining_window = record["reset_at"] - now
                if record["count"] >= rule.max_requests:
                    retry_after = max(1, math.ceil(remaining_window))
                    return RateLimitDecision(
                        allowed=False, count=record["count"], retry_after=retry_after
                    )
                count = record["count"] + 1
                await self.store.set(
                    key,
                    {"count": count, "reset_at": record["reset_at"]},
                    ttl_seconds=max(1, math.ceil(remaining_window)),
                )
                return RateLimitDecision(allowed=True, count=count)

            await self.store.set(
                key,
                {"count": 1, "reset_at": now + rule.window_seconds},
                ttl_seconds=rule.window_seconds,
            )
            return RateLimitDecision(allowed=True, count=1)
        except Exception as e:
            # Counter store error: never block the request
            logger.error("rate_limit.store_error", action=action, key=key, error=str(e))
            return RateLimitDecision(allowed=True)


def rate_limit(action: str):
    """FastAPI dependency enforcing the configured budget for an action tag.

    Runs before body validation, so malformed or wrong-password attempts
    still consume the budget.
    """

    async def _enforce(request: Request) -> None:
        settings = request.app.state.settings
        limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
        identity = client_identity(request, settings.real_ip_header)
        decision = await limiter.hit(action, identity, settings.rate_limit_rule(action))
        if not decision.allowed:
            logger.warning(
                "rate_limit.rejected",
                action=action,
                client=identity,
                retry_after=decision.retry_after,
            )
            raise RateLimitedError(retry_after=decision.retry_after)

    return _enforce

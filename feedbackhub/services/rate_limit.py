from __future__ import annotations

import math
import time
from dataclasses import dataclass

from limits import parse
from limits.storage import storage_from_string
from limits.strategies import STRATEGIES

NAMESPACE = "ingest"


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class SubmissionRateLimiter:
    """
    Per-application submission bound, checked after authentication.

    Built on the same ``limits`` storage backends Flask-Limiter uses: memory in
    dev/tests, Redis in staging/production. ``hit`` is the storage's atomic
    check-and-increment, so two concurrent requests cannot both take the last slot.
    """

    def __init__(self, limit: str, storage_uri: str = "memory://", strategy: str = "moving-window"):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown rate limit strategy: {strategy}")
        self.limit = parse(limit)
        self.storage = storage_from_string(storage_uri)
        self.strategy = STRATEGIES[strategy](self.storage)

    @classmethod
    def from_config(cls, config, policy) -> "SubmissionRateLimiter":
        return cls(
            policy.rate_limit,
            storage_uri=config.get("RATELIMIT_STORAGE_URI") or "memory://",
            strategy=policy.rate_limit_strategy,
        )

    def hit(self, application_id: int) -> RateDecision:
        key = ("application", str(application_id))
        if self.strategy.hit(self.limit, NAMESPACE, *key):
            stats = self.strategy.get_window_stats(self.limit, NAMESPACE, *key)
            return RateDecision(allowed=True, remaining=stats.remaining)
        stats = self.strategy.get_window_stats(self.limit, NAMESPACE, *key)
        retry_after = max(1, int(math.ceil(stats.reset_time - time.time())))
        return RateDecision(allowed=False, remaining=0, retry_after=retry_after)

    def reset(self) -> None:
        self.storage.reset()

"""
Rolling daily quota.

Usage is never stored as a counter: it is the number of the user's
generation rows created inside the window (24 hours by default). The
limit comes from, in order, the profile's per-user override, the plan's
limit and finally the no-profile default.

Admission is optimistic. Two concurrent requests at ``limit - 1`` can
both pass the check and both insert, overshooting by one.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from voiso.core.config import QuotaConfig
from voiso.core.logging import get_logger, info, verbose
from voiso.db.models import utcnow
from voiso.db.repository import Repository
from voiso.services.errors import QuotaExceeded

_LOG = get_logger("voiso.quota")


@dataclass(frozen=True)
class QuotaUsage:
    used: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    @property
    def is_at_limit(self) -> bool:
        return self.used >= self.limit

    def to_dict(self) -> dict:
        return {
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "is_at_limit": self.is_at_limit,
        }


class QuotaGuard:
    """
    Computes usage and admits or rejects generation requests.

    Args:
        repository: Data access.
        config: Quota section of the service config.
        clock: Returns the current naive-UTC datetime.
    """

    def __init__(
        self,
        repository: Repository,
        config: QuotaConfig,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._repo = repository
        self._config = config
        self._clock = clock or utcnow

    def limit_for(self, user_id: str) -> int:
        profile = self._repo.get_profile(user_id)
        if profile is None:
            return self._config.default_limit
        if profile.daily_generation_limit is not None:
            return profile.daily_generation_limit
        return self._config.plan_limits.get(profile.plan, self._config.default_limit)

    def usage(self, user_id: str) -> QuotaUsage:
        """Current usage without admitting anything."""
        since = self._clock() - timedelta(hours=self._config.window_hours)
        used = self._repo.count_generations_since(user_id, since)
        return QuotaUsage(used=used, limit=self.limit_for(user_id))

    def check(self, user_id: str) -> QuotaUsage:
        """
        Admit one more generation.

        Raises:
            QuotaExceeded: When used >= limit.
        """
        usage = self.usage(user_id)
        if usage.is_at_limit:
            info(_LOG, "quota_exceeded", used=usage.used, limit=usage.limit)
            raise QuotaExceeded(used=usage.used, limit=usage.limit)
        verbose(_LOG, "quota_ok", used=usage.used, limit=usage.limit, remaining=usage.remaining)
        return usage

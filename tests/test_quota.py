"""
Tests for the rolling daily quota.

Tests cover:
- Limit resolution: override > plan > default
- Usage counts only rows inside the window
- check() raises QuotaExceeded at the limit
- Other users' rows never count
"""
from datetime import timedelta

import pytest

from voiso.db.models import utcnow
from voiso.services.errors import QuotaExceeded
from voiso.services.quota import QuotaGuard, QuotaUsage
from conftest import USER_A, USER_B


def add_generations(services, voice, user_id, count):
    for i in range(count):
        services.repository.insert_generation(
            user_id=user_id,
            voice_id=voice.id,
            text=f"line {i}",
            language="en",
            audio_url="http://testserver/x.mp3",
        )


class TestQuotaUsage:
    def test_remaining_never_negative(self):
        usage = QuotaUsage(used=25, limit=20)
        assert usage.remaining == 0
        assert usage.is_at_limit is True

    def test_to_dict(self):
        assert QuotaUsage(used=3, limit=20).to_dict() == {
            "used": 3, "limit": 20, "remaining": 17, "is_at_limit": False,
        }


class TestLimitResolution:
    def test_no_profile_uses_default(self, services):
        assert services.quota.limit_for(USER_A) == 20

    def test_plan_limit(self, services):
        services.repository.set_plan(USER_A, "creator")
        assert services.quota.limit_for(USER_A) == 200

    def test_override_wins(self, services):
        services.repository.set_plan(USER_A, "pro")
        services.repository.increment_generation_count(USER_A)
        from voiso.db.models import Profile
        from sqlalchemy import update
        with services.repository._session() as s:
            s.execute(update(Profile).where(Profile.user_id == USER_A).values(daily_generation_limit=3))
        assert services.quota.limit_for(USER_A) == 3


class TestCheck:
    def test_under_limit_admits(self, services, make_voice):
        voice = make_voice()
        add_generations(services, voice, USER_A, 19)
        usage = services.quota.check(USER_A)
        assert usage.used == 19
        assert usage.remaining == 1

    def test_at_limit_rejects(self, services, make_voice):
        voice = make_voice()
        add_generations(services, voice, USER_A, 20)
        with pytest.raises(QuotaExceeded) as exc:
            services.quota.check(USER_A)
        assert exc.value.status_code == 429
        assert exc.value.to_dict()["usage"] == {"used": 20, "limit": 20}

    def test_other_users_do_not_count(self, services, make_voice):
        voice = make_voice(user_id=None, type="default")
        add_generations(services, voice, USER_B, 20)
        assert services.quota.usage(USER_A).used == 0

    def test_rows_outside_window_do_not_count(self, services, make_voice):
        voice = make_voice()
        add_generations(services, voice, USER_A, 20)
        later = QuotaGuard(
            services.repository,
            services.config.quota,
            clock=lambda: utcnow() + timedelta(hours=25),
        )
        assert later.usage(USER_A).used == 0
        later.check(USER_A)


class TestWindowBoundary:
    def test_row_exactly_window_old_still_counts(self, services, make_voice):
        voice = make_voice()
        row = services.repository.insert_generation(
            user_id=USER_A, voice_id=voice.id, text="edge", language="en", audio_url=None,
        )
        guard = QuotaGuard(
            services.repository,
            services.config.quota,
            clock=lambda: row.created_at + timedelta(hours=24),
        )
        assert guard.usage(USER_A).used == 1

    def test_row_just_past_window_dropped(self, services, make_voice):
        voice = make_voice()
        row = services.repository.insert_generation(
            user_id=USER_A, voice_id=voice.id, text="edge", language="en", audio_url=None,
        )
        guard = QuotaGuard(
            services.repository,
            services.config.quota,
            clock=lambda: row.created_at + timedelta(hours=24, microseconds=1),
        )
        assert guard.usage(USER_A).used == 0

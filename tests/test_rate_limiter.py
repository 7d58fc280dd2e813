import random

from harvester.config import RateLimitConfig
from harvester.resilience import RateLimiter


def test_item_delay_jitter_bounds():
    limiter = RateLimiter(RateLimitConfig(base_delay=2.0), rng=random.Random(42))

    delays = [limiter.item_delay() for _ in range(200)]

    assert all(3.0 <= d <= 5.0 for d in delays)
    assert len(set(delays)) > 1


def test_batch_delay_within_range():
    limiter = RateLimiter(RateLimitConfig(batch_delay_min=2.0, batch_delay_max=5.0), rng=random.Random(1))

    assert all(2.0 <= limiter.batch_delay() <= 5.0 for _ in range(100))


def test_cooldown_after_consecutive_failures():
    limiter = RateLimiter(RateLimitConfig(cooldown_threshold=3, cooldown_duration=120.0))

    limiter.record_failure()
    limiter.record_failure()
    assert not limiter.should_cooldown()

    limiter.record_failure()
    assert limiter.should_cooldown()
    assert limiter.cooldown_seconds() == 120.0
    assert not limiter.should_cooldown()


def test_success_resets_failure_streak():
    limiter = RateLimiter(RateLimitConfig(cooldown_threshold=2))

    limiter.record_failure()
    limiter.record_success()
    limiter.record_failure()

    assert not limiter.should_cooldown()
    assert limiter.get_stats()['consecutive_failures'] == 1


def test_zero_threshold_disables_cooldown():
    limiter = RateLimiter(RateLimitConfig(cooldown_threshold=0))
    limiter.record_failure()

    assert not limiter.should_cooldown()

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from app.core.pricing import DAY_PASS, FREE, PRO, get_plan
from app.services.quota import quota_identity

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def test_consume_counts_up_to_the_limit(quota):
    for expected in range(1, 6):
        assert quota.consume("ip:1.2.3.4", 5, now=NOW)
        assert quota.used("ip:1.2.3.4", now=NOW) == expected
    assert not quota.consume("ip:1.2.3.4", 5, now=NOW)
    assert quota.used("ip:1.2.3.4", now=NOW) == 5
    assert quota.remaining("ip:1.2.3.4", 5, now=NOW) == 0


def test_counters_are_per_day_and_identity(quota):
    quota.consume("ip:1.2.3.4", 5, now=NOW)
    assert quota.used("ip:1.2.3.4", now=NOW + timedelta(days=1)) == 0
    assert quota.used("ip:5.6.7.8", now=NOW) == 0


def test_counter_keys_expire(quota, redis_client):
    quota.consume("ip:1.2.3.4", 5, now=NOW)
    key = quota._key("ip:1.2.3.4", NOW)
    assert 0 < redis_client.ttl(key) <= 2 * 24 * 3600


def test_parallel_consumers_never_exceed_limit(quota):
    with ThreadPoolExecutor(max_workers=8) as pool:
        granted = list(pool.map(lambda _: quota.consume("session:abc", 5, now=NOW), range(20)))
    assert granted.count(True) == 5
    assert quota.used("session:abc", now=NOW) == 5


def test_identity_uses_session_only_for_pass_holders():
    assert quota_identity(get_plan(DAY_PASS), "cs_123", "1.2.3.4") == "session:cs_123"
    assert quota_identity(get_plan(FREE), "cs_123", "1.2.3.4") == "ip:1.2.3.4"
    assert quota_identity(get_plan(FREE), None, None) == "ip:unknown"


def test_no_session_means_free_plan(passes):
    assert passes.resolve_plan(None).tier == FREE
    assert passes.resolve_plan("cs_unknown").tier == FREE


def test_granted_pass_unlocks_paid_plan(passes):
    granted = passes.grant("cs_123", "processing-pass", now=NOW)
    assert granted.expires_at == NOW + timedelta(hours=24)
    assert passes.resolve_plan("cs_123", now=NOW + timedelta(hours=1)).tier == DAY_PASS


def test_pro_pass(passes):
    passes.grant("cs_pro", "pro", now=NOW)
    assert passes.resolve_plan("cs_pro", now=NOW).tier == PRO


def test_expired_pass_falls_back_to_free(passes):
    passes.grant("cs_123", "single-file", now=NOW)
    assert passes.resolve_plan("cs_123", now=NOW + timedelta(hours=2)).tier == FREE


def test_unknown_pass_type_is_refused(passes):
    with pytest.raises(ValueError):
        passes.grant("cs_123", "lifetime")


def test_unreadable_pass_is_ignored(passes, redis_client):
    redis_client.set("processing_pass:cs_bad", "{not json")
    assert passes.get("cs_bad") is None
    assert passes.resolve_plan("cs_bad").tier == FREE

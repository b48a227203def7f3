"""Tests for ReferenceCache: LRU eviction, TTL expiry, hit/miss counters."""

import logging

import pytest

from switchboard.errors import MessageContextNotFoundError
from switchboard.models.message import FullMessageRef, MessageIdRef
from switchboard.models.result import Err, Ok
from switchboard.services.reference_cache import ReferenceCache


@pytest.fixture
def cache(clock):
    return ReferenceCache(max_size=2, ttl_ms=1000, platform="slack", clock=clock)


def test_rejects_invalid_bounds():
    with pytest.raises(ValueError):
        ReferenceCache(max_size=0)
    with pytest.raises(ValueError):
        ReferenceCache(ttl_ms=0)


def test_full_ref_never_consults_cache(cache, make_message):
    message = make_message("1.1", "C9", thread_id="1.0")

    result = cache.resolve(FullMessageRef(message), "edit_message")

    assert isinstance(result, Ok)
    assert result.value.channel_id == "C9"
    assert result.value.thread_id == "1.0"
    assert cache.stats.hits == 0
    assert cache.stats.misses == 0
    assert len(cache) == 0


def test_full_ref_succeeds_after_expiry(cache, clock, make_message):
    message = make_message("1.1")
    cache.remember(message)
    clock.advance_ms(5000)

    assert isinstance(cache.resolve(FullMessageRef(message), "delete_message"), Ok)


def test_hit_within_ttl_increments_hits_once(cache, clock, make_message):
    cache.remember(make_message("1.1", "C1"))
    clock.advance_ms(999)

    result = cache.resolve(MessageIdRef("1.1"), "edit_message")

    assert isinstance(result, Ok)
    assert result.value.channel_id == "C1"
    assert cache.stats.hits == 1
    assert cache.stats.misses == 0


def test_age_equal_to_ttl_is_still_a_hit(cache, clock, make_message):
    cache.remember(make_message("1.1"))
    clock.advance_ms(1000)

    assert isinstance(cache.resolve(MessageIdRef("1.1"), "edit_message"), Ok)


def test_expired_entry_is_a_miss_and_removed(cache, clock, make_message):
    cache.remember(make_message("1.1"))
    clock.advance_ms(1001)

    result = cache.resolve(MessageIdRef("1.1"), "add_reaction")

    assert isinstance(result, Err)
    assert isinstance(result.error, MessageContextNotFoundError)
    assert result.error.operation == "add_reaction"
    assert cache.stats.misses == 1
    assert cache.stats.hits == 0
    assert len(cache) == 0


def test_unknown_id_is_a_miss(cache):
    result = cache.resolve(MessageIdRef("nope"), "edit_message")

    assert isinstance(result, Err)
    assert result.error.message_id == "nope"
    assert result.error.platform == "slack"
    assert cache.stats.misses == 1


def test_capacity_evicts_least_recently_used(clock, make_message):
    cache = ReferenceCache(max_size=3, ttl_ms=10_000, clock=clock)
    for message_id in ("a", "b", "c"):
        cache.remember(make_message(message_id))
    cache.resolve(MessageIdRef("a"), "edit_message")

    cache.remember(make_message("d"))

    assert "b" not in cache
    assert all(key in cache for key in ("a", "c", "d"))
    assert len(cache) == 3


def test_concrete_lru_scenario(cache, clock, make_message):
    # capacity 2, TTL 1000ms
    clock.set_ms(0)
    cache.remember(make_message("A"))
    clock.set_ms(100)
    cache.remember(make_message("B"))
    clock.set_ms(200)
    assert isinstance(cache.resolve(MessageIdRef("A"), "edit_message"), Ok)
    clock.set_ms(300)
    cache.remember(make_message("C"))

    assert "A" in cache
    assert "B" not in cache
    assert "C" in cache


def test_forget_makes_id_a_miss(cache, make_message):
    cache.remember(make_message("1.1"))

    assert cache.forget("1.1") is True
    assert cache.forget("1.1") is False
    assert isinstance(cache.resolve(MessageIdRef("1.1"), "edit_message"), Err)


def test_remember_overwrites_context(cache, make_message):
    cache.remember(make_message("1.1", "C1"))
    cache.remember(make_message("1.1", "C1", thread_id="1.0"))

    result = cache.resolve(MessageIdRef("1.1"), "create_thread")

    assert result.value.thread_id == "1.0"
    assert len(cache) == 1


def test_contains_does_not_count_lookups(cache, make_message):
    cache.remember(make_message("1.1"))

    assert "1.1" in cache
    assert 42 not in cache
    assert cache.stats.lookups == 0


def test_clear(cache, make_message):
    cache.remember(make_message("1.1"))
    cache.clear()
    assert len(cache) == 0


def test_hit_rate_logged_every_interval(clock, make_message, caplog):
    cache = ReferenceCache(
        max_size=10, ttl_ms=1000, platform="slack", stats_interval=4, clock=clock
    )
    cache.remember(make_message("1.1"))

    with caplog.at_level(logging.INFO, logger="switchboard.services.reference_cache"):
        for _ in range(3):
            cache.resolve(MessageIdRef("1.1"), "edit_message")
        assert not caplog.records
        cache.resolve(MessageIdRef("missing"), "edit_message")

    assert len(caplog.records) == 1
    assert "Slack reference cache hit rate: 75.0% (3/4)" in caplog.records[0].getMessage()
    assert cache.stats.hit_rate == 0.75

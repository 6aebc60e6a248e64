import asyncio

from tracie.memory.cache import CacheCoordinator, CacheDomain, DedupFilter
from fakes import make_caches


class _Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_second_sighting_is_duplicate():
    dedup = DedupFilter(make_caches())

    assert (dedup.is_duplicate("ABC"), dedup.is_duplicate("ABC")) == (False, True)


def test_marker_lives_in_messages_domain_for_message_ttl():
    clock = _Clock()
    caches = make_caches(ttl=60, clock=clock)
    dedup = DedupFilter(caches)

    dedup.is_duplicate("ABC")
    assert caches.has(CacheDomain.MESSAGES, "ABC")
    assert not caches.has(CacheDomain.USERS, "ABC")

    clock.now += 61
    assert dedup.is_duplicate("ABC") is False


def test_concurrent_redelivery_yields_exactly_one_first_sighting():
    dedup = DedupFilter(make_caches())

    async def deliver():
        await asyncio.sleep(0)
        return dedup.is_duplicate("same-id")

    async def run():
        return await asyncio.gather(*(deliver() for _ in range(20)))

    results = asyncio.run(run())

    assert results.count(False) == 1
    assert results.count(True) == 19


def test_clearing_the_caches_forgets_markers():
    caches = make_caches()
    dedup = DedupFilter(caches)
    dedup.is_duplicate("m")

    caches.clear()

    assert dedup.is_duplicate("m") is False


def test_redelivery_after_capacity_is_exceeded_is_still_a_duplicate(caplog):
    caches = make_caches(capacity=2)
    dedup = DedupFilter(caches)

    first = [dedup.is_duplicate(m) for m in ("a", "b", "c")]

    assert first == [False, False, False]
    assert dedup.is_duplicate("a") is True
    assert len(caches.domain(CacheDomain.MESSAGES)) == 3
    assert "messages cache is over capacity" in caplog.text


def test_default_messages_domain_never_evicts_live_markers():
    assert CacheCoordinator().domain(CacheDomain.MESSAGES).evict_live is False

import pytest

from tracie.memory.cache import ALL, CacheCoordinator, CacheDomain, EntryCache, hit_rate
from fakes import make_caches


def test_domains_never_share_keys():
    caches = make_caches()
    caches.set(CacheDomain.USERS, "x", "user")
    caches.set(CacheDomain.GROUPS, "x", "group")

    assert caches.get("users", "x") == "user"
    assert caches.get(CacheDomain.GROUPS, "x") == "group"
    assert caches.get(CacheDomain.MEDIA, "x") is None


@pytest.mark.parametrize("domain", list(CacheDomain))
def test_set_then_get_round_trips_in_every_domain(domain):
    caches = make_caches()
    value = {"domain": domain.value}

    caches.set(domain, "key", value)

    assert caches.get(domain, "key") == value


def test_clear_all_empties_every_domain_and_is_idempotent():
    caches = make_caches()
    for domain in CacheDomain:
        caches.set(domain, "k", 1)

    assert caches.clear(ALL) == 4
    assert caches.clear() == 0
    assert all(s.keys == 0 for s in caches.stats().values())


def test_clear_single_domain_leaves_others():
    caches = make_caches()
    caches.cache_user("u", {"jid": "u"})
    caches.cache_group("g", {"id": "g"})

    caches.clear(CacheDomain.USERS)

    assert caches.get_user("u") is None
    assert caches.get_group("g") == {"id": "g"}


def test_summary_aggregates_and_guards_zero_accesses():
    caches = make_caches()
    assert caches.summary().hit_rate == 0.0

    caches.cache_user("u", {})
    caches.get_user("u")
    caches.get_user("u")
    caches.get_group("missing")
    caches.get_media("missing")

    summary = caches.summary()
    assert (summary.total_keys, summary.hits, summary.misses) == (1, 2, 2)
    assert summary.hit_rate == 0.5


def test_hit_rate_helper():
    assert hit_rate(0, 0) == 0.0
    assert hit_rate(3, 1) == 0.75


def test_emergency_clear_logs_and_wipes(caplog):
    caches = make_caches()
    caches.cache_media("sticker:1", b"...")

    with caplog.at_level("WARNING"):
        removed = caches.emergency_clear("memory pressure")

    assert removed == 1
    assert "memory pressure" in caplog.text
    assert caches.summary().total_keys == 0


def test_missing_domain_is_rejected():
    with pytest.raises(ValueError):
        CacheCoordinator({CacheDomain.USERS: EntryCache("users", ttl=1, capacity=1)})


def test_default_caches_follow_configuration():
    caches = CacheCoordinator()
    assert caches.domain(CacheDomain.MESSAGES).ttl == 60
    assert caches.domain(CacheDomain.USERS).ttl == 600
    assert caches.domain(CacheDomain.GROUPS).ttl == 300

import time
from types import SimpleNamespace
from typing import NamedTuple
from collections import namedtuple

import pytest

from rains.algorithm_types import SignatureAlgorithm
from rains.cache.zone_key_cache import ZoneKeyCache, zone_ctx_key

HOUR = 3600
ED = SignatureAlgorithm.ED25519

SigMeta = namedtuple("SigMeta", "algorithm key_phase valid_since valid_until")


class Key(NamedTuple):
    algorithm: int
    key_phase: int
    valid_since: int
    valid_until: int
    material: bytes

    def hash(self):
        return repr(self)


def delegations(tld):
    """Delegations as in the source's fixtures: (subject, phase, since h, until h, key)."""
    now = int(time.time())
    plan = [
        (tld, 0, 0, 24, b"TestKey"),
        (tld, 0, 25, 48, b"TestKey2"),
        (tld, 1, 0, 24, b"TestKey"),
        (tld, 1, -2, -1, b"TestKey"),
        ("@", 0, 0, 24, b"TestKey"),
    ]
    return [
        SimpleNamespace(
            subject_name=name,
            subject_zone=".",
            context=".",
            key=Key(ED, phase, now + start * HOUR, now + end * HOUR, material),
        )
        for name, phase, start, end, material in plan
    ]


def signatures():
    now = int(time.time())
    offsets = [
        (0, 23 * HOUR, 24 * HOUR + 1800),
        (0, 24 * HOUR + 1800, 30 * HOUR),
        (1, 23 * HOUR, 24 * HOUR + 1800),
        (0, -2 * HOUR, -HOUR),
        (0, 48 * HOUR, 50 * HOUR),
        (0, 24 * HOUR, 25 * HOUR - 1),
    ]
    return [SigMeta(ED, phase, now + since, now + until) for phase, since, until in offsets]


def add_all(cache, *records):
    return [cache.add(rec, rec.key, False) for rec in records]


def assert_found(cache, zone, sig, record):
    result = cache.get(zone, ".", sig)
    assert result is not None
    assert result[0] == record.key
    assert result[1] is record


@pytest.mark.parametrize(
    "zone, context, expected",
    [("", "", " "), ("example.com", ".", "example.com .")],
)
def test_zone_ctx_key(zone, context, expected):
    assert zone_ctx_key(zone, context) == expected


def test_zone_key_cache():
    ch = delegations("ch")
    org = delegations("org")
    cache = ZoneKeyCache(5, 4, 2)
    assert len(cache) == 0

    for j in range(3):
        assert add_all(cache, ch[j]) == [True]
        assert len(cache) == j + 1
    assert add_all(cache, org[0]) == [False]
    assert len(cache) == 4

    sigs = signatures()
    for j in range(3):
        assert_found(cache, "ch.", sigs[j], ch[j])
    assert_found(cache, "org.", sigs[0], org[0])

    # lru removal
    assert add_all(cache, org[1]) == [False]
    assert len(cache) == 3
    assert cache.get("ch", ".", sigs[0]) is None
    assert cache.get("ch.", ".", sigs[0]) is None

    # expired keys
    add_all(cache, ch[3])
    assert len(cache) == 4
    cache.remove_expired_keys()
    assert len(cache) == 3

    # self signed root delegation
    add_all(cache, org[4])
    assert len(cache) == 4
    assert_found(cache, ".", sigs[0], org[4])


def test_get_outside_validity_returns_none():
    ch = delegations("ch")
    cache = ZoneKeyCache(10, 8, 5)
    add_all(cache, ch[0])
    sigs = signatures()
    assert cache.get("ch.", ".", sigs[3]) is None
    assert cache.get("ch.", ".", sigs[4]) is None
    assert_found(cache, "ch.", sigs[0], ch[0])


def test_adding_same_key_twice_counts_once():
    ch = delegations("ch")
    cache = ZoneKeyCache(10, 8, 5)
    add_all(cache, ch[0], ch[0])
    assert len(cache) == 1


def test_checkpoint():
    ch = delegations("ch")
    org = delegations("org")
    cache = ZoneKeyCache(5, 4, 2)
    add_all(cache, ch[0], org[0])
    saved = cache.checkpoint()
    assert len(saved) == 2
    assert {id(a) for a in saved} == {id(ch[0]), id(org[0])}
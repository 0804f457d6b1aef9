import os
import time
from dataclasses import dataclass, field

import pytest

from rains.cache.pending_query_cache import PendingQueryCache, pending_query_key


@dataclass
class Name:
    name: str
    context: str
    types: list
    key_phase: int = 0


@dataclass
class Assertion:
    subject_name: str = ""
    subject_zone: str = ""
    context: str = ""


@dataclass
class MsgSectionSender:
    sections: list
    sender: object = None
    tok: bytes = field(default_factory=lambda: os.urandom(16))


def get_queries():
    q0 = Name("example.net", ".", [2])
    q1 = Name("example.com", ".", [2])
    q2 = Name("example.com", ".", [5])
    return [
        MsgSectionSender([q0]),
        MsgSectionSender([q0]),
        MsgSectionSender([q1]),
        MsgSectionSender([q2]),
    ]


def hour_from_now(sign=1):
    return int(time.time()) + sign * 3600


def test_pending_query_key_plain():
    assert pending_query_key([Name("example.com", ".", [2])]) == "example.com:.:[2]"


def test_pending_query_key_delegation():
    assert pending_query_key([Name("example.com", ".", [5], 1)]) == "example.com:.:[5]:1"


def test_pending_query_key_multiple_types_and_queries():
    key = pending_query_key([Name("a", ".", [2, 3]), Name("b", "ctx", [2])])
    assert key == "a:.:[2 3]::a:.:[2 3]::b:ctx:[2]"


def test_pending_query_key_rejects_non_query():
    with pytest.raises(ValueError):
        pending_query_key([Assertion()])


def test_pending_query_cache():
    mss = get_queries()
    max_size = 3
    c = PendingQueryCache(max_size)
    assert len(c) == 0

    assert c.add(mss[0], mss[0].tok, hour_from_now()) is True
    assert len(c) == 1
    assert c.add(mss[1], mss[1].tok, hour_from_now()) is False
    assert len(c) == 2
    assert c.add(mss[2], mss[2].tok, hour_from_now()) is True
    assert len(c) == 3

    assert c.get_and_remove(mss[1].tok) == []
    assert len(c) == 3
    assert c.get_and_remove(mss[2].tok) == [mss[2]]
    assert len(c) == 2
    assert c.get_and_remove(mss[0].tok) == [mss[0], mss[1]]
    assert len(c) == 0

    c.add(mss[0], mss[0].tok, hour_from_now())
    c.add(mss[2], mss[2].tok, hour_from_now(-1))
    c.remove_expired_values()
    v = c.get_and_remove(mss[0].tok)
    assert len(c) == 0
    assert v[0] == mss[0]

    assert c.add(mss[3], mss[3].tok, hour_from_now()) is True
    assert len(c) == 1
    assert c.get_and_remove(mss[3].tok) == [mss[3]]
    assert len(c) == 0

    invalid = MsgSectionSender([Assertion()], tok=mss[0].tok)
    assert c.add(invalid, invalid.tok, hour_from_now()) is False
    assert len(c) == 0

    for _ in range(max_size):
        c.add(mss[0], os.urandom(16), hour_from_now())
    c.add(mss[0], os.urandom(16), hour_from_now())
    assert len(c) == max_size


def test_expired_pending_query_is_replaced():
    mss = get_queries()
    c = PendingQueryCache(10)
    assert c.add(mss[0], mss[0].tok, hour_from_now(-1)) is True
    assert c.add(mss[1], mss[1].tok, hour_from_now()) is True
    assert c.get_and_remove(mss[1].tok) == [mss[1]]
    assert len(c) == 1
import threading

from rains.cache.base import BoundedCounter, LruCache


def test_get_or_add_returns_existing_value():
    cache = LruCache()
    first = ["first"]
    second = ["second"]
    assert cache.get_or_add("k", first, False) == (first, True)
    value, added = cache.get_or_add("k", second, False)
    assert value is first
    assert added is False
    assert len(cache) == 1


def test_get_missing_returns_none():
    cache = LruCache()
    assert cache.get("absent") is None
    cache.get_or_add("present", 7, True)
    assert cache.get("present") == 7


def test_least_recently_used_follows_access_order():
    cache = LruCache()
    for key in ("a", "b", "c"):
        cache.get_or_add(key, key.upper(), False)
    assert cache.get_least_recently_used() == ("a", "A")
    cache.get("a")
    assert cache.get_least_recently_used() == ("b", "B")
    cache.get_or_add("b", "ignored", False)
    assert cache.get_least_recently_used() == ("c", "C")


def test_internal_entries_are_never_evicted():
    cache = LruCache()
    cache.get_or_add("internal", 1, True)
    cache.get_or_add("external", 2, False)
    assert cache.get_least_recently_used() == ("external", 2)
    assert cache.remove("external") == 2
    assert cache.get_least_recently_used() is None
    assert cache.get("internal") == 1


def test_remove_internal_and_missing():
    cache = LruCache()
    cache.get_or_add("x", "value", True)
    assert cache.remove("x") == "value"
    assert cache.remove("x") is None
    assert len(cache) == 0


def test_get_all_contains_every_value():
    cache = LruCache()
    cache.get_or_add("i", 1, True)
    cache.get_or_add("e1", 2, False)
    cache.get_or_add("e2", 3, False)
    assert sorted(cache.get_all()) == [1, 2, 3]
    assert len(cache) == 3


def test_counter_reports_full_at_maximum():
    counter = BoundedCounter(2)
    assert counter.inc() is False
    assert counter.is_full() is False
    assert counter.inc() is True
    assert counter.is_full() is True
    counter.dec()
    assert counter.is_full() is False
    assert counter.value() == 1


def test_counter_add_and_sub():
    counter = BoundedCounter(2)
    assert counter.add(3) is True
    assert counter.value() == 3
    counter.sub(3)
    assert counter.value() == 0
    assert counter.is_full() is False


def test_counter_is_thread_safe():
    counter = BoundedCounter(10**9)
    threads = [threading.Thread(target=lambda: [counter.inc() for _ in range(1000)]) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert counter.value() == 8 * 1000
import fnmatch
import uuid
from datetime import timedelta

import pytest
import redis

from shopmesh.product.cache import RedisCache


class FakeRedis:
    def __init__(self, page_size=2):
        self.store = {}
        self.expiry = {}
        self.order = []
        self.page_size = page_size
        self.scan_calls = 0

    def set(self, name, value, ex=None, px=None):
        if name not in self.order:
            self.order.append(name)
        self.store[name] = value.encode() if isinstance(value, str) else value
        self.expiry[name] = (ex, px)
        return True

    def get(self, name):
        return self.store.get(name)

    def delete(self, *names):
        removed = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                removed += 1
        return removed

    def exists(self, *names):
        return sum(1 for name in names if name in self.store)

    def scan(self, cursor=0, match=None, count=None):
        self.scan_calls += 1
        page = self.order[cursor:cursor + self.page_size]
        keys = [
            k for k in page
            if k in self.store and (match is None or fnmatch.fnmatchcase(k, match))
        ]
        nxt = cursor + self.page_size
        return (nxt if nxt < len(self.order) else 0), keys


class BrokenRedis:
    def exists(self, *names):
        raise redis.ConnectionError("down")


@pytest.fixture
def fake():
    return FakeRedis()


@pytest.fixture
def cache(fake):
    return RedisCache(fake)


def test_round_trip(cache):
    value = {"name": "lamp", "price": 12.5, "tags": ["a", "b"]}
    cache.set("k", value)
    assert cache.get("k") == value


def test_missing_key_gives_none(cache):
    assert cache.get("absent") is None


def test_uuid_values_are_encoded_as_text(cache):
    ident = uuid.uuid4()
    cache.set("k", {"id": ident})
    assert cache.get("k") == {"id": str(ident)}


def test_unencodable_value_raises(cache):
    with pytest.raises(TypeError):
        cache.set("k", object())


def test_expiration_passed_to_client(cache, fake):
    cache.set("hour", 1, timedelta(minutes=60))
    cache.set("forever", 2, timedelta(0))
    cache.set("none", 3)
    assert fake.expiry["hour"] == (3600, None)
    assert fake.expiry["forever"] == (None, None)
    assert fake.expiry["none"] == (None, None)
    assert [cache.get("hour"), cache.get("forever"), cache.get("none")] == [1, 2, 3]


def test_exists_and_delete(cache):
    cache.set("k", "v")
    assert cache.exists("k") is True
    cache.delete("k")
    assert cache.exists("k") is False
    assert cache.get("k") is None


def test_exists_swallows_errors():
    assert RedisCache(BrokenRedis()).exists("k") is False


def test_delete_pattern_spans_pages(cache, fake):
    names = ["products:all", "product:1", "products:x", "product:2", "products:y"]
    for name in names:
        cache.set(name, name)
    cache.delete_pattern("products:*")
    assert [cache.exists(name) for name in names] == [False, True, False, True, False]
    assert cache.get("product:1") == "product:1"
    assert cache.get("products:y") is None
    assert fake.scan_calls > 1


def test_from_address_configures_client():
    password = "password"
    built = RedisCache.from_address("cachehost:6380", password, 3)
    kwargs = built.client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cachehost"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 3
    assert kwargs["password"] == password


def test_from_address_empty_password_sends_none():
    built = RedisCache.from_address("cachehost:6380", "", 0)
    assert built.client.connection_pool.connection_kwargs["password"] is None
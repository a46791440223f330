"""
Paste store properties executed against the real Lua scripts.

fakeredis runs INSERT_SCRIPT and READ_AND_EXPIRE_SCRIPT through an embedded
Lua interpreter, so these tests cover the atomic conditional update that
ships with the Redis backend.
"""
import threading
from concurrent.futures import ThreadPoolExecutor

import fakeredis
import pytest
from redis.exceptions import ResponseError

from app.database import RedisStore, paste_key
from app.errors import InternalError, NotFoundError
from app.models import Paste
from app.store import PasteStore, current_time_ms


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def redis_store(redis_client) -> PasteStore:
    return PasteStore(RedisStore(redis_client))


@pytest.fixture
def now() -> int:
    # Physical PEXPIREAT uses the server clock, so stay near the wall clock
    return current_time_ms()


class TestRedisReadAndExpire:
    def test_round_trip(self, redis_store, redis_client, now):
        paste = redis_store.create("hello", max_views=1, now_ms=now)

        view = redis_store.get_paste(paste.id, now_ms=now)

        assert view.content == "hello"
        assert view.remaining_views == 0
        assert redis_client.hget(paste_key(paste.id), "remaining_views") == "0"

    def test_views_never_go_negative(self, redis_store, redis_client, now):
        paste = redis_store.create("hello", max_views=1, now_ms=now)
        redis_store.read_and_expire(paste.id, now_ms=now)

        for _ in range(5):
            with pytest.raises(NotFoundError):
                redis_store.read_and_expire(paste.id, now_ms=now)
        assert redis_client.hget(paste_key(paste.id), "remaining_views") == "0"

    def test_returns_pre_decrement_snapshot(self, redis_store, redis_client, now):
        paste = redis_store.create("hello", max_views=3, now_ms=now)

        seen = redis_store.read_and_expire(paste.id, now_ms=now)

        assert seen.remaining_views == 3
        assert seen.max_views == 3
        assert redis_client.hget(paste_key(paste.id), "remaining_views") == "2"

    def test_time_based_expiry(self, redis_store, now):
        paste = redis_store.create("hello", ttl_seconds=1, now_ms=now)

        assert redis_store.read_and_expire(paste.id, now_ms=now + 500).content == "hello"
        with pytest.raises(NotFoundError):
            redis_store.read_and_expire(paste.id, now_ms=now + 1500)

    def test_expiry_boundary_is_dead(self, redis_store, now):
        paste = redis_store.create("hello", ttl_seconds=5, now_ms=now)

        redis_store.read_and_expire(paste.id, now_ms=now + 4999)
        with pytest.raises(NotFoundError):
            redis_store.read_and_expire(paste.id, now_ms=now + 5000)

    def test_failed_read_does_not_mutate(self, redis_store, redis_client, now):
        paste = redis_store.create("hello", ttl_seconds=1, max_views=3, now_ms=now)

        with pytest.raises(NotFoundError):
            redis_store.read_and_expire(paste.id, now_ms=now + 5000)
        assert redis_client.hget(paste_key(paste.id), "remaining_views") == "3"

    def test_death_is_permanent(self, redis_store, now):
        paste = redis_store.create("hello", max_views=1, now_ms=now)
        redis_store.read_and_expire(paste.id, now_ms=now)

        for when in (now + 2000, now, now - 10_000):
            with pytest.raises(NotFoundError):
                redis_store.read_and_expire(paste.id, now_ms=when)

    def test_unlimited_paste_survives_many_reads(self, redis_store, redis_client, now):
        paste = redis_store.create("hello", now_ms=now)

        for _ in range(1000):
            assert redis_store.read_and_expire(paste.id, now_ms=now).content == "hello"
        assert redis_client.hget(paste_key(paste.id), "remaining_views") is None

    def test_unknown_id_is_not_found(self, redis_store):
        with pytest.raises(NotFoundError):
            redis_store.read_and_expire("missing")

    def test_concurrent_readers_share_view_budget(self, redis_store, redis_client, now):
        paste = redis_store.create("hello", max_views=2, now_ms=now)
        readers = 5
        barrier = threading.Barrier(readers)

        def read():
            barrier.wait()
            try:
                redis_store.read_and_expire(paste.id, now_ms=now)
                return True
            except NotFoundError:
                return False

        with ThreadPoolExecutor(max_workers=readers) as pool:
            outcomes = list(pool.map(lambda _: read(), range(readers)))

        assert outcomes.count(True) == 2
        assert outcomes.count(False) == 3
        assert redis_client.hget(paste_key(paste.id), "remaining_views") == "0"


class TestRedisInsert:
    def test_ttl_sets_physical_expiry(self, redis_store, redis_client, now):
        timed = redis_store.create("hello", ttl_seconds=60, now_ms=now)
        forever = redis_store.create("hello", now_ms=now)

        assert 0 < redis_client.pttl(paste_key(timed.id)) <= 60_000
        assert redis_client.ttl(paste_key(forever.id)) == -1

    def test_absent_fields_are_not_stored(self, redis_store, redis_client, now):
        paste = redis_store.create("hello", now_ms=now)

        assert redis_client.hgetall(paste_key(paste.id)) == {
            "id": paste.id,
            "content": "hello",
            "created_at": str(now),
        }

    def test_id_collision_keeps_first_paste(self, redis_client, now):
        store = PasteStore(RedisStore(redis_client), id_factory=lambda: "fixed")
        store.create("first", now_ms=now)

        with pytest.raises(InternalError):
            store.create("second", now_ms=now)
        assert redis_client.hget(paste_key("fixed"), "content") == "first"

    def test_rejected_expiry_leaves_no_row(self, redis_client):
        backend = RedisStore(redis_client)
        paste = Paste(id="huge", content="hello", created_at=1, expires_at=10**20)

        with pytest.raises(ResponseError):
            backend.insert(paste)
        assert redis_client.keys("paste:*") == []

"""
Storage backends for pastes: Redis with an in-memory fallback for development.

Both backends expose the same two-operation contract the paste store relies on:
``insert`` refuses to overwrite an existing key, and
``conditional_update_and_return`` checks aliveness and spends one view in a
single atomic step, returning the row as it was before the update.
"""
import logging
import threading
from typing import Dict, Optional, Union

from redis import Redis
from redis.exceptions import RedisError

from app.config import settings
from app.lifecycle import is_alive, next_remaining_views
from app.models import Paste

logger = logging.getLogger(__name__)

KEY_PREFIX = "paste:"

# KEYS[1] = paste key, ARGV[1] = expires_at in ms or "", ARGV[2..] = field/value pairs.
# Scripts are not rolled back on error, so a rejected expiry removes the row itself.
INSERT_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 1 then
    return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV, 2))
if ARGV[1] ~= '' then
    local reply = redis.pcall('PEXPIREAT', KEYS[1], ARGV[1])
    if type(reply) == 'table' and reply.err then
        redis.call('DEL', KEYS[1])
        return reply
    end
end
return 1
"""

# KEYS[1] = paste key, ARGV[1] = now in ms. Returns the pre-decrement hash or nil.
READ_AND_EXPIRE_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return false
end
local now = tonumber(ARGV[1])
local expires_at = redis.call('HGET', KEYS[1], 'expires_at')
if expires_at and tonumber(expires_at) <= now then
    return false
end
local remaining = redis.call('HGET', KEYS[1], 'remaining_views')
if remaining and tonumber(remaining) <= 0 then
    return false
end
local row = redis.call('HGETALL', KEYS[1])
if remaining then
    redis.call('HINCRBY', KEYS[1], 'remaining_views', -1)
end
return row
"""


def paste_key(paste_id: str) -> str:
    return f"{KEY_PREFIX}{paste_id}"


class InMemoryStore:
    """Simple in-memory store for development/testing (when Redis unavailable)."""

    def __init__(self):
        self.pastes: Dict[str, Paste] = {}
        # Stands in for the row lock a real storage engine takes on update
        self._lock = threading.Lock()

    def insert(self, paste: Paste) -> bool:
        """Store a new paste. Returns False if the id is already taken."""
        with self._lock:
            if paste.id in self.pastes:
                return False
            self.pastes[paste.id] = paste
            return True

    def conditional_update_and_return(self, paste_id: str, now_ms: int) -> Optional[Paste]:
        """Spend one view of an alive paste and return it as it was before."""
        with self._lock:
            paste = self.pastes.get(paste_id)
            if paste is None or not is_alive(paste, now_ms):
                return None
            if paste.remaining_views is not None:
                self.pastes[paste_id] = paste.model_copy(
                    update={"remaining_views": next_remaining_views(paste.remaining_views)}
                )
            return paste

    def ping(self):
        """Health check."""
        return True


class RedisStore:
    """Pastes as Redis hashes, mutated only through server-side Lua scripts."""

    def __init__(self, client: Redis):
        self.redis = client
        self._insert = client.register_script(INSERT_SCRIPT)
        self._read_and_expire = client.register_script(READ_AND_EXPIRE_SCRIPT)

    def insert(self, paste: Paste) -> bool:
        """Store a new paste. Returns False if the id is already taken."""
        pairs = []
        for field, value in paste.to_hash().items():
            pairs.extend((field, value))
        expires_at = "" if paste.expires_at is None else str(paste.expires_at)
        created = self._insert(keys=[paste_key(paste.id)], args=[expires_at, *pairs])
        return int(created) == 1

    def conditional_update_and_return(self, paste_id: str, now_ms: int) -> Optional[Paste]:
        """Spend one view of an alive paste and return it as it was before."""
        row = self._read_and_expire(keys=[paste_key(paste_id)], args=[now_ms])
        if not row:
            return None
        return Paste.from_hash(dict(zip(row[::2], row[1::2])))

    def ping(self):
        """Health check."""
        return self.redis.ping()


Backend = Union[InMemoryStore, RedisStore]


def open_backend() -> Backend:
    """
    Build the storage backend selected by settings.

    With the redis backend, an unreachable server falls back to the
    in-memory store so local development keeps working.
    """
    if settings.STORAGE_BACKEND == "memory":
        logger.info("Using in-memory paste storage")
        return InMemoryStore()

    try:
        logger.info(f"Attempting to connect to Redis: {settings.REDIS_URL[:30]}...")
        client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
        client.ping()
        logger.info("Redis connected successfully")
        return RedisStore(client)
    except RedisError as e:
        logger.error(f"Error connecting to Redis: {type(e).__name__}: {e}")
        logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
        return InMemoryStore()
    except Exception as e:
        logger.error(f"Unexpected error connecting to Redis: {type(e).__name__}: {e}")
        logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
        return InMemoryStore()

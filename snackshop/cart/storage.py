"""
Durable storage for the cart envelope plus a per-key change feed.

Two backends share one interface:
- RedisCartStorage: Upstash Redis, GET/SET for the envelope and a Redis
  Stream (XADD/XRANGE) as the change feed
- MemoryCartStorage: process-local, shared by every engine built with the
  same instance (several "tabs" of one browser)
"""
import json
from abc import ABC, abstractmethod
from typing import Any

from snackshop.db import get_redis, RedisKeys, CHANGE_FEED_MAXLEN
from snackshop.errors import CartStorageError, ERROR_STORAGE_UNAVAILABLE
from snackshop.logging import get_logger

logger = get_logger(__name__)

# Change entry as returned by read_changes: (entry_id, {"key": ..., "origin": ...})
ChangeEntry = tuple[str, dict[str, Any]]

# Read position meaning "from the beginning of the feed"
FEED_START = "0"


def _entry_sequence(entry_id: str) -> tuple[int, int]:
    """Order stream ids like ``1700000000000-3`` numerically."""
    ms, _, seq = entry_id.partition("-")
    return int(ms or 0), int(seq or 0)


class CartStorage(ABC):
    """Key-value store holding one serialized cart per key, with change notifications."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw stored value or None when the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Overwrite the stored value."""

    @abstractmethod
    async def publish_change(self, key: str, origin: str) -> str:
        """Announce that ``origin`` wrote ``key``. Returns the feed entry id."""

    @abstractmethod
    async def read_changes(self, key: str, after_id: str = FEED_START) -> list[ChangeEntry]:
        """Return feed entries newer than ``after_id``, oldest first."""


class MemoryCartStorage(CartStorage):
    """In-process storage; engines sharing an instance see each other's writes."""

    def __init__(self):
        self._values: dict[str, str] = {}
        self._feeds: dict[str, list[ChangeEntry]] = {}
        self._counter = 0

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def publish_change(self, key: str, origin: str) -> str:
        self._counter += 1
        entry_id = f"{self._counter}-0"
        feed = self._feeds.setdefault(key, [])
        feed.append((entry_id, {"key": key, "origin": origin}))
        del feed[:-CHANGE_FEED_MAXLEN]
        return entry_id

    async def read_changes(self, key: str, after_id: str = FEED_START) -> list[ChangeEntry]:
        after = _entry_sequence(after_id)
        return [
            (entry_id, dict(fields))
            for entry_id, fields in self._feeds.get(key, [])
            if _entry_sequence(entry_id) > after
        ]


class RedisCartStorage(CartStorage):
    """
    Upstash Redis storage.

    Upstash REST has no blocking XREAD, so consumers poll read_changes().
    """

    def __init__(self, redis=None):
        self._redis = redis  # Lazy initialization

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e
        return self._redis

    async def get(self, key: str) -> str | None:
        try:
            return await self.redis.get(RedisKeys.cart_key(key))
        except CartStorageError:
            raise
        except Exception as e:
            raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.redis.set(RedisKeys.cart_key(key), value)
        except CartStorageError:
            raise
        except Exception as e:
            raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e

    async def publish_change(self, key: str, origin: str) -> str:
        payload = {"key": key, "origin": origin}
        try:
            return await self.redis.xadd(
                RedisKeys.changes_key(key),
                "*",
                {"data": json.dumps(payload)},
                maxlen=CHANGE_FEED_MAXLEN,
            )
        except CartStorageError:
            raise
        except Exception as e:
            raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e

    async def read_changes(self, key: str, after_id: str = FEED_START) -> list[ChangeEntry]:
        start = "-" if after_id == FEED_START else f"({after_id}"
        try:
            entries = await self.redis.xrange(
                RedisKeys.changes_key(key), start=start, end="+", count=CHANGE_FEED_MAXLEN
            )
        except CartStorageError:
            raise
        except Exception as e:
            raise CartStorageError(f"{ERROR_STORAGE_UNAVAILABLE}: {e}") from e

        changes: list[ChangeEntry] = []
        for entry_id, fields in entries or []:
            changes.append((entry_id, _decode_change(key, fields)))
        return changes


def _decode_change(key: str, fields: Any) -> dict[str, Any]:
    """Unpack the ``data`` field of a stream entry (dict or flat [k, v, ...] list)."""
    if isinstance(fields, list):
        fields = dict(zip(fields[::2], fields[1::2]))
    data = fields.get("data", "{}") if isinstance(fields, dict) else "{}"
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON in cart change feed {key}: {data}")
            data = {}
    if not isinstance(data, dict):
        data = {}
    data.setdefault("key", key)
    return data

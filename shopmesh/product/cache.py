"""JSON values kept in Redis."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any

import redis

log = logging.getLogger(__name__)

_SCAN_COUNT = 100


def _encode(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


def _expiry_kwargs(expiration: Any) -> dict[str, int]:
    if expiration is None:
        return {}
    if isinstance(expiration, timedelta):
        seconds = expiration.total_seconds()
    else:
        seconds = float(expiration)
    if seconds <= 0:
        return {}
    if seconds == int(seconds):
        return {"ex": int(seconds)}
    return {"px": max(1, int(seconds * 1000))}


class RedisCache:
    """A cache of JSON-encoded values on top of a Redis client."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_address(cls, addr: str, password: str = "", db: int = 0) -> "RedisCache":
        """Connect lazily to a server given as host:port."""
        log.info("Connecting to Redis at %s, DB %d", addr, db)
        host, sep, port = addr.rpartition(":")
        if not sep:
            host, port = addr, ""
        client = redis.Redis(
            host=host or "localhost",
            port=int(port) if port else 6379,
            password=password or None,
            db=db,
        )
        return cls(client)

    def set(self, key: str, value: Any, expiration: Any = None) -> None:
        """Store value as JSON; a missing or non-positive expiration keeps it forever."""
        payload = json.dumps(value, default=_encode)
        self.client.set(key, payload, **_expiry_kwargs(expiration))

    def get(self, key: str) -> Any:
        """Return the decoded value, or None when the key is absent."""
        raw = self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def exists(self, key: str) -> bool:
        """True if the key is present; errors count as absent."""
        try:
            return self.client.exists(key) > 0
        except redis.RedisError:
            return False

    def delete_pattern(self, pattern: str) -> None:
        """Delete every key matching a glob-style pattern."""
        cursor = 0
        while True:
            cursor, keys = self.client.scan(cursor=cursor, match=pattern, count=_SCAN_COUNT)
            if keys:
                self.client.delete(*keys)
            if cursor == 0:
                break
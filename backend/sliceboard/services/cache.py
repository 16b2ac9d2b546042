"""Key-value blob stores: Redis for deployments, a dict for tests and local runs."""

from functools import lru_cache
from typing import Optional

import redis

from sliceboard.config import settings


class RedisBlobStore:
    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisBlobStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def set(self, key: str, value: str) -> None:
        self._client.set(key, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)


class MemoryBlobStore:
    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


@lru_cache()
def get_blob_store() -> RedisBlobStore:
    return RedisBlobStore.from_url(settings.REDIS_URL)

"""Credential store with per-item expiry on top of the best available backend."""

import json
import logging
import time
from typing import List, Optional

from ..config import Config, get_config
from ..exceptions import StorageUnavailable
from .base import KeyValueStorage, Token
from .memory import MemoryStorage
from .session import SessionFileStorage
from .sqlite import SQLiteStorage

logger = logging.getLogger(__name__)

STORAGE_PREFIX = "asset_finder"
SENTINEL_KEY = f"{STORAGE_PREFIX}_test"
SENTINEL_VALUE = "yes"


def token_key(client_id: str) -> str:
    """Storage key of the token slot for a client."""
    return f"{STORAGE_PREFIX}_token_{client_id}"


def _current_time() -> int:
    return int(time.time())


class CredentialStore:
    """Stores tokens in JSON envelopes of the form ``{"data": ..., "expiresAt": ...}``.

    Expiry is lazy: a stale or undecodable envelope is deleted the moment a read
    observes it. Deletion is idempotent, so concurrent readers that both see a
    stale entry can both remove it.
    """

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    async def set(self, key: str, token: Token, ttl_seconds: Optional[int] = None) -> None:
        """Write a token, expiring ``ttl_seconds`` from now when given."""
        item = {
            "data": token.to_dict(),
            "expiresAt": _current_time() + ttl_seconds if ttl_seconds is not None else None,
        }
        await self.storage.set_item(key, json.dumps(item))

    async def get(self, key: str) -> Optional[Token]:
        """Read a token, or None when missing, malformed or expired."""
        raw = await self.storage.get_item(key)
        if not raw:
            return None

        try:
            item = json.loads(raw)
            expires_at = item.get("expiresAt")
            if expires_at is not None and (
                isinstance(expires_at, bool) or not isinstance(expires_at, (int, float))
            ):
                raise TypeError(f"expiresAt must be a timestamp, got {type(expires_at).__name__}")
            token = Token.from_dict(item["data"])
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning("Removing malformed credential %s: %s", key, type(e).__name__)
            await self.storage.remove_item(key)
            return None

        if expires_at is not None and _current_time() >= expires_at:
            logger.debug("Credential %s expired, removing", key)
            await self.storage.remove_item(key)
            return None

        return token

    async def pop(self, key: str) -> Optional[Token]:
        """Read a token and delete it unconditionally."""
        try:
            return await self.get(key)
        finally:
            await self.storage.remove_item(key)

    async def remove(self, key: str) -> None:
        await self.storage.remove_item(key)


async def check_storage(storage: KeyValueStorage) -> None:
    """Round-trip a sentinel value through a backend.

    Raises:
        StorageUnavailable: If the backend cannot store and return the sentinel
    """
    try:
        await storage.set_item(SENTINEL_KEY, SENTINEL_VALUE)
        value = await storage.get_item(SENTINEL_KEY)
        await storage.remove_item(SENTINEL_KEY)
    except Exception as e:
        raise StorageUnavailable(
            f"{type(storage).__name__} failed its self-test: {e}"
        ) from e

    if value != SENTINEL_VALUE:
        raise StorageUnavailable(f"{type(storage).__name__} did not return the sentinel value")


def storage_candidates(config: Config) -> List[KeyValueStorage]:
    """Backends in order of preference: durable, session-scoped, memory."""
    candidates: List[KeyValueStorage] = []
    if config.encryption_key:
        candidates.append(SQLiteStorage(config.database_path, config.encryption_key))
    else:
        logger.debug("ENCRYPTION_KEY not set, skipping durable storage")
    if config.session_dir:
        candidates.append(SessionFileStorage(config.session_dir))
    candidates.append(MemoryStorage())
    return candidates


async def select_storage(candidates: List[KeyValueStorage]) -> KeyValueStorage:
    """Return the first candidate that passes the self-test."""
    for storage in candidates:
        try:
            await check_storage(storage)
        except StorageUnavailable as e:
            logger.warning("%s: %s", e.code, e.message)
            await storage.close()
            continue
        logger.info("Using %s for credentials", type(storage).__name__)
        return storage

    # MemoryStorage never fails its self-test; this only guards custom candidate lists
    logger.warning("No storage backend available, using in-memory storage")
    return MemoryStorage()


# Global storage instance, checked once per process
_storage: Optional[KeyValueStorage] = None


async def get_storage(config: Optional[Config] = None) -> KeyValueStorage:
    """Get the global storage backend, probing candidates on first use."""
    global _storage
    if _storage is None:
        _storage = await select_storage(storage_candidates(config or get_config()))
    return _storage


async def reset_storage() -> None:
    """Close and forget the global storage backend."""
    global _storage
    if _storage is not None:
        await _storage.close()
    _storage = None

"""Durable credential backend: SQLite file with Fernet-encrypted values."""

import base64
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiosqlite
from cryptography.fernet import Fernet, InvalidToken

from .base import KeyValueStorage

SCHEMA = """
CREATE TABLE IF NOT EXISTS credentials (
    item_key TEXT PRIMARY KEY,
    ciphertext TEXT NOT NULL,
    written_at TEXT NOT NULL
)
"""

UPSERT = """
INSERT INTO credentials (item_key, ciphertext, written_at)
VALUES (?, ?, ?)
ON CONFLICT(item_key) DO UPDATE SET
    ciphertext = excluded.ciphertext,
    written_at = excluded.written_at
"""


def fernet_from_hex(encryption_key: str) -> Fernet:
    """Build a cipher from a 64-char hex key (Fernet wants it url-safe base64)."""
    return Fernet(base64.urlsafe_b64encode(bytes.fromhex(encryption_key)))


class SQLiteStorage(KeyValueStorage):
    """Values survive restarts; only ciphertext ever touches the disk.

    The connection is opened lazily on first use, creating the parent directory
    and the table as needed.
    """

    def __init__(self, db_path: str, encryption_key: str):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
            encryption_key: Hex-encoded encryption key (32 bytes = 64 hex chars)
        """
        self.db_path = db_path
        self.cipher = fernet_from_hex(encryption_key)
        self._connection: Optional[aiosqlite.Connection] = None

    async def _connect(self) -> aiosqlite.Connection:
        if self._connection is None:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            connection = await aiosqlite.connect(self.db_path)
            await connection.execute(SCHEMA)
            await connection.commit()
            self._connection = connection
        return self._connection

    async def get_item(self, key: str) -> Optional[str]:
        conn = await self._connect()
        async with conn.execute(
            "SELECT ciphertext FROM credentials WHERE item_key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        try:
            return self.cipher.decrypt(row[0].encode()).decode()
        except InvalidToken:
            # Written with another key; unreadable rows count as missing
            return None

    async def set_item(self, key: str, value: str) -> None:
        conn = await self._connect()
        ciphertext = self.cipher.encrypt(value.encode()).decode()
        await conn.execute(UPSERT, (key, ciphertext, datetime.now(timezone.utc).isoformat()))
        await conn.commit()

    async def remove_item(self, key: str) -> None:
        conn = await self._connect()
        await conn.execute("DELETE FROM credentials WHERE item_key = ?", (key,))
        await conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

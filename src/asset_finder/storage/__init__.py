"""Credential storage and its backends."""

from .base import KeyValueStorage, Token
from .credentials import CredentialStore, get_storage, reset_storage, token_key
from .memory import MemoryStorage
from .session import SessionFileStorage
from .sqlite import SQLiteStorage

__all__ = [
    "KeyValueStorage",
    "Token",
    "CredentialStore",
    "get_storage",
    "reset_storage",
    "token_key",
    "MemoryStorage",
    "SessionFileStorage",
    "SQLiteStorage",
]

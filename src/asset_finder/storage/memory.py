"""In-memory storage fallback."""

from typing import Dict, Optional

from .base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """Process-local store; everything is lost when the process exits."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def clear(self) -> None:
        self._items.clear()
